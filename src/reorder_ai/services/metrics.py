"""
Derived Inventory Metrics
=========================
Days of supply and safety stock for a single inventory record.

Formulas:
- days_of_supply = stock / (avg_sales / 7), or 0 when avg_sales is 0
- safety_stock   = floor(avg_sales * (lead_time / 7) * 1.5)

Both are pure functions of the record: no state, no side effects.
"""

import math
from fractions import Fraction

from ..models.inventory import DerivedMetrics, InventoryRecord
from ..utils.constants import DAYS_PER_WEEK, SAFETY_STOCK_FACTOR


def days_of_supply(stock: int, avg_sales: int) -> float:
    """Days the current stock lasts at the weekly sales rate."""
    if avg_sales <= 0:
        return 0.0
    return stock / (avg_sales / DAYS_PER_WEEK)


def safety_stock(avg_sales: int, lead_time: int) -> int:
    """Expected demand during lead time plus a 50% buffer, in whole units."""
    # Rational, so 42 units/week over 17 days floors to 153 and not 152
    units = Fraction(avg_sales * lead_time, DAYS_PER_WEEK) * Fraction(SAFETY_STOCK_FACTOR)
    return math.floor(units)


def compute_metrics(record: InventoryRecord) -> DerivedMetrics:
    return DerivedMetrics(
        days_of_supply=days_of_supply(record.stock, record.avg_sales),
        safety_stock=safety_stock(record.avg_sales, record.lead_time),
    )


class MetricsCalculator:
    """
    Callable wrapper around ``compute_metrics`` so the pipeline can take
    the calculator as a collaborator.

    Usage:
        calc = MetricsCalculator()
        metrics = calc(record)   # DerivedMetrics(days_of_supply=..., safety_stock=...)
    """

    def compute(self, record: InventoryRecord) -> DerivedMetrics:
        return compute_metrics(record)

    __call__ = compute
