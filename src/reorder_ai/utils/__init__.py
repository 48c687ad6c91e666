"""
Utils Package
=============
Utility functions for the reorder forecasting pipeline.

Modules:
- logger: Centralized logging configuration
- constants: Business rules, seed training data and feed vocabularies
- validators: Inventory record validation (import directly)
"""

from .logger import get_logger, LogContext, configure_logging
from .constants import (
    REORDER_THRESHOLD,
    SAFETY_STOCK_FACTOR,
    TRAINING_EXAMPLES,
    STATUS_LABELS,
)

__all__ = [
    'get_logger',
    'LogContext',
    'configure_logging',
    'REORDER_THRESHOLD',
    'SAFETY_STOCK_FACTOR',
    'TRAINING_EXAMPLES',
    'STATUS_LABELS',
]
