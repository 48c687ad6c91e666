"""
System-Wide Constants
=====================
Centralized location for the fixed business rules, the seed training set
and the vocabularies of the synthetic inventory feed.

Design Principles:
- All magic numbers are defined here
- Business rule constants are fixed per deployment, not per run
- Record schema lists the fields every inventory record must carry
"""

from typing import Dict, List, Any, Tuple

# =============================================================================
# BUSINESS RULES
# =============================================================================
# A score strictly above the threshold means "reorder".
REORDER_THRESHOLD = 0.5

# Safety stock buffer: expected demand during lead time, inflated by 50%.
SAFETY_STOCK_FACTOR = 1.5

# Sales velocity is reported per week; metrics are computed per day.
DAYS_PER_WEEK = 7

# Precision used whenever a score or a metric is surfaced to a consumer.
# Rounding uses Python's built-in round() (half-to-even on the float value).
SCORE_DECIMALS = 3
DAYS_OF_SUPPLY_DECIMALS = 1

# =============================================================================
# RECORD SCHEMA
# =============================================================================
# Field name -> (attribute name, minimum value). Numeric fields only;
# 'name' is display-only and validated separately.

RECORD_SCHEMA: Dict[str, Any] = {
    "name": "inventory_record",
    "description": "One tracked inventory item as supplied by the source",
    "required_columns": ["id", "name", "stock", "avgSales", "leadTime"],
    "numeric_columns": {
        "stock": ("stock", 0),
        "avgSales": ("avg_sales", 0),
        "leadTime": ("lead_time", 0),
    },
}

# =============================================================================
# TRAINING DATA
# =============================================================================
# Hand-authored seed set: [stock, avgSales, leadTime] -> needs reorder.
# Used to fit the classifier on every run; never mutated.

TRAINING_EXAMPLES: Tuple[Tuple[Tuple[int, int, int], int], ...] = (
    ((10, 50, 5), 1),
    ((200, 10, 7), 0),
    ((5, 20, 10), 1),
    ((50, 10, 2), 0),
    ((0, 50, 3), 1),
    ((15, 15, 14), 1),
)

FEATURE_NAMES: List[str] = ["stock", "avgSales", "leadTime"]

# =============================================================================
# CLASSIFIER
# =============================================================================

CLASSIFIER_CONFIG = {
    "hidden_units": 12,
    "activation": "relu",
    "solver": "adam",
    "epochs": 150,
    "learning_rate": 0.001,
}

# =============================================================================
# STATUS LABELS
# =============================================================================
# Human-readable labels published on every pipeline transition.

STATUS_LABELS = {
    "idle": "Ready to Load",
    "fetching_inventory": "Fetching Inventory...",
    "training": "Calibrating System...",
    "predicting": "Analyzing Stock...",
    "complete": "Analysis Complete",
    "failed": "Failed",
}

# =============================================================================
# SYNTHETIC INVENTORY FEED
# =============================================================================
# Stand-in for a real inventory API. Product names are built as
# "{type} {category} ({shade})".

SYNTHETIC_SOURCE_CONFIG = {
    "batch_size": 100,
    "latency_seconds": 0.8,
    "categories": ["Lipstick", "Foundation", "Mascara", "Eyeliner",
                   "Blush", "Eyeshadow", "Serum", "Primer"],
    "types": ["Matte", "Glossy", "Hydrating", "Long-wear",
              "Satin", "Waterproof", "Sheer", "Velvet"],
    "shades": ["Red", "Nude", "Berry", "Coral", "Ivory", "Mocha", "Pink", "Clear"],

    # avgSales drawn uniformly from [low, high)
    "avg_sales_range": (5, 45),
    # leadTime drawn uniformly from [low, high)
    "lead_time_range": (2, 16),

    # Share of items generated as reorder candidates
    "reorder_share": 0.4,
    # Reorder candidates: stock below half a week of sales
    "low_stock_factor": 0.5,
    # Healthy items: stock between 1x and 4x weekly sales
    "healthy_stock_factor": 3,
}

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================

OUTPUT_CONFIG = {
    "output_base_dir": "outputs",
    "table_filename": "reorder_forecast.csv",
    "summary_filename": "reorder_summary.json",
    "csv_encoding": "utf-8",
}

# Column headers of the consumer-facing result table
RESULT_COLUMNS = {
    "id": "Product ID",
    "name": "Product Name",
    "stock": "Inventory (Units)",
    "avg_sales": "Avg Sales/Wk",
    "lead_time": "Lead Time",
    "days_of_supply": "Days of Supply",
    "safety_stock": "Safety Stock",
    "action": "Prediction",
    "score": "Score",
}
