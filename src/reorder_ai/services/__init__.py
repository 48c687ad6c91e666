"""
Services Package
=================
Core services of the reorder forecasting pipeline.

Modules:
- inventory_source: Inventory batch suppliers (synthetic, CSV, static)
- metrics: Days of supply and safety stock
- classifier: Feed-forward reorder classifier
- pipeline: Run orchestration and state machine
- output_generator: Result table and summary export
"""

from .inventory_source import (
    InventorySource,
    SyntheticInventorySource,
    CsvInventorySource,
    StaticInventorySource,
)
from .metrics import MetricsCalculator, compute_metrics
from .classifier import ReorderClassifier
from .pipeline import PredictionPipeline, decide_action
from .output_generator import OutputGenerator, OutputPackage

__all__ = [
    'InventorySource',
    'SyntheticInventorySource',
    'CsvInventorySource',
    'StaticInventorySource',
    'MetricsCalculator',
    'compute_metrics',
    'ReorderClassifier',
    'PredictionPipeline',
    'decide_action',
    'OutputGenerator',
    'OutputPackage',
]
