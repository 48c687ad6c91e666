"""
Reorder AI - Inventory Reorder Forecasting
==========================================

Predicts which inventory items need reordering from current stock,
weekly sales velocity and supplier lead time, and derives days of
supply and safety stock for every item.

Modules:
- config: Configuration management
- models: Records, predictions and run-state views
- services: Sources, classifier, metrics, pipeline and exports
- run_forecast: Command-line entry point

Usage:
    from reorder_ai import PredictionPipeline, SyntheticInventorySource

    pipeline = PredictionPipeline(SyntheticInventorySource())
    pipeline.start()
    snapshot = pipeline.snapshot
"""

__version__ = "1.0.0"

from .config import Config, DEFAULT_CONFIG
from .exceptions import (
    ReorderAIError,
    SourceUnavailable,
    InvalidRecord,
    ModelNotReady,
    TrainingFailed,
    InferenceFailed,
)
from .models import (
    InventoryRecord,
    DerivedMetrics,
    Prediction,
    ReorderAction,
    RunState,
    FailureReason,
    PipelineSnapshot,
)
from .services import (
    InventorySource,
    SyntheticInventorySource,
    CsvInventorySource,
    StaticInventorySource,
    MetricsCalculator,
    ReorderClassifier,
    PredictionPipeline,
    OutputGenerator,
)

__all__ = [
    'Config',
    'DEFAULT_CONFIG',
    'ReorderAIError',
    'SourceUnavailable',
    'InvalidRecord',
    'ModelNotReady',
    'TrainingFailed',
    'InferenceFailed',
    'InventoryRecord',
    'DerivedMetrics',
    'Prediction',
    'ReorderAction',
    'RunState',
    'FailureReason',
    'PipelineSnapshot',
    'InventorySource',
    'SyntheticInventorySource',
    'CsvInventorySource',
    'StaticInventorySource',
    'MetricsCalculator',
    'ReorderClassifier',
    'PredictionPipeline',
    'OutputGenerator',
]
