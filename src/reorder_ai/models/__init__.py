"""
Models Package
===============
Data contracts for the reorder forecasting pipeline.

Modules:
- inventory: records, predictions, derived metrics and run-state views
"""

from .inventory import (
    InventoryRecord,
    DerivedMetrics,
    Prediction,
    ReorderAction,
    RunState,
    FailureReason,
    TrainingSummary,
    RecordView,
    PipelineSnapshot,
)

__all__ = [
    'InventoryRecord',
    'DerivedMetrics',
    'Prediction',
    'ReorderAction',
    'RunState',
    'FailureReason',
    'TrainingSummary',
    'RecordView',
    'PipelineSnapshot',
]
