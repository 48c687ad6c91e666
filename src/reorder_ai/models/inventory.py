"""
Inventory Data Models
=====================
Data contracts shared by the source, the classifier and the pipeline.

Records use snake_case attributes; ``from_mapping`` also accepts the
camelCase field names used by inventory feeds (``avgSales``, ``leadTime``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from ..utils.constants import DAYS_OF_SUPPLY_DECIMALS, RESULT_COLUMNS, SCORE_DECIMALS


class ReorderAction(Enum):
    """Action derived from a classifier score."""
    REORDER = "Reorder"
    HOLD = "Hold"


class RunState(Enum):
    """Phases of a forecast run."""
    IDLE = "idle"
    FETCHING_INVENTORY = "fetching_inventory"
    TRAINING = "training"
    PREDICTING = "predicting"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_busy(self) -> bool:
        """True while a run is in progress."""
        return self in (
            RunState.FETCHING_INVENTORY,
            RunState.TRAINING,
            RunState.PREDICTING,
        )


class FailureReason(Enum):
    """Why a run ended in ``RunState.FAILED``."""
    SOURCE_UNAVAILABLE = "SourceUnavailable"
    INVALID_RECORD = "InvalidRecord"
    MODEL_NOT_READY = "ModelNotReady"
    TRAINING_FAILED = "TrainingFailed"
    INFERENCE_FAILED = "InferenceFailed"


@dataclass(frozen=True)
class InventoryRecord:
    """
    One tracked inventory item.
    
    Attributes
    ----------
    id : int
        Unique, stable identifier assigned by the source
    name : str
        Display label
    stock : int
        Units currently on hand
    avg_sales : int
        Average units sold per week
    lead_time : int
        Supplier replenishment lead time in days
    """
    id: int
    name: str
    stock: int
    avg_sales: int
    lead_time: int

    @property
    def features(self) -> Tuple[int, int, int]:
        """Classifier input: [stock, avgSales, leadTime]."""
        return (self.stock, self.avg_sales, self.lead_time)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'InventoryRecord':
        """Build a record from a feed row without validating it."""
        return cls(
            id=data.get('id'),
            name=data.get('name'),
            stock=data.get('stock'),
            avg_sales=data.get('avgSales', data.get('avg_sales')),
            lead_time=data.get('leadTime', data.get('lead_time')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'stock': self.stock,
            'avgSales': self.avg_sales,
            'leadTime': self.lead_time,
        }


@dataclass(frozen=True)
class DerivedMetrics:
    """Days of supply and safety stock for one record."""
    days_of_supply: float
    safety_stock: int


@dataclass(frozen=True)
class Prediction:
    """
    Classifier verdict for one record.
    
    ``score`` keeps full precision; ``display_score`` is the value
    surfaced to consumers.
    """
    record_id: int
    action: ReorderAction
    score: float

    @property
    def display_score(self) -> float:
        return round(self.score, SCORE_DECIMALS)

    @property
    def is_reorder(self) -> bool:
        return self.action is ReorderAction.REORDER


@dataclass(frozen=True)
class TrainingSummary:
    """Outcome of one classifier fit."""
    epochs: int
    final_loss: float
    accuracy: float
    n_examples: int


@dataclass(frozen=True)
class RecordView:
    """Read-only row of the result table: record plus its run artifacts."""
    record: InventoryRecord
    prediction: Optional[Prediction] = None
    metrics: Optional[DerivedMetrics] = None


@dataclass(frozen=True)
class PipelineSnapshot:
    """
    Read-only view of the pipeline, delivered to consumers.
    
    Attributes
    ----------
    state : RunState
        Current phase
    status_label : str
        Human-readable status
    failure_reason : FailureReason, optional
        Set when ``state`` is FAILED
    records : tuple of RecordView
        Records of the last completed run with their predictions and
        metrics; kept intact while a newer run is busy or has failed
    reorder_count : int
        Number of records whose action is Reorder
    fetched_count : int
        Records fetched by the current (or most recent) run
    error_message : str, optional
        Detail of the failure when ``state`` is FAILED
    run_id : int
        Sequence number of the run that produced this view
    training : TrainingSummary, optional
        Result of the last successful fit
    """
    state: RunState
    status_label: str
    failure_reason: Optional[FailureReason] = None
    records: Tuple[RecordView, ...] = field(default_factory=tuple)
    reorder_count: int = 0
    fetched_count: int = 0
    error_message: Optional[str] = None
    run_id: int = 0
    training: Optional[TrainingSummary] = None

    @property
    def record_count(self) -> int:
        """
        Rows of the last completed run.

        While a newer run is busy this still counts the previous results;
        ``fetched_count`` is the size of the batch being processed.
        """
        return len(self.records)

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy

    @property
    def predictions(self) -> Dict[int, Prediction]:
        return {
            view.record.id: view.prediction
            for view in self.records
            if view.prediction is not None
        }

    def reorder_items(self) -> List[RecordView]:
        """Rows flagged for reorder, lowest days of supply first."""
        flagged = [v for v in self.records if v.prediction and v.prediction.is_reorder]
        return sorted(flagged, key=lambda v: v.metrics.days_of_supply if v.metrics else 0.0)

    def to_frame(self) -> pd.DataFrame:
        """
        Result table as a DataFrame, one row per fetched record.
        
        Days of supply is rounded to one decimal and the score to three,
        as they are displayed; rows without a prediction carry NaN/None.
        """
        rows = []
        for view in self.records:
            rec = view.record
            rows.append({
                'id': rec.id,
                'name': rec.name,
                'stock': rec.stock,
                'avg_sales': rec.avg_sales,
                'lead_time': rec.lead_time,
                'days_of_supply': (
                    round(view.metrics.days_of_supply, DAYS_OF_SUPPLY_DECIMALS)
                    if view.metrics else None
                ),
                'safety_stock': view.metrics.safety_stock if view.metrics else None,
                'action': view.prediction.action.value if view.prediction else None,
                'score': view.prediction.display_score if view.prediction else None,
            })

        return pd.DataFrame(rows, columns=list(RESULT_COLUMNS.keys()))
