"""
Prediction Pipeline
===================
Orchestrates one forecast run: fetch inventory, train the classifier,
score every record, derive metrics and publish the results.

State Flow:
IDLE -> FETCHING_INVENTORY -> TRAINING -> PREDICTING -> COMPLETE
Any busy state can transition to FAILED on error.
COMPLETE and FAILED accept a new ``start``.

At most one run is active: a ``start`` while busy is rejected (not
queued) and leaves every piece of state untouched.
"""

import threading
from collections.abc import Mapping
from typing import Callable, Dict, List, Optional

from ..config import Config, DEFAULT_CONFIG
from ..exceptions import (
    InferenceFailed,
    InvalidRecord,
    PipelineTransitionError,
    ReorderAIError,
    SourceUnavailable,
    TrainingFailed,
)
from ..models.inventory import (
    FailureReason,
    InventoryRecord,
    PipelineSnapshot,
    Prediction,
    RecordView,
    ReorderAction,
    RunState,
    TrainingSummary,
)
from ..utils.constants import REORDER_THRESHOLD, STATUS_LABELS
from ..utils.logger import LogContext, get_logger
from ..utils.validators import RecordValidator
from .classifier import ReorderClassifier
from .inventory_source import InventorySource
from .metrics import MetricsCalculator

logger = get_logger(__name__)

Listener = Callable[[PipelineSnapshot], None]


def decide_action(score: float) -> ReorderAction:
    """Reorder when the score is strictly above the threshold."""
    return ReorderAction.REORDER if score > REORDER_THRESHOLD else ReorderAction.HOLD


def status_label(state: RunState, reason: Optional[FailureReason] = None) -> str:
    label = STATUS_LABELS[state.value]
    if state is RunState.FAILED and reason is not None:
        return f"{label}: {reason.value}"
    return label


class PredictionPipeline:
    """
    Single entry point of the forecasting system.

    Usage:
        pipeline = PredictionPipeline(SyntheticInventorySource())
        pipeline.subscribe(lambda snap: print(snap.status_label))
        pipeline.start()
        print(pipeline.snapshot.reorder_count)
    """

    # Valid state transitions
    TRANSITIONS: Dict[RunState, List[RunState]] = {
        RunState.IDLE: [RunState.FETCHING_INVENTORY],
        RunState.FETCHING_INVENTORY: [RunState.TRAINING, RunState.FAILED],
        RunState.TRAINING: [RunState.PREDICTING, RunState.FAILED],
        RunState.PREDICTING: [RunState.COMPLETE, RunState.FAILED],
        RunState.COMPLETE: [RunState.FETCHING_INVENTORY],
        RunState.FAILED: [RunState.FETCHING_INVENTORY],
    }

    # Failure raised for errors that escape a stage's own handling
    STAGE_ERRORS = {
        RunState.FETCHING_INVENTORY: SourceUnavailable,
        RunState.TRAINING: TrainingFailed,
        RunState.PREDICTING: InferenceFailed,
    }

    def __init__(
        self,
        source: InventorySource,
        classifier: Optional[ReorderClassifier] = None,
        metrics: Optional[MetricsCalculator] = None,
        config: Optional[Config] = None,
        validator: Optional[RecordValidator] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.source = source
        self.classifier = classifier or ReorderClassifier(self.config.classifier)
        self.metrics = metrics or MetricsCalculator()
        self.validator = validator or RecordValidator()

        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

        self._state = RunState.IDLE
        self._failure_reason: Optional[FailureReason] = None
        self._error_message: Optional[str] = None
        self._run_id = 0
        self._fetched_count = 0

        # Artifacts of the last completed run
        self._results: tuple = ()
        self._reorder_count = 0
        self._training: Optional[TrainingSummary] = None

    # ------------------------------------------------------------------
    # Consumer-facing views
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state.is_busy

    @property
    def snapshot(self) -> PipelineSnapshot:
        with self._lock:
            return self._snapshot_unlocked()

    def _snapshot_unlocked(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            state=self._state,
            status_label=status_label(self._state, self._failure_reason),
            failure_reason=self._failure_reason,
            records=self._results,
            reorder_count=self._reorder_count,
            fetched_count=self._fetched_count,
            error_message=self._error_message,
            run_id=self._run_id,
            training=self._training,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback receiving a snapshot after every transition.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, snapshot: PipelineSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Status listener {listener!r} raised; continuing run")

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def can_transition(self, current: RunState, target: RunState) -> bool:
        """Check if a transition is valid."""
        return target in self.TRANSITIONS.get(current, [])

    def _set_state_unlocked(self, target: RunState) -> None:
        if not self.can_transition(self._state, target):
            raise PipelineTransitionError(
                f"Invalid transition: {self._state.value} -> {target.value}"
            )
        self._state = target

    def _transition(self, target: RunState) -> None:
        with self._lock:
            self._set_state_unlocked(target)
            snapshot = self._snapshot_unlocked()
        logger.info(f"Run {snapshot.run_id}: {snapshot.status_label}")
        self._publish(snapshot)

    def _claim(self) -> bool:
        """Atomically move to FETCHING_INVENTORY unless a run is active."""
        with self._lock:
            if self._state.is_busy:
                logger.warning(
                    f"Run request ignored: run {self._run_id} is still {self._state.value}"
                )
                return False
            self._set_state_unlocked(RunState.FETCHING_INVENTORY)
            self._run_id += 1
            self._failure_reason = None
            self._error_message = None
            self._fetched_count = 0
            snapshot = self._snapshot_unlocked()
        logger.info(f"Run {snapshot.run_id}: {snapshot.status_label}")
        self._publish(snapshot)
        return True

    def start(self) -> bool:
        """
        Run a full forecast, blocking until it completes or fails.

        Returns
        -------
        bool
            False if the request was rejected because a run is in progress
        """
        if not self._claim():
            return False
        self._execute()
        return True

    def start_in_background(self) -> Optional[threading.Thread]:
        """
        Claim the run slot now and execute the run on a worker thread.

        Returns the started thread, or None if a run is already in progress.
        """
        if not self._claim():
            return None
        worker = threading.Thread(
            target=self._execute,
            name=f"reorder-forecast-{self._run_id}",
            daemon=True,
        )
        worker.start()
        return worker

    def _stage_error(self, error: Exception) -> ReorderAIError:
        """Wrap an unexpected exception in the failure of the active stage."""
        with self._lock:
            error_type = self.STAGE_ERRORS.get(self._state, InferenceFailed)
        wrapped = error_type(f"{type(error).__name__}: {error}")
        wrapped.__cause__ = error
        return wrapped

    def _fail(self, error: ReorderAIError) -> None:
        with self._lock:
            self._failure_reason = error.reason
            self._error_message = str(error)
            self._set_state_unlocked(RunState.FAILED)
            snapshot = self._snapshot_unlocked()
        logger.error(f"Run {snapshot.run_id}: {snapshot.status_label} - {snapshot.error_message}")
        self._publish(snapshot)

    def _execute(self) -> None:
        try:
            records = self._fetch_inventory()
            with self._lock:
                self._fetched_count = len(records)
            self._transition(RunState.TRAINING)

            training = self._train()
            self._transition(RunState.PREDICTING)

            views = self._predict(records)
        except Exception as e:
            if isinstance(e, ReorderAIError) and e.reason is not None:
                self._fail(e)
            else:
                logger.exception(f"Run {self._run_id}: unexpected error while {self._state.value}")
                self._fail(self._stage_error(e))
            return

        reorder_count = sum(1 for view in views if view.prediction.is_reorder)
        with self._lock:
            self._results = tuple(views)
            self._reorder_count = reorder_count
            self._training = training
        self._transition(RunState.COMPLETE)
        logger.info(
            f"Run {self._run_id}: {reorder_count} of {len(views)} products need reordering"
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _fetch_inventory(self) -> List[InventoryRecord]:
        with LogContext(logger, f"Fetching inventory ({self.source.name} source)"):
            try:
                batch = self.source.fetch_batch()
                # Lazy batches (generators, cursors) can fail while being read
                if batch is not None and not isinstance(batch, (str, bytes, Mapping, list)):
                    batch = list(batch)
            except (SourceUnavailable, InvalidRecord):
                raise
            except Exception as e:
                raise SourceUnavailable(f"Inventory source failed: {e}") from e
            return self.validator.validate_batch(batch)

    def _train(self) -> TrainingSummary:
        with LogContext(logger, "Training reorder classifier"):
            try:
                return self.classifier.train()
            except TrainingFailed:
                raise
            except Exception as e:
                raise TrainingFailed(f"Training failed: {e}") from e

    def _predict(self, records: List[InventoryRecord]) -> List[RecordView]:
        with LogContext(logger, f"Scoring {len(records)} products"):
            try:
                scores = self.classifier.predict([record.features for record in records])
            except ReorderAIError as e:
                if e.reason in (FailureReason.MODEL_NOT_READY, FailureReason.INFERENCE_FAILED):
                    raise
                raise InferenceFailed(f"Scoring failed: {e}") from e
            except Exception as e:
                raise InferenceFailed(f"Scoring failed: {e}") from e

            if len(scores) != len(records):
                raise InferenceFailed(
                    f"Classifier returned {len(scores)} scores for {len(records)} records"
                )

            views = []
            for record, score in zip(records, scores):
                if not 0.0 <= score <= 1.0:
                    raise InferenceFailed(f"Score {score!r} for record {record.id} is outside [0, 1]")
                try:
                    metrics = self.metrics(record)
                except Exception as e:
                    raise InferenceFailed(f"Metrics failed for record {record.id}: {e}") from e
                views.append(RecordView(
                    record=record,
                    prediction=Prediction(
                        record_id=record.id,
                        action=decide_action(score),
                        score=float(score),
                    ),
                    metrics=metrics,
                ))
            return views
