import threading

import pytest

from reorder_ai.config import ClassifierConfig
from reorder_ai.exceptions import InvalidRecord, PipelineTransitionError
from reorder_ai.models.inventory import FailureReason, ReorderAction, RunState
from reorder_ai.services.classifier import ReorderClassifier
from reorder_ai.services.inventory_source import StaticInventorySource, SyntheticInventorySource
from reorder_ai.services.pipeline import PredictionPipeline, decide_action, status_label
from reorder_ai.utils.constants import STATUS_LABELS
from reorder_ai.utils.validators import RecordValidator

from .conftest import SCENARIO_RECORDS, BlockingSource, FailingSource


class ExplodingNetwork:
    def fit(self, X, y):
        raise RuntimeError("backend crashed")


class UntrainableClassifier(ReorderClassifier):
    def _build_model(self):
        return ExplodingNetwork()


class ShortClassifier(ReorderClassifier):
    """Drops the last score to simulate a broken backend."""

    def predict(self, vectors):
        return super().predict(vectors)[:-1]


class ForgetfulClassifier(ReorderClassifier):
    """Claims success from train() without fitting anything."""

    def train(self):
        return None


class SwitchableSource(StaticInventorySource):
    def __init__(self, records):
        super().__init__(records)
        self.broken = False

    def fetch_batch(self):
        if self.broken:
            raise TimeoutError("feed timed out")
        return super().fetch_batch()


class InterruptedFeedSource(StaticInventorySource):
    """Streams records lazily and drops the connection partway through."""

    name = "interrupted"

    def __init__(self, records):
        super().__init__(records)
        self.broken = True

    def fetch_batch(self):
        def rows():
            for position, rec in enumerate(self.records):
                if self.broken and position == 1:
                    raise ConnectionError("feed connection reset")
                yield rec
        return rows()


class CrashingValidator(RecordValidator):
    def validate_batch(self, batch):
        raise KeyError("schema lookup")


def make_pipeline(source, config, classifier=None):
    return PredictionPipeline(source, classifier=classifier or ReorderClassifier(config.classifier),
                              config=config)


def record_states(pipeline):
    states = []
    pipeline.subscribe(lambda snap: states.append(snap.state))
    return states


# ---------------------------------------------------------------------------
# Decision rule and labels
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("score, action", [
    (0.0, ReorderAction.HOLD),
    (0.5, ReorderAction.HOLD),
    (0.5000001, ReorderAction.REORDER),
    (1.0, ReorderAction.REORDER),
])
def test_decide_action_threshold(score, action):
    assert decide_action(score) is action


def test_status_labels():
    assert status_label(RunState.IDLE) == "Ready to Load"
    assert status_label(RunState.COMPLETE) == "Analysis Complete"
    assert status_label(RunState.FAILED, FailureReason.SOURCE_UNAVAILABLE) == "Failed: SourceUnavailable"


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

def test_initial_snapshot_is_idle(scenario_source, config):
    snap = make_pipeline(scenario_source, config).snapshot
    assert snap.state is RunState.IDLE
    assert snap.status_label == STATUS_LABELS["idle"]
    assert snap.record_count == 0
    assert snap.reorder_count == 0
    assert not snap.is_busy


def test_run_walks_every_state_in_order(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    labels = []
    pipeline.subscribe(lambda snap: labels.append(snap.status_label))
    states = record_states(pipeline)

    assert pipeline.start() is True

    assert states == [
        RunState.FETCHING_INVENTORY,
        RunState.TRAINING,
        RunState.PREDICTING,
        RunState.COMPLETE,
    ]
    assert labels == [
        "Fetching Inventory...",
        "Calibrating System...",
        "Analyzing Stock...",
        "Analysis Complete",
    ]


def test_end_to_end_scenario(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    pipeline.start()
    snap = pipeline.snapshot

    assert snap.state is RunState.COMPLETE
    assert snap.fetched_count == 3
    assert [v.record for v in snap.records] == SCENARIO_RECORDS

    predictions = snap.predictions
    assert sorted(predictions) == [1, 2, 3]
    for view in snap.records:
        assert view.prediction.record_id == view.record.id
        assert 0.0 <= view.prediction.score <= 1.0
        assert (view.prediction.action is ReorderAction.REORDER) == (view.prediction.score > 0.5)

    metrics = {v.record.id: v.metrics for v in snap.records}
    assert metrics[1].days_of_supply == pytest.approx(1.75)
    assert metrics[2].days_of_supply == pytest.approx(140.0)
    assert metrics[3].days_of_supply == 0
    assert [metrics[i].safety_stock for i in (1, 2, 3)] == [42, 15, 32]

    expected_reorders = sum(1 for v in snap.records if v.prediction.is_reorder)
    assert snap.reorder_count == expected_reorders
    assert snap.training is not None
    assert snap.training.epochs == config.classifier.epochs


def test_decisions_are_consistent_on_a_full_batch(config):
    source = SyntheticInventorySource(config.source)
    pipeline = make_pipeline(source, config)
    pipeline.start()
    snap = pipeline.snapshot

    assert snap.record_count == config.source.batch_size
    for view in snap.records:
        assert 0.0 <= view.prediction.score <= 1.0
        assert view.prediction.is_reorder == (view.prediction.score > 0.5)
        assert view.prediction.display_score == round(view.prediction.score, 3)


def test_buffers_released_after_run(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    pipeline.start()
    assert pipeline.classifier.open_buffers == 0


def test_empty_batch_completes_with_no_predictions(config):
    pipeline = make_pipeline(StaticInventorySource([]), config)
    pipeline.start()
    snap = pipeline.snapshot
    assert snap.state is RunState.COMPLETE
    assert snap.record_count == 0
    assert snap.reorder_count == 0


def test_new_run_supersedes_previous_results(config):
    source = StaticInventorySource(SCENARIO_RECORDS)
    pipeline = make_pipeline(source, config)
    pipeline.start()
    first = pipeline.snapshot

    source.records = SCENARIO_RECORDS[:1]
    assert pipeline.start() is True
    second = pipeline.snapshot

    assert second.run_id == first.run_id + 1
    assert second.state is RunState.COMPLETE
    assert [v.record.id for v in second.records] == [1]
    assert list(second.predictions) == [1]


def test_busy_snapshot_counts_previous_rows_and_new_batch_separately(config):
    source = StaticInventorySource(SCENARIO_RECORDS)
    pipeline = make_pipeline(source, config)
    pipeline.start()

    source.records = SCENARIO_RECORDS[:2]
    counts = {}
    pipeline.subscribe(
        lambda snap: counts.setdefault(snap.state, (snap.record_count, snap.fetched_count))
    )
    pipeline.start()

    assert counts[RunState.FETCHING_INVENTORY] == (3, 0)
    assert counts[RunState.TRAINING] == (3, 2)
    assert counts[RunState.COMPLETE] == (2, 2)


def test_classifier_is_retrained_every_run(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    pipeline.start()
    first_model = pipeline.classifier._model
    pipeline.start()
    assert pipeline.classifier._model is not first_model


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_source_error_fails_with_source_unavailable(config):
    pipeline = make_pipeline(FailingSource(), config)
    states = record_states(pipeline)

    assert pipeline.start() is True
    snap = pipeline.snapshot

    assert states == [RunState.FETCHING_INVENTORY, RunState.FAILED]
    assert snap.state is RunState.FAILED
    assert snap.failure_reason is FailureReason.SOURCE_UNAVAILABLE
    assert snap.status_label == "Failed: SourceUnavailable"
    assert "unreachable" in snap.error_message
    assert snap.records == ()
    assert snap.predictions == {}
    assert not pipeline.classifier.is_trained


def test_failure_leaves_previous_predictions_intact(config):
    source = SwitchableSource(SCENARIO_RECORDS)
    pipeline = make_pipeline(source, config)
    pipeline.start()
    before = pipeline.snapshot

    source.broken = True
    pipeline.start()
    after = pipeline.snapshot

    assert after.state is RunState.FAILED
    assert after.failure_reason is FailureReason.SOURCE_UNAVAILABLE
    assert after.records == before.records
    assert after.predictions == before.predictions
    assert after.reorder_count == before.reorder_count


def test_invalid_record_rejects_whole_batch(config):
    rows = [r.to_dict() for r in SCENARIO_RECORDS]
    rows[1]["avgSales"] = None
    pipeline = make_pipeline(StaticInventorySource(rows), config)
    states = record_states(pipeline)

    pipeline.start()
    snap = pipeline.snapshot

    assert states == [RunState.FETCHING_INVENTORY, RunState.FAILED]
    assert snap.failure_reason is FailureReason.INVALID_RECORD
    assert snap.records == ()


def test_source_raising_invalid_record_keeps_reason(config):
    pipeline = make_pipeline(FailingSource(InvalidRecord("bad row")), config)
    pipeline.start()
    assert pipeline.snapshot.failure_reason is FailureReason.INVALID_RECORD


def test_training_failure(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config, classifier=UntrainableClassifier())
    states = record_states(pipeline)
    pipeline.start()

    assert states == [RunState.FETCHING_INVENTORY, RunState.TRAINING, RunState.FAILED]
    assert pipeline.snapshot.failure_reason is FailureReason.TRAINING_FAILED
    assert pipeline.snapshot.fetched_count == 3
    assert pipeline.classifier.open_buffers == 0


def test_inference_failure(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config,
                             classifier=ShortClassifier(ClassifierConfig(random_state=1)))
    states = record_states(pipeline)
    pipeline.start()

    assert states[-2:] == [RunState.PREDICTING, RunState.FAILED]
    assert pipeline.snapshot.failure_reason is FailureReason.INFERENCE_FAILED
    assert pipeline.snapshot.records == ()


def test_untrained_model_surfaces_model_not_ready(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config, classifier=ForgetfulClassifier())
    pipeline.start()
    assert pipeline.snapshot.failure_reason is FailureReason.MODEL_NOT_READY


def test_retry_after_failure_is_allowed(config):
    source = SwitchableSource(SCENARIO_RECORDS)
    source.broken = True
    pipeline = make_pipeline(source, config)
    pipeline.start()
    assert pipeline.state is RunState.FAILED

    source.broken = False
    assert pipeline.start() is True
    assert pipeline.state is RunState.COMPLETE
    assert pipeline.snapshot.failure_reason is None
    assert pipeline.snapshot.error_message is None


def test_no_automatic_retry(config):
    source = FailingSource()
    make_pipeline(source, config).start()
    assert source.calls == 1


def test_lazy_batch_failing_midway_fails_the_run(config):
    source = InterruptedFeedSource(SCENARIO_RECORDS)
    pipeline = make_pipeline(source, config)
    states = record_states(pipeline)

    assert pipeline.start() is True
    snap = pipeline.snapshot

    assert states == [RunState.FETCHING_INVENTORY, RunState.FAILED]
    assert snap.failure_reason is FailureReason.SOURCE_UNAVAILABLE
    assert "connection reset" in snap.error_message
    assert not pipeline.is_busy

    source.broken = False
    assert pipeline.start() is True
    assert pipeline.state is RunState.COMPLETE
    assert pipeline.snapshot.record_count == len(SCENARIO_RECORDS)


def test_lazy_batch_failure_on_worker_thread_frees_the_run_slot(config):
    pipeline = make_pipeline(InterruptedFeedSource(SCENARIO_RECORDS), config)

    worker = pipeline.start_in_background()
    assert worker is not None
    worker.join(timeout=10)

    assert pipeline.state is RunState.FAILED
    assert pipeline.snapshot.failure_reason is FailureReason.SOURCE_UNAVAILABLE
    retry = pipeline.start_in_background()
    assert retry is not None
    retry.join(timeout=10)


def test_unexpected_error_maps_to_active_stage(scenario_source, config):
    pipeline = PredictionPipeline(scenario_source, classifier=ReorderClassifier(config.classifier),
                                  config=config, validator=CrashingValidator())
    pipeline.start()
    snap = pipeline.snapshot

    assert snap.state is RunState.FAILED
    assert snap.failure_reason is FailureReason.SOURCE_UNAVAILABLE
    assert "KeyError" in snap.error_message


# ---------------------------------------------------------------------------
# Exclusivity
# ---------------------------------------------------------------------------

def test_start_while_busy_is_rejected_from_listener(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    attempts = {}

    def try_restart(snap):
        if snap.is_busy:
            before = pipeline.snapshot
            accepted = pipeline.start()
            attempts[snap.state] = (accepted, pipeline.snapshot == before)

    pipeline.subscribe(try_restart)
    pipeline.start()

    assert attempts == {
        RunState.FETCHING_INVENTORY: (False, True),
        RunState.TRAINING: (False, True),
        RunState.PREDICTING: (False, True),
    }
    assert pipeline.snapshot.run_id == 1
    assert pipeline.state is RunState.COMPLETE


def test_start_while_busy_is_rejected_from_another_thread(config):
    source = BlockingSource(SCENARIO_RECORDS)
    pipeline = make_pipeline(source, config)

    worker = pipeline.start_in_background()
    assert worker is not None
    assert source.entered.wait(timeout=5)

    busy = pipeline.snapshot
    assert busy.state is RunState.FETCHING_INVENTORY
    assert pipeline.start() is False
    assert pipeline.start_in_background() is None
    assert pipeline.snapshot == busy

    source.release.set()
    worker.join(timeout=30)
    assert not worker.is_alive()
    assert source.calls == 1
    assert pipeline.state is RunState.COMPLETE
    assert pipeline.snapshot.run_id == 1


def test_concurrent_starts_admit_a_single_run(config):
    source = BlockingSource(SCENARIO_RECORDS)
    pipeline = make_pipeline(source, config)
    barrier = threading.Barrier(4)
    workers = []
    lock = threading.Lock()

    def contend():
        barrier.wait()
        worker = pipeline.start_in_background()
        if worker is not None:
            with lock:
                workers.append(worker)

    threads = [threading.Thread(target=contend) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(workers) == 1
    source.release.set()
    workers[0].join(timeout=30)
    assert source.calls == 1
    assert pipeline.snapshot.run_id == 1


# ---------------------------------------------------------------------------
# Listeners and transitions
# ---------------------------------------------------------------------------

def test_listener_errors_do_not_break_the_run(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)

    def broken_listener(snap):
        raise ValueError("render failed")

    pipeline.subscribe(broken_listener)
    pipeline.start()
    assert pipeline.state is RunState.COMPLETE


def test_unsubscribe_stops_updates(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    seen = []
    unsubscribe = pipeline.subscribe(seen.append)
    unsubscribe()
    pipeline.start()
    assert seen == []


def test_invalid_transition_is_refused(scenario_source, config):
    pipeline = make_pipeline(scenario_source, config)
    assert not pipeline.can_transition(RunState.IDLE, RunState.COMPLETE)
    with pytest.raises(PipelineTransitionError):
        pipeline._transition(RunState.PREDICTING)
    assert pipeline.state is RunState.IDLE
