import threading

import pytest

from reorder_ai.config import ClassifierConfig, Config, SourceConfig
from reorder_ai.models.inventory import InventoryRecord
from reorder_ai.services.classifier import ReorderClassifier
from reorder_ai.services.inventory_source import InventorySource, StaticInventorySource


SCENARIO_RECORDS = [
    InventoryRecord(id=1, name="Matte Lipstick (Red)", stock=5, avg_sales=20, lead_time=10),
    InventoryRecord(id=2, name="Glossy Blush (Nude)", stock=200, avg_sales=10, lead_time=7),
    InventoryRecord(id=3, name="Sheer Primer (Clear)", stock=0, avg_sales=50, lead_time=3),
]


class FailingSource(InventorySource):
    name = "failing"

    def __init__(self, error=None):
        self.error = error or ConnectionError("inventory API unreachable")
        self.calls = 0

    def fetch_batch(self):
        self.calls += 1
        raise self.error


class BlockingSource(InventorySource):
    """Holds fetch_batch open until ``release`` is set."""

    name = "blocking"

    def __init__(self, records):
        self.records = list(records)
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def fetch_batch(self):
        self.calls += 1
        self.entered.set()
        self.release.wait(timeout=10)
        return list(self.records)


@pytest.fixture
def scenario_records():
    return list(SCENARIO_RECORDS)


@pytest.fixture
def scenario_source():
    return StaticInventorySource(SCENARIO_RECORDS)


@pytest.fixture
def config(tmp_path):
    return Config(
        classifier=ClassifierConfig(random_state=7),
        source=SourceConfig(batch_size=25, latency_seconds=0, seed=11),
        output_path=tmp_path / "outputs",
    )


@pytest.fixture
def classifier(config):
    return ReorderClassifier(config.classifier)


@pytest.fixture(scope="module")
def trained_classifier():
    model = ReorderClassifier(ClassifierConfig(random_state=3))
    model.train()
    return model
