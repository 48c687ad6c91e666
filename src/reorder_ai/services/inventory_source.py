"""
Inventory Source Service
========================
Suppliers of inventory batches for the forecasting pipeline.

Implementations:
- SyntheticInventorySource: random catalogue standing in for a real
  inventory API (seeded numpy Generator, simulated latency)
- CsvInventorySource: records loaded from a CSV export with pandas
- StaticInventorySource: a fixed batch, for demos and tests

Any object with a ``fetch_batch()`` method returning records (or rows
with the feed's camelCase field names) can be plugged into the pipeline.
"""

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from ..config import SourceConfig
from ..exceptions import SourceUnavailable
from ..models.inventory import InventoryRecord
from ..utils.constants import RECORD_SCHEMA, SYNTHETIC_SOURCE_CONFIG
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InventorySource(ABC):
    """
    Abstract fetch-batch capability.

    ``fetch_batch`` may block; latency and batch size are opaque to the
    pipeline. Failures should raise ``SourceUnavailable``; any other
    exception is treated the same way by the pipeline.
    """

    name: str = "inventory"

    @abstractmethod
    def fetch_batch(self) -> List[Any]:
        """Return the current inventory batch."""
        pass


class SyntheticInventorySource(InventorySource):
    """
    Random product catalogue.

    About 40% of items are generated as reorder candidates (stock below
    half a week of sales); the rest hold between one and four weeks of
    sales.
    """

    name = "synthetic"

    def __init__(self, config: Optional[SourceConfig] = None, params: Optional[dict] = None):
        self.config = config or SourceConfig()
        self.params = params or SYNTHETIC_SOURCE_CONFIG
        self._rng = np.random.default_rng(self.config.seed)

    def _product_name(self) -> str:
        category = self._rng.choice(self.params['categories'])
        product_type = self._rng.choice(self.params['types'])
        shade = self._rng.choice(self.params['shades'])
        return f"{product_type} {category} ({shade})"

    def _stock_level(self, avg_sales: int) -> int:
        if self._rng.random() < self.params['reorder_share']:
            ceiling = int(avg_sales * self.params['low_stock_factor'])
            return int(self._rng.integers(0, ceiling)) if ceiling > 0 else 0
        spread = avg_sales * self.params['healthy_stock_factor']
        return int(self._rng.integers(0, spread)) + avg_sales if spread > 0 else avg_sales

    def generate(self, count: int) -> List[InventoryRecord]:
        """Build ``count`` random records with ids 1..count."""
        sales_low, sales_high = self.params['avg_sales_range']
        lead_low, lead_high = self.params['lead_time_range']

        records = []
        for item_id in range(1, count + 1):
            name = self._product_name()
            avg_sales = int(self._rng.integers(sales_low, sales_high))
            lead_time = int(self._rng.integers(lead_low, lead_high))
            records.append(InventoryRecord(
                id=item_id,
                name=name,
                stock=self._stock_level(avg_sales),
                avg_sales=avg_sales,
                lead_time=lead_time,
            ))
        return records

    def fetch_batch(self) -> List[InventoryRecord]:
        records = self.generate(self.config.batch_size)
        if self.config.latency_seconds:
            time.sleep(self.config.latency_seconds)
        logger.info(f"Synthetic source produced {len(records)} records")
        return records


class CsvInventorySource(InventorySource):
    """
    Inventory export loaded with pandas.

    Expected columns: ``id, name, stock, avgSales, leadTime``. Missing
    cells are passed through as None so validation can reject the batch.
    """

    name = "csv"

    def __init__(self, path: Union[str, Path], encoding: str = 'utf-8'):
        self.path = Path(path)
        self.encoding = encoding

    def fetch_batch(self) -> List[dict]:
        if not self.path.exists():
            raise SourceUnavailable(f"Inventory file not found: {self.path}")

        try:
            df = pd.read_csv(self.path, encoding=self.encoding)
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise SourceUnavailable(f"Could not read inventory file {self.path}: {e}") from e

        missing = [col for col in RECORD_SCHEMA['required_columns'] if col not in df.columns]
        if missing:
            raise SourceUnavailable(f"Inventory file {self.path} is missing columns: {missing}")

        df = df[RECORD_SCHEMA['required_columns']]
        df = df.astype(object).where(df.notna(), None)
        rows = df.to_dict(orient='records')

        logger.info(f"Loaded {len(rows):,} records from {self.path.name}")
        return rows


class StaticInventorySource(InventorySource):
    """Returns the same batch on every fetch."""

    name = "static"

    def __init__(self, records: Iterable[Any]):
        self.records = list(records)

    def fetch_batch(self) -> List[Any]:
        return list(self.records)
