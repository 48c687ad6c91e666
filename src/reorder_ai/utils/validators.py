"""
Inventory Record Validation
============================
Checks every record of a fetched batch before it reaches the classifier.

Design Principles:
- Never silently fail - always log issues
- Collect every problem before deciding, so errors are actionable
- A single bad record rejects the whole batch; dropping records would
  silently skew reorder counts
"""

import math
from numbers import Integral, Real
from typing import Any, Dict, Iterable, List, Mapping, Optional
from dataclasses import dataclass, field

from .logger import get_logger
from .constants import RECORD_SCHEMA
from ..exceptions import InvalidRecord, SourceUnavailable
from ..models.inventory import InventoryRecord

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """
    Structured result of a validation operation.
    
    Attributes
    ----------
    is_valid : bool
        Overall validation status
    errors : List[str]
        Critical issues that prevent processing
    warnings : List[str]
        Non-critical issues to be aware of
    info : Dict[str, Any]
        Additional validation metadata
    """
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: Dict[str, Any] = field(default_factory=dict)
    
    def add_error(self, message: str) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.is_valid = False
    
    def add_warning(self, message: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info
        }


def _coerce_count(value: Any) -> Optional[int]:
    """Return value as a non-bool integer, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Integral):
        return int(value)
    if isinstance(value, Real):
        # Integral floats come out of pandas when a column has gaps
        if math.isfinite(value) and float(value).is_integer():
            return int(value)
    return None


class RecordValidator:
    """
    Validates inventory records against ``RECORD_SCHEMA``.
    
    Usage
    -----
    validator = RecordValidator()
    records = validator.validate_batch(raw_rows)   # raises InvalidRecord
    """
    
    def __init__(self, schema: Optional[Dict[str, Any]] = None):
        self.schema = schema or RECORD_SCHEMA
    
    def check_record(self, raw: Any, position: int, result: ValidationResult) -> Optional[InventoryRecord]:
        """
        Validate a single row and normalise it to an ``InventoryRecord``.
        
        Problems are appended to ``result``; returns None if the row
        is unusable.
        """
        if isinstance(raw, InventoryRecord):
            row = raw.to_dict()
        elif isinstance(raw, Mapping):
            row = InventoryRecord.from_mapping(raw).to_dict()
        else:
            result.add_error(f"Record #{position}: unsupported type {type(raw).__name__}")
            return None
        
        label = f"Record #{position} (id={row.get('id')!r})"
        ok = True
        
        record_id = _coerce_count(row.get('id'))
        if record_id is None:
            result.add_error(f"{label}: 'id' must be an integer")
            ok = False
        
        name = row.get('name')
        if name is None or (isinstance(name, float) and math.isnan(name)):
            result.add_error(f"{label}: missing 'name'")
            ok = False
        elif not str(name).strip():
            result.add_warning(f"{label}: empty 'name'")
        
        values = {}
        for column, (attr, minimum) in self.schema["numeric_columns"].items():
            raw_value = row.get(column)
            if raw_value is None:
                result.add_error(f"{label}: missing '{column}'")
                ok = False
                continue
            value = _coerce_count(raw_value)
            if value is None:
                result.add_error(f"{label}: '{column}' must be an integer, got {raw_value!r}")
                ok = False
            elif value < minimum:
                result.add_error(f"{label}: '{column}' must be >= {minimum}, got {value}")
                ok = False
            else:
                values[attr] = value
        
        if not ok:
            return None
        
        return InventoryRecord(id=record_id, name=str(name), **values)
    
    def validate_batch(self, batch: Iterable[Any]) -> List[InventoryRecord]:
        """
        Validate a fetched batch.
        
        Parameters
        ----------
        batch : iterable
            ``InventoryRecord`` objects or feed rows (mappings)
        
        Returns
        -------
        List[InventoryRecord]
            Normalised records, in source order
        
        Raises
        ------
        SourceUnavailable
            If the batch itself is not iterable
        InvalidRecord
            If any record fails validation or ids are duplicated
        """
        if batch is None or isinstance(batch, (str, bytes, Mapping)):
            raise SourceUnavailable(f"Source returned a malformed batch: {type(batch).__name__}")
        try:
            rows = list(batch)
        except TypeError as e:
            raise SourceUnavailable(f"Source returned a malformed batch: {e}") from e
        
        result = ValidationResult()
        result.info["row_count"] = len(rows)
        
        records = []
        seen_ids = set()
        for position, raw in enumerate(rows):
            record = self.check_record(raw, position, result)
            if record is None:
                continue
            if record.id in seen_ids:
                result.add_error(f"Record #{position}: duplicate id {record.id}")
                continue
            seen_ids.add(record.id)
            records.append(record)
        
        for warning in result.warnings:
            logger.warning(warning)
        
        if not result.is_valid:
            for error in result.errors:
                logger.error(error)
            raise InvalidRecord(
                f"{len(result.errors)} problem(s) in batch of {len(rows)} records; "
                f"first: {result.errors[0]}",
                errors=result.errors,
            )
        
        logger.info(f"Validated {len(records)} inventory records")
        return records
