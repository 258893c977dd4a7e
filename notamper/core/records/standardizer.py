"""Cross-format standardization.

Reduces a Record or a Batch to exactly what a plain tabular (CSV) export of
the same responses can reproduce, so a digest computed from the rich object
model matches one computed from the export.

The contract (do not widen or narrow it without versioning the digest):
- record_id, field_id, kind and timestamp are dropped;
- records are relabeled "record-<i>" by position, never sorted;
- fields are sorted by title (code point order, stable for equal titles);
- every value becomes a string; composite answers become their canonical
  encoding.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Sequence

from notamper.core.canonical import canonical_encode, format_number
from notamper.core.errors import InputShapeError

from .model import Batch, Field, Record

RECORD_LABEL_PREFIX = "record-"

_COMPOSITE_TYPES = (list, tuple, set, frozenset)


def coerce_value(value: Any) -> str:
    """String form of one answer as it would appear in a tabular export."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping) or isinstance(value, _COMPOSITE_TYPES):
        return canonical_encode(value)
    raise InputShapeError(f"unsupported answer type: {type(value).__name__}")


def _standardize_fields(fields: Sequence[Field]) -> List[Dict[str, str]]:
    ordered = sorted(fields, key=lambda f: f.title or "")
    return [{"title": f.title or "", "value": coerce_value(f.value)} for f in ordered]


def _standardize_records(records: Sequence[Record]) -> Dict[str, Any]:
    return {
        "record_count": len(records),
        "records": [
            {
                "record_id": f"{RECORD_LABEL_PREFIX}{i}",
                "fields": _standardize_fields(r.fields),
            }
            for i, r in enumerate(records)
        ],
    }


def standardize_batch(batch: Batch) -> Dict[str, Any]:
    return _standardize_records(batch.records)


def standardize_record(record: Record) -> Dict[str, Any]:
    """A bare record standardizes as a one-record batch."""

    return _standardize_records([record])


def _has_sequence(data: Mapping[str, Any], *names: str) -> bool:
    return any(isinstance(data.get(n), (list, tuple)) for n in names)


def standardize(data: Any) -> Any:
    """Standardize a Batch, a Record, or their mapping forms.

    Mappings with a "records" sequence are batches; mappings with a "fields"
    sequence are single records. Anything else is returned unchanged: the
    caller is responsible for pre-shaping such input.
    """

    if isinstance(data, Batch):
        return standardize_batch(data)
    if isinstance(data, Record):
        return standardize_record(data)
    if isinstance(data, Mapping):
        if _has_sequence(data, "records", "responses"):
            return standardize_batch(Batch.from_mapping(data))
        if _has_sequence(data, "fields", "items"):
            return standardize_record(Record.from_mapping(data))
    return data
