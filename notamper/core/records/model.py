from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from notamper.core.errors import InputShapeError


class FieldKind(Enum):
    SHORT_TEXT = "SHORT_TEXT"
    CHECKBOX = "CHECKBOX"
    GRID = "GRID"
    CHECKBOX_GRID = "CHECKBOX_GRID"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: Any) -> "FieldKind":
        """Map a platform item type name onto a FieldKind.

        Unknown names (MULTIPLE_CHOICE, PARAGRAPH_TEXT, SCALE, ...) are OTHER.
        """

        if isinstance(raw, FieldKind):
            return raw
        name = str(raw or "").strip().upper()
        if name == "TEXT":
            return cls.SHORT_TEXT
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER


def _first(data: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for n in names:
        if n in data:
            return data[n]
    return default


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class Field:
    """One answered question.

    `value` is a string, a sequence of strings, or a map of row -> answer.
    """

    title: str
    value: Any = None
    kind: FieldKind = FieldKind.OTHER
    field_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Field":
        """Build a Field from a mapping.

        Accepts both `title/value/kind/field_id` and the form add-on export
        names `title/response/type/itemId`.
        """

        if not isinstance(data, Mapping):
            raise InputShapeError(f"field must be a mapping, got {type(data).__name__}")
        return cls(
            title=str(data.get("title") or ""),
            value=_first(data, "value", "response"),
            kind=FieldKind.parse(_first(data, "kind", "type")),
            field_id=_optional_str(_first(data, "field_id", "itemId")),
        )


@dataclass(frozen=True)
class Record:
    """One form response."""

    fields: Tuple[Field, ...] = ()
    record_id: Optional[str] = None
    timestamp: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Record":
        if not isinstance(data, Mapping):
            raise InputShapeError(f"record must be a mapping, got {type(data).__name__}")
        raw_fields = _first(data, "fields", "items", default=[])
        if raw_fields is None:
            raw_fields = []
        if not isinstance(raw_fields, (list, tuple)):
            raise InputShapeError("record fields must be a sequence")
        return cls(
            fields=tuple(Field.from_mapping(f) for f in raw_fields),
            record_id=_optional_str(_first(data, "record_id", "responseId")),
            timestamp=_optional_str(data.get("timestamp")),
        )


@dataclass(frozen=True)
class Batch:
    """Ordered collection of Records from one source.

    Record order is the source's enumeration order and is significant: the
    standardized form labels records by position.
    """

    records: Tuple[Record, ...] = ()
    source_id: Optional[str] = None
    record_count: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.record_count is None:
            object.__setattr__(self, "record_count", len(self.records))
        elif self.record_count != len(self.records):
            raise InputShapeError(
                f"record_count {self.record_count} does not match {len(self.records)} records"
            )

    @classmethod
    def of(cls, records: Sequence[Record], *, source_id: Optional[str] = None) -> "Batch":
        return cls(records=tuple(records), source_id=source_id)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Batch":
        """Build a Batch from a mapping.

        Accepts `records/record_count/source_id` and the add-on export names
        `responses/responseCount/formId`. A mapping that only has fields is
        taken as a one-record batch.
        """

        if not isinstance(data, Mapping):
            raise InputShapeError(f"batch must be a mapping, got {type(data).__name__}")
        raw_records = _first(data, "records", "responses")
        if raw_records is None:
            if _first(data, "fields", "items") is not None:
                return cls(records=(Record.from_mapping(data),))
            raise InputShapeError("mapping has neither records nor fields")
        if not isinstance(raw_records, (list, tuple)):
            raise InputShapeError("batch records must be a sequence")

        count = _first(data, "record_count", "responseCount")
        if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
            raise InputShapeError(f"record_count must be an integer, got {count!r}")

        extra = {k: v for k, v in data.items() if k in ("formTitle", "title")}
        return cls(
            records=tuple(Record.from_mapping(r) for r in raw_records),
            source_id=_optional_str(_first(data, "source_id", "formId")),
            record_count=count,
            metadata=extra,
        )

    @property
    def first_record_id(self) -> Optional[str]:
        return self.records[0].record_id if self.records else None

    @property
    def last_record_id(self) -> Optional[str]:
        return self.records[-1].record_id if self.records else None
