from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Mapping

from .model import Field, FieldKind, Record


def _sort_selection(value: Any) -> Any:
    """Selected checkbox options, in byte order.

    The order a respondent ticked options in must not reach the digest.
    """

    if isinstance(value, (list, tuple)):
        return sorted(value, key=lambda v: str(v).encode("utf-8", "surrogatepass"))
    return value


def _sort_grid_rows(value: Any) -> Any:
    """Grid answers re-inserted in row-label order."""

    if isinstance(value, Mapping):
        return {k: value[k] for k in sorted(value, key=lambda k: str(k).encode("utf-8", "surrogatepass"))}
    return value


_NORMALIZERS: Dict[FieldKind, Callable[[Any], Any]] = {
    FieldKind.CHECKBOX: _sort_selection,
    FieldKind.GRID: _sort_grid_rows,
    FieldKind.CHECKBOX_GRID: _sort_grid_rows,
}


def normalize_value(kind: FieldKind, value: Any) -> Any:
    """Put one raw answer in its type-specific canonical sub-form.

    A missing answer becomes "" so it still hashes deterministically.
    Never raises.
    """

    if value is None:
        return ""
    fn = _NORMALIZERS.get(kind)
    return fn(value) if fn is not None else value


def normalize_field(f: Field) -> Field:
    return replace(f, value=normalize_value(f.kind, f.value))


def normalize_record(record: Record) -> Record:
    """Normalize every field of a record; field order is kept."""

    return replace(record, fields=tuple(normalize_field(f) for f in record.fields))
