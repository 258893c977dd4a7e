from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Protocol, runtime_checkable

from notamper.core.errors import InputShapeError
from notamper.core.records import Batch, Record, batch_from_csv


@runtime_checkable
class RecordSource(Protocol):
    """Where responses come from.

    list_records must return responses in a stable order (the source of
    truth's own order); the digest depends on it.
    """

    source_id: str
    title: str

    def list_records(self) -> List[Record]: ...


def _read_json(path: Path) -> object:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


class JsonFileRecordSource:
    """Responses exported as JSON (a batch mapping, a record mapping, or a list of records)."""

    def __init__(self, path: str, *, source_id: Optional[str] = None, title: Optional[str] = None):
        self.path = Path(path)
        data = _read_json(self.path)
        if isinstance(data, list):
            self._batch = Batch(records=tuple(Record.from_mapping(r) for r in data))
        elif isinstance(data, dict):
            self._batch = Batch.from_mapping(data)
        else:
            raise InputShapeError("JSON source must hold an object or a list of records")
        self.source_id = source_id or self._batch.source_id or self.path.stem
        self.title = title or str(self._batch.metadata.get("formTitle") or self.path.stem)

    def list_records(self) -> List[Record]:
        return list(self._batch.records)


class CsvFileRecordSource:
    """Responses from a form's CSV export, in file order."""

    def __init__(self, path: str, *, source_id: Optional[str] = None, title: Optional[str] = None):
        self.path = Path(path)
        self.source_id = source_id or self.path.stem
        self.title = title or self.path.stem

    def list_records(self) -> List[Record]:
        with self.path.open("r", encoding="utf-8-sig", newline="") as f:
            return list(batch_from_csv(f, source_id=self.source_id).records)


def open_record_source(path: str, *, source_id: Optional[str] = None) -> RecordSource:
    """Pick a source implementation by file extension."""

    if path.lower().endswith(".csv"):
        return CsvFileRecordSource(path, source_id=source_id)
    return JsonFileRecordSource(path, source_id=source_id)
