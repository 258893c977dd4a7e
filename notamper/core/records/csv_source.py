from __future__ import annotations

import csv
from io import StringIO
from typing import Iterable, List, Optional, TextIO, Union

from .model import Batch, Field, FieldKind, Record

TIMESTAMP_COLUMN = "Timestamp"


def _rows(source: Union[str, TextIO]) -> List[List[str]]:
    stream = StringIO(source) if isinstance(source, str) else source
    return [row for row in csv.reader(stream) if row]


def batch_from_csv(
    source: Union[str, TextIO],
    *,
    source_id: Optional[str] = None,
    drop_columns: Iterable[str] = (TIMESTAMP_COLUMN,),
) -> Batch:
    """Build a Batch from a form's tabular export.

    The first row holds the question titles; every following row is one
    response, in file order. All cells are text answers. Columns listed in
    drop_columns are not answers (the timestamp column is kept on the Record
    but never hashed after standardization).

    Multi-valued answers are single cells in an export, so digest parity with
    the rich model holds for scalar answers only.
    """

    rows = _rows(source)
    if not rows:
        return Batch(records=(), source_id=source_id)

    header = [h.strip() for h in rows[0]]
    if header and header[0].startswith("\ufeff"):
        header[0] = header[0].lstrip("\ufeff")
    dropped = set(drop_columns)

    records: List[Record] = []
    for row in rows[1:]:
        cells = list(row) + [""] * (len(header) - len(row))
        timestamp = None
        fields: List[Field] = []
        for title, cell in zip(header, cells):
            if title == TIMESTAMP_COLUMN:
                timestamp = cell or None
            if title in dropped:
                continue
            fields.append(Field(title=title, value=cell, kind=FieldKind.SHORT_TEXT))
        records.append(Record(fields=tuple(fields), timestamp=timestamp))

    return Batch(records=tuple(records), source_id=source_id)
