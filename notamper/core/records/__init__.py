"""Form response records and their pre-hash normalization.

Two passes run before canonical encoding:
- the value normalizer puts type-dependent answers (checkbox selections, grid
  rows) into a canonical sub-form;
- the standardizer strips everything a tabular export cannot reproduce.
"""

from .csv_source import batch_from_csv
from .model import Batch, Field, FieldKind, Record
from .standardizer import coerce_value, standardize, standardize_batch, standardize_record
from .value_normalizer import normalize_field, normalize_record, normalize_value

__all__ = [
    "Batch",
    "Field",
    "FieldKind",
    "Record",
    "batch_from_csv",
    "coerce_value",
    "normalize_field",
    "normalize_record",
    "normalize_value",
    "standardize",
    "standardize_batch",
    "standardize_record",
]
