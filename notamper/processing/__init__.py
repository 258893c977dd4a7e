"""Batch processing: record source -> hashing engine -> API client."""

from .batch_processor import (
    PROCESSING_TYPE,
    ProcessingResult,
    build_batch_metadata,
    process_batch,
    processing_status,
)
from .sources import CsvFileRecordSource, JsonFileRecordSource, RecordSource, open_record_source

__all__ = [
    "CsvFileRecordSource",
    "JsonFileRecordSource",
    "PROCESSING_TYPE",
    "ProcessingResult",
    "RecordSource",
    "build_batch_metadata",
    "open_record_source",
    "process_batch",
    "processing_status",
]
