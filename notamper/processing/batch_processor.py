from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from notamper.client import NoTamperClient, NoTamperClientError
from notamper.config import ConfigurationError, PropertiesStore
from notamper.core.engine import HashingPolicy, hash_batch
from notamper.core.records import Batch

from .sources import RecordSource

log = logging.getLogger("notamper.processing")

PROCESSING_TYPE = "all_responses_standardized"


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one batch run."""

    success: bool
    processed: int
    total: int
    digest: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    api_response: Optional[Dict[str, Any]] = None
    processing_type: str = PROCESSING_TYPE


def build_batch_metadata(source: RecordSource, batch: Batch, now: datetime) -> Dict[str, Any]:
    """Metadata sent next to a batch digest. None of it is hashed."""

    return {
        "formId": source.source_id,
        "responseId": f"batch-all-{int(now.timestamp() * 1000)}",
        "timestamp": now.isoformat(),
        "batchInfo": {
            "responseCount": len(batch.records),
            "firstResponseId": batch.first_record_id,
            "lastResponseId": batch.last_record_id,
            "totalFormResponses": len(batch.records),
            "processingType": PROCESSING_TYPE,
        },
    }


def process_batch(
    source: RecordSource,
    client: NoTamperClient,
    *,
    store: Optional[PropertiesStore] = None,
    policy: Optional[HashingPolicy] = None,
    now: Optional[datetime] = None,
) -> ProcessingResult:
    """Hash every response of a source as one batch and submit the digest.

    API and transport failures become a failed result. Engine errors
    (malformed records) propagate: a wrong-but-successful digest is never
    submitted.
    """

    now = now or datetime.now(UTC)
    records = source.list_records()
    if not records:
        log.info("batch_empty", extra={"source_id": source.source_id})
        return ProcessingResult(success=True, processed=0, total=0, message="no responses found")

    batch = Batch.of(records, source_id=source.source_id)
    result = hash_batch(batch, policy)
    log.info(
        "batch_hashed",
        extra={"source_id": source.source_id, "record_count": result.record_count},
    )

    metadata = build_batch_metadata(source, batch, now)
    try:
        api_response = client.submit_hash(result.digest, metadata)
    except (NoTamperClientError, ConfigurationError) as e:
        log.error("batch_submit_failed", extra={"source_id": source.source_id, "error": str(e)})
        return ProcessingResult(
            success=False, processed=0, total=len(records), digest=result.digest, error=str(e)
        )

    if store is not None:
        store.set_last_processed(now.isoformat())
    log.info("batch_submitted", extra={"source_id": source.source_id})
    return ProcessingResult(
        success=True,
        processed=len(records),
        total=len(records),
        digest=result.digest,
        api_response=api_response,
    )


def processing_status(
    source: RecordSource, store: PropertiesStore, *, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Response totals, schedule and last run for one source."""

    now = now or datetime.now(UTC)
    total = len(source.list_records())
    schedule = store.batch_schedule()
    next_run = schedule.next_run(now)
    return {
        "source_id": source.source_id,
        "title": source.title,
        "total_responses": total,
        "ready_to_process": total,
        "next_scheduled": next_run.isoformat() if next_run else None,
        "last_processed": store.last_processed(),
        "schedule": schedule.to_mapping(),
        "has_access_token": store.access_token() is not None,
    }
