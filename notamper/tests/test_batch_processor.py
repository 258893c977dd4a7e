from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from notamper.client import HttpResponse, NetworkError, NoTamperClient
from notamper.config import BatchSchedule, ClientSettings, PropertiesStore
from notamper.core.engine import hash_payload
from notamper.core.records import Batch
from notamper.processing import (
    PROCESSING_TYPE,
    CsvFileRecordSource,
    JsonFileRecordSource,
    RecordSource,
    build_batch_metadata,
    open_record_source,
    process_batch,
    processing_status,
)

TOKEN = "ak_abcdefghijklmnop"
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

RESPONSES = {
    "formId": "form-1",
    "formTitle": "Customer Survey",
    "responses": [
        {"responseId": "r1", "items": [{"title": "Name", "response": "Alice", "type": "TEXT"}]},
        {"responseId": "r2", "items": [{"title": "Name", "response": "Bob", "type": "TEXT"}]},
    ],
}


class RecordingTransport:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _ok() -> HttpResponse:
    return HttpResponse(status=200, headers={}, body_bytes=b'{"success": true}')


def _json_source(tmp_path: Path, data=RESPONSES) -> JsonFileRecordSource:
    p = tmp_path / "responses.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return JsonFileRecordSource(str(p))


def _client(transport, token=TOKEN) -> NoTamperClient:
    return NoTamperClient(ClientSettings(api_endpoint="https://api.example.test/api", access_token=token), transport)


def test_json_source(tmp_path):
    src = _json_source(tmp_path)
    assert isinstance(src, RecordSource)
    assert src.source_id == "form-1"
    assert src.title == "Customer Survey"
    assert [r.record_id for r in src.list_records()] == ["r1", "r2"]


def test_json_source_from_list_and_csv_source(tmp_path):
    p = tmp_path / "list.json"
    p.write_text(json.dumps([{"fields": [{"title": "Q", "value": "A"}]}]), encoding="utf-8")
    src = open_record_source(str(p))
    assert isinstance(src, JsonFileRecordSource)
    assert src.source_id == "list"
    assert len(src.list_records()) == 1

    c = tmp_path / "export.csv"
    c.write_text("Timestamp,Q\n2024-01-01,A\n", encoding="utf-8")
    csv_src = open_record_source(str(c), source_id="form-9")
    assert isinstance(csv_src, CsvFileRecordSource)
    assert csv_src.source_id == "form-9"
    assert [f.value for f in csv_src.list_records()[0].fields] == ["A"]


def test_build_batch_metadata(tmp_path):
    src = _json_source(tmp_path)
    batch = Batch.of(src.list_records(), source_id=src.source_id)
    md = build_batch_metadata(src, batch, NOW)
    assert md["formId"] == "form-1"
    assert md["responseId"] == f"batch-all-{int(NOW.timestamp() * 1000)}"
    assert md["batchInfo"] == {
        "responseCount": 2,
        "firstResponseId": "r1",
        "lastResponseId": "r2",
        "totalFormResponses": 2,
        "processingType": PROCESSING_TYPE,
    }


def test_process_batch_submits_digest(tmp_path):
    src = _json_source(tmp_path)
    store = PropertiesStore(tmp_path / "props.json")
    t = RecordingTransport(_ok())

    result = process_batch(src, _client(t), store=store, now=NOW)

    assert result.success
    assert result.processed == result.total == 2
    assert result.digest == hash_payload(RESPONSES).digest
    body = json.loads(t.requests[0].body.decode("utf-8"))
    assert body["hash"] == result.digest
    assert body["formId"] == "form-1"
    assert body["responseId"].startswith("batch-all-")
    assert store.last_processed() == NOW.isoformat()


def test_process_batch_empty_source(tmp_path):
    src = _json_source(tmp_path, {"responses": []})
    t = RecordingTransport(_ok())
    result = process_batch(src, _client(t), now=NOW)
    assert result.success
    assert result.processed == 0
    assert result.digest is None
    assert t.requests == []


def test_process_batch_reports_transport_failure(tmp_path):
    """A failed submission leaves the last-processed marker untouched."""
    src = _json_source(tmp_path)
    store = PropertiesStore(tmp_path / "props.json")
    t = RecordingTransport(NetworkError("down"))

    result = process_batch(src, _client(t), store=store, now=NOW)

    assert not result.success
    assert result.processed == 0
    assert result.total == 2
    assert result.error
    assert store.last_processed() is None


def test_process_batch_without_token(tmp_path):
    src = _json_source(tmp_path)
    result = process_batch(src, _client(RecordingTransport(_ok()), token=None), now=NOW)
    assert not result.success
    assert "access token" in result.error


def test_processing_status(tmp_path):
    src = _json_source(tmp_path)
    store = PropertiesStore(tmp_path / "props.json")
    store.save_batch_schedule(BatchSchedule(enabled=True, frequency="daily", time="13:00"))
    status = processing_status(src, store, now=NOW)
    assert status["total_responses"] == 2
    assert status["next_scheduled"] == datetime(2024, 3, 1, 13, 0, tzinfo=UTC).isoformat()
    assert status["last_processed"] is None
    assert status["has_access_token"] is False
