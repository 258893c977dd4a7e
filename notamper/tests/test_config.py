from __future__ import annotations

import json
import os
import stat
from datetime import datetime

import pytest

from notamper.config import (
    ACCESS_TOKEN_KEY,
    DEFAULT_API_ENDPOINT,
    BatchSchedule,
    ClientSettings,
    ConfigurationError,
    PropertiesStore,
    validate_access_token,
)

TOKEN = "ak_abcdefghijklmnop"


def test_validate_access_token():
    assert validate_access_token(f"  {TOKEN} ") == TOKEN
    for bad in (None, "", "   ", "ak_short", "xx_abcdefghijklmnop", "ak_abcdefghijklmno!"):
        with pytest.raises(ConfigurationError):
            validate_access_token(bad)


def test_client_settings_from_env(monkeypatch):
    monkeypatch.delenv("NOTAMPER_API_ENDPOINT", raising=False)
    monkeypatch.delenv("NOTAMPER_ACCESS_TOKEN", raising=False)
    monkeypatch.setenv("NOTAMPER_TIMEOUT_SEC", "not-a-number")
    s = ClientSettings.from_env()
    assert s.api_endpoint == DEFAULT_API_ENDPOINT
    assert s.access_token is None
    assert s.timeout_sec == 60

    monkeypatch.setenv("NOTAMPER_API_ENDPOINT", "http://localhost:9000/api/")
    monkeypatch.setenv("NOTAMPER_ACCESS_TOKEN", TOKEN)
    monkeypatch.setenv("NOTAMPER_TIMEOUT_SEC", "5")
    s = ClientSettings.from_env()
    assert s.url("/storehash") == "http://localhost:9000/api/storehash"
    assert s.require_token() == TOKEN
    assert s.timeout_sec == 5


def test_require_token_without_token():
    with pytest.raises(ConfigurationError):
        ClientSettings().require_token()
    assert ClientSettings().with_token(TOKEN).require_token() == TOKEN


def test_schedule_validation():
    for kwargs in ({"frequency": "hourly"}, {"time": "25:00"}, {"time": "noon"}, {"interval": 0}, {"day": 7}):
        with pytest.raises(ConfigurationError):
            BatchSchedule(**kwargs)
    with pytest.raises(ConfigurationError):
        BatchSchedule.from_mapping({"interval": "x"})
    assert BatchSchedule.from_mapping(None) == BatchSchedule()


def test_schedule_next_run():
    # 2024-01-01 is a Monday.
    now = datetime(2024, 1, 1, 10, 0)
    assert BatchSchedule(enabled=False).next_run(now) is None
    assert BatchSchedule(enabled=True, frequency="manual").next_run(now) is None
    assert BatchSchedule(enabled=True, frequency="interval", interval=6).next_run(now) == datetime(2024, 1, 1, 16, 0)
    assert BatchSchedule(enabled=True, frequency="daily", time="11:00").next_run(now) == datetime(2024, 1, 1, 11, 0)
    assert BatchSchedule(enabled=True, frequency="daily", time="10:00").next_run(now) == datetime(2024, 1, 2, 10, 0)
    # Wednesday is day 3.
    assert BatchSchedule(enabled=True, frequency="weekly", day=3, time="09:30").next_run(now) == datetime(2024, 1, 3, 9, 30)
    # Same weekday runs next week.
    assert BatchSchedule(enabled=True, frequency="weekly", day=1).next_run(now) == datetime(2024, 1, 8, 11, 0)


def test_properties_store_roundtrip(tmp_path):
    path = tmp_path / "props" / "properties.json"
    store = PropertiesStore(path)
    assert store.access_token() is None
    assert store.batch_schedule() == BatchSchedule()
    assert store.last_processed() is None

    store.save_access_token(f" {TOKEN} ")
    schedule = BatchSchedule(enabled=True, frequency="weekly", day=5)
    store.save_batch_schedule(schedule)
    store.set_last_processed("2024-01-01T00:00:00+00:00")

    reopened = PropertiesStore(path)
    assert reopened.access_token() == TOKEN
    assert reopened.batch_schedule() == schedule
    assert reopened.last_processed() == "2024-01-01T00:00:00+00:00"
    assert json.loads(path.read_text(encoding="utf-8"))[ACCESS_TOKEN_KEY] == TOKEN
    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    reopened.remove_access_token()
    assert PropertiesStore(path).access_token() is None


def test_properties_store_rejects_invalid_token_and_file(tmp_path):
    store = PropertiesStore(tmp_path / "p.json")
    with pytest.raises(ConfigurationError):
        store.save_access_token("bad")
    assert store.access_token() is None

    broken = tmp_path / "broken.json"
    broken.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        PropertiesStore(broken).get("x")
