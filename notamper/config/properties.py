from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .schedule import BatchSchedule
from .settings import validate_access_token

ACCESS_TOKEN_KEY = "NoTamperData_Access_Token"
BATCH_CONFIG_KEY = "NoTamperData_BATCH_CONFIG"
LAST_PROCESSED_KEY = "NoTamperData_LAST_PROCESSED"

DEFAULT_PROPERTIES_PATH = Path.home() / ".notamper" / "properties.json"


class PropertiesStore:
    """Small JSON-file key/value store for per-form settings.

    Holds the access token, the batch schedule and the last-processed
    timestamp. Writes go to a temp file that replaces the store atomically.

    Security notes:
    - The file holds a bearer token; it is written with mode 0600.

    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else DEFAULT_PROPERTIES_PATH

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"properties file is not valid JSON: {self.path}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"properties file must hold a JSON object: {self.path}")
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".properties-", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    # access token

    def access_token(self) -> Optional[str]:
        token = self.get(ACCESS_TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def save_access_token(self, token: str) -> str:
        t = validate_access_token(token)
        self.set(ACCESS_TOKEN_KEY, t)
        return t

    def remove_access_token(self) -> None:
        self.delete(ACCESS_TOKEN_KEY)

    # batch schedule

    def batch_schedule(self) -> BatchSchedule:
        return BatchSchedule.from_mapping(self.get(BATCH_CONFIG_KEY))

    def save_batch_schedule(self, schedule: BatchSchedule) -> None:
        self.set(BATCH_CONFIG_KEY, schedule.to_mapping())

    # last processed

    def last_processed(self) -> Optional[str]:
        return self.get(LAST_PROCESSED_KEY)

    def set_last_processed(self, timestamp: str) -> None:
        self.set(LAST_PROCESSED_KEY, timestamp)
