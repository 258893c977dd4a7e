from __future__ import annotations

import hmac
import os
from dataclasses import dataclass
from typing import Dict, Optional

API_KEY_HEADER = "X-NoTamper-API-Key"


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated caller of the verification API."""

    actor_id: str


def _parse_api_keys(raw: str) -> Dict[str, Actor]:
    """Parse NOTAMPER_API_KEYS into an API key -> Actor mapping.

    Format (semicolon-separated entries):
      <APIKEY>:<ACTOR_ID>;

    Example:
      NOTAMPER_API_KEYS="k1:alice;k2:verifier-bot"

    Security notes:
    - Env var is trusted server configuration.
    - Invalid entries are ignored (fail-closed by omission).

    """

    out: Dict[str, Actor] = {}
    for entry in (raw or "").split(";"):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":", 1)
        if len(parts) != 2:
            continue
        key, actor_id = parts[0].strip(), parts[1].strip()
        if not key or not actor_id:
            continue
        out[key] = Actor(actor_id=actor_id)
    return out


def load_auth_config() -> Dict[str, Actor]:
    """Load API key mapping from environment."""

    return _parse_api_keys(os.environ.get("NOTAMPER_API_KEYS", ""))


def requires_auth(mapping: Dict[str, Actor]) -> bool:
    """Return True if the API should require authentication.

    Policy:
    - If NOTAMPER_REQUIRE_AUTH=1, always require.
    - Else, require iff at least one API key is configured.

    """

    if os.environ.get("NOTAMPER_REQUIRE_AUTH", "").strip().lower() in {"1", "true", "yes"}:
        return True
    return bool(mapping)


def authenticate(api_key: Optional[str], mapping: Dict[str, Actor]) -> Optional[Actor]:
    """Authenticate an API key.

    Security notes:
    - Uses constant-time comparison to reduce timing side-channels.
    - Returns None on failure.

    """

    if not api_key:
        return None

    for k, actor in mapping.items():
        if hmac.compare_digest(k, api_key):
            return actor
    return None
