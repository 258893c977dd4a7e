from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from typing import Optional

from .errors import ConfigurationError

DEFAULT_API_ENDPOINT = "https://www.notamperdata.com/api"
ADDON_NAME = "NoTamperData"
ADDON_VERSION = "1.1.0"
DEFAULT_USER_AGENT = f"NoTamperData-Python/{ADDON_VERSION}"

_ACCESS_TOKEN_RE = re.compile(r"^ak_[a-zA-Z0-9]{16}$")


def validate_access_token(token: Optional[str]) -> str:
    """Return the stripped token, or raise ConfigurationError.

    Format: "ak_" followed by 16 alphanumeric characters.
    """

    if token is None or token.strip() == "":
        raise ConfigurationError("access token cannot be empty")
    t = token.strip()
    if not _ACCESS_TOKEN_RE.match(t):
        raise ConfigurationError(
            "invalid access token format, expected: ak_[16 alphanumeric characters]"
        )
    return t


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Security notes:
    - Env vars are treated as trusted configuration.

    """

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Request-scoped settings for the NoTamperData API client.

    Passed explicitly to the client; nothing here is global.

    Security notes:
    - access_token is a bearer credential; never log it.

    """

    api_endpoint: str = DEFAULT_API_ENDPOINT
    access_token: Optional[str] = None
    timeout_sec: int = 60
    fallback_timeout_sec: int = 30
    status_timeout_sec: int = 10
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "ClientSettings":
        return cls(
            api_endpoint=(os.environ.get("NOTAMPER_API_ENDPOINT") or DEFAULT_API_ENDPOINT).rstrip("/"),
            access_token=(os.environ.get("NOTAMPER_ACCESS_TOKEN") or None),
            timeout_sec=_env_int("NOTAMPER_TIMEOUT_SEC", 60),
        )

    def with_token(self, token: Optional[str]) -> "ClientSettings":
        return replace(self, access_token=token)

    def require_token(self) -> str:
        if not self.access_token:
            raise ConfigurationError(
                "access token is required; configure one with `notamper config set-token`"
            )
        return self.access_token

    def url(self, path: str) -> str:
        return self.api_endpoint.rstrip("/") + "/" + path.lstrip("/")
