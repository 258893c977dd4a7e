"""HTTP client for the NoTamperData API.

Only digests and caller metadata are sent; record contents never leave the
process.

Security notes:
- Treat server responses as untrusted input.
- Never log the access token.
"""
from __future__ import annotations

import json
import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from notamper.config import ClientSettings

from .errors import (
    AuthenticationError,
    FallbackFailedError,
    InsufficientTokensError,
    NetworkError,
    PermissionDeniedError,
    RequestFailedError,
    ServerError,
    TokenNotFoundError,
    TransportError,
    TransportTimeoutError,
)

log = logging.getLogger("notamper.client")

STORE_HASH_PATH = "/storehash"
HEALTH_PATH = "/health"
TOKEN_STATUS_PATH = "/access-token-status"


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    timeout: float = 60.0


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    Security notes:
    - Treat `body_bytes` as untrusted.

    """

    status: int
    headers: Mapping[str, str]
    body_bytes: bytes

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Transport = Callable[[HttpRequest], HttpResponse]


def urllib_transport(request: HttpRequest) -> HttpResponse:
    """Execute a request with urllib.

    Security notes:
    - Uses default SSL context (verification ON).
    """

    req = Request(url=request.url, data=request.body, method=request.method)
    for k, v in request.headers.items():
        req.add_header(k, v)
    try:
        ctx = ssl.create_default_context()
        with urlopen(req, context=ctx, timeout=request.timeout) as resp:
            body = resp.read()
            headers = {k: v for k, v in resp.headers.items()}
            return HttpResponse(status=int(resp.status), headers=headers, body_bytes=body)
    except HTTPError as e:
        body = e.read() if hasattr(e, "read") else b""
        headers = dict(getattr(e, "headers", {}) or {})
        return HttpResponse(
            status=int(getattr(e, "code", 0) or 0), headers=headers, body_bytes=body
        )
    except TimeoutError as e:
        raise TransportTimeoutError(f"request timed out: {e}") from e
    except URLError as e:
        if isinstance(e.reason, TimeoutError):
            raise TransportTimeoutError(f"request timed out: {e.reason}") from e
        raise NetworkError(f"network error: {e}") from e


def _meta(metadata: Mapping[str, Any], camel: str, snake: str, default: Any) -> Any:
    return metadata.get(camel) or metadata.get(snake) or default


def build_store_payload(digest: str, metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """The one payload schema sent to /storehash.

    Identifiers are lifted to the top level and the full metadata is nested
    unchanged. None of it takes part in the digest.
    """

    md = dict(metadata or {})
    return {
        "hash": digest,
        "formId": _meta(md, "formId", "form_id", None),
        "responseId": _meta(md, "responseId", "response_id", None),
        "networkId": _meta(md, "networkId", "network_id", 0),
        "metadata": md,
    }


def _fallback_params(payload: Mapping[str, Any]) -> Dict[str, str]:
    return {
        "hash": payload["hash"],
        "formId": str(payload.get("formId") or ""),
        "responseId": str(payload.get("responseId") or ""),
        "networkId": str(payload.get("networkId") or 0),
    }


def _parsed_or_success(resp: HttpResponse) -> Dict[str, Any]:
    try:
        data = resp.json()
    except (UnicodeDecodeError, ValueError):
        log.warning("unparsable_api_response", extra={"status_code": resp.status})
        return {"success": True}
    return data if isinstance(data, dict) else {"success": True, "data": data}


def _server_error_text(resp: HttpResponse) -> Optional[str]:
    try:
        data = resp.json()
    except (UnicodeDecodeError, ValueError):
        return None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return None


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    success: bool
    message: str
    token_validated: bool = False


class NoTamperClient:
    """Client for submitting digests to the NoTamperData API.

    The transport is injectable so retry and fallback behavior can be tested
    without a network.
    """

    def __init__(self, settings: ClientSettings, transport: Optional[Transport] = None):
        self.settings = settings
        self.transport: Transport = transport or urllib_transport

    def _headers(self, token: str, *, json_body: bool = False) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "User-Agent": self.settings.user_agent,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def submit_hash(self, digest: str, metadata: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """POST a digest to /storehash.

        A zero status or a network failure retries once as a GET with the ids
        as query parameters.

        Raises:
          ConfigurationError: no access token configured.
          AuthenticationError, InsufficientTokensError, PermissionDeniedError,
          ServerError, RequestFailedError: the API rejected the request.
          TransportTimeoutError: the POST timed out.
          FallbackFailedError: the POST could not be delivered and the GET
          fallback failed too.
        """

        token = self.settings.require_token()
        payload = build_store_payload(digest, metadata)
        body = json.dumps(payload).encode("utf-8")

        request = HttpRequest(
            method="POST",
            url=self.settings.url(STORE_HASH_PATH),
            headers=self._headers(token, json_body=True),
            body=body,
            timeout=float(self.settings.timeout_sec),
        )
        log.info("submit_hash", extra={"form_id": payload["formId"], "response_id": payload["responseId"]})
        try:
            resp = self.transport(request)
        except NetworkError as e:
            log.warning("submit_hash_network_error", extra={"error": str(e)})
            return self._get_fallback(payload, token)

        if resp.ok:
            log.info("submit_hash_ok", extra={"status_code": resp.status})
            return _parsed_or_success(resp)
        if resp.status == 0:
            log.warning("submit_hash_no_status")
            return self._get_fallback(payload, token)
        if resp.status == 401:
            raise AuthenticationError("invalid access token", status=401)
        if resp.status == 402:
            raise InsufficientTokensError(
                "insufficient tokens; purchase more tokens to continue", status=402
            )
        if resp.status == 403:
            raise PermissionDeniedError(
                "access token does not have permission to perform this action", status=403
            )
        if resp.status >= 500:
            raise ServerError(f"server error (status {resp.status})", status=resp.status)
        raise RequestFailedError(
            _server_error_text(resp) or f"request failed with status {resp.status}",
            status=resp.status,
        )

    def _get_fallback(self, payload: Mapping[str, Any], token: str) -> Dict[str, Any]:
        url = self.settings.url(STORE_HASH_PATH) + "?" + urlencode(_fallback_params(payload))
        request = HttpRequest(
            method="GET",
            url=url,
            headers=self._headers(token),
            timeout=float(self.settings.fallback_timeout_sec),
        )
        log.info("submit_hash_get_fallback")
        try:
            resp = self.transport(request)
        except (NetworkError, TransportTimeoutError) as e:
            raise FallbackFailedError(
                "unable to connect to the verification service via any method"
            ) from e
        if resp.ok:
            return _parsed_or_success(resp)
        raise FallbackFailedError("both POST and GET requests failed", status=resp.status)

    def test_connection(self) -> ConnectionStatus:
        """GET /health with the configured token.

        Transport failures are reported as an unsuccessful status, not raised.
        """

        token = self.settings.require_token()
        request = HttpRequest(
            method="GET",
            url=self.settings.url(HEALTH_PATH),
            headers=self._headers(token),
            timeout=float(self.settings.status_timeout_sec),
        )
        try:
            resp = self.transport(request)
        except TransportError as e:
            log.warning("test_connection_failed", extra={"error": str(e)})
            return ConnectionStatus(success=False, message=f"connection failed: {e}")
        if resp.status == 200:
            try:
                data = resp.json()
            except (UnicodeDecodeError, ValueError):
                return ConnectionStatus(success=True, message="API connection successful")
            auth = data.get("authentication") if isinstance(data, dict) else None
            if isinstance(auth, dict) and auth.get("validated"):
                return ConnectionStatus(
                    success=True,
                    message="API connection and access token validation successful",
                    token_validated=True,
                )
            return ConnectionStatus(
                success=True,
                message="API connection successful (access token not validated by server)",
            )
        if resp.status == 401:
            return ConnectionStatus(success=False, message="invalid access token")
        if resp.status == 403:
            return ConnectionStatus(success=False, message="access token lacks permissions")
        return ConnectionStatus(success=False, message=f"API test failed with status {resp.status}")

    def access_token_status(self) -> Dict[str, Any]:
        """GET /access-token-status and return its `data` object.

        Raises:
          AuthenticationError, TokenNotFoundError, RequestFailedError: the API
          rejected the request.
          TransportError: the request never produced an HTTP status.
        """

        token = self.settings.require_token()
        request = HttpRequest(
            method="GET",
            url=self.settings.url(TOKEN_STATUS_PATH),
            headers=self._headers(token),
            timeout=float(self.settings.status_timeout_sec),
        )
        resp = self.transport(request)
        if resp.status == 200:
            try:
                data = resp.json()
            except (UnicodeDecodeError, ValueError) as e:
                raise RequestFailedError(
                    "failed to parse access token status response", status=200
                ) from e
            if isinstance(data, dict) and data.get("success") and isinstance(data.get("data"), dict):
                return data["data"]
            error = data.get("error") if isinstance(data, dict) else None
            raise RequestFailedError(error or "failed to get access token status", status=200)
        if resp.status == 401:
            raise AuthenticationError("invalid access token", status=401)
        if resp.status == 404:
            raise TokenNotFoundError("access token not found", status=404)
        raise RequestFailedError(
            f"access token status check failed with status {resp.status}", status=resp.status
        )
