from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("notamper.api")

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LEN = 128


def outcome_for_status(status_code: Optional[int]) -> str:
    """Coarse outcome category recorded for every API call."""

    if status_code is None or status_code >= 500:
        return "error"
    if status_code < 400:
        return "ok"
    if status_code == 401:
        return "unauthorized"
    if status_code == 413:
        return "body_too_large"
    if status_code == 422:
        return "rejected_records"
    return "bad_request"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Give each call a request id and write one audit line when it ends.

    The audit line names the endpoint, the caller and the outcome category.
    Digests and verification results are logged by the endpoints themselves.

    Security notes:
    - Request bodies hold form responses; they are never read or logged here.
    - A client-supplied X-Request-ID is kept only if it is short.

    """

    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get(REQUEST_ID_HEADER)
        if not rid or len(rid) > _MAX_REQUEST_ID_LEN:
            rid = uuid4().hex
        request.state.request_id = rid

        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            status_code = getattr(response, "status_code", None)
            log.info(
                "api_call",
                extra={
                    "request_id": rid,
                    "actor_id": getattr(request.state, "actor_id", None),
                    "endpoint": request.url.path,
                    "status_code": status_code,
                    "outcome": outcome_for_status(status_code),
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )
