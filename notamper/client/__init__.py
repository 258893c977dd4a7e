"""HTTP client for delivering digests to the NoTamperData API.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging access tokens.
"""

from .errors import (
    ApiError,
    AuthenticationError,
    FallbackFailedError,
    InsufficientTokensError,
    NetworkError,
    NoTamperClientError,
    PermissionDeniedError,
    RequestFailedError,
    ServerError,
    TokenNotFoundError,
    TransportError,
    TransportTimeoutError,
)
from .http import (
    ConnectionStatus,
    HttpRequest,
    HttpResponse,
    NoTamperClient,
    Transport,
    build_store_payload,
    urllib_transport,
)

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConnectionStatus",
    "FallbackFailedError",
    "HttpRequest",
    "HttpResponse",
    "InsufficientTokensError",
    "NetworkError",
    "NoTamperClient",
    "NoTamperClientError",
    "PermissionDeniedError",
    "RequestFailedError",
    "ServerError",
    "TokenNotFoundError",
    "Transport",
    "TransportError",
    "TransportTimeoutError",
    "build_store_payload",
    "urllib_transport",
]
