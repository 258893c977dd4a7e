from typing import Optional


class NoTamperClientError(Exception):
    """
    Base exception for all API client failures.
    """

    pass


class ApiError(NoTamperClientError):
    """
    The API answered with a status the client treats as a failure.
    """

    def __init__(self, message: str, *, status: int):
        super().__init__(message)
        self.status = status


class AuthenticationError(ApiError):
    """401: the access token is invalid."""


class InsufficientTokensError(ApiError):
    """402: the account has no tokens left."""


class PermissionDeniedError(ApiError):
    """403: the access token may not perform this action."""


class TokenNotFoundError(ApiError):
    """404 from the token status endpoint."""


class ServerError(ApiError):
    """5xx from the API."""


class RequestFailedError(ApiError):
    """Any other non-2xx status."""


class TransportError(NoTamperClientError):
    """
    The request never produced an HTTP status.
    """

    pass


class NetworkError(TransportError):
    pass


class TransportTimeoutError(TransportError):
    pass


class FallbackFailedError(TransportError):
    """Both the POST and the GET fallback failed."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
