"""Exceptions raised by the DAM and content-store HTTP clients.

Messages keep the HTTP status code and reason phrase (``HTTP 503 Service
Unavailable: ...``) because per-asset failures are classified from their
message text.
"""

from __future__ import annotations


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed (401/403)."""


class NotFoundError(APIError):
    """Resource not found."""


class ServerError(APIError):
    """5xx or 429: the service is overloaded or temporarily broken."""


class NetworkError(APIError):
    """The request never got an HTTP response (timeout, reset, DNS)."""
