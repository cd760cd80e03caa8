"""Shared httpx plumbing for the DAM and content-store clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from assetsync.clients.errors import (
    APIError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ServerError,
)

logger = logging.getLogger(__name__)

# Longest error body copied into an exception message
MAX_ERROR_DETAIL = 500


class HTTPClient:
    """Bearer-authenticated httpx client with uniform error handling."""

    def __init__(self, base_url: str, token: str, timeout: float = 30.0) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the service.
            token: Bearer token.
            timeout: Request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}"},
        )

    @property
    def base_url(self) -> str:
        """Base URL without trailing slash."""
        return self._base_url

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _send(
        self,
        method: str,
        url: str,
        *,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and translate failures into APIError subclasses.

        Args:
            method: HTTP method.
            url: Path relative to the base URL, or an absolute URL.
            authenticated: Send the bearer token. Off for pre-signed URLs on
                third-party hosts.
            **kwargs: Passed to httpx.Client.build_request.
        """
        request = self._client.build_request(method, url, **kwargs)
        if not authenticated:
            request.headers.pop("Authorization", None)

        try:
            response = self._client.send(request)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timeout: {method} {request.url}") from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"Network connection error: {method} {request.url}: {e}"
            ) from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Raise an APIError for any non-2xx response."""
        if response.is_success:
            return response

        status_code = response.status_code
        message = f"HTTP {status_code} {response.reason_phrase or 'Unknown error'}"
        detail = _error_detail(response)
        if detail:
            message = f"{message}: {detail}"

        if status_code in (401, 403):
            raise AuthenticationError(message, status_code)
        if status_code == 404:
            raise NotFoundError(message, status_code)
        if status_code >= 500 or status_code == 429:
            raise ServerError(message, status_code)
        raise APIError(message, status_code)


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text if len(text) <= MAX_ERROR_DETAIL else ""
    if isinstance(payload, dict):
        for key in ("detail", "message", "error"):
            if payload.get(key):
                return str(payload[key])
    return ""
