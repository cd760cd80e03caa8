"""HTTP client for the destination content store.

Uploads are staged: the store hands out a pre-signed target, the bytes go
straight to that target, then the file is registered with the store.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any

from assetsync.clients.errors import NetworkError, ServerError
from assetsync.clients.http import HTTPClient
from assetsync.clients.retry import retry_with_backoff
from assetsync.clients.types import FileMetadataFields, UploadedFile

logger = logging.getLogger(__name__)


def staged_filename(path: str, fallback: str = "asset") -> str:
    """Bare filename accepted by the staged-upload endpoint.

    Drops the folder part, replaces colons and trims whitespace.
    """
    name = posixpath.basename(path).replace(":", "-").strip()
    return name or fallback


class ContentStoreClient(HTTPClient):
    """Client for the destination store's file API."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        upload_retries: int = 2,
        upload_backoff: float = 1.0,
    ) -> None:
        """Initialize the store client.

        Args:
            base_url: Base URL of the store API.
            token: Bearer token.
            timeout: Request timeout in seconds.
            upload_retries: Extra attempts for the raw byte transfer.
            upload_backoff: Initial backoff between transfer attempts.
        """
        super().__init__(base_url, token, timeout)
        self._upload_retries = upload_retries
        self._upload_backoff = upload_backoff

    def upload(
        self,
        data: bytes,
        content_type: str,
        path: str,
        alt_text: str = "",
    ) -> UploadedFile:
        """Upload bytes and create a file record at ``path``.

        Returns:
            The created file's id and URL.
        """
        filename = staged_filename(path)
        resource = "IMAGE" if content_type.startswith("image/") else "FILE"

        staged = self._send(
            "POST",
            "/api/files/staged-uploads",
            json={
                "filename": filename,
                "mime_type": content_type,
                "resource": resource,
                "file_size": len(data),
            },
        ).json()
        target_url = staged["url"]
        resource_url = staged.get("resource_url") or target_url
        parameters = staged.get("parameters") or []

        retry_with_backoff(
            lambda: self._transfer(target_url, parameters, data, content_type, filename),
            max_retries=self._upload_retries,
            initial_backoff=self._upload_backoff,
            retryable_exceptions=(NetworkError, ServerError),
        )

        created = self._send(
            "POST",
            "/api/files",
            json={
                "resource_url": resource_url,
                "path": path,
                "alt_text": alt_text,
                "content_type": content_type,
            },
        ).json()
        uploaded = UploadedFile(
            file_id=str(created["id"]),
            file_url=str(created.get("url") or resource_url),
        )
        logger.info("Uploaded %s (%d bytes) as %s", path, len(data), uploaded.file_id)
        return uploaded

    def _transfer(
        self,
        url: str,
        parameters: list[dict[str, Any]],
        data: bytes,
        content_type: str,
        filename: str,
    ) -> None:
        """Send the bytes to the staged target.

        Policy-style targets (with form parameters) get a multipart POST with
        the parameters in the given order and the file last; signed URLs
        without parameters get a raw PUT.
        """
        if parameters:
            self._send(
                "POST",
                url,
                authenticated=False,
                data={param["name"]: param["value"] for param in parameters},
                files={"file": (filename, data, content_type)},
            )
        else:
            self._send(
                "PUT",
                url,
                authenticated=False,
                content=data,
                headers={"Content-Type": content_type},
            )

    def set_metadata(self, file_id: str, fields: FileMetadataFields) -> None:
        """Write provenance metadata onto a file."""
        self._send("PUT", f"/api/files/{file_id}/metadata", json=fields.to_dict())
