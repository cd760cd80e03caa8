"""HTTP client for the DAM (digital asset management) API.

Every request to the DAM goes through the shared RateLimiter first.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from assetsync.clients.errors import APIError, NotFoundError
from assetsync.clients.http import HTTPClient
from assetsync.clients.types import DamAsset, DamAssetSummary, DownloadedFile

if TYPE_CHECKING:
    import httpx

    from assetsync.sync.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class DamClient(HTTPClient):
    """Client for a Bynder-style DAM REST API."""

    PAGE_SIZE = 50
    MAX_DOWNLOAD_HOPS = 3

    def __init__(
        self,
        base_url: str,
        token: str,
        rate_limiter: RateLimiter,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the DAM client.

        Args:
            base_url: Base URL of the DAM (e.g. "https://acme.getbynder.com").
            token: Permanent API token.
            rate_limiter: Process-wide limiter shared by all DAM clients.
            timeout: Request timeout in seconds.
        """
        super().__init__(base_url, token, timeout)
        self._rate_limiter = rate_limiter

    def _dam_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self._rate_limiter.acquire()
        return self._send(method, url, **kwargs)

    def list_assets_by_tag(self, tag: str) -> list[DamAssetSummary]:
        """List every asset carrying a tag, following pagination.

        Args:
            tag: DAM tag to filter on.

        Returns:
            Assets in the order the DAM returned them.
        """
        assets: list[DamAssetSummary] = []
        page = 1
        while True:
            response = self._dam_request(
                "GET",
                "/api/v4/media/",
                params={"tags": tag, "page": page, "limit": self.PAGE_SIZE},
            )
            payload = response.json()

            total: int | None = None
            if isinstance(payload, dict):
                media = payload.get("media") or []
                total = payload.get("total")
            elif isinstance(payload, list):
                media = payload
            else:
                media = []

            for item in media:
                if isinstance(item, dict) and isinstance(item.get("id"), str):
                    assets.append(DamAssetSummary.from_dict(item))

            if len(media) < self.PAGE_SIZE:
                break
            if total is not None and len(assets) >= int(total):
                break
            page += 1

        logger.debug("Tag %r: %d assets in %d page(s)", tag, len(assets), page)
        return assets

    def get_asset_metadata(self, asset_id: str) -> DamAsset:
        """Fetch full metadata for one asset.

        Raises:
            NotFoundError: If the DAM does not know the asset.
        """
        try:
            response = self._dam_request("GET", f"/api/v4/media/{asset_id}/")
        except NotFoundError:
            raise NotFoundError(f"Asset {asset_id} not found in DAM", 404) from None

        payload = response.json()
        if not isinstance(payload, dict) or "id" not in payload:
            raise NotFoundError(f"Asset {asset_id} not found in DAM", 404)
        return DamAsset.from_dict(payload)

    def get_download_url(self, asset_id: str) -> str:
        """URL of the original file for an asset."""
        return f"{self._base_url}/api/v4/media/{asset_id}/download/"

    def download(self, url: str) -> DownloadedFile:
        """Download a file.

        The DAM download endpoint may answer with ``{"s3_file": "<url>"}``
        instead of bytes; that URL is followed without credentials.

        Raises:
            APIError: On HTTP errors, unexpected JSON, or too many hops.
        """
        current = url
        for hop in range(self.MAX_DOWNLOAD_HOPS + 1):
            if hop == 0:
                response = self._dam_request("GET", current)
            else:
                response = self._send("GET", current, authenticated=False)

            content_type = response.headers.get("content-type", "application/octet-stream")
            if "application/json" in content_type:
                try:
                    payload = response.json()
                except ValueError:
                    payload = None
                    logger.warning("Download had JSON content-type but did not parse: %s", current)
                if isinstance(payload, dict) and isinstance(payload.get("s3_file"), str):
                    current = payload["s3_file"]
                    logger.debug("Following storage redirect for %s", url)
                    continue
                if payload is not None:
                    keys = ", ".join(payload) if isinstance(payload, dict) else type(payload).__name__
                    raise APIError(
                        f"DAM returned unexpected JSON response without s3_file. Keys: {keys}"
                    )

            data = response.content
            logger.debug("Downloaded %d bytes (%s) from %s", len(data), content_type, current)
            return DownloadedFile(data=data, content_type=content_type.split(";")[0].strip())

        raise APIError(
            f"Download redirect loop detected: too many redirects "
            f"({self.MAX_DOWNLOAD_HOPS}). URL: {url}"
        )
