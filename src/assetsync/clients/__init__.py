"""HTTP clients for the DAM and the destination content store."""

from assetsync.clients.dam import DamClient
from assetsync.clients.errors import (
    APIError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from assetsync.clients.protocols import ContentStore, DamSource
from assetsync.clients.store import ContentStoreClient
from assetsync.clients.types import (
    DamAsset,
    DamAssetSummary,
    DownloadedFile,
    FileMetadataFields,
    UploadedFile,
)

__all__ = [
    # Clients
    "ContentStoreClient",
    "DamClient",
    # Protocols
    "ContentStore",
    "DamSource",
    # Errors
    "APIError",
    "AuthenticationError",
    "NetworkError",
    "NotFoundError",
    "ServerError",
    # Types
    "DamAsset",
    "DamAssetSummary",
    "DownloadedFile",
    "FileMetadataFields",
    "UploadedFile",
]
