"""Per-run collaborators for the sync engine.

A SyncContext bundles the store, the tenant and the two clients a run
needs. Contexts are built by a ClientFactory from the tenant's settings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from assetsync.clients.dam import DamClient
from assetsync.clients.store import ContentStoreClient
from assetsync.server.database import Database
from assetsync.server.models import Tenant
from assetsync.sync.types import ConfigurationError

if TYPE_CHECKING:
    from assetsync.clients.protocols import ContentStore, DamSource
    from assetsync.sync.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything one sync run talks to.

    Attributes:
        db: Job and asset store.
        tenant: Tenant being synced.
        dam: DAM client.
        store: Content-store client.
        rate_limiter: Limiter behind the DAM client, if known. Only read
            for reporting.
    """

    db: Database
    tenant: Tenant
    dam: DamSource
    store: ContentStore
    rate_limiter: RateLimiter | None = None

    def close(self) -> None:
        """Close both clients."""
        self.dam.close()
        self.store.close()

    def __enter__(self) -> SyncContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


ContextFactory = Callable[[Database, Tenant], SyncContext]


class ClientFactory:
    """Build SyncContexts with httpx clients from tenant settings.

    All DAM clients built by one factory share its rate limiter.
    """

    def __init__(self, rate_limiter: RateLimiter, timeout: float = 30.0) -> None:
        self._rate_limiter = rate_limiter
        self._timeout = timeout

    @property
    def rate_limiter(self) -> RateLimiter:
        """Limiter handed to every DAM client."""
        return self._rate_limiter

    def __call__(self, db: Database, tenant: Tenant) -> SyncContext:
        """Build a context for a tenant.

        Raises:
            ConfigurationError: If DAM or store settings are missing.
        """
        if not tenant.dam_base_url or not tenant.dam_token:
            raise ConfigurationError(f"DAM not configured for tenant {tenant.name}")
        if not tenant.store_base_url or not tenant.store_token:
            raise ConfigurationError(f"Content store not configured for tenant {tenant.name}")

        dam = DamClient(
            tenant.dam_base_url,
            tenant.dam_token,
            self._rate_limiter,
            timeout=self._timeout,
        )
        store = ContentStoreClient(tenant.store_base_url, tenant.store_token, timeout=self._timeout)
        logger.debug("Built clients for tenant %s", tenant.name)
        return SyncContext(
            db=db,
            tenant=tenant,
            dam=dam,
            store=store,
            rate_limiter=self._rate_limiter,
        )
