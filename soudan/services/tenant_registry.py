"""
Tenant Registry

Maps each tenant's canonical origin (e.g. "https://example.com") to its
isolated CommentStore. The mapping is built once at startup from the
configured domain list and never changes afterwards.

The Origin header is the only tenant selector: both the read and the write
path resolve their store through acquire().
"""

import logging
from contextlib import asynccontextmanager

import httpx

from soudan.database import create_tenant_engine
from soudan.exceptions import BadOriginError, ConfigurationError
from soudan.services.comment_store import CommentStore

logger = logging.getLogger(__name__)


class TenantRegistry:
    """Fixed origin -> comment store mapping."""

    def __init__(self, stores: dict[str, CommentStore]):
        if not stores:
            raise ConfigurationError("At least one domain is required!")
        self._stores = stores

    @classmethod
    def from_domains(cls, domains: list[str], testing: bool = False, data_dir: str = ".") -> "TenantRegistry":
        """Build one store per configured domain."""
        if not domains:
            raise ConfigurationError("At least one domain is required!")

        stores = {}
        for domain in domains:
            stores[domain] = CommentStore(domain, create_tenant_engine(domain, testing=testing, data_dir=data_dir))
        logger.info(f"Tenant registry built for {len(stores)} domain(s): {', '.join(stores)}")
        return cls(stores)

    @property
    def domains(self) -> list[str]:
        return list(self._stores)

    async def init_stores(self) -> None:
        for store in self._stores.values():
            await store.init()

    async def dispose(self) -> None:
        for store in self._stores.values():
            await store.dispose()

    def lookup(self, origin: str | None) -> CommentStore:
        """
        Return the store for an Origin header value.

        A missing or non-ASCII Origin means the request did not come from a
        browser; it is rejected the same way as an unregistered one.

        Raises:
            BadOriginError: if no tenant is registered under exactly this origin
        """
        if origin is None or not origin.isascii():
            raise BadOriginError()

        store = self._stores.get(origin)
        if store is None:
            raise BadOriginError()
        return store

    @asynccontextmanager
    async def acquire(self, origin: str | None):
        """Resolve the tenant store for an origin and hold its lock."""
        store = self.lookup(origin)
        async with store.locked():
            yield store

    def in_scope(self, origin: str, url: str) -> bool:
        """
        Whether a submitted page URL may be fetched on behalf of an origin.

        Some registered domain must start with the origin, and the URL must
        lie under that domain. This keeps the server from fetching pages
        outside the configured tenants and keeps one origin from writing into
        an unrelated tenant.
        """
        return any(domain.startswith(origin) and url_within(url, domain) for domain in self._stores)


def url_within(url: str, domain: str) -> bool:
    """
    Whether url starts with domain and resolves to the same host.

    The domain must end at a path, query or fragment boundary, so
    "https://example.com.attacker.net" and "https://example.com@attacker.net"
    do not count as being under "https://example.com".
    """
    if not url.startswith(domain):
        return False

    rest = url[len(domain):]
    if rest and not domain.endswith("/") and rest[0] not in "/?#":
        return False

    try:
        return httpx.URL(url).host == httpx.URL(domain).host
    except httpx.InvalidURL:
        return False
