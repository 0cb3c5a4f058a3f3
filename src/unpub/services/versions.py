import logging
from typing import AsyncIterator, Optional

from ..domain.errors import NotFoundError
from ..domain.models import PackageVersion, version_sort_key
from ..registry.client import ProxyRepository
from ..storage.metadata import MetadataStore
from ..utils.timeouts import bounded

logger = logging.getLogger(__name__)


class VersionResolver:
    """answers version queries from local metadata, falling back to the upstream proxy."""

    def __init__(self, metadata_store: MetadataStore, proxy: ProxyRepository, timeout: float = 30.0):
        self.metadata_store = metadata_store
        self.proxy = proxy
        self.timeout = timeout

    async def list_versions(self, package_name: str) -> AsyncIterator[PackageVersion]:
        """
        yield every version of a package.

        local versions win outright: the proxy is only consulted when the
        package has no local versions, and the two are never merged. each call
        queries again.
        """
        items = await bounded(
            self.metadata_store.get_all_versions(package_name), self.timeout, "metadata store"
        )

        if items:
            for item in sorted(items, key=lambda v: version_sort_key(v.version)):
                yield item
            return

        logger.debug(f"no local versions of {package_name}, proxying upstream")
        upstream = self.proxy.versions(package_name).__aiter__()
        while True:
            found, item = await bounded(_next(upstream), self.timeout, "upstream proxy")
            if not found:
                return
            yield item

    async def lookup_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        item = await bounded(
            self.metadata_store.get_version(package_name, version), self.timeout, "metadata store"
        )
        if item is not None:
            return item
        return await bounded(
            self.proxy.lookup_version(package_name, version), self.timeout, "upstream proxy"
        )

    async def get_version(self, package_name: str, version: str) -> PackageVersion:
        """like lookup_version, but raises NotFoundError when no one has the version."""
        item = await self.lookup_version(package_name, version)
        if item is None:
            raise NotFoundError(package_name, version)
        return item


async def _next(iterator):
    try:
        return True, await iterator.__anext__()
    except StopAsyncIteration:
        return False, None
