from ..registry.client import ProxyRepository
from ..storage.blob import BlobStore
from ..storage.metadata import MetadataStore
from ..utils.timeouts import bounded


class DownloadLocator:
    """resolves where a client should fetch an archive from; never streams bytes itself."""

    def __init__(
        self,
        metadata_store: MetadataStore,
        blob_store: BlobStore,
        proxy: ProxyRepository,
        timeout: float = 30.0
    ):
        self.metadata_store = metadata_store
        self.blob_store = blob_store
        self.proxy = proxy
        self.timeout = timeout

    async def resolve_download_location(self, package_name: str, version: str) -> str:
        item = await bounded(
            self.metadata_store.get_version(package_name, version), self.timeout, "metadata store"
        )
        if item is None:
            return await bounded(
                self.proxy.download_url(package_name, version), self.timeout, "upstream proxy"
            )
        return await bounded(
            self.blob_store.download_uri(package_name, version), self.timeout, "blob store"
        )
