import logging
from typing import AsyncIterator, List, Optional

from .bundling.archive import ArchiveExtractor
from .config import Settings
from .domain.models import PackageVersion
from .identity import GoogleTokenVerifier, IdentityVerifier, OperatorIdentityResolver
from .registry.client import ProxyRepository
from .registry.proxy import HttpProxyRepository
from .services.download import DownloadLocator
from .services.publish import PublishService
from .services.uploaders import UploaderService
from .services.versions import VersionResolver
from .storage.blob import BlobStore, FileBlobStore
from .storage.metadata import JsonMetadataStore, MetadataStore
from .utils.locks import KeyedLock

logger = logging.getLogger(__name__)


class UnpubRepository:
    """a private package repository that proxies an upstream mirror for anything it doesn't host."""

    supports_upload = True
    supports_download_url = True
    supports_uploaders = True

    def __init__(
        self,
        metadata_store: MetadataStore,
        blob_store: BlobStore,
        proxy: ProxyRepository,
        identity_verifier: IdentityVerifier,
        timeout: float = 30.0,
        max_archive_size: int = 100 * 1024 * 1024
    ):
        self.metadata_store = metadata_store
        self.blob_store = blob_store
        self.proxy = proxy
        self.identity_verifier = identity_verifier

        # publishes and uploader changes of one package share a lock
        locks = KeyedLock()
        identity_resolver = OperatorIdentityResolver(identity_verifier, timeout)

        self.publish_service = PublishService(
            identity_resolver,
            metadata_store,
            blob_store,
            extractor=ArchiveExtractor(max_archive_size),
            locks=locks,
            timeout=timeout
        )
        self.version_resolver = VersionResolver(metadata_store, proxy, timeout)
        self.download_locator = DownloadLocator(metadata_store, blob_store, proxy, timeout)
        self.uploader_service = UploaderService(identity_resolver, metadata_store, locks, timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UnpubRepository":
        """build a repository backed by local files, google tokeninfo and an http upstream."""
        logger.debug(f"using data dir {settings.data_dir}, upstream {settings.proxy_url}")
        return cls(
            metadata_store=JsonMetadataStore(settings.metadata_file),
            blob_store=FileBlobStore(settings.blob_dir, settings.blob_base_url),
            proxy=HttpProxyRepository(settings.proxy_url, settings.timeout),
            identity_verifier=GoogleTokenVerifier(settings.tokeninfo_url, settings.timeout),
            timeout=settings.timeout,
            max_archive_size=settings.max_archive_size
        )

    def versions(self, package_name: str) -> AsyncIterator[PackageVersion]:
        return self.version_resolver.list_versions(package_name)

    async def lookup_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        return await self.version_resolver.lookup_version(package_name, version)

    async def get_version(self, package_name: str, version: str) -> PackageVersion:
        return await self.version_resolver.get_version(package_name, version)

    async def upload(self, data: bytes, credential: Optional[str]) -> PackageVersion:
        return await self.publish_service.publish(data, credential)

    async def download_url(self, package_name: str, version: str) -> str:
        return await self.download_locator.resolve_download_location(package_name, version)

    async def uploaders(self, package_name: str) -> List[str]:
        return await self.uploader_service.list_uploaders(package_name)

    async def add_uploader(self, package_name: str, email: str, credential: Optional[str]):
        await self.uploader_service.add_uploader(package_name, email, credential)

    async def remove_uploader(self, package_name: str, email: str, credential: Optional[str]):
        await self.uploader_service.remove_uploader(package_name, email, credential)

    async def close(self):
        """close http clients held by collaborators."""
        for collaborator in (self.proxy, self.identity_verifier):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()
