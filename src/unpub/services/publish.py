import logging
from typing import Optional

from ..bundling.archive import ArchiveExtractor
from ..bundling.manifest import ManifestParser
from ..domain.errors import ConflictError, UnauthenticatedError, UnauthorizedError
from ..domain.models import PackageVersion
from ..identity.resolver import OperatorIdentityResolver
from ..storage.blob import BlobStore
from ..storage.metadata import MetadataStore
from ..utils.locks import KeyedLock
from ..utils.timeouts import bounded

logger = logging.getLogger(__name__)


class PublishService:
    """handles publishing uploaded archives into the registry."""

    def __init__(
        self,
        identity_resolver: OperatorIdentityResolver,
        metadata_store: MetadataStore,
        blob_store: BlobStore,
        extractor: Optional[ArchiveExtractor] = None,
        parser: Optional[ManifestParser] = None,
        locks: Optional[KeyedLock] = None,
        timeout: float = 30.0
    ):
        self.identity_resolver = identity_resolver
        self.metadata_store = metadata_store
        self.blob_store = blob_store
        self.extractor = extractor or ArchiveExtractor()
        self.parser = parser or ManifestParser()
        self.locks = locks or KeyedLock()
        self.timeout = timeout

    async def publish(self, data: bytes, credential: Optional[str]) -> PackageVersion:
        """
        publish an uploaded .tar.gz archive.

        args:
            data: the archive bytes
            credential: raw Authorization header value

        returns:
            the stored PackageVersion

        raises:
            UnauthenticatedError: if the credential is missing or rejected
            MalformedArchiveError: if the archive cannot be decoded
            ManifestMissingError: if the archive has no pubspec.yaml
            ManifestInvalidError: if pubspec.yaml lacks a string name/version
            ConflictError: if the version was already published
            UnauthorizedError: if the operator is not an uploader of the package
            InfrastructureError: if a collaborator times out or fails
        """
        # 1. who is publishing
        identity = await self.identity_resolver.resolve(credential)
        if identity is None:
            raise UnauthenticatedError("Missing or invalid credential")

        # 2. unpack and read the manifest
        logger.info(f"Start uploading package for {identity}.")
        bundle = self.extractor.extract(data)
        manifest = self.parser.parse(self.extractor.manifest_bytes(bundle))
        package_name = manifest.name
        version = manifest.version

        async with self.locks.hold(package_name):
            # 3. versions are write-once
            existing = await self._metadata(self.metadata_store.get_version(package_name, version))
            if existing is not None:
                raise ConflictError(package_name, version)

            # 4. authorize, claiming brand-new packages for their first publisher
            uploaders = await self._metadata(self.metadata_store.get_uploaders(package_name))
            claim = False
            if identity not in uploaders:
                if uploaders or await self._metadata(self.metadata_store.get_all_versions(package_name)):
                    raise UnauthorizedError(identity, package_name)
                claim = True

            # 5. archive first, metadata last: the metadata row is the commit point
            await bounded(
                self.blob_store.upload(package_name, version, bundle.data),
                self.timeout,
                "blob store"
            )

            record = PackageVersion(
                package_name=package_name,
                version=version,
                manifest_text=manifest.raw_text
            )
            if not await self._metadata(self.metadata_store.add_version(record)):
                # another process committed the same pair first
                logger.warning(f"lost publish race for {package_name} {version}")
                raise ConflictError(package_name, version)

            # 6. the uploader set of a new package appears with its first version
            if claim:
                logger.info(f"{identity} becomes the first uploader of new package {package_name}")
                await self._metadata(self.metadata_store.add_uploader(package_name, identity))

        logger.info(f"Published {package_name} {version} by {identity}.")
        return record

    async def _metadata(self, call):
        return await bounded(call, self.timeout, "metadata store")
