import logging
from typing import List, Optional

from ..domain.errors import InvariantViolationError, UnauthenticatedError, UnauthorizedError
from ..identity.resolver import OperatorIdentityResolver
from ..storage.metadata import MetadataStore
from ..utils.locks import KeyedLock
from ..utils.timeouts import bounded

logger = logging.getLogger(__name__)


class UploaderService:
    """handles adding and removing co-publishers of a package."""

    def __init__(
        self,
        identity_resolver: OperatorIdentityResolver,
        metadata_store: MetadataStore,
        locks: Optional[KeyedLock] = None,
        timeout: float = 30.0
    ):
        self.identity_resolver = identity_resolver
        self.metadata_store = metadata_store
        self.locks = locks or KeyedLock()
        self.timeout = timeout

    async def list_uploaders(self, package_name: str) -> List[str]:
        return await self._metadata(self.metadata_store.get_uploaders(package_name))

    async def add_uploader(self, package_name: str, email: str, credential: Optional[str]):
        """
        add a co-publisher.

        raises:
            UnauthenticatedError: if the credential is missing or rejected
            UnauthorizedError: if the operator is not an uploader of the package
            InvariantViolationError: if the operator tries to add themselves
        """
        identity = await self._authenticate(credential)

        async with self.locks.hold(package_name):
            await self._authorize(identity, package_name)

            if email == identity:
                raise InvariantViolationError("cannot add self")

            await self._metadata(self.metadata_store.add_uploader(package_name, email))

        logger.info(f"{identity} added {email} as uploader of {package_name}")

    async def remove_uploader(self, package_name: str, email: str, credential: Optional[str]):
        """
        remove a co-publisher.

        raises:
            UnauthenticatedError: if the credential is missing or rejected
            UnauthorizedError: if the operator is not an uploader of the package
            InvariantViolationError: if the operator tries to remove themselves,
                or the package would be left without uploaders
        """
        identity = await self._authenticate(credential)

        async with self.locks.hold(package_name):
            uploaders = await self._authorize(identity, package_name)

            if email == identity:
                raise InvariantViolationError("cannot remove self")

            if len(uploaders) <= 1:
                raise InvariantViolationError("at least one uploader")

            await self._metadata(self.metadata_store.remove_uploader(package_name, email))

        logger.info(f"{identity} removed {email} as uploader of {package_name}")

    async def _authenticate(self, credential: Optional[str]) -> str:
        identity = await self.identity_resolver.resolve(credential)
        if identity is None:
            raise UnauthenticatedError("Missing or invalid credential")
        return identity

    async def _authorize(self, identity: str, package_name: str) -> List[str]:
        uploaders = await self._metadata(self.metadata_store.get_uploaders(package_name))
        if identity not in uploaders:
            raise UnauthorizedError(identity, package_name)
        return uploaders

    async def _metadata(self, call):
        return await bounded(call, self.timeout, "metadata store")
