from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from ..domain.models import PackageVersion


class ProxyRepository(ABC):
    @abstractmethod
    def versions(self, package_name: str) -> AsyncIterator[PackageVersion]:
        """Yield the upstream versions of a package."""
        pass

    @abstractmethod
    async def lookup_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        """Get one upstream version, or None."""
        pass

    @abstractmethod
    async def download_url(self, package_name: str, version: str) -> str:
        """Get the upstream archive location for a version."""
        pass
