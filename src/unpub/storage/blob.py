import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    @abstractmethod
    async def upload(self, package_name: str, version: str, data: bytes) -> None:
        """Store the archive bytes of a package version."""
        pass

    @abstractmethod
    async def download_uri(self, package_name: str, version: str) -> str:
        """Get the location a client should fetch the archive from."""
        pass


class FileBlobStore(BlobStore):
    """stores archives as {root}/{package}/{version}.tar.gz."""

    def __init__(self, root: Path, base_url: Optional[str] = None):
        self.root = root
        self.base_url = base_url.rstrip("/") if base_url else None
        self.root.mkdir(parents=True, exist_ok=True)

    def get_archive_path(self, package_name: str, version: str) -> Path:
        """
        raises:
            ValueError: if the names would place the archive outside {root}/{package}/
        """
        root = self.root.resolve()
        path = (root / package_name / f"{version}.tar.gz").resolve()
        if path.parent.parent != root or path.parent.name != package_name:
            raise ValueError(f"refusing to store {package_name!r} {version!r} outside {root}")
        return path

    def has_archive(self, package_name: str, version: str) -> bool:
        return self.get_archive_path(package_name, version).exists()

    async def upload(self, package_name: str, version: str, data: bytes) -> None:
        path = self.get_archive_path(package_name, version)
        path.parent.mkdir(parents=True, exist_ok=True)

        # write next to the target, then rename so readers never see a partial file
        tmp_path = path.with_name(path.name + ".part")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
        logger.debug(f"stored {len(data)} bytes at {path}")

    async def download_uri(self, package_name: str, version: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{package_name}/{version}.tar.gz"
        return self.get_archive_path(package_name, version).resolve().as_uri()
