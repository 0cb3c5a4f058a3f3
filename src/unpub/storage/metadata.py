import asyncio
import fcntl
import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..domain.models import PackageVersion

logger = logging.getLogger(__name__)


class MetadataStore(ABC):
    @abstractmethod
    async def get_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        """Get one version record, or None."""
        pass

    @abstractmethod
    async def get_all_versions(self, package_name: str) -> List[PackageVersion]:
        """Get every version record of a package."""
        pass

    @abstractmethod
    async def add_version(self, package_version: PackageVersion) -> bool:
        """Insert a version record if absent. Returns False if it already existed."""
        pass

    @abstractmethod
    async def get_uploaders(self, package_name: str) -> List[str]:
        """Get the uploaders of a package; empty for unknown packages."""
        pass

    @abstractmethod
    async def add_uploader(self, package_name: str, email: str) -> None:
        pass

    @abstractmethod
    async def remove_uploader(self, package_name: str, email: str) -> None:
        pass


class MemoryMetadataStore(MetadataStore):
    """
    keeps records in dicts.

    every method runs without awaiting in between reading and writing, so each
    call is atomic with respect to other tasks on the same event loop.
    """

    def __init__(self):
        self.versions: Dict[Tuple[str, str], PackageVersion] = {}
        self.uploaders: Dict[str, List[str]] = {}

    async def get_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        return self.versions.get((package_name, version))

    async def get_all_versions(self, package_name: str) -> List[PackageVersion]:
        return [v for (name, _), v in self.versions.items() if name == package_name]

    async def add_version(self, package_version: PackageVersion) -> bool:
        if package_version.key in self.versions:
            return False
        self.versions[package_version.key] = package_version
        return True

    async def get_uploaders(self, package_name: str) -> List[str]:
        return list(self.uploaders.get(package_name, []))

    async def add_uploader(self, package_name: str, email: str) -> None:
        current = self.uploaders.setdefault(package_name, [])
        if email not in current:
            current.append(email)

    async def remove_uploader(self, package_name: str, email: str) -> None:
        current = self.uploaders.get(package_name, [])
        if email in current:
            current.remove(email)


class JsonMetadataStore(MetadataStore):
    """
    metadata persisted to a single JSON file shared by every process.

    nothing is cached: reads load the file, and writes load, change and
    replace it while holding an exclusive flock on a sidecar `.lock` file.
    that makes `add_version` insert-if-absent across processes. file I/O runs
    in a worker thread so callers can bound it with a timeout.

    file layout: {"packages": {name: {"uploaders": [...], "versions": {v: manifest_text}}}}
    """

    def __init__(self, path: Path):
        self.path = path
        self.lock_path = path.with_name(path.name + ".lock")

    def load(self) -> dict:
        """load the document, empty if the file does not exist yet."""
        if not self.path.exists():
            return {"packages": {}}

        with open(self.path, "r") as f:
            data = json.load(f)
        data.setdefault("packages", {})
        return data

    def save(self, data: dict) -> None:
        """write the document next to the target, then rename it into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        tmp_path.replace(self.path)

    @contextmanager
    def locked(self) -> Iterator[None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _update(self, change: Callable[[dict], bool]) -> bool:
        # change() edits the packages mapping and reports whether it did anything
        with self.locked():
            data = self.load()
            changed = change(data["packages"])
            if changed:
                self.save(data)
        return changed

    async def _entry(self, package_name: str) -> dict:
        data = await asyncio.to_thread(self.load)
        return data["packages"].get(package_name, {})

    async def get_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        entry = await self._entry(package_name)
        manifest_text = entry.get("versions", {}).get(version)
        if manifest_text is None:
            return None
        return PackageVersion(package_name=package_name, version=version, manifest_text=manifest_text)

    async def get_all_versions(self, package_name: str) -> List[PackageVersion]:
        entry = await self._entry(package_name)
        return [
            PackageVersion(package_name=package_name, version=version, manifest_text=text)
            for version, text in entry.get("versions", {}).items()
        ]

    async def add_version(self, package_version: PackageVersion) -> bool:
        def insert(packages: dict) -> bool:
            entry = packages.setdefault(package_version.package_name, {"uploaders": [], "versions": {}})
            versions = entry.setdefault("versions", {})
            if package_version.version in versions:
                return False
            versions[package_version.version] = package_version.manifest_text
            return True

        added = await asyncio.to_thread(self._update, insert)
        if not added:
            logger.debug(f"{package_version.package_name} {package_version.version} already in {self.path}")
        return added

    async def get_uploaders(self, package_name: str) -> List[str]:
        entry = await self._entry(package_name)
        return list(entry.get("uploaders", []))

    async def add_uploader(self, package_name: str, email: str) -> None:
        def add(packages: dict) -> bool:
            entry = packages.setdefault(package_name, {"uploaders": [], "versions": {}})
            uploaders = entry.setdefault("uploaders", [])
            if email in uploaders:
                return False
            uploaders.append(email)
            return True

        await asyncio.to_thread(self._update, add)

    async def remove_uploader(self, package_name: str, email: str) -> None:
        def remove(packages: dict) -> bool:
            uploaders = packages.get(package_name, {}).get("uploaders", [])
            if email not in uploaders:
                return False
            uploaders.remove(email)
            return True

        await asyncio.to_thread(self._update, remove)
