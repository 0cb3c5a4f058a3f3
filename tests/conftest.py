"""shared fixtures for the unpub test suite."""
import io
import sys
import tarfile
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from unpub.identity import IdentityVerifier
from unpub.registry.client import ProxyRepository


def build_archive(files: dict, compress: bool = True) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz" if compress else "w") as tar:
        for name, content in files.items():
            data = content.encode() if isinstance(content, str) else content
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def pubspec(name: str, version: str) -> str:
    return f"name: {name}\nversion: {version}\ndescription: test package\n"


class FakeProxy(ProxyRepository):
    """upstream stand-in backed by a dict of package -> [PackageVersion]."""

    def __init__(self, packages=None):
        self.packages = packages or {}
        self.calls = []

    async def versions(self, package_name):
        self.calls.append(("versions", package_name))
        for item in self.packages.get(package_name, []):
            yield item

    async def lookup_version(self, package_name, version):
        self.calls.append(("lookup_version", package_name, version))
        for item in self.packages.get(package_name, []):
            if item.version == version:
                return item
        return None

    async def download_url(self, package_name, version):
        self.calls.append(("download_url", package_name, version))
        return f"https://upstream.example/packages/{package_name}/versions/{version}.tar.gz"


@pytest.fixture
def archive_factory():
    """build .tar.gz bytes from {name: content}."""
    return build_archive


@pytest.fixture
def package_archive():
    """build a well-formed archive for a package version."""
    def factory(name: str = "foo", version: str = "1.0.0") -> bytes:
        return build_archive({
            "pubspec.yaml": pubspec(name, version),
            "lib/main.dart": "void main() {}\n",
        })
    return factory


@pytest.fixture
def tokens():
    """bearer token -> email accepted by the fake verifier."""
    return {
        "alice-token": "alice@example.com",
        "bob-token": "bob@example.com",
        "carol-token": "carol@example.com",
    }


@pytest.fixture
def verifier(tokens):
    """create mock identity verifier."""
    mock = AsyncMock(spec=IdentityVerifier)
    mock.verify.side_effect = lambda token: tokens.get(token)
    return mock


@pytest.fixture
def fake_proxy():
    return FakeProxy()
