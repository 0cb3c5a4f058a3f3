"""test suite for version resolution and download location."""
import asyncio
import pytest

from unpub.services.versions import VersionResolver
from unpub.services.download import DownloadLocator
from unpub.storage.blob import FileBlobStore
from unpub.storage.metadata import MemoryMetadataStore
from unpub.domain.models import PackageVersion
from unpub.domain.errors import InfrastructureError, NotFoundError


def pv(name, version, text=""):
    return PackageVersion(package_name=name, version=version, manifest_text=text or f"name: {name}")


async def collect(iterator):
    return [item async for item in iterator]


class TestVersionResolver:
    @pytest.fixture
    def store(self):
        store = MemoryMetadataStore()
        for item in (pv("local", "1.10.0"), pv("local", "1.2.0"), pv("local", "1.0.0")):
            store.versions[item.key] = item
        return store

    @pytest.fixture
    def proxy(self, fake_proxy):
        fake_proxy.packages = {
            "local": [pv("local", "9.9.9", "upstream")],
            "remote": [pv("remote", "0.1.0", "upstream"), pv("remote", "0.2.0", "upstream")],
        }
        return fake_proxy

    @pytest.fixture
    def resolver(self, store, proxy):
        return VersionResolver(store, proxy)

    def test_local_versions_sorted(self, resolver, proxy):
        items = asyncio.run(collect(resolver.list_versions("local")))
        assert [i.version for i in items] == ["1.0.0", "1.2.0", "1.10.0"]
        assert proxy.calls == []

    def test_local_versions_never_merged(self, resolver):
        items = asyncio.run(collect(resolver.list_versions("local")))
        assert "9.9.9" not in [i.version for i in items]

    def test_proxy_versions_when_no_local(self, resolver, proxy):
        items = asyncio.run(collect(resolver.list_versions("remote")))
        assert items == proxy.packages["remote"]

    def test_unknown_everywhere(self, resolver):
        assert asyncio.run(collect(resolver.list_versions("missing"))) == []

    def test_listing_is_restartable(self, resolver, store):
        listing = asyncio.run(collect(resolver.list_versions("remote")))
        assert [i.version for i in listing] == ["0.1.0", "0.2.0"]

        # once something is published locally the next listing switches over
        store.versions[("remote", "5.0.0")] = pv("remote", "5.0.0")
        listing = asyncio.run(collect(resolver.list_versions("remote")))
        assert [i.version for i in listing] == ["5.0.0"]

    def test_lookup_prefers_local(self, resolver, proxy, store):
        store.versions[("remote", "0.1.0")] = pv("remote", "0.1.0", "local copy")
        item = asyncio.run(resolver.lookup_version("remote", "0.1.0"))
        assert item.manifest_text == "local copy"
        assert proxy.calls == []

    def test_lookup_falls_back_to_proxy(self, resolver, proxy):
        item = asyncio.run(resolver.lookup_version("remote", "0.2.0"))
        assert item.manifest_text == "upstream"
        assert proxy.calls == [("lookup_version", "remote", "0.2.0")]

    def test_lookup_absent(self, resolver):
        assert asyncio.run(resolver.lookup_version("remote", "7.0.0")) is None

    def test_get_version_not_found(self, resolver):
        with pytest.raises(NotFoundError):
            asyncio.run(resolver.get_version("missing", "1.0.0"))

    def test_slow_proxy_times_out(self, store):
        class SlowProxy:
            async def versions(self, package_name):
                await asyncio.sleep(5)
                yield pv(package_name, "1.0.0")

        resolver = VersionResolver(store, SlowProxy(), timeout=0.01)
        with pytest.raises(InfrastructureError, match="upstream proxy"):
            asyncio.run(collect(resolver.list_versions("remote")))


class TestDownloadLocator:
    @pytest.fixture
    def store(self):
        store = MemoryMetadataStore()
        store.versions[("foo", "1.0.0")] = pv("foo", "1.0.0")
        return store

    @pytest.fixture
    def locator(self, store, tmp_path, fake_proxy):
        blob_store = FileBlobStore(tmp_path, base_url="https://blobs.example/packages/")
        return DownloadLocator(store, blob_store, fake_proxy)

    def test_local_version_uses_blob_store(self, locator, fake_proxy):
        url = asyncio.run(locator.resolve_download_location("foo", "1.0.0"))
        assert url == "https://blobs.example/packages/foo/1.0.0.tar.gz"
        assert fake_proxy.calls == []

    def test_missing_version_uses_proxy(self, locator, fake_proxy):
        url = asyncio.run(locator.resolve_download_location("foo", "2.0.0"))
        assert url == "https://upstream.example/packages/foo/versions/2.0.0.tar.gz"
        assert fake_proxy.calls == [("download_url", "foo", "2.0.0")]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
