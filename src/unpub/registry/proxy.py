import json
import logging
from typing import AsyncIterator, List, Optional
from urllib.parse import quote

import httpx

from .client import ProxyRepository
from ..domain.errors import InfrastructureError
from ..domain.models import PackageVersion

logger = logging.getLogger(__name__)


class HttpProxyRepository(ProxyRepository):
    """read-only view of an upstream pub-compatible registry."""

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def versions(self, package_name: str) -> AsyncIterator[PackageVersion]:
        for item in await self._fetch_versions(package_name):
            yield item

    async def lookup_version(self, package_name: str, version: str) -> Optional[PackageVersion]:
        for item in await self._fetch_versions(package_name):
            if item.version == version:
                return item
        return None

    async def download_url(self, package_name: str, version: str) -> str:
        return f"{self.base_url}/packages/{quote(package_name)}/versions/{quote(version)}.tar.gz"

    async def _fetch_versions(self, package_name: str) -> List[PackageVersion]:
        url = f"{self.base_url}/api/packages/{quote(package_name)}"
        try:
            response = await self.client.get(url, headers={"Accept": "application/json"})
        except httpx.TransportError as e:
            raise InfrastructureError("upstream proxy", str(e)) from e

        if response.status_code == 404:
            logger.debug(f"{package_name} not found upstream")
            return []
        if response.status_code != 200:
            raise InfrastructureError(
                "upstream proxy", f"GET {url} returned {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InfrastructureError("upstream proxy", f"invalid json from {url}") from e
        if not isinstance(data, dict):
            raise InfrastructureError("upstream proxy", f"unexpected response shape from {url}")

        # the body is {name, latest, versions: [{version, pubspec, archive_url}, ...]}
        entries = data.get("versions", [])
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise InfrastructureError("upstream proxy", f"unexpected versions list from {url}")

        items = []
        for entry in entries:
            version = entry.get("version")
            if not isinstance(version, str):
                continue
            items.append(PackageVersion(
                package_name=package_name,
                version=version,
                manifest_text=json.dumps(entry.get("pubspec", {}))
            ))
        return items

    async def close(self):
        await self.client.aclose()
