import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..domain.errors import InfrastructureError

logger = logging.getLogger(__name__)


class IdentityVerifier(ABC):
    @abstractmethod
    async def verify(self, token: str) -> Optional[str]:
        """Return the verified email for a bearer token, or None if rejected."""
        pass


class GoogleTokenVerifier(IdentityVerifier):
    """verifies Google OAuth2 access tokens against the tokeninfo endpoint."""

    def __init__(
        self,
        tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.tokeninfo_url = tokeninfo_url
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def verify(self, token: str) -> Optional[str]:
        try:
            response = await self.client.get(self.tokeninfo_url, params={"access_token": token})
        except httpx.TransportError as e:
            raise InfrastructureError("identity verifier", str(e)) from e

        if response.status_code >= 500:
            raise InfrastructureError(
                "identity verifier", f"tokeninfo returned {response.status_code}"
            )
        if response.status_code != 200:
            logger.debug(f"token rejected by tokeninfo ({response.status_code})")
            return None

        try:
            info = response.json()
        except ValueError:
            logger.warning("tokeninfo returned a non-json body")
            return None

        email = info.get("email") if isinstance(info, dict) else None
        if not isinstance(email, str) or not email:
            return None
        return email

    async def close(self):
        await self.client.aclose()
