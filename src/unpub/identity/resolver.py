import logging
from typing import Optional

from .verifier import IdentityVerifier
from ..utils.timeouts import bounded

logger = logging.getLogger(__name__)


class OperatorIdentityResolver:
    """turns an Authorization header value into a verified identity."""

    def __init__(self, verifier: IdentityVerifier, timeout: float = 30.0):
        self.verifier = verifier
        self.timeout = timeout

    async def resolve(self, credential: Optional[str]) -> Optional[str]:
        """
        resolve the operator behind a credential.

        args:
            credential: raw Authorization header value ("Bearer <token>"), or None

        returns:
            verified email, or None if the credential is missing or rejected

        raises:
            InfrastructureError: if the verifier times out or is unreachable
        """
        if credential is None or not credential.strip():
            return None

        parts = credential.split()
        if len(parts) == 1 and parts[0].lower() == "bearer":
            return None

        token = parts[-1]
        identity = await bounded(self.verifier.verify(token), self.timeout, "identity verifier")
        if identity is None:
            logger.info("credential rejected by identity verifier")
        return identity
