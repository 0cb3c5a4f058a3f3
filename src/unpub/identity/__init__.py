"""operator identity resolution for mutating registry operations."""
from .verifier import IdentityVerifier, GoogleTokenVerifier
from .resolver import OperatorIdentityResolver

__all__ = [
    "IdentityVerifier",
    "GoogleTokenVerifier",
    "OperatorIdentityResolver",
]
