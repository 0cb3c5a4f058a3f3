import asyncio
import logging
from typing import Awaitable, TypeVar

from ..domain.errors import InfrastructureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded(awaitable: Awaitable[T], timeout: float, collaborator: str) -> T:
    """
    await a collaborator call with a timeout.

    args:
        awaitable: the pending collaborator call
        timeout: seconds before giving up
        collaborator: name used in the error message

    returns:
        the call's result

    raises:
        InfrastructureError: on timeout, or if the call fails with OSError
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"{collaborator} did not respond within {timeout}s")
        raise InfrastructureError(collaborator, f"timed out after {timeout}s") from e
    except OSError as e:
        logger.warning(f"{collaborator} failed: {e}")
        raise InfrastructureError(collaborator, str(e)) from e
