import asyncio
import logging
from typing import Awaitable, TypeVar

import httpx
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.errors import Unavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_collaborator(call: Awaitable[T], name: str, timeout: float | None = None) -> T:
    """
    Await a ledger/directory call, bounded by a timeout.

    Timeouts and driver/network failures become ``Unavailable`` so callers can
    tell "try again" apart from "does not exist". Cancellation of the caller
    propagates unchanged.
    """
    if timeout is None:
        timeout = settings.collaborator_timeout_seconds
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{name} call timed out after {timeout}s")
        raise Unavailable(f"{name} did not respond in time")
    except (SQLAlchemyError, httpx.HTTPError, OSError) as e:
        logger.warning(f"{name} call failed: {e}")
        raise Unavailable(f"{name} is unavailable") from e
