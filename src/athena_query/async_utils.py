import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


async def best_effort(action: Callable[[], Awaitable[None]], description: str) -> None:
    """Await ``action`` and log, rather than raise, any failure."""
    try:
        await action()
    except Exception as exc:
        logger.warning("%s failed: %s", description, exc)


async def with_timeout(
    awaitable: Awaitable,
    timeout_seconds: Optional[float],
    on_timeout: Optional[Callable[[], Awaitable[None]]] = None,
):
    """Run an awaitable with an optional timeout and timeout handler."""
    if timeout_seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        if on_timeout is not None:
            await best_effort(on_timeout, "Timeout cancellation")
        raise
