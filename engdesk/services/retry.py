from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger("engdesk.retry")


async def retry(
    operation: Callable[[], Awaitable[T]],
    retries: int,
    backoff_ms: int,
    operation_name: str,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``operation`` until it succeeds, at most ``retries + 1`` times.

    Between attempts waits ``backoff_ms`` and doubles it (1s, 2s, 4s for the
    defaults). Once the budget is spent the last error is re-raised.
    """
    remaining = max(int(retries), 0)
    delay_ms = max(int(backoff_ms), 0)
    while True:
        try:
            return await operation()
        except Exception as exc:
            if remaining == 0:
                logger.error("%s failed, no retries left: %s", operation_name, exc)
                raise
            logger.warning(
                "%s failed, retrying in %dms (%d retries left): %s",
                operation_name,
                delay_ms,
                remaining,
                exc,
            )
            await sleep(delay_ms / 1000.0)
            remaining -= 1
            delay_ms *= 2
