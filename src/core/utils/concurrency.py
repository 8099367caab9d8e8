import asyncio
from typing import Any, Callable, TypeVar

import anyio.to_thread

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, timeout: float) -> T:
    """
    Run a blocking store call in a worker thread, bounded by `timeout`.

    On timeout or cancellation the await returns immediately; the worker
    thread is abandoned and its result discarded.

    Raises:
        asyncio.TimeoutError: If the call does not finish within `timeout`.
    """
    return await asyncio.wait_for(
        anyio.to_thread.run_sync(func, *args, abandon_on_cancel=True),
        timeout=timeout,
    )
