"""Helpers for running awaitables side by side."""

import asyncio
from collections.abc import Awaitable
from typing import Any


async def gather_or_cancel(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await all awaitables concurrently and return their results in order.

    On the first failure the remaining tasks are cancelled and awaited, and
    the original exception is re-raised as is (not wrapped in an
    ExceptionGroup as ``asyncio.TaskGroup`` would).
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
