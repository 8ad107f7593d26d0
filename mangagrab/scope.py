"""Scatter/gather helpers with structured cancellation."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, List, TypeVar

T = TypeVar("T")


async def gather_unordered(awaitables: Iterable[Awaitable[T]]) -> List[T]:
    """Run awaitables concurrently and return results in completion order.

    The first failure cancels every sibling, waits for all of them to finish,
    and then propagates. No task outlives this call, including when the caller
    itself is cancelled.
    """
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    results: List[T] = []
    try:
        for next_done in asyncio.as_completed(tasks):
            results.append(await next_done)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return results
