"""Concurrent download of page bytes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .errors import FetchFailed, MangaGrabError
from .models import FetchedPage, ImagePage
from .scope import gather_unordered

logger = logging.getLogger("mangagrab")


async def fetch_page(client, page: ImagePage, limiter: asyncio.Semaphore) -> FetchedPage:
    """Download one page while holding a slot of the connection budget."""
    url = client.image_location(page)
    async with limiter:
        try:
            data = await client.get(url)
        except MangaGrabError as exc:
            if exc.index is None:
                exc.index = page.index
            raise
        except Exception as exc:
            raise FetchFailed(page.index, exc) from exc
    logger.debug("Fetched page %d (%d bytes)", page.index, len(data))
    return FetchedPage(index=page.index, page=page, data=data)


async def fetch_pages(
    client,
    pages: Sequence[ImagePage],
    num_connections: int,
    then: Optional[Callable[[FetchedPage], Awaitable[Any]]] = None,
) -> List[Any]:
    """Fetch every page with at most ``num_connections`` requests in flight.

    Results come back in completion order, each tagged with its page index.
    When ``then`` is given, every page is handed to it as soon as its bytes
    arrive, after its connection slot is released, and its results are
    collected instead. The first failure cancels the remaining work.
    """
    limiter = asyncio.Semaphore(num_connections)

    async def fetch_one(page: ImagePage):
        fetched = await fetch_page(client, page, limiter)
        if then is None:
            return fetched
        return await then(fetched)

    return await gather_unordered(fetch_one(page) for page in pages)
