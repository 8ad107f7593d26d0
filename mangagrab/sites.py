"""Dispatch from a registry entry to the client for its viewer family.

Every client exposes the same small surface: ``parse_id(url)``,
``fetch_episode(id)``, ``image_location(page)`` and ``get(url)``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Type, Union

from .client import HttpClient
from .fuz import ComicFuzClient
from .giga import GigaViewerClient
from .locator import Site, ViewerFamily

SiteClient = Union[GigaViewerClient, ComicFuzClient]

CLIENTS: Dict[ViewerFamily, Type[SiteClient]] = {
    ViewerFamily.GIGA: GigaViewerClient,
    ViewerFamily.FUZ: ComicFuzClient,
}


@asynccontextmanager
async def open_site_client(site: Site, timeout: float) -> AsyncIterator[SiteClient]:
    """Yield a client for ``site`` backed by a fresh HTTP session."""
    client_cls = CLIENTS[site.family]
    async with HttpClient(client_cls.headers(site), timeout) as http:
        yield client_cls(site, http)
