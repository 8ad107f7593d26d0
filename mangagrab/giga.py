"""Client for sites running the GigaViewer episode viewer."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .client import HttpClient
from .config import BOT_USER_AGENT
from .errors import EpisodeFetchFailed
from .locator import Site, parse_episode_id
from .models import Episode, ImagePage, NonImagePage, Page, Permutation

logger = logging.getLogger("mangagrab")

_PERMUTATION = Permutation()


def _is_image_entry(entry: Dict[str, Any]) -> bool:
    return all(key in entry for key in ("src", "width", "height"))


def parse_pages(entries: List[Dict[str, Any]]) -> List[Page]:
    """Convert the viewer's page list, numbering image pages densely from 0."""
    pages: List[Page] = []
    index = 0
    for entry in entries:
        if _is_image_entry(entry):
            pages.append(
                ImagePage(
                    index=index,
                    location=entry["src"],
                    params=_PERMUTATION,
                    width=int(entry["width"]),
                    height=int(entry["height"]),
                )
            )
            index += 1
        else:
            pages.append(NonImagePage(kind=str(entry.get("type", "other"))))
    return pages


def parse_episode(payload: Any) -> Episode:
    """Build an :class:`Episode` from the ``/episode/<id>.json`` payload.

    Any payload that does not have the expected shape raises
    :class:`EpisodeFetchFailed`.
    """
    if not isinstance(payload, dict):
        raise EpisodeFetchFailed(f"Expected a JSON object, got {type(payload).__name__}")
    product = payload.get("readableProduct")
    if not isinstance(product, dict):
        raise EpisodeFetchFailed("Response has no readableProduct")
    structure = product.get("pageStructure")
    if not isinstance(structure, dict):
        raise EpisodeFetchFailed(
            f"Episode {product.get('id')} has no page structure (not public?)"
        )
    try:
        return Episode(
            id=str(product["id"]),
            title=product.get("title"),
            pages=tuple(parse_pages(structure.get("pages") or [])),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise EpisodeFetchFailed(f"Malformed episode payload: {exc!r}") from exc


class GigaViewerClient:
    """Fetches episode metadata and page bytes from a GigaViewer site."""

    def __init__(self, site: Site, http: HttpClient) -> None:
        self.site = site
        self.http = http

    @staticmethod
    def headers(site: Site) -> Dict[str, str]:
        return {"User-Agent": BOT_USER_AGENT}

    def parse_id(self, url: str) -> Optional[str]:
        return parse_episode_id(self.site, url)

    def episode_url(self, episode_id: str) -> str:
        return f"{self.site.descriptor.base_url}/episode/{episode_id}.json"

    async def fetch_episode(self, episode_id: str) -> Episode:
        url = self.episode_url(episode_id)
        try:
            body = await self.http.get(url)
            payload = json.loads(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise EpisodeFetchFailed(f"Failed to load episode {episode_id}: {exc!r}") from exc
        episode = parse_episode(payload)
        logger.debug("Parsed %d page entries for episode %s", len(episode.pages), episode_id)
        return episode

    def image_location(self, page: ImagePage) -> str:
        return page.location

    async def get(self, url: str) -> bytes:
        return await self.http.get(url)
