"""Client for the ComicFuz web manga viewer."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional
from urllib.parse import urljoin

import aiohttp
from google.protobuf.message import DecodeError

from . import fuz_proto
from .client import HttpClient
from .config import BOT_USER_AGENT
from .errors import EpisodeFetchFailed
from .locator import Site, parse_episode_id
from .models import Cipher, Episode, ImagePage, NonImagePage, Page, Passthrough

logger = logging.getLogger("mangagrab")

VIEWER_ENDPOINT = "/v1/web_manga_viewer"


def parse_pages(viewer_pages) -> List[Page]:
    """Convert ``ViewerPage`` messages, numbering image pages densely from 0."""
    pages: List[Page] = []
    index = 0
    for viewer_page in viewer_pages:
        kind = viewer_page.WhichOneof("content")
        if kind != "image":
            pages.append(NonImagePage(kind=kind or "empty"))
            continue
        image = viewer_page.image
        if image.encryption_key or image.iv:
            params = Cipher.from_hex(image.encryption_key, image.iv)
        else:
            params = Passthrough()
        pages.append(
            ImagePage(
                index=index,
                location=image.image_url,
                params=params,
                width=image.image_width or None,
                height=image.image_height or None,
            )
        )
        index += 1
    return pages


def parse_episode(episode_id: str, response) -> Episode:
    """Build an :class:`Episode` from a ``WebMangaViewerResponse``."""
    if not response.HasField("viewer_data"):
        raise EpisodeFetchFailed(f"Chapter {episode_id} is not viewable")
    viewer_data = response.viewer_data
    return Episode(
        id=episode_id,
        title=viewer_data.viewer_title or None,
        pages=tuple(parse_pages(viewer_data.pages)),
    )


class ComicFuzClient:
    """Fetches chapter metadata over the protobuf API and pages from the CDN."""

    def __init__(self, site: Site, http: HttpClient) -> None:
        self.site = site
        self.http = http

    @staticmethod
    def headers(site: Site) -> Dict[str, str]:
        return {
            "User-Agent": BOT_USER_AGENT,
            "Referer": f"{site.descriptor.base_url}/",
        }

    def parse_id(self, url: str) -> Optional[str]:
        return parse_episode_id(self.site, url)

    async def fetch_episode(self, episode_id: str) -> Episode:
        url = urljoin(self.site.descriptor.api_url, VIEWER_ENDPOINT)
        try:
            # chapter_id is a uint32; out of range ids fail here.
            request = fuz_proto.free_chapter_request(int(episode_id))
        except (TypeError, ValueError) as exc:
            raise EpisodeFetchFailed(f"Invalid chapter id {episode_id}: {exc}") from exc
        try:
            body = await self.http.post(
                url,
                request.SerializeToString(),
                headers={"Content-Type": "application/protobuf"},
            )
            response = fuz_proto.WebMangaViewerResponse.FromString(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, DecodeError) as exc:
            raise EpisodeFetchFailed(f"Failed to load chapter {episode_id}: {exc!r}") from exc
        episode = parse_episode(episode_id, response)
        logger.debug("Parsed %d page entries for chapter %s", len(episode.pages), episode_id)
        return episode

    def image_location(self, page: ImagePage) -> str:
        return urljoin(self.site.descriptor.image_url, page.location)

    async def get(self, url: str) -> bytes:
        return await self.http.get(url)
