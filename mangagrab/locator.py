"""Resolution of episode URLs to a supported site and episode id."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Pattern, Tuple
from urllib.parse import urlparse

from .errors import EpisodeIdNotFound, UnsupportedSite
from .utils import normalize_host


class ViewerFamily(Enum):
    """Viewer software a site runs; decides client, API and obfuscation."""

    GIGA = "giga"
    FUZ = "fuz"

    @property
    def episode_pattern(self) -> Pattern[str]:
        return _EPISODE_PATTERNS[self]


_EPISODE_PATTERNS: Dict[ViewerFamily, Pattern[str]] = {
    ViewerFamily.GIGA: re.compile(r"^/episode/(\d+)(?:\.json)?/?$"),
    ViewerFamily.FUZ: re.compile(r"^/manga/viewer/(\d+)/?$"),
}


@dataclass(frozen=True)
class SiteDescriptor:
    """Static facts about a supported site."""

    family: ViewerFamily
    base_url: str
    api_url: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def host(self) -> str:
        return normalize_host(urlparse(self.base_url).netloc)


class Site(Enum):
    SHONEN_JUMP_PLUS = SiteDescriptor(ViewerFamily.GIGA, "https://shonenjumpplus.com")
    TONARINO_YJ = SiteDescriptor(ViewerFamily.GIGA, "https://tonarinoyj.jp")
    HEROS_WEB = SiteDescriptor(ViewerFamily.GIGA, "https://viewer.heros-web.com")
    COMIC_BUSHI = SiteDescriptor(ViewerFamily.GIGA, "https://comicbushi-web.com")
    COMIC_BORDER = SiteDescriptor(ViewerFamily.GIGA, "https://comicborder.com")
    COMIC_DAYS = SiteDescriptor(ViewerFamily.GIGA, "https://comic-days.com")
    COMIC_ACTION = SiteDescriptor(ViewerFamily.GIGA, "https://comic-action.com")
    COMIC_OGYAAA = SiteDescriptor(ViewerFamily.GIGA, "https://comic-ogyaaa.com")
    COMIC_GARDO = SiteDescriptor(ViewerFamily.GIGA, "https://comic-gardo.com")
    COMIC_ZENON = SiteDescriptor(ViewerFamily.GIGA, "https://comic-zenon.com")
    FEELWEB = SiteDescriptor(ViewerFamily.GIGA, "https://feelweb.jp")
    KURAGEBUNCH = SiteDescriptor(ViewerFamily.GIGA, "https://kuragebunch.com")
    SUNDAY_WEBRY = SiteDescriptor(ViewerFamily.GIGA, "https://www.sunday-webry.com")
    MAGCOMI = SiteDescriptor(ViewerFamily.GIGA, "https://magcomi.com")
    COMIC_FUZ = SiteDescriptor(
        ViewerFamily.FUZ,
        "https://comic-fuz.com",
        api_url="https://api.comic-fuz.com",
        image_url="https://img.comic-fuz.com",
    )

    @property
    def descriptor(self) -> SiteDescriptor:
        return self.value

    @property
    def family(self) -> ViewerFamily:
        return self.value.family


SITES_BY_HOST: Dict[str, Site] = {site.descriptor.host: site for site in Site}


def site_for_url(url: str) -> Site:
    """Look up the registry entry for a URL's host."""
    host = normalize_host(urlparse(url).netloc)
    site = SITES_BY_HOST.get(host)
    if site is None:
        raise UnsupportedSite(host)
    return site


def parse_episode_id(site: Site, url: str) -> Optional[str]:
    """Extract the numeric episode id from a URL path, or ``None``."""
    match = site.family.episode_pattern.match(urlparse(url).path)
    return match.group(1) if match else None


def locate(url: str) -> Tuple[Site, str]:
    """Map an episode URL to its site and episode id."""
    site = site_for_url(url)
    episode_id = parse_episode_id(site, url)
    if episode_id is None:
        raise EpisodeIdNotFound(url)
    return site, episode_id
