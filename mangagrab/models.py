"""Data models used throughout the download pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from .config import PipelineConfig
from .errors import InvalidObfuscationParameters


@dataclass(frozen=True)
class Cipher:
    """Per-page AES-CBC key material."""

    key: bytes
    iv: bytes

    @classmethod
    def from_hex(cls, key_hex: str, iv_hex: str) -> "Cipher":
        try:
            return cls(key=bytes.fromhex(key_hex), iv=bytes.fromhex(iv_hex))
        except ValueError as exc:
            raise InvalidObfuscationParameters(
                f"Key or iv is not valid hex: {exc}"
            ) from exc


@dataclass(frozen=True)
class Permutation:
    """Fixed tile permutation; the algorithm constants are shared by all pages."""


@dataclass(frozen=True)
class Passthrough:
    """Page bytes are served without obfuscation."""


ObfuscationParameters = Union[Cipher, Permutation, Passthrough]


@dataclass(frozen=True)
class ImagePage:
    """A page carrying downloadable image content."""

    index: int
    location: str
    params: ObfuscationParameters
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class NonImagePage:
    """Any other entry in the page list (ads, web views, end cards)."""

    kind: str


Page = Union[ImagePage, NonImagePage]


@dataclass(frozen=True)
class Episode:
    """Metadata describing a single episode and its ordered pages."""

    id: str
    title: Optional[str]
    pages: Tuple[Page, ...] = field(default_factory=tuple)

    def image_pages(self) -> List[ImagePage]:
        """Return the image pages in their original order."""
        return [page for page in self.pages if isinstance(page, ImagePage)]


@dataclass(frozen=True)
class FetchedPage:
    """Raw page bytes tagged with the page's original index."""

    index: int
    page: ImagePage
    data: bytes


@dataclass(frozen=True)
class EncodedImage:
    """A solved page prepared for the output container."""

    payload: Any
    extension: str


@dataclass(frozen=True)
class SolvedPage:
    """Output of the solve stage, tagged with the page's original index."""

    index: int
    image: EncodedImage


@dataclass(frozen=True)
class PipelineJob:
    """Everything a single invocation needs; never persisted.

    Either ``destination`` names the artifact exactly, or it is derived from
    the episode title inside ``output_dir``.
    """

    episode_id: str
    config: PipelineConfig
    output_dir: Path = Path(".")
    destination: Optional[Path] = None
