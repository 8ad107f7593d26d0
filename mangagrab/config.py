"""Configuration objects and constants for the downloader."""

from __future__ import annotations

import os
import zipfile
from dataclasses import dataclass, field
from enum import Enum

BOT_USER_AGENT = "mangagrab/1.0"

DEFAULT_NUM_CONNECTIONS = 8
DEFAULT_REQUEST_TIMEOUT = 30.0

# Tile permutation grid used by GigaViewer sites.
NUM_CELLS = 4
CELL_ALIGNMENT = 8

AES_BLOCK_SIZE = 16
AES_KEY_SIZE = 32


def _default_num_threads() -> int:
    return os.cpu_count() or 1


class SaveFormat(Enum):
    RAW = "raw"
    ZIP = "zip"
    CBZ = "cbz"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        """File suffix for the artifact; empty for the raw directory."""
        if self is SaveFormat.RAW:
            return ""
        return f".{self.value}"


class ImageFormat(Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def extension(self) -> str:
        return "jpg" if self is ImageFormat.JPEG else self.value

    @property
    def pil_format(self) -> str:
        return self.value.upper()


class Compression(Enum):
    STORED = "stored"
    DEFLATED = "deflated"
    BZIP2 = "bzip2"
    LZMA = "lzma"

    @property
    def zip_method(self) -> int:
        return {
            Compression.STORED: zipfile.ZIP_STORED,
            Compression.DEFLATED: zipfile.ZIP_DEFLATED,
            Compression.BZIP2: zipfile.ZIP_BZIP2,
            Compression.LZMA: zipfile.ZIP_LZMA,
        }[self]


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for a single download job, built once and never mutated."""

    num_connections: int = DEFAULT_NUM_CONNECTIONS
    num_threads: int = field(default_factory=_default_num_threads)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    save_as: SaveFormat = SaveFormat.RAW
    image_format: ImageFormat = ImageFormat.PNG
    compression: Compression = Compression.DEFLATED
    overwrite: bool = False
    progress: bool = True

    def __post_init__(self) -> None:
        if self.num_connections < 1:
            raise ValueError("num_connections must be at least 1")
        if self.num_threads < 1:
            raise ValueError("num_threads must be at least 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
