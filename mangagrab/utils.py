"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import re

UNSAFE_FILENAME_PATTERN = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


def sanitize_filename(value: str, fallback: str = "episode") -> str:
    """Make an episode title safe to use as a file or directory name.

    Unicode is kept; path separators, reserved characters and dots are replaced.
    """
    normalized = UNSAFE_FILENAME_PATTERN.sub("_", value).replace(".", "_")
    normalized = normalized.strip(" _")
    return normalized[:120] or fallback


def index_width(count: int) -> int:
    """Digits needed to zero-pad page indices of an episode with ``count`` pages."""
    return max(3, len(str(max(count - 1, 0))))


def normalize_host(host: str) -> str:
    host = host.lower()
    if ":" in host:
        host = host.split(":", 1)[0]
    if host.startswith("www."):
        host = host[4:]
    return host
