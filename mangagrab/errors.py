"""Exception hierarchy raised by the download pipeline."""

from __future__ import annotations

from typing import Optional


class MangaGrabError(Exception):
    """Base class for every failure surfaced by a download job.

    ``stage`` and ``index`` are filled in by the pipeline when the error
    crosses it, so callers can tell which page and which step failed.
    """

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.index = index
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.index is not None:
            context.append(f"page={self.index}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class UnsupportedSite(MangaGrabError):
    """The URL's host is not in the site registry."""

    def __init__(self, host: str) -> None:
        super().__init__(f"Unsupported site: {host or '<no host>'}")
        self.host = host


class EpisodeIdNotFound(MangaGrabError):
    """The host is known but the path carries no episode id."""

    def __init__(self, url: str) -> None:
        super().__init__(f"No episode id found in {url}")
        self.url = url


class EpisodeFetchFailed(MangaGrabError):
    """The site client could not return episode metadata."""


class FetchFailed(MangaGrabError):
    """Downloading the bytes of a single page failed."""

    def __init__(self, index: int, cause: BaseException) -> None:
        super().__init__(f"Failed to fetch page: {cause!r}", index=index)
        self.cause = cause


class InvalidObfuscationParameters(MangaGrabError):
    """Key or iv is malformed or has the wrong length."""


class MalformedCipherInput(MangaGrabError):
    """Ciphertext length is not a multiple of the cipher block size."""


class DecodeFailed(MangaGrabError):
    """Bytes could not be decoded as an image."""


class WriteFailed(MangaGrabError):
    """The output container could not be written."""
