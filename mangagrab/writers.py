"""Output containers for a finished episode.

Writers receive pages already in reading order and never see page indices.
Every container is built under a temporary sibling name and moved into place
only once complete, so a failed job leaves no partial artifact behind.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import List, Sequence

from .config import Compression, ImageFormat, PipelineConfig, SaveFormat
from .errors import WriteFailed
from .images import SolvedImage, to_format, to_rgb_image
from .models import EncodedImage
from .progress import ProgressConfig
from .utils import index_width

logger = logging.getLogger("mangagrab")


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists() or path.is_symlink():
        path.unlink()


class EpisodeWriter:
    """Base class: encodes single pages and atomically persists the episode."""

    save_format = SaveFormat.RAW

    def __init__(
        self,
        image_format: ImageFormat = ImageFormat.PNG,
        overwrite: bool = False,
        progress: ProgressConfig = ProgressConfig(enabled=False),
    ) -> None:
        self.image_format = image_format
        self.overwrite = overwrite
        self.progress = progress

    def destination_for(self, directory: Path, name: str) -> Path:
        return directory / f"{name}{self.save_format.extension}"

    def ensure_writable(self, destination: Path) -> None:
        """Refuse to clobber an existing artifact unless overwriting is allowed."""
        if destination.exists() and not self.overwrite:
            raise WriteFailed(f"Destination already exists: {destination}")

    def encode_page(self, solved: SolvedImage) -> EncodedImage:
        """Prepare one solved page for this container. CPU bound, thread safe."""
        data, extension = to_format(solved, self.image_format)
        return EncodedImage(payload=data, extension=extension)

    def entry_names(self, images: Sequence[EncodedImage]) -> List[str]:
        width = index_width(len(images))
        return [
            f"{position:0{width}d}.{image.extension}"
            for position, image in enumerate(images)
        ]

    def write(self, images: Sequence[EncodedImage], destination: Path) -> Path:
        """Persist ``images`` in the given order at ``destination``."""
        destination = Path(destination)
        self.ensure_writable(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            self._write_atomic(images, destination)
        except WriteFailed:
            raise
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            raise WriteFailed(f"Failed to write {destination}: {exc}") from exc
        logger.debug("Wrote %d pages to %s", len(images), destination)
        return destination

    def _write_atomic(self, images: Sequence[EncodedImage], destination: Path) -> None:
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".part", dir=destination.parent
        )
        os.close(fd)
        temp_path = Path(temp_name)
        try:
            self._write_file(images, temp_path)
            os.replace(temp_path, destination)
        except BaseException:
            _remove(temp_path)
            raise

    def _write_file(self, images: Sequence[EncodedImage], path: Path) -> None:
        raise NotImplementedError


class RawWriter(EpisodeWriter):
    """One numbered image file per page inside a directory."""

    save_format = SaveFormat.RAW

    def _write_atomic(self, images: Sequence[EncodedImage], destination: Path) -> None:
        temp_dir = Path(
            tempfile.mkdtemp(
                prefix=f".{destination.name}.", suffix=".part", dir=destination.parent
            )
        )
        try:
            with self.progress.bar(len(images), "Writing") as bar:
                for name, image in zip(self.entry_names(images), images):
                    (temp_dir / name).write_bytes(image.payload)
                    bar.update(1)
            backup = None
            if destination.exists() or destination.is_symlink():
                backup = temp_dir.with_name(f"{temp_dir.name}.old")
                os.replace(destination, backup)
            try:
                os.replace(temp_dir, destination)
            except BaseException:
                if backup is not None:
                    os.replace(backup, destination)
                raise
            if backup is not None:
                _remove(backup)
        except BaseException:
            _remove(temp_dir)
            raise


class ZipWriter(EpisodeWriter):
    """Single archive with one numbered entry per page."""

    save_format = SaveFormat.ZIP

    def __init__(
        self,
        image_format: ImageFormat = ImageFormat.PNG,
        compression: Compression = Compression.DEFLATED,
        overwrite: bool = False,
        progress: ProgressConfig = ProgressConfig(enabled=False),
    ) -> None:
        super().__init__(image_format, overwrite=overwrite, progress=progress)
        self.compression = compression

    def _write_file(self, images: Sequence[EncodedImage], path: Path) -> None:
        with zipfile.ZipFile(path, "w", compression=self.compression.zip_method) as archive:
            with self.progress.bar(len(images), "Writing") as bar:
                for name, image in zip(self.entry_names(images), images):
                    archive.writestr(name, image.payload)
                    bar.update(1)


class CbzWriter(ZipWriter):
    """Comic book archive: a zip with the ``.cbz`` extension."""

    save_format = SaveFormat.CBZ


class PdfWriter(EpisodeWriter):
    """One PDF page per image, each page sized to the image's pixels."""

    save_format = SaveFormat.PDF

    def encode_page(self, solved: SolvedImage) -> EncodedImage:
        return EncodedImage(payload=to_rgb_image(solved), extension="pdf")

    def _write_file(self, images: Sequence[EncodedImage], path: Path) -> None:
        if not images:
            raise WriteFailed("Cannot write a PDF without pages")
        first, *rest = [image.payload for image in images]
        # 72 dpi makes one PDF point equal one pixel.
        first.save(
            path,
            format="PDF",
            save_all=True,
            append_images=rest,
            resolution=72.0,
        )


def create_writer(config: PipelineConfig) -> EpisodeWriter:
    """Build the writer matching ``config.save_as``."""
    progress = ProgressConfig(enabled=config.progress)
    if config.save_as is SaveFormat.ZIP:
        return ZipWriter(
            config.image_format, config.compression, overwrite=config.overwrite, progress=progress
        )
    if config.save_as is SaveFormat.CBZ:
        return CbzWriter(
            config.image_format, config.compression, overwrite=config.overwrite, progress=progress
        )
    if config.save_as is SaveFormat.PDF:
        return PdfWriter(config.image_format, overwrite=config.overwrite, progress=progress)
    return RawWriter(config.image_format, overwrite=config.overwrite, progress=progress)
