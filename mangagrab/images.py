"""Image decoding, encoding, and format detection utilities."""

from __future__ import annotations

import io
import logging
from typing import Optional, Tuple, Union

import numpy as np
from filetype import guess
from PIL import Image, UnidentifiedImageError

from .config import ImageFormat
from .errors import DecodeFailed

logger = logging.getLogger("mangagrab")

SolvedImage = Union[bytes, Image.Image]


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def decode_image(data: bytes) -> Image.Image:
    """Decode an encoded image container into a fully loaded Pillow image."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeFailed(f"Cannot decode image: {exc}") from exc
    return image


def decode_pixels(data: bytes) -> np.ndarray:
    """Decode bytes into an exact ``height x width x 3`` uint8 pixel array."""
    image = decode_image(data)
    if image.mode != "RGB":
        image = image.convert("RGB")
    return np.array(image, dtype=np.uint8)


def pixels_to_image(pixels: np.ndarray) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(pixels))


def encode_image(image: Image.Image, image_format: ImageFormat) -> bytes:
    """Encode a Pillow image; PNG and WebP are written losslessly."""
    if image_format is ImageFormat.JPEG and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    options = {}
    if image_format is ImageFormat.WEBP:
        options["lossless"] = True
    elif image_format is ImageFormat.JPEG:
        options["quality"] = 95
    image.save(buffer, format=image_format.pil_format, **options)
    return buffer.getvalue()


def to_format(solved: SolvedImage, image_format: ImageFormat) -> Tuple[bytes, str]:
    """Return encoded bytes in ``image_format`` and their file extension.

    Bytes that are already in the requested format pass through untouched.
    """
    if isinstance(solved, bytes):
        detected = detect_image_format(solved)
        if detected == image_format.extension:
            return solved, detected
        if detected is None:
            raise DecodeFailed("Solved bytes are not a recognizable image")
        logger.debug("Re-encoding %s page as %s", detected, image_format.value)
        solved = decode_image(solved)
    return encode_image(solved, image_format), image_format.extension


def to_rgb_image(solved: SolvedImage) -> Image.Image:
    """Return an RGB Pillow image suitable for embedding in a PDF page."""
    image = decode_image(solved) if isinstance(solved, bytes) else solved
    if image.mode != "RGB":
        image = image.convert("RGB")
    return image
