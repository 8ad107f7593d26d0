"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

import asyncio
import io
import random
import time
from typing import Dict, Iterable, List, Optional

import numpy as np
import pytest
from PIL import Image

from mangagrab.models import EncodedImage, Episode


def random_pixels(height: int, width: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def png_bytes(pixels: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def jpeg_bytes(pixels: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="JPEG")
    return buffer.getvalue()


class FakeSiteClient:
    """In-process stand-in for a site client with jittered responses."""

    def __init__(
        self,
        episode: Episode,
        payloads: Dict[str, bytes],
        failing: Iterable[str] = (),
        seed: int = 0,
        max_delay: float = 0.005,
    ) -> None:
        self.episode = episode
        self.payloads = payloads
        self.failing = set(failing)
        self.rng = random.Random(seed)
        self.max_delay = max_delay
        self.completed: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_episode(self, episode_id: str) -> Episode:
        return self.episode

    def image_location(self, page) -> str:
        return page.location

    async def get(self, url: str) -> bytes:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.rng.random() * self.max_delay)
            if url in self.failing:
                raise ConnectionError(f"refused: {url}")
            self.completed.append(url)
            return self.payloads[url]
        finally:
            self.in_flight -= 1


class RecordingWriter:
    """Writer double that keeps the ordered payloads in memory."""

    def __init__(self, jitter_seed: Optional[int] = None) -> None:
        self.written: Optional[List[EncodedImage]] = None
        self._rng = random.Random(jitter_seed) if jitter_seed is not None else None

    def destination_for(self, directory, name):
        return directory / name

    def ensure_writable(self, destination) -> None:
        pass

    def encode_page(self, solved) -> EncodedImage:
        if self._rng is not None:
            time.sleep(self._rng.random() * 0.002)
        return EncodedImage(payload=solved, extension="bin")

    def write(self, images, destination):
        self.written = list(images)
        return destination


@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter(jitter_seed=1)
