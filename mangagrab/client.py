"""Shared HTTP plumbing for site clients."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

import aiohttp

logger = logging.getLogger("mangagrab")


class HttpClient:
    """Thin wrapper around one ``aiohttp.ClientSession`` per download job.

    Site headers are applied to every request and each request is bounded by
    ``timeout`` seconds. Use as an async context manager so the session is
    created inside the running event loop and always closed.
    """

    def __init__(self, headers: Mapping[str, str], timeout: float) -> None:
        self.headers: Dict[str, str] = dict(headers)
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpClient":
        self._session = aiohttp.ClientSession(
            headers=self.headers, timeout=self.timeout
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HttpClient used outside of 'async with'")
        return self._session

    async def get(self, url: str) -> bytes:
        """GET ``url`` and return the response body."""
        async with self.session.get(url) as resp:
            resp.raise_for_status()
            data = await resp.read()
        logger.debug("GET %s -> %d bytes", url, len(data))
        return data

    async def post(
        self,
        url: str,
        data: bytes,
        headers: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        """POST a raw body and return the response body."""
        async with self.session.post(url, data=data, headers=headers) as resp:
            resp.raise_for_status()
            body = await resp.read()
        logger.debug("POST %s -> %d bytes", url, len(body))
        return body
