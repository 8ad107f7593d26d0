import asyncio

import pytest

from mangagrab.errors import FetchFailed
from mangagrab.fetcher import fetch_pages
from mangagrab.models import Episode, ImagePage, Passthrough
from mangagrab.scope import gather_unordered

from conftest import FakeSiteClient


def test_gather_unordered_returns_completion_order():
    async def delayed(value, delay):
        await asyncio.sleep(delay)
        return value

    results = asyncio.run(
        gather_unordered([delayed("slow", 0.03), delayed("fast", 0.0), delayed("mid", 0.01)])
    )
    assert results == ["fast", "mid", "slow"]


def test_gather_unordered_cancels_siblings_on_failure():
    cancelled = []

    async def sibling(name):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(name)
            raise

    async def boom():
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    async def scenario():
        with pytest.raises(RuntimeError):
            await gather_unordered([sibling("a"), boom(), sibling("b")])
        return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]

    leftover = asyncio.run(scenario())
    assert sorted(cancelled) == ["a", "b"]
    assert leftover == []


def test_gather_unordered_handles_empty_input():
    assert asyncio.run(gather_unordered([])) == []


def make_pages(count):
    return [
        ImagePage(index=index, location=f"https://cdn.example/{index}.png", params=Passthrough())
        for index in range(count)
    ]


def test_fetch_pages_respects_connection_budget():
    pages = make_pages(25)
    payloads = {page.location: f"page-{page.index}".encode() for page in pages}
    client = FakeSiteClient(Episode("1", None, tuple(pages)), payloads, max_delay=0.01)

    fetched = asyncio.run(fetch_pages(client, pages, num_connections=4))

    assert client.max_in_flight == 4
    assert sorted(page.index for page in fetched) == list(range(25))
    assert all(page.data == payloads[page.page.location] for page in fetched)


def test_fetch_pages_wraps_transport_errors():
    pages = make_pages(6)
    payloads = {page.location: b"x" for page in pages}
    client = FakeSiteClient(
        Episode("1", None, tuple(pages)), payloads, failing=[pages[2].location]
    )
    with pytest.raises(FetchFailed) as excinfo:
        asyncio.run(fetch_pages(client, pages, num_connections=2))
    assert excinfo.value.index == 2
    assert isinstance(excinfo.value.cause, ConnectionError)


class BrokenClient(FakeSiteClient):
    async def get(self, url: str) -> bytes:
        raise RuntimeError(f"unexpected response for {url}")


def test_fetch_pages_wraps_any_client_error():
    pages = make_pages(3)
    client = BrokenClient(Episode("1", None, tuple(pages)), {})
    with pytest.raises(FetchFailed) as excinfo:
        asyncio.run(fetch_pages(client, pages, num_connections=1))
    assert excinfo.value.index == 0
    assert isinstance(excinfo.value.cause, RuntimeError)


def test_fetch_pages_hands_each_page_to_follow_up():
    pages = make_pages(8)
    payloads = {page.location: f"page-{page.index}".encode() for page in pages}
    client = FakeSiteClient(Episode("1", None, tuple(pages)), payloads, max_delay=0.01)

    async def upper(fetched):
        await asyncio.sleep(0)
        return fetched.index, fetched.data.upper()

    results = asyncio.run(fetch_pages(client, pages, num_connections=3, then=upper))

    assert sorted(results) == [(index, f"PAGE-{index}".encode()) for index in range(8)]
    assert client.max_in_flight == 3
