"""Tests for the Jikan cover image client."""

import random

import httpx
import pytest

from aniranker.common.config import JikanConfig
from aniranker.common.models import Item, ItemSeed
from aniranker.engine.engine import RankingEngine
from aniranker.images.jikan_client import JikanImageClient, prefetch_upcoming


def _payload(item_id: int) -> dict:
    return {"data": {"images": {"jpg": {"large_image_url": f"https://cdn.test/{item_id}.jpg"}}}}


class _Recorder:
    """Mock transport handler that replays scripted status codes."""

    def __init__(self, statuses: dict[int, list[int]] | None = None) -> None:
        self.statuses = statuses or {}
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        item_id = int(request.url.path.rsplit("/", 1)[-1])
        scripted = self.statuses.get(item_id)
        status = scripted.pop(0) if scripted else 200
        if status != 200:
            return httpx.Response(status, json={"error": "nope"})
        return httpx.Response(200, json=_payload(item_id))


def _client(handler, sleeps: list[float] | None = None) -> JikanImageClient:
    sleeps = sleeps if sleeps is not None else []
    return JikanImageClient(
        JikanConfig(base_url="https://jikan.test/v4", rate_limit_delay_seconds=0.0),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep_func=sleeps.append,
    )


class TestFetchImage:
    """Tests for JikanImageClient.fetch_image."""

    @pytest.mark.asyncio
    async def test_returns_large_jpeg_url(self) -> None:
        recorder = _Recorder()
        async with _client(recorder) as images:
            url = await images.fetch_image(21, "anime")

        assert url == "https://cdn.test/21.jpg"
        assert recorder.paths == ["/v4/anime/21"]

    @pytest.mark.asyncio
    async def test_manga_endpoint(self) -> None:
        recorder = _Recorder()
        async with _client(recorder) as images:
            await images.fetch_image(2, "manga")

        assert recorder.paths == ["/v4/manga/2"]

    @pytest.mark.asyncio
    async def test_cached_after_first_fetch(self) -> None:
        recorder = _Recorder()
        async with _client(recorder) as images:
            await images.fetch_image(1)
            await images.fetch_image(1)

            assert images.get_image_url(1) == "https://cdn.test/1.jpg"

        assert len(recorder.paths) == 1

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self) -> None:
        recorder = _Recorder({7: [404]})
        async with _client(recorder) as images:
            url = await images.fetch_image(7)

        assert url is None
        assert len(recorder.paths) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self) -> None:
        recorder = _Recorder({3: [429, 429]})
        sleeps: list[float] = []
        async with _client(recorder, sleeps) as images:
            url = await images.fetch_image(3)

        assert url == "https://cdn.test/3.jpg"
        assert len(recorder.paths) == 3
        assert sleeps[:2] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_gives_up_on_persistent_server_error(self) -> None:
        recorder = _Recorder({4: [500, 502, 503]})
        async with _client(recorder) as images:
            url = await images.fetch_image(4)

        assert url is None
        assert len(recorder.paths) == 3

    @pytest.mark.asyncio
    async def test_transport_error_reports_missing_image(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        async with _client(handler) as images:
            assert await images.fetch_image(9) is None

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"images": {}}})

        async with _client(handler) as images:
            assert await images.fetch_image(10) is None

    @pytest.mark.asyncio
    async def test_clear_cache(self) -> None:
        async with _client(_Recorder()) as images:
            await images.fetch_image(1)
            images.clear_cache()

            assert images.get_image_url(1) is None
            assert images.loading_progress == 0


class TestLoadImages:
    """Tests for bulk loading."""

    @pytest.mark.asyncio
    async def test_priority_ids_are_fetched_first(self) -> None:
        recorder = _Recorder()
        items = [Item(id=i, title=f"Item {i}") for i in (1, 2, 3, 4)]
        async with _client(recorder) as images:
            await images.load_images(items, "anime", priority_ids=[3, 4])

            assert images.loading_progress == 100

        assert recorder.paths == ["/v4/anime/3", "/v4/anime/4", "/v4/anime/1", "/v4/anime/2"]

    @pytest.mark.asyncio
    async def test_skips_cached_items(self) -> None:
        recorder = _Recorder()
        items = [Item(id=i, title=f"Item {i}") for i in (1, 2)]
        async with _client(recorder) as images:
            await images.fetch_image(1)
            await images.load_images(items)

        assert recorder.paths == ["/v4/anime/1", "/v4/anime/2"]


class TestPrefetchUpcoming:
    @pytest.mark.asyncio
    async def test_warms_cache_for_candidates(self) -> None:
        engine = RankingEngine(rng=random.Random(1))
        engine.initialize([ItemSeed(id=i, title=f"Item {i}") for i in range(1, 9)])
        pair = engine.get_current_pair()

        async with _client(_Recorder()) as images:
            urls = await prefetch_upcoming(images, engine, count=4)

        assert len(urls) == 4
        assert pair[0].id in urls
        assert pair[1].id in urls
