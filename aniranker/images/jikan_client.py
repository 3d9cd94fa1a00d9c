"""Cover image lookup through the public Jikan API.

Jikan allows only a few requests per second, so lookups go through a
single queue drained sequentially with a fixed pause between requests.
Priority requests (the pair on screen, the next few candidates) jump the
queue. Failures are logged and reported as a missing image; they never
reach the ranking engine.

Dependencies:
    - httpx: async HTTP client
    - aniranker.common.retry: backoff for rate limiting and server errors
"""

import asyncio
from collections import deque
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import httpx

from aniranker.common.config import JikanConfig
from aniranker.common.logging import get_logger
from aniranker.common.models import Item, MediaType
from aniranker.common.retry import MaxRetriesError, SleepFunc, call_with_retry

if TYPE_CHECKING:
    from aniranker.engine.engine import RankingEngine

logger = get_logger("images.jikan_client")


class JikanError(Exception):
    """Base exception for Jikan API errors."""

    pass


class RateLimitError(JikanError):
    """Raised on HTTP 429."""

    pass


class JikanServerError(JikanError):
    """Raised on HTTP 5xx."""

    pass


class JikanNotFoundError(JikanError):
    """Raised on HTTP 404; not retried."""

    pass


_RETRYABLE: tuple[type[Exception], ...] = (RateLimitError, JikanServerError, httpx.TransportError)


class JikanImageClient:
    """Rate-limited, cached image URL fetcher.

    Example:
        >>> async with JikanImageClient() as images:
        ...     url = await images.fetch_image(1, "anime", priority=True)
    """

    def __init__(
        self,
        config: JikanConfig | None = None,
        client: httpx.AsyncClient | None = None,
        sleep_func: SleepFunc | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: API location, pacing and retry settings (defaults when None)
            client: Optional preconfigured httpx.AsyncClient (created if None)
            sleep_func: Optional sleep used for pacing and backoff (for tests)
        """
        self._config = config or JikanConfig()
        self._client = client or httpx.AsyncClient(timeout=self._config.timeout_seconds)
        self._owns_client = client is None
        self._sleep_func = sleep_func
        self._cache: dict[int, str] = {}
        self._queue: deque[tuple[int, MediaType]] = deque()
        self._lock = asyncio.Lock()
        self.loading_progress = 0

    async def __aenter__(self) -> "JikanImageClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_image_url(self, item_id: int) -> str | None:
        return self._cache.get(item_id)

    def clear_cache(self) -> None:
        self._cache.clear()
        self._queue.clear()
        self.loading_progress = 0

    async def fetch_image(
        self, item_id: int, media_type: MediaType = "anime", priority: bool = False
    ) -> str | None:
        """Return the cover URL for one entry, fetching it if needed.

        Args:
            item_id: MAL id of the entry
            media_type: "anime" or "manga"
            priority: Put the request at the front of the queue

        Returns:
            The large JPEG URL, or None if it could not be fetched
        """
        if item_id in self._cache:
            return self._cache[item_id]

        if priority:
            self._queue.appendleft((item_id, media_type))
        else:
            self._queue.append((item_id, media_type))

        await self._process_queue()
        return self._cache.get(item_id)

    async def load_images(
        self,
        items: Iterable[Item],
        media_type: MediaType = "anime",
        priority_ids: Iterable[int] = (),
    ) -> None:
        """Queue every uncached item (priority ids first) and drain the queue."""
        priority = set(priority_ids)
        pending = [item.id for item in items if item.id not in self._cache]
        pending.sort(key=lambda item_id: item_id not in priority)
        self._queue.extend((item_id, media_type) for item_id in pending)
        await self._process_queue()

    async def _process_queue(self) -> None:
        async with self._lock:
            total = len(self._queue)
            if total == 0:
                return

            completed = 0
            while self._queue:
                item_id, media_type = self._queue.popleft()
                completed += 1
                if item_id in self._cache:
                    continue

                url = await self._fetch_from_api(item_id, media_type)
                if url:
                    self._cache[item_id] = url

                self.loading_progress = round(completed / max(total, completed) * 100)
                await self._pause(self._config.rate_limit_delay_seconds)

            self.loading_progress = 100

    async def _pause(self, delay: float) -> None:
        if self._sleep_func is None:
            await asyncio.sleep(delay)
            return
        result = self._sleep_func(delay)
        if asyncio.iscoroutine(result):
            await result

    async def _fetch_from_api(self, item_id: int, media_type: MediaType) -> str | None:
        url = f"{self._config.base_url}/{media_type}/{item_id}"
        try:
            payload = await call_with_retry(
                self._request,
                url,
                max_retries=self._config.max_retries,
                base_delay_seconds=max(self._config.rate_limit_delay_seconds, 0.1),
                retryable_exceptions=_RETRYABLE,
                sleep_func=self._sleep_func,
            )
        except MaxRetriesError as e:
            logger.warning(
                f"Giving up on image for {media_type} {item_id}",
                metadata={"item_id": item_id, "error": str(e.last_exception)},
            )
            return None
        except (JikanError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                f"Failed to fetch image for {media_type} {item_id}",
                metadata={"item_id": item_id, "error_type": type(e).__name__, "error": str(e)},
            )
            return None

        return _extract_image_url(payload)

    async def _request(self, url: str) -> Any:
        response = await self._client.get(url)
        if response.status_code == 429:
            raise RateLimitError(f"Rate limited by Jikan: {url}")
        if response.status_code == 404:
            raise JikanNotFoundError(f"Not found: {url}")
        if response.status_code >= 500:
            raise JikanServerError(f"Jikan returned {response.status_code}: {url}")
        response.raise_for_status()
        return response.json()


def _extract_image_url(payload: Any) -> str | None:
    try:
        url = payload["data"]["images"]["jpg"]["large_image_url"]
    except (KeyError, TypeError):
        return None
    return url if isinstance(url, str) and url else None


async def prefetch_upcoming(
    images: JikanImageClient,
    engine: "RankingEngine",
    count: int = 6,
    media_type: MediaType = "anime",
) -> dict[int, str]:
    """Warm the cache for the items the engine expects to show next.

    Returns:
        Mapping of item id to image URL for the candidates that resolved
    """
    candidates = engine.get_upcoming_candidates(count)
    await images.load_images(
        candidates, media_type, priority_ids=[item.id for item in candidates]
    )
    return {
        item.id: url
        for item in candidates
        if (url := images.get_image_url(item.id)) is not None
    }
