import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Dict

from config import Settings
from errors import InvalidUpstreamResponse
from services.cache import TTLCache
from services.youtube import YouTubeClient

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "youtube_live_data_"


def validate_payload(payload: Any) -> None:
    """Raise InvalidUpstreamResponse unless the payload carries an items list."""
    if not isinstance(payload, Mapping) or payload.get("items") is None:
        raise InvalidUpstreamResponse("YouTube response has no 'items' field")


class LiveService:
    """
    Serves live search results for the configured channel from the cache,
    fetching from YouTube on a miss.

    Overlapping misses for the same key share one in-flight fetch, so a burst
    of polling clients after expiry costs a single upstream call.
    """

    def __init__(self, settings: Settings, client: YouTubeClient, cache: TTLCache):
        self._settings = settings
        self._client = client
        self._cache = cache
        self._inflight: Dict[str, asyncio.Task] = {}
        self.upstream_calls = 0

    @property
    def cache_key(self) -> str:
        return CACHE_KEY_PREFIX + self._settings.channel_id

    async def get_live(self) -> dict:
        """Return the cached payload, or fetch, validate and cache a fresh one."""
        key = self.cache_key

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key))
            task.add_done_callback(self._log_fetch_failure)
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight fetch for %s", key)

        # Shielded so a disconnecting client doesn't cancel the fetch others await
        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: str) -> dict:
        self.upstream_calls += 1
        try:
            payload = await self._client.fetch()
            validate_payload(payload)
            self._cache.set(key, payload, self._settings.cache_ttl)
            logger.info("Cached fresh live data for %s (ttl=%ss)", key, self._settings.cache_ttl)
            return payload
        finally:
            self._inflight.pop(key, None)

    @staticmethod
    def _log_fetch_failure(task: asyncio.Task) -> None:
        # Retrieves the exception even when every waiter was cancelled, so asyncio
        # never prints its traceback (the chained httpx error carries the keyed URL)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Live data fetch failed (%s): %s", type(exc).__name__, exc)
