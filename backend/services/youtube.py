import asyncio
import logging

import httpx

from config import Settings
from errors import UpstreamError

logger = logging.getLogger(__name__)


class YouTubeClient:
    """Client for the YouTube Data API search endpoint, scoped to one channel."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._client = httpx.AsyncClient(
            timeout=settings.upstream_timeout_seconds,
            transport=transport,
        )

    @property
    def params(self) -> dict:
        return {
            "part": "snippet",
            "channelId": self._settings.channel_id,
            "eventType": "live",
            "type": "video",
            "key": self._settings.api_key,
        }

    async def fetch(self) -> dict:
        """
        Search the channel for live broadcasts.

        Failed attempts are retried up to `max_retries` more times. Once
        retries are exhausted, the last UpstreamError propagates unchanged.
        """
        max_retries = self._settings.max_retries
        attempt = 0

        while True:
            try:
                return await self._request()
            except UpstreamError as e:
                if attempt >= max_retries:
                    raise
                attempt += 1
                logger.warning("YouTube fetch failed, retry %d/%d: %s", attempt, max_retries, e)

                delay = self._backoff_delay(attempt)
                if delay > 0:
                    await asyncio.sleep(delay)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self) -> dict:
        # Error messages avoid str(httpx error) since the request URL carries the API key
        try:
            resp = await self._client.get(self._settings.youtube_search_url, params=self.params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"YouTube API returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"YouTube request failed: {type(e).__name__}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("YouTube API returned a non-JSON body") from e

    def _backoff_delay(self, attempt: int) -> float:
        return self._settings.retry_backoff_seconds * 2 ** (attempt - 1)
