"""Shared fixtures: settings, a scripted fake YouTube API and a controllable clock."""

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

LIVE_PAYLOAD = {
    "kind": "youtube#searchListResponse",
    "etag": "abc123",
    "pageInfo": {"totalResults": 1, "resultsPerPage": 5},
    "items": [
        {
            "kind": "youtube#searchResult",
            "id": {"kind": "youtube#video", "videoId": "live-video-1"},
            "snippet": {
                "channelId": "abc",
                "title": "Live now",
                "liveBroadcastContent": "live",
            },
        }
    ],
}


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeYouTube:
    """
    Scripted upstream. Each call pops the next response from `script`;
    when the script runs out, the last entry is repeated.
    Entries are (status, body) tuples, where a str body is sent as raw text,
    or exception instances to raise from the transport.
    """

    def __init__(self, *script):
        self.script = list(script) or [(200, LIVE_PAYLOAD)]
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        status, body = step
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_settings(**overrides) -> Settings:
    values = {"channel_id": "abc", "api_key": "test-key", "cache_ttl": 5}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def youtube():
    return FakeYouTube()


@pytest.fixture
def app(settings, youtube, clock):
    return create_app(settings, transport=youtube.transport, clock=clock)


@pytest.fixture
def client(app):
    return TestClient(app)
