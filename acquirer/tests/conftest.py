"""Shared fixtures for acquirer tests."""

import asyncio

import pytest

from acquirer.src.browser import BrowserPool
from acquirer.src.cache import ContentCache


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeBrowser:
    """Stands in for FetchBrowser; records calls and concurrency."""

    def __init__(self, factory: "FakeBrowserFactory"):
        self.factory = factory
        self.connected = False

    async def connect(self):
        self.connected = True
        self.factory.live += 1

    async def disconnect(self):
        if self.connected:
            self.connected = False
            self.factory.live -= 1

    async def fetch_text(self, url: str, timeout_seconds: float = 15) -> str:
        factory = self.factory
        factory.fetch_calls.append(url)
        factory.in_flight += 1
        factory.max_in_flight = max(factory.max_in_flight, factory.in_flight)
        try:
            delay = factory.delays.get(url, 0)
            if delay:
                await asyncio.sleep(delay)
            if not self.connected:
                raise RuntimeError("Target page, context or browser has been closed")
            if url in factory.failures:
                raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
            return factory.pages.get(url, f"Content of {url}")
        finally:
            factory.in_flight -= 1

    async def search_links(self, query: str, timeout_seconds: float = 20) -> list[str]:
        self.factory.queries.append(query)
        return list(self.factory.search_results)


class FakeBrowserFactory:
    """Builds FakeBrowsers and tracks how many are alive."""

    def __init__(self):
        self.created: list[FakeBrowser] = []
        self.live = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.fetch_calls: list[str] = []
        self.queries: list[str] = []
        self.pages: dict[str, str] = {}
        self.delays: dict[str, float] = {}
        self.failures: set[str] = set()
        self.search_results: list[str] = []

    def __call__(self) -> FakeBrowser:
        browser = FakeBrowser(self)
        self.created.append(browser)
        return browser


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cache(fake_clock):
    """A 60 minute cache driven by the fake clock."""
    return ContentCache(ttl_minutes=60, clock=fake_clock)


@pytest.fixture
def browser_factory():
    return FakeBrowserFactory()


@pytest.fixture
def pool(browser_factory):
    """A five-browser pool of fake browsers."""
    return BrowserPool(size=5, browser_factory=browser_factory, acquire_timeout=5)


@pytest.fixture
def transcript_api():
    """A transcript API double returning two timed segments per video."""

    class _TranscriptApi:
        def __init__(self):
            self.calls = []
            self.failures = {}

        def fetch(self, video_id, languages=("en",)):
            self.calls.append(video_id)
            if video_id in self.failures:
                raise self.failures[video_id]
            return [
                {"text": f"Hello from {video_id}", "start": 0.0, "duration": 1.5},
                {"text": "second\nsegment", "start": 1.5, "duration": 2.0},
            ]

    return _TranscriptApi()
