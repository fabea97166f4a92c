"""
Search resolution.

Decides when a message needs live web data and turns a query into a short
list of candidate URLs, either through SerpAPI or a live Google scrape.
"""

import re
from abc import ABC, abstractmethod
from typing import Callable, Optional
from urllib.parse import urlparse

import aiohttp

from shared.config import env_or
from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.retry import RetryPolicy

from .browser import FetchBrowser, USER_AGENT

log = get_logger("acquirer", "searcher")

MAX_RESULTS = 3
DEFAULT_TIMEOUT_SECONDS = 20
SERPAPI_ENDPOINT = "https://serpapi.com/search.json"

# Words that suggest the answer depends on live data
SEARCH_TRIGGERS = (
    "what", "when", "where", "how", "why",
    "latest", "current", "upcoming", "news", "events", "schedule",
    "today", "tomorrow", "weather", "price", "cost",
)

TRIGGER_PATTERN = re.compile(r"\b(?:" + "|".join(SEARCH_TRIGGERS) + r")\b", re.IGNORECASE)
URL_PATTERN = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)

REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def extract_urls(message: str) -> list[str]:
    """Explicit URLs in a message, in order, without duplicates."""
    urls = []
    for match in URL_PATTERN.findall(message or ""):
        url = match.rstrip(".,;:!?)]}'\"")
        if url not in urls:
            urls.append(url)
    return urls


def needs_search(message: str) -> bool:
    """
    Decide whether a message should trigger a web search.

    True when the message contains a trigger word and no explicit URL.
    """
    if not message:
        return False
    return bool(TRIGGER_PATTERN.search(message)) and not URL_PATTERN.search(message)


def _is_search_engine_url(url: str, engine_domain: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host == engine_domain or host.endswith("." + engine_domain) or ".google." in f".{host}"


class SearchResolver(ABC):
    """Turns a query into at most MAX_RESULTS URLs. Never raises."""

    def __init__(self, max_results: int = MAX_RESULTS):
        self.max_results = max_results

    @abstractmethod
    async def _search(self, query: str) -> list[str]:
        """Raw candidate URLs for query."""

    async def resolve(self, query: str) -> list[str]:
        """
        Resolve a query into candidate URLs.

        Args:
            query: Natural-language query

        Returns:
            Up to max_results URLs, possibly empty
        """
        try:
            urls = await self._search(query)
        except Exception as e:
            log.warning("searcher.resolve_failed", strategy=type(self).__name__, query=query[:50], error=str(e))
            return []

        results = []
        for url in urls:
            if isinstance(url, str) and url.startswith(("http://", "https://")) and url not in results:
                results.append(url)
            if len(results) >= self.max_results:
                break

        log.info("searcher.resolve.complete", strategy=type(self).__name__, query=query[:50], result_count=len(results))
        return results

    async def close(self):
        """Release any held resources."""
        pass


class SerpApiResolver(SearchResolver):
    """
    Structured search through SerpAPI.

    Takes the links of the top organic results. A response without a usable
    organic_results list resolves to no URLs.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_results: int = MAX_RESULTS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        endpoint: str = SERPAPI_ENDPOINT,
        retry: Optional[RetryPolicy] = None,
    ):
        super().__init__(max_results)
        self.api_key = env_or(api_key, "SERPAPI_API_KEY")
        if not self.api_key:
            raise ConfigurationError(
                "SerpAPI key not provided. Set SERPAPI_API_KEY or search.serpapi_api_key in config.yaml."
            )
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self.retry = retry or RetryPolicy.no_retry()
        self._http_session: Optional[aiohttp.ClientSession] = None

    async def _get_http_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(headers=REQUEST_HEADERS)
        return self._http_session

    async def close(self):
        """Close HTTP session."""
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()
            self._http_session = None

    async def _request(self, query: str) -> dict:
        session = await self._get_http_session()
        params = {
            "engine": "google",
            "q": query,
            "num": str(self.max_results * 2),
            "api_key": self.api_key,
        }
        async with session.get(
            self.endpoint,
            params=params,
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
        ) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    @staticmethod
    def parse_organic_links(data) -> list[str]:
        """Links of organic results, tolerating malformed payloads."""
        if not isinstance(data, dict):
            return []
        organic = data.get("organic_results")
        if not isinstance(organic, list):
            return []
        links = []
        for item in organic:
            if isinstance(item, dict) and isinstance(item.get("link"), str):
                links.append(item["link"])
        return links

    async def _search(self, query: str) -> list[str]:
        data = await self.retry.call(self._request, query, operation="serpapi.search")
        return self.parse_organic_links(data)


class BrowserSearchResolver(SearchResolver):
    """
    Live Google search in a headless browser.

    A browser is launched per query and always closed afterwards.
    """

    ENGINE_DOMAIN = "google.com"

    def __init__(
        self,
        max_results: int = MAX_RESULTS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        browser_factory: Optional[Callable[[], FetchBrowser]] = None,
        headless: bool = True,
    ):
        super().__init__(max_results)
        self.timeout_seconds = timeout_seconds
        self._factory = browser_factory or (lambda: FetchBrowser(headless=headless))

    async def _search(self, query: str) -> list[str]:
        browser = self._factory()
        try:
            await browser.connect()
            hrefs = await browser.search_links(query, timeout_seconds=self.timeout_seconds)
        finally:
            await browser.disconnect()

        return [
            href for href in hrefs
            if isinstance(href, str) and not _is_search_engine_url(href, self.ENGINE_DOMAIN)
        ]


def build_resolver(config: Optional[dict]) -> SearchResolver:
    """
    Build the resolver selected by the `search` config section.

    Raises:
        ConfigurationError: unknown strategy or missing credentials
    """
    config = config or {}
    strategy = config.get("strategy", "browser")
    max_results = config.get("max_results", MAX_RESULTS)
    timeout = config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)

    if strategy == "serpapi":
        return SerpApiResolver(
            api_key=config.get("serpapi_api_key"),
            max_results=max_results,
            timeout_seconds=timeout,
        )
    if strategy == "browser":
        return BrowserSearchResolver(
            max_results=max_results,
            timeout_seconds=timeout,
            headless=config.get("headless", True),
        )
    raise ConfigurationError(f"Unknown search strategy: {strategy!r}")
