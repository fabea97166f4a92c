"""
Generic web page fetcher.

Reads the visible text of a page through a leased pool browser.
"""

import asyncio

from shared.logging import get_logger

from ..browser import BrowserPool
from ..cache import ContentCache
from .base import SourceFetcher, clean_text

log = get_logger("acquirer", "page_fetcher")

DEFAULT_CHAR_BUDGET = 1500
DEFAULT_TIMEOUT_SECONDS = 15


class PageFetcher(SourceFetcher):
    """
    Fetches page text using Playwright browser automation.

    Features:
    - Images, fonts and stylesheets are never downloaded
    - Article/main content preferred over the whole body
    - Text truncated to a fixed character budget
    - Timeouts and navigation errors yield "" instead of raising
    """

    kind = "page"
    key_prefix = "page:"

    def __init__(
        self,
        cache: ContentCache,
        pool: BrowserPool,
        char_budget: int = DEFAULT_CHAR_BUDGET,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize fetcher.

        Args:
            cache: Shared content cache
            pool: Browser pool to lease browsers from
            char_budget: Maximum characters kept per page
            timeout_seconds: Per-URL timeout
        """
        super().__init__(cache)
        self.pool = pool
        self.char_budget = char_budget
        self.timeout_seconds = timeout_seconds

    def handles(self, url: str) -> bool:
        return url.startswith(("http://", "https://"))

    async def _fetch_uncached(self, url: str) -> tuple[str, bool]:
        try:
            async with self.pool.lease() as browser:
                raw = await asyncio.wait_for(
                    browser.fetch_text(url, timeout_seconds=self.timeout_seconds),
                    timeout=self.timeout_seconds,
                )
        except asyncio.TimeoutError:
            log.warning("page_fetcher.timeout", url=url[:60], timeout=self.timeout_seconds)
            return "", False
        except Exception as e:
            log.warning("page_fetcher.fetch_error", url=url[:60], error=str(e))
            return "", False

        text = clean_text(raw or "")[: self.char_budget]
        if not text:
            log.info("page_fetcher.empty", url=url[:60])
            return "", False

        log.info("page_fetcher.fetch.success", url=url[:60], chars=len(text))
        return text, True
