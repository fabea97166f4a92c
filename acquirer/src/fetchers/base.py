"""Common contract for source fetchers."""

import re
from abc import ABC, abstractmethod
from typing import Optional

from shared.logging import get_logger

from ..cache import ContentCache

log = get_logger("acquirer", "fetcher")


def clean_text(text: str) -> str:
    """Normalise whitespace in extracted text."""
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class SourceFetcher(ABC):
    """
    Fetches text for one kind of URL.

    fetch() consults the cache first and stores successful results under
    `key_prefix + url`, so each fetcher kind has its own key namespace.
    """

    kind: str = "source"
    key_prefix: str = "source:"

    def __init__(self, cache: ContentCache):
        self.cache = cache

    @abstractmethod
    def handles(self, url: str) -> bool:
        """True if this fetcher knows how to read url."""

    @abstractmethod
    async def _fetch_uncached(self, url: str) -> tuple[str, bool]:
        """
        Do the actual work for url.

        Returns:
            (text, cacheable) - failures return cacheable=False
        """

    def cache_key(self, url: str) -> str:
        return f"{self.key_prefix}{url}"

    def cached(self, url: str) -> Optional[str]:
        """Cached text for url, or None."""
        return self.cache.get(self.cache_key(url))

    async def fetch(self, url: str, check_cache: bool = True) -> str:
        """
        Fetch text for url, using the cache when possible.

        Never raises for network or parsing failures.

        Args:
            url: URL to read
            check_cache: Look the URL up first; callers that already saw
                a miss pass False so the miss is counted once
        """
        cached = self.cached(url) if check_cache else None
        if cached is not None:
            log.debug("fetcher.cache_hit", kind=self.kind, url=url[:50])
            return cached

        text, cacheable = await self._fetch_uncached(url)
        if cacheable:
            self.cache.set(self.cache_key(url), text)
        return text
