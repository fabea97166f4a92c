"""
Acquisition orchestrator.

Turns an ordered list of URLs into an ordered list of context strings,
running fetches concurrently with bounded parallelism.
"""

import asyncio
from typing import Optional, Sequence

from shared.logging import get_logger

from .browser import BrowserPool
from .cache import ContentCache
from .fetchers import PageFetcher, SourceFetcher, TranscriptFetcher

log = get_logger("acquirer", "orchestrator")

DEFAULT_POOL_SIZE = 5


def format_context(urls: Sequence[str], contexts: Sequence[str]) -> str:
    """Render the non-empty contexts as prompt-ready source blocks."""
    blocks = [
        f"Source: {url}\n{text}"
        for url, text in zip(urls, contexts)
        if text
    ]
    return "\n\n".join(blocks)


class AcquisitionOrchestrator:
    """
    Fetches context for a list of URLs.

    Guarantees:
    - One result per input URL, in input order ("" for failures)
    - Cache hits never take a browser from the pool
    - At most pool.size page fetches in flight, batch by batch
    - Pool browsers are released when the last concurrent call finishes,
      on every path
    """

    def __init__(
        self,
        cache: ContentCache,
        pool: BrowserPool,
        fetchers: Optional[list[SourceFetcher]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            cache: Shared content cache
            pool: Browser pool used by the page fetcher
            fetchers: Fetchers in priority order, first match is used
                (the catch-all page fetcher goes last)
        """
        self.cache = cache
        self.pool = pool
        self.fetchers = fetchers if fetchers is not None else [
            TranscriptFetcher(cache),
            PageFetcher(cache, pool),
        ]
        self._active_calls = 0

    @classmethod
    def from_config(cls, config: dict, cache: Optional[ContentCache] = None) -> "AcquisitionOrchestrator":
        """Build cache, pool and fetchers from the `cache` and `fetch` config sections."""
        fetch_config = (config or {}).get("fetch", {}) or {}
        cache = cache or ContentCache.from_config((config or {}).get("cache"))
        pool = BrowserPool(
            size=fetch_config.get("pool_size", DEFAULT_POOL_SIZE),
            headless=fetch_config.get("headless", True),
            acquire_timeout=fetch_config.get("pool_acquire_timeout_seconds", 30),
        )
        fetchers = [
            TranscriptFetcher(
                cache,
                languages=tuple(fetch_config.get("transcript_languages", ["en"])),
                timeout_seconds=fetch_config.get("transcript_timeout_seconds", 20),
                max_concurrent=fetch_config.get("transcript_max_concurrent", DEFAULT_POOL_SIZE),
            ),
            PageFetcher(
                cache,
                pool,
                char_budget=fetch_config.get("char_budget", 1500),
                timeout_seconds=fetch_config.get("page_timeout_seconds", 15),
            ),
        ]
        return cls(cache, pool, fetchers)

    def fetcher_for(self, url: str) -> Optional[SourceFetcher]:
        """First fetcher that handles url."""
        for fetcher in self.fetchers:
            if fetcher.handles(url):
                return fetcher
        return None

    @staticmethod
    async def _fetch_one(fetcher: SourceFetcher, url: str) -> str:
        try:
            return await fetcher.fetch(url, check_cache=False)
        except Exception as e:
            log.error("orchestrator.fetch_failed", kind=fetcher.kind, url=url[:60], error=str(e))
            return ""

    async def _run_all(self, jobs: list[tuple[int, SourceFetcher, str]], results: list[str]):
        tasks = [self._fetch_one(fetcher, url) for _, fetcher, url in jobs]
        outputs = await asyncio.gather(*tasks)
        for (index, _, _), text in zip(jobs, outputs):
            results[index] = text

    async def _run_batches(self, jobs: list[tuple[int, SourceFetcher, str]], results: list[str]):
        batch_size = self.pool.size
        for start in range(0, len(jobs), batch_size):
            batch = jobs[start:start + batch_size]
            log.debug("orchestrator.batch", start=start, size=len(batch))
            await self._run_all(batch, results)

    async def acquire_context(self, urls: Sequence[str]) -> list[str]:
        """
        Fetch text for every URL.

        Args:
            urls: URLs in caller order

        Returns:
            List of the same length; result[i] belongs to urls[i]
        """
        results = [""] * len(urls)
        transcript_jobs = []
        page_jobs = []
        cache_hits = 0

        for index, url in enumerate(urls):
            fetcher = self.fetcher_for(url)
            if fetcher is None:
                log.info("orchestrator.unsupported_url", url=str(url)[:60])
                continue

            cached = fetcher.cached(url)
            if cached is not None:
                results[index] = cached
                cache_hits += 1
                continue

            if fetcher.kind == TranscriptFetcher.kind:
                transcript_jobs.append((index, fetcher, url))
            else:
                page_jobs.append((index, fetcher, url))

        self._active_calls += 1
        try:
            await asyncio.gather(
                self._run_all(transcript_jobs, results),
                self._run_batches(page_jobs, results),
            )
        except Exception as e:
            log.error("orchestrator.batch_failed", error=str(e))
        finally:
            self._active_calls -= 1
            # Other calls may still hold leases on the shared pool
            if self._active_calls == 0:
                await self.pool.shutdown()

        log.info(
            "orchestrator.acquire.complete",
            urls=len(urls),
            cache_hits=cache_hits,
            fetched=len(transcript_jobs) + len(page_jobs),
            succeeded=sum(1 for text in results if text),
        )
        return results

    async def close(self):
        """Release pooled browsers."""
        await self.pool.shutdown()
