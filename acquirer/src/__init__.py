"""
Acquirer module - fetches live web content to ground chat answers.

Decides when a message needs web data, resolves it to URLs, fetches pages
and video transcripts under concurrency and time limits, and caches results.
"""

from .browser import BrowserPool, FetchBrowser
from .cache import ContentCache
from .fetchers import PageFetcher, SourceFetcher, TranscriptFetcher
from .orchestrator import AcquisitionOrchestrator, format_context
from .searcher import (
    BrowserSearchResolver,
    SearchResolver,
    SerpApiResolver,
    build_resolver,
    extract_urls,
    needs_search,
)

__all__ = [
    "AcquisitionOrchestrator",
    "BrowserPool",
    "BrowserSearchResolver",
    "ContentCache",
    "FetchBrowser",
    "PageFetcher",
    "SearchResolver",
    "SerpApiResolver",
    "SourceFetcher",
    "TranscriptFetcher",
    "build_resolver",
    "extract_urls",
    "format_context",
    "needs_search",
]
