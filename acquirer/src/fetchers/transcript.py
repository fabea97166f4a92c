"""
Video transcript fetcher.

Turns a YouTube URL into a single blob of transcript text.
"""

import asyncio
import re
from typing import Any, Iterable, Optional

from youtube_transcript_api import YouTubeTranscriptApi

from shared.logging import get_logger

from ..cache import ContentCache
from .base import SourceFetcher, clean_text

log = get_logger("acquirer", "transcript_fetcher")

VIDEO_ID_PATTERN = re.compile(
    r"(?:youtube\.com/(?:watch\?(?:[^#\s]*&)?v=|shorts/|embed/|live/|v/)|youtu\.be/)"
    r"([A-Za-z0-9_-]{11})"
)

DEFAULT_TIMEOUT_SECONDS = 20
DEFAULT_MAX_CONCURRENT = 5


def extract_video_id(url: str) -> Optional[str]:
    """Video id from a YouTube URL, or None if the URL isn't one."""
    match = VIDEO_ID_PATTERN.search(url)
    return match.group(1) if match else None


def _segment_text(segment: Any) -> str:
    if isinstance(segment, dict):
        return str(segment.get("text", ""))
    return str(getattr(segment, "text", ""))


def join_segments(segments: Iterable[Any]) -> str:
    """Concatenate timed transcript segments in order."""
    parts = [_segment_text(segment).replace("\n", " ").strip() for segment in segments]
    return clean_text(" ".join(part for part in parts if part))


class TranscriptFetcher(SourceFetcher):
    """
    Fetches video transcripts.

    Failures come back as a readable placeholder rather than an exception,
    and placeholders are never cached.
    """

    kind = "transcript"
    key_prefix = "transcript:"

    def __init__(
        self,
        cache: ContentCache,
        transcript_api: Optional[Any] = None,
        languages: tuple = ("en",),
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ):
        """
        Initialize fetcher.

        Args:
            cache: Shared content cache
            transcript_api: Object with fetch(video_id, languages=...) (defaults to YouTubeTranscriptApi)
            languages: Preferred transcript languages, in order
            timeout_seconds: Per-video timeout
            max_concurrent: Most transcript worker threads alive at once
        """
        super().__init__(cache)
        self.transcript_api = transcript_api or YouTubeTranscriptApi()
        self.languages = tuple(languages)
        self.timeout_seconds = timeout_seconds
        self._slots = asyncio.Semaphore(max(1, int(max_concurrent)))

    def handles(self, url: str) -> bool:
        return extract_video_id(url) is not None

    @staticmethod
    def placeholder(video_id: Optional[str], reason: str) -> str:
        target = f"video {video_id}" if video_id else "this video"
        return f"[Transcript unavailable for {target}: {reason}]"

    def _release_slot(self, worker: asyncio.Future):
        self._slots.release()
        # Abandoned workers still finish; mark their outcome as retrieved
        if not worker.cancelled():
            worker.exception()

    async def _fetch_segments(self, video_id: str):
        """
        Run the blocking transcript call in a worker thread.

        A timed-out thread keeps running, so its slot is held until the
        thread itself returns.
        """
        await asyncio.wait_for(self._slots.acquire(), timeout=self.timeout_seconds)
        worker = asyncio.ensure_future(
            asyncio.to_thread(self.transcript_api.fetch, video_id, languages=self.languages)
        )
        worker.add_done_callback(self._release_slot)
        return await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout_seconds)

    async def _fetch_uncached(self, url: str) -> tuple[str, bool]:
        video_id = extract_video_id(url)
        if not video_id:
            return self.placeholder(None, "could not find a video id in the URL"), False

        try:
            segments = await self._fetch_segments(video_id)
        except asyncio.TimeoutError:
            log.warning("transcript_fetcher.timeout", video_id=video_id, timeout=self.timeout_seconds)
            return self.placeholder(video_id, "request timed out"), False
        except Exception as e:
            log.warning("transcript_fetcher.fetch_error", video_id=video_id, error=type(e).__name__)
            return self.placeholder(video_id, type(e).__name__), False

        text = join_segments(segments)
        if not text:
            return self.placeholder(video_id, "transcript is empty"), False

        log.info("transcript_fetcher.fetch.success", video_id=video_id, chars=len(text))
        return text, True
