"""
Source fetchers - one strategy per kind of URL.
"""

from .base import SourceFetcher, clean_text
from .page import PageFetcher
from .transcript import TranscriptFetcher, extract_video_id, join_segments

__all__ = [
    "SourceFetcher",
    "PageFetcher",
    "TranscriptFetcher",
    "clean_text",
    "extract_video_id",
    "join_segments",
]
