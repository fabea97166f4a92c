"""
Webchat Acquirer

Live web content acquisition for chat answers.
"""

from .src import AcquisitionOrchestrator, ContentCache, build_resolver, needs_search

__all__ = ["AcquisitionOrchestrator", "ContentCache", "build_resolver", "needs_search"]
