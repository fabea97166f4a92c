"""
Chat module - the request-handling boundary.

Composes the acquirer, the conversation store and the completion client,
and exposes them over HTTP.
"""

from .api import build_service, create_app
from .completion import CompletionClient
from .models import ChatAnswer
from .service import ChatService, build_prompt

__all__ = [
    "ChatAnswer",
    "ChatService",
    "CompletionClient",
    "build_prompt",
    "build_service",
    "create_app",
]
