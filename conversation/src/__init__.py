"""
Conversation module - persistent chat sessions with share and fork.

Sessions are append-only message logs with bounded retention. A share
snapshots a session for 24 hours; a fork seeds a new session from a share
plus whatever the original session gained since.
"""

from .models import (
    Message, Role, ShareSnapshot, ValidationResult,
    validate_message, validate_snapshot,
)
from .store import ConversationStore

__all__ = [
    "ConversationStore",
    "Message",
    "Role",
    "ShareSnapshot",
    "ValidationResult",
    "validate_message",
    "validate_snapshot",
]
