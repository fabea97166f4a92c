"""
Webchat Conversation

Session history persistence and the share/fork protocol.
"""

from .src import ConversationStore, Message, Role, ShareSnapshot

__all__ = ["ConversationStore", "Message", "Role", "ShareSnapshot"]
