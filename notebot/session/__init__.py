"""Conversation session state."""

from notebot.session.history import ConversationHistoryManager

__all__ = ["ConversationHistoryManager"]
