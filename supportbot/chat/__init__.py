"""Chat session handling."""

from supportbot.chat.session import ChatSession

__all__ = ["ChatSession"]
