"""
Chat bot front end for story generation.

The conversation logic (``ConversationBot``) is transport-agnostic; Telegram
is the only transport shipped.
"""

from .conversation import ConversationBot, Messenger
from .sessions import ConversationSession, ConversationStep, SessionStore

__all__ = [
    "ConversationBot",
    "Messenger",
    "ConversationSession",
    "ConversationStep",
    "SessionStore",
]
