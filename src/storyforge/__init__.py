"""
StoryForge

Generates short stories with an LLM from a theme, characters, setting and
length, keeps them in a story store, and exports them as PDF. The same
generation flow is offered over HTTP, a chat bot and the command line.
"""

from .models import (
    Theme,
    StoryLength,
    THEMES,
    WORD_COUNT_BANDS,
    LENGTH_LABELS,
    Story,
    Character,
    User,
    GenerateStoryRequest,
)

__version__ = "0.1.0"

__all__ = [
    "Theme",
    "StoryLength",
    "THEMES",
    "WORD_COUNT_BANDS",
    "LENGTH_LABELS",
    "Story",
    "Character",
    "User",
    "GenerateStoryRequest",
]
