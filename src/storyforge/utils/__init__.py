"""
Utility modules for StoryForge.

Modules:
- storage: Story store contract and the in-memory implementation
- db_storage: SQLite story store
- repository: Store selection from configuration
- llm: Provider interface and the story generation client
- story_prompt_builder: Prompt text for story generation
- errors: Exception types and Flask error handlers
"""

from .errors import (
    APIError,
    GenerationError,
    RateLimitError,
    StorageError,
    StorageIntegrityError,
)
from .storage import StoryStorage, MemoryStorage
from .db_storage import SQLiteStorage, init_database
from .repository import create_storage
from .llm import BaseLLMClient, StoryGenerationClient

__all__ = [
    "APIError",
    "GenerationError",
    "RateLimitError",
    "StorageError",
    "StorageIntegrityError",
    "StoryStorage",
    "MemoryStorage",
    "SQLiteStorage",
    "init_database",
    "create_storage",
    "BaseLLMClient",
    "StoryGenerationClient",
]
