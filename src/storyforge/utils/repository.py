"""
Storage backend selection.

The backend is picked once at process start from configuration and never
mixed at runtime:
- USE_DB_STORAGE=true: SQLiteStorage at DATABASE_PATH
- otherwise: MemoryStorage (local development without a database)
"""

import logging
from typing import Optional

from ..config import Settings
from .storage import Clock, MemoryStorage, StoryStorage

logger = logging.getLogger(__name__)


def create_storage(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> StoryStorage:
    """
    Factory function to create the configured storage backend.

    Args:
        settings: Application settings (read from the environment if None)
        clock: Optional timestamp source for new stories

    Returns:
        StoryStorage instance
    """
    settings = settings or Settings.from_env()

    if settings.use_db_storage:
        from .db_storage import SQLiteStorage

        logger.info(f"Using SQLite storage implementation ({settings.database_path})")
        return SQLiteStorage(settings.database_path, clock=clock)

    logger.info("Using in-memory storage implementation")
    return MemoryStorage(clock=clock)
