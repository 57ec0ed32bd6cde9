"""
Story service for read operations.

Handles single-story lookup and the recent stories list.
"""

import logging
from typing import List, Optional

from ..models import Story
from ..utils.errors import StorageError
from ..utils.storage import StoryStorage
from .outcomes import Outcome

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10


def parse_story_id(raw_id) -> Optional[int]:
    """
    Return the integer id for a path segment or CLI argument, or None if it is not numeric.

    A leading minus sign is accepted, so "-1" is a well-formed id that simply
    does not exist.
    """
    if isinstance(raw_id, int) and not isinstance(raw_id, bool):
        return raw_id
    if not isinstance(raw_id, str):
        return None
    text = raw_id.strip()
    digits = text[1:] if text.startswith("-") else text
    if not digits.isdecimal():
        return None
    return int(text)


class StoryService:
    """Service for story retrieval."""

    def __init__(self, storage: StoryStorage, recent_limit: int = DEFAULT_RECENT_LIMIT):
        """
        Initialize story service.

        Args:
            storage: Persistence store shared with the other services
            recent_limit: Default size of the recent stories list
        """
        self.storage = storage
        self.recent_limit = recent_limit

    def get_story(self, raw_id) -> Outcome[Story]:
        """
        Get a story by ID together with its characters.

        Args:
            raw_id: Story identifier as received (string from the URL or int)

        Returns:
            ok(Story), invalid for a non-numeric id, not_found when absent
        """
        story_id = parse_story_id(raw_id)
        if story_id is None:
            return Outcome.invalid("Invalid story ID")

        try:
            story = self.storage.get_story_by_id(story_id)
        except StorageError as e:
            logger.error(f"Error fetching story {story_id}: {e}", exc_info=True)
            return Outcome.external_failure("Failed to fetch story")

        if story is None:
            return Outcome.not_found("Story not found")
        return Outcome.ok(story)

    def recent_stories(self, limit: Optional[int] = None) -> Outcome[List[Story]]:
        """List the most recent stories, newest first, without characters."""
        limit = self.recent_limit if limit is None else limit
        try:
            return Outcome.ok(self.storage.get_recent_stories(limit))
        except StorageError as e:
            logger.error(f"Error fetching recent stories: {e}", exc_info=True)
            return Outcome.external_failure("Failed to fetch recent stories")
