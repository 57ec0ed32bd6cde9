"""
Storage contract for users, stories and characters, plus the in-memory
implementation.

``StoryStorage`` defines the operations every backend must provide so that
the web app, the CLI and the chat bot work against any of them. The backend
is chosen once at process start (see ``repository.create_storage``).

Contract notes shared by all implementations:
- Lookups return ``None`` (or an empty list) for missing rows; they never
  raise for a missing row.
- ``get_recent_stories`` is ordered newest first.
- ``get_story_by_id`` attaches the story's characters.
- Creating a character for an unknown story raises ``StorageIntegrityError``.
- ``create_story_with_characters`` is all-or-nothing.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from ..models import (
    Character,
    CharacterInput,
    NewCharacter,
    NewStory,
    NewUser,
    Story,
    User,
    blank_to_none,
)
from .errors import StorageIntegrityError

Clock = Callable[[], datetime]


class StoryStorage(ABC):
    """Abstract interface for story persistence."""

    def __init__(self, clock: Optional[Clock] = None):
        """
        Args:
            clock: Returns the timestamp stamped on new stories (default: datetime.now)
        """
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    # User methods
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    def create_user(self, user: NewUser) -> User:
        """
        Create a user.

        Raises:
            StorageIntegrityError: If the username is already taken
        """
        pass

    # Story methods
    @abstractmethod
    def get_story_by_id(self, story_id: int) -> Optional[Story]:
        """Load a story together with its characters."""
        pass

    @abstractmethod
    def get_recent_stories(self, limit: int) -> List[Story]:
        """
        List the most recently generated stories, newest first.

        Characters are not attached.
        """
        pass

    @abstractmethod
    def create_story(self, story: NewStory) -> Story:
        """Persist a story, assigning its id and generation timestamp."""
        pass

    @abstractmethod
    def count_stories(self) -> int:
        pass

    # Character methods
    @abstractmethod
    def get_character_by_id(self, character_id: int) -> Optional[Character]:
        pass

    @abstractmethod
    def get_characters_by_story_id(self, story_id: int) -> List[Character]:
        pass

    @abstractmethod
    def create_character(self, character: NewCharacter) -> Character:
        """
        Persist a character.

        Raises:
            StorageIntegrityError: If ``character.story_id`` does not exist
        """
        pass

    @abstractmethod
    def create_story_with_characters(
        self,
        story: NewStory,
        characters: Iterable[CharacterInput] = ()
    ) -> Story:
        """
        Persist a story and its characters as one unit.

        Either everything is written or nothing is. The returned story is
        built from the written rows and carries its characters.
        """
        pass


class MemoryStorage(StoryStorage):
    """
    Dict-backed storage.

    Intended for local development and tests; contents are lost when the
    process exits. All operations hold one re-entrant lock, so id assignment
    and multi-row writes cannot interleave between threads.
    """

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._lock = threading.RLock()
        self._users: Dict[int, User] = {}
        self._stories: Dict[int, Story] = {}
        self._characters: Dict[int, Character] = {}
        self._next_user_id = 1
        self._next_story_id = 1
        self._next_character_id = 1

    # User methods
    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return next(
                (user for user in self._users.values() if user.username == username),
                None
            )

    def create_user(self, user: NewUser) -> User:
        with self._lock:
            if self.get_user_by_username(user.username) is not None:
                raise StorageIntegrityError(f"Username '{user.username}' is already taken")
            created = User(id=self._next_user_id, username=user.username, password=user.password)
            self._users[created.id] = created
            self._next_user_id += 1
            return created

    # Story methods
    def get_story_by_id(self, story_id: int) -> Optional[Story]:
        with self._lock:
            story = self._stories.get(story_id)
            if story is None:
                return None
            return story.model_copy(
                update={"characters": self.get_characters_by_story_id(story_id)}
            )

    def get_recent_stories(self, limit: int) -> List[Story]:
        if limit <= 0:
            return []
        with self._lock:
            stories = sorted(
                self._stories.values(),
                key=lambda s: (s.date_generated, s.id),
                reverse=True
            )
            return stories[:limit]

    def create_story(self, story: NewStory) -> Story:
        with self._lock:
            created = Story(
                id=self._next_story_id,
                user_id=story.user_id,
                title=story.title,
                content=story.content,
                theme=story.theme,
                setting=blank_to_none(story.setting),
                date_generated=self.now(),
            )
            self._stories[created.id] = created
            self._next_story_id += 1
            return created

    def count_stories(self) -> int:
        with self._lock:
            return len(self._stories)

    # Character methods
    def get_character_by_id(self, character_id: int) -> Optional[Character]:
        with self._lock:
            return self._characters.get(character_id)

    def get_characters_by_story_id(self, story_id: int) -> List[Character]:
        with self._lock:
            return [c for c in self._characters.values() if c.story_id == story_id]

    def create_character(self, character: NewCharacter) -> Character:
        with self._lock:
            if character.story_id not in self._stories:
                raise StorageIntegrityError(
                    f"Cannot create character: story {character.story_id} does not exist"
                )
            created = Character(
                id=self._next_character_id,
                story_id=character.story_id,
                name=character.name,
                description=blank_to_none(character.description),
            )
            self._characters[created.id] = created
            self._next_character_id += 1
            return created

    def create_story_with_characters(
        self,
        story: NewStory,
        characters: Iterable[CharacterInput] = ()
    ) -> Story:
        with self._lock:
            # Snapshot so a failure part-way leaves no trace
            next_story_id = self._next_story_id
            next_character_id = self._next_character_id
            created_characters: List[Character] = []
            try:
                created_story = self.create_story(story)
                for character in characters:
                    created_characters.append(self.create_character(NewCharacter(
                        story_id=created_story.id,
                        name=character.name,
                        description=character.description,
                    )))
            except Exception:
                self._stories.pop(next_story_id, None)
                for created in created_characters:
                    self._characters.pop(created.id, None)
                self._next_story_id = next_story_id
                self._next_character_id = next_character_id
                raise
            return created_story.model_copy(update={"characters": created_characters})
