"""
Per-user conversation sessions for the chat bot.

Sessions live in memory only and are lost on restart. A session that has not
been touched for ``ttl_seconds`` is treated as absent and removed, either on
the next access or by ``sweep()``.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..models import CharacterInput, StoryLength

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 3600


class ConversationStep(str, Enum):
    THEME = "theme"
    CHARACTER = "character"
    SETTING = "setting"
    LENGTH = "length"


@dataclass
class ConversationSession:
    """Parameters collected so far and the step waiting for input."""
    step: ConversationStep = ConversationStep.THEME
    theme: Optional[str] = None
    characters: List[CharacterInput] = field(default_factory=list)
    setting: Optional[str] = None
    length: Optional[StoryLength] = None
    last_activity: float = 0.0


class SessionStore:
    """Thread-safe map of external user id to ConversationSession."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._sessions: Dict[int, ConversationSession] = {}
        self._lock = threading.Lock()

    def _expired(self, session: ConversationSession, now: float) -> bool:
        return now - session.last_activity > self.ttl_seconds

    def get(self, user_id: int) -> Optional[ConversationSession]:
        """Return the live session for a user, evicting it if it has gone stale."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            if self._expired(session, self._clock()):
                del self._sessions[user_id]
                logger.debug(f"Evicted idle bot session for user {user_id}")
                return None
            return session

    def set(self, user_id: int, session: ConversationSession) -> None:
        """Store a session and mark it active now."""
        with self._lock:
            session.last_activity = self._clock()
            self._sessions[user_id] = session

    def delete(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)

    def sweep(self) -> int:
        """Remove every idle session. Returns the number removed."""
        with self._lock:
            now = self._clock()
            stale = [uid for uid, s in self._sessions.items() if self._expired(s, now)]
            for user_id in stale:
                del self._sessions[user_id]
        if stale:
            logger.info(f"Swept {len(stale)} idle bot session(s)")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, user_id: int) -> bool:
        return self.get(user_id) is not None
