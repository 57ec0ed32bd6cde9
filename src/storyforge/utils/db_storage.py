"""
Database-backed storage for users, stories and characters.

Uses SQLite with one short-lived connection per operation, so the storage
object can be shared between Flask worker threads and the bot loop. Foreign
keys are enforced on every connection.
"""

import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

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
from .errors import StorageError, StorageIntegrityError
from .storage import Clock, StoryStorage

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER REFERENCES users(id),
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        theme TEXT NOT NULL,
        setting TEXT,
        date_generated TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS characters (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        story_id INTEGER NOT NULL REFERENCES stories(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        description TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_stories_date_generated
    ON stories(date_generated DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_characters_story_id
    ON characters(story_id)
    """,
)


SQLITE_INTEGER_MIN = -(2 ** 63)
SQLITE_INTEGER_MAX = 2 ** 63 - 1


def _fits_integer_column(value: int) -> bool:
    """sqlite3 raises OverflowError for ints outside the 64-bit INTEGER range."""
    return SQLITE_INTEGER_MIN <= value <= SQLITE_INTEGER_MAX


def _format_timestamp(value: datetime) -> str:
    # Fixed width so lexical order in SQL matches chronological order
    return value.isoformat(timespec="microseconds")


def get_db_connection(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open a connection with row access by name and foreign keys enforced."""
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def db_transaction(db_path: Union[str, Path]) -> Iterator[sqlite3.Connection]:
    """
    Context manager for one database transaction.

    Commits on success, rolls back on any error. SQLite errors are re-raised
    as StorageError (StorageIntegrityError for constraint violations).
    """
    try:
        conn = get_db_connection(db_path)
    except sqlite3.Error as e:
        raise StorageError(f"Could not open database {db_path}: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise StorageIntegrityError(str(e)) from e
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_database(db_path: Union[str, Path]) -> None:
    """Create the schema if it does not exist yet."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with db_transaction(db_path) as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
    logger.info(f"Database schema ready at {db_path}")


class SQLiteStorage(StoryStorage):
    """Relational story storage backed by an SQLite file."""

    def __init__(self, db_path: Union[str, Path], clock: Optional[Clock] = None):
        """
        Initialize storage and make sure the schema exists.

        Args:
            db_path: Path of the SQLite database file
            clock: Timestamp source for new stories (default: datetime.now)
        """
        super().__init__(clock)
        self.db_path = Path(db_path)
        init_database(self.db_path)

    @staticmethod
    def _row_to_story(row: sqlite3.Row) -> Story:
        return Story.model_validate(dict(row))

    @staticmethod
    def _row_to_character(row: sqlite3.Row) -> Character:
        return Character.model_validate(dict(row))

    # User methods
    def get_user(self, user_id: int) -> Optional[User]:
        if not _fits_integer_column(user_id):
            return None
        with db_transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return User.model_validate(dict(row)) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with db_transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ? LIMIT 1", (username,)
            ).fetchone()
        return User.model_validate(dict(row)) if row else None

    def create_user(self, user: NewUser) -> User:
        with db_transaction(self.db_path) as conn:
            cursor = conn.execute(
                "INSERT INTO users (username, password) VALUES (?, ?)",
                (user.username, user.password)
            )
            user_id = cursor.lastrowid
        return User(id=user_id, username=user.username, password=user.password)

    # Story methods
    def get_story_by_id(self, story_id: int) -> Optional[Story]:
        if not _fits_integer_column(story_id):
            return None
        with db_transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM stories WHERE id = ?", (story_id,)).fetchone()
            if row is None:
                return None
            character_rows = conn.execute(
                "SELECT * FROM characters WHERE story_id = ? ORDER BY id", (story_id,)
            ).fetchall()
        story = self._row_to_story(row)
        story.characters = [self._row_to_character(r) for r in character_rows]
        return story

    def get_recent_stories(self, limit: int) -> List[Story]:
        if limit <= 0:
            return []
        limit = min(limit, SQLITE_INTEGER_MAX)
        with db_transaction(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM stories ORDER BY date_generated DESC, id DESC LIMIT ?",
                (limit,)
            ).fetchall()
        return [self._row_to_story(row) for row in rows]

    def _insert_story(self, conn: sqlite3.Connection, story: NewStory) -> Story:
        date_generated = self.now()
        setting = blank_to_none(story.setting)
        cursor = conn.execute(
            """
            INSERT INTO stories (user_id, title, content, theme, setting, date_generated)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                story.user_id,
                story.title,
                story.content,
                story.theme,
                setting,
                _format_timestamp(date_generated),
            )
        )
        return Story(
            id=cursor.lastrowid,
            user_id=story.user_id,
            title=story.title,
            content=story.content,
            theme=story.theme,
            setting=setting,
            date_generated=date_generated,
        )

    def _insert_character(self, conn: sqlite3.Connection, character: NewCharacter) -> Character:
        if not _fits_integer_column(character.story_id):
            raise StorageIntegrityError(f"Cannot create character: story {character.story_id} does not exist")
        description = blank_to_none(character.description)
        cursor = conn.execute(
            "INSERT INTO characters (story_id, name, description) VALUES (?, ?, ?)",
            (character.story_id, character.name, description)
        )
        return Character(
            id=cursor.lastrowid,
            story_id=character.story_id,
            name=character.name,
            description=description,
        )

    def create_story(self, story: NewStory) -> Story:
        with db_transaction(self.db_path) as conn:
            return self._insert_story(conn, story)

    def count_stories(self) -> int:
        with db_transaction(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM stories").fetchone()[0]

    # Character methods
    def get_character_by_id(self, character_id: int) -> Optional[Character]:
        if not _fits_integer_column(character_id):
            return None
        with db_transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
        return self._row_to_character(row) if row else None

    def get_characters_by_story_id(self, story_id: int) -> List[Character]:
        if not _fits_integer_column(story_id):
            return []
        with db_transaction(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM characters WHERE story_id = ? ORDER BY id", (story_id,)
            ).fetchall()
        return [self._row_to_character(row) for row in rows]

    def create_character(self, character: NewCharacter) -> Character:
        with db_transaction(self.db_path) as conn:
            return self._insert_character(conn, character)

    def create_story_with_characters(
        self,
        story: NewStory,
        characters: Iterable[CharacterInput] = ()
    ) -> Story:
        with db_transaction(self.db_path) as conn:
            created_story = self._insert_story(conn, story)
            created_story.characters = [
                self._insert_character(conn, NewCharacter(
                    story_id=created_story.id,
                    name=character.name,
                    description=character.description,
                ))
                for character in characters
            ]
        return created_story
