"""
Chat bot conversation flow.

A user walks through four prompts (theme, main character, setting, length)
and then gets a generated story. Commands are handled before the current
step, so ``/generate`` or ``/cancel`` work from anywhere in the flow. The
bot only talks to a ``Messenger``; the Telegram transport lives in
``telegram.py``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models import (
    CharacterInput,
    GenerateStoryRequest,
    LENGTH_LABELS,
    StoryLength,
    THEMES,
    Theme,
)
from ..services.story_generation_service import StoryGenerationService
from .sessions import ConversationSession, ConversationStep, SessionStore

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000

WELCOME_MESSAGE = (
    "Welcome to StoryForge AI Bot! 🤖📚\n\n"
    "I can help you generate unique stories based on your preferences.\n\n"
    "Use /generate to start creating a new story!"
)
HELP_MESSAGE = (
    "Available commands:\n\n"
    "/start - Start the bot\n"
    "/generate - Create a new story\n"
    "/cancel - Cancel story creation\n"
    "/help - Show this help message"
)
CHOOSE_THEME_MESSAGE = "Let's create a story! First, choose a theme:"
CANCELLED_MESSAGE = "Story creation cancelled. Use /generate to start again!"
INVALID_THEME_MESSAGE = "Please select a valid theme from the keyboard."
ASK_CHARACTER_MESSAGE = "Great! Now, tell me the name of the main character:"
ASK_SETTING_MESSAGE = "Where does your story take place? (Enter the setting):"
CHOOSE_LENGTH_MESSAGE = "Finally, choose the story length:"
INVALID_LENGTH_MESSAGE = "Please select a valid length from the keyboard."
GENERATING_MESSAGE = "🎨 Generating your story... This might take a moment!"
SUCCESS_MESSAGE = "Story generated successfully! Use /generate to create another story."
FAILURE_MESSAGE = (
    "Sorry, there was an error generating your story. Please try again with /generate"
)

THEME_KEYBOARD: List[str] = [theme.label for theme in Theme]
LENGTH_KEYBOARD: List[str] = [LENGTH_LABELS[length] for length in StoryLength]
_LENGTHS_BY_LABEL: Dict[str, StoryLength] = {label: length for length, label in LENGTH_LABELS.items()}


class Messenger(ABC):
    """Outgoing side of a chat transport."""

    @abstractmethod
    def send_message(
        self,
        chat_id: int,
        text: str,
        keyboard: Optional[List[str]] = None,
        remove_keyboard: bool = False,
        parse_mode: Optional[str] = None,
    ) -> None:
        """
        Send a text message.

        Args:
            chat_id: Destination chat
            text: Message text
            keyboard: Reply keyboard options, one button per row
            remove_keyboard: Hide any reply keyboard currently shown
            parse_mode: Text formatting mode (e.g. "Markdown")
        """
        pass


def split_message(text: str, size: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Cut text into consecutive chunks of at most ``size`` characters."""
    if not text:
        return [text]
    return [text[i:i + size] for i in range(0, len(text), size)]


def parse_command(text: str) -> Optional[str]:
    """Return the lower-cased command name for ``/cmd`` or ``/cmd@botname``, else None."""
    if not text.startswith("/"):
        return None
    word = text.split(maxsplit=1)[0]
    return word[1:].split("@", 1)[0].lower()


class ConversationBot:
    """Drives the theme, character, setting, length conversation for each user."""

    def __init__(
        self,
        messenger: Messenger,
        generation_service: StoryGenerationService,
        sessions: Optional[SessionStore] = None
    ):
        self.messenger = messenger
        self.generation_service = generation_service
        self.sessions = sessions if sessions is not None else SessionStore()

    def handle_message(self, user_id: int, chat_id: int, text: Optional[str]) -> None:
        """Process one incoming text message from a user."""
        if text is None:
            return

        command = parse_command(text)
        if command is not None:
            self.handle_command(command, user_id, chat_id)
            return

        session = self.sessions.get(user_id)
        if session is None:
            return

        handler = {
            ConversationStep.THEME: self._handle_theme,
            ConversationStep.CHARACTER: self._handle_character,
            ConversationStep.SETTING: self._handle_setting,
            ConversationStep.LENGTH: self._handle_length,
        }[session.step]
        handler(session, user_id, chat_id, text)

    def handle_command(self, command: str, user_id: int, chat_id: int) -> None:
        if command == "start":
            self.messenger.send_message(chat_id, WELCOME_MESSAGE)
        elif command == "help":
            self.messenger.send_message(chat_id, HELP_MESSAGE)
        elif command == "generate":
            self.sessions.set(user_id, ConversationSession())
            self.messenger.send_message(chat_id, CHOOSE_THEME_MESSAGE, keyboard=THEME_KEYBOARD)
        elif command == "cancel":
            self.sessions.delete(user_id)
            self.messenger.send_message(chat_id, CANCELLED_MESSAGE, remove_keyboard=True)
        else:
            logger.debug(f"Ignoring unknown bot command /{command} from user {user_id}")

    def _handle_theme(self, session: ConversationSession, user_id: int, chat_id: int, text: str):
        theme = text.lower()
        if theme not in THEMES:
            self.messenger.send_message(chat_id, INVALID_THEME_MESSAGE)
            return
        session.theme = theme
        session.step = ConversationStep.CHARACTER
        self.sessions.set(user_id, session)
        self.messenger.send_message(chat_id, ASK_CHARACTER_MESSAGE, remove_keyboard=True)

    def _handle_character(self, session: ConversationSession, user_id: int, chat_id: int, text: str):
        # Only one character is collected per conversation
        session.characters = [CharacterInput(name=text, description=None)]
        session.step = ConversationStep.SETTING
        self.sessions.set(user_id, session)
        self.messenger.send_message(chat_id, ASK_SETTING_MESSAGE)

    def _handle_setting(self, session: ConversationSession, user_id: int, chat_id: int, text: str):
        session.setting = text
        session.step = ConversationStep.LENGTH
        self.sessions.set(user_id, session)
        self.messenger.send_message(chat_id, CHOOSE_LENGTH_MESSAGE, keyboard=LENGTH_KEYBOARD)

    def _handle_length(self, session: ConversationSession, user_id: int, chat_id: int, text: str):
        length = _LENGTHS_BY_LABEL.get(text)
        if length is None:
            self.messenger.send_message(chat_id, INVALID_LENGTH_MESSAGE)
            return
        session.length = length
        try:
            self._generate_and_send(session, chat_id)
        finally:
            self.sessions.delete(user_id)

    def _generate_and_send(self, session: ConversationSession, chat_id: int) -> None:
        try:
            self.messenger.send_message(chat_id, GENERATING_MESSAGE, remove_keyboard=True)
            request = GenerateStoryRequest(
                theme=session.theme,
                characters=session.characters,
                setting=session.setting,
                length=session.length,
            )
            outcome = self.generation_service.generate_from_request(request)
            if not outcome.is_ok:
                logger.warning(f"Story generation for chat {chat_id} failed: {outcome.message}")
                self.messenger.send_message(chat_id, FAILURE_MESSAGE)
                return

            story = outcome.value
            story_message = (
                f"📖 *{story.title}*\n\n"
                f"Theme: {session.theme}\n"
                f"Setting: {session.setting}\n\n"
                f"{story.content}"
            )
            for part in split_message(story_message):
                self.messenger.send_message(chat_id, part, parse_mode="Markdown")
            self.messenger.send_message(chat_id, SUCCESS_MESSAGE)
        except Exception as e:
            logger.error(f"Error generating story for chat {chat_id}: {e}", exc_info=True)
            self.messenger.send_message(chat_id, FAILURE_MESSAGE)
