"""
Tests for the chat bot conversation flow.

A recording messenger stands in for Telegram; generation goes through the
real StoryGenerationService with the fake LLM provider.
"""

import pytest

from conftest import FakeProvider, story_json
from src.storyforge.bot.conversation import (
    ASK_CHARACTER_MESSAGE,
    ASK_SETTING_MESSAGE,
    CANCELLED_MESSAGE,
    CHOOSE_LENGTH_MESSAGE,
    CHOOSE_THEME_MESSAGE,
    FAILURE_MESSAGE,
    GENERATING_MESSAGE,
    HELP_MESSAGE,
    INVALID_LENGTH_MESSAGE,
    INVALID_THEME_MESSAGE,
    LENGTH_KEYBOARD,
    MAX_MESSAGE_LENGTH,
    SUCCESS_MESSAGE,
    THEME_KEYBOARD,
    WELCOME_MESSAGE,
    ConversationBot,
    Messenger,
    parse_command,
    split_message,
)
from src.storyforge.bot.sessions import ConversationStep, SessionStore
from src.storyforge.services import StoryGenerationService
from src.storyforge.utils.llm import StoryGenerationClient

USER = 42
CHAT = 4242


class RecordingMessenger(Messenger):
    def __init__(self, fail_on_markdown=False):
        self.messages = []
        self.fail_on_markdown = fail_on_markdown

    def send_message(self, chat_id, text, keyboard=None, remove_keyboard=False, parse_mode=None):
        if self.fail_on_markdown and parse_mode == "Markdown":
            raise RuntimeError("can't parse entities")
        self.messages.append({
            "chat_id": chat_id,
            "text": text,
            "keyboard": keyboard,
            "remove_keyboard": remove_keyboard,
            "parse_mode": parse_mode,
        })

    @property
    def texts(self):
        return [m["text"] for m in self.messages]


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def bot(messenger, sessions, memory_storage, generation_client):
    return ConversationBot(messenger, StoryGenerationService(memory_storage, generation_client), sessions)


def walk_to_length(bot):
    bot.handle_message(USER, CHAT, "/generate")
    bot.handle_message(USER, CHAT, "Fantasy")
    bot.handle_message(USER, CHAT, "Mara")
    bot.handle_message(USER, CHAT, "A floating castle")


class TestCommands:
    def test_start(self, bot, messenger):
        bot.handle_message(USER, CHAT, "/start")

        assert messenger.texts == [WELCOME_MESSAGE]
        assert messenger.messages[0]["chat_id"] == CHAT

    def test_help(self, bot, messenger):
        bot.handle_message(USER, CHAT, "/help")

        assert messenger.texts == [HELP_MESSAGE]

    def test_generate_starts_session_with_theme_keyboard(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")

        assert sessions.get(USER).step is ConversationStep.THEME
        assert messenger.messages[-1]["text"] == CHOOSE_THEME_MESSAGE
        assert messenger.messages[-1]["keyboard"] == THEME_KEYBOARD
        assert THEME_KEYBOARD == ["Adventure", "Fantasy", "Scifi", "Mystery", "Romance", "Comedy"]

    def test_cancel_clears_session(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")

        bot.handle_message(USER, CHAT, "/cancel")

        assert sessions.get(USER) is None
        assert messenger.messages[-1]["text"] == CANCELLED_MESSAGE
        assert messenger.messages[-1]["remove_keyboard"] is True

    def test_command_with_bot_name(self, bot, messenger):
        bot.handle_message(USER, CHAT, "/start@StoryForgeBot")

        assert messenger.texts == [WELCOME_MESSAGE]

    def test_unknown_command_ignored(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")
        bot.handle_message(USER, CHAT, "/dance")

        assert messenger.texts == [CHOOSE_THEME_MESSAGE]
        assert sessions.get(USER).step is ConversationStep.THEME

    def test_generate_mid_flow_resets(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")
        bot.handle_message(USER, CHAT, "Mystery")
        bot.handle_message(USER, CHAT, "Holmes")

        bot.handle_message(USER, CHAT, "/generate")

        session = sessions.get(USER)
        assert session.step is ConversationStep.THEME
        assert session.theme is None
        assert session.characters == []

    def test_command_not_stored_as_answer(self, bot, sessions):
        bot.handle_message(USER, CHAT, "/generate")
        bot.handle_message(USER, CHAT, "Fantasy")

        bot.handle_message(USER, CHAT, "/help")

        session = sessions.get(USER)
        assert session.step is ConversationStep.CHARACTER
        assert session.characters == []


class TestConversationSteps:
    def test_text_without_session_ignored(self, bot, messenger):
        bot.handle_message(USER, CHAT, "hello there")

        assert messenger.messages == []

    def test_valid_theme_case_insensitive(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")

        bot.handle_message(USER, CHAT, "sCiFi")

        session = sessions.get(USER)
        assert session.theme == "scifi"
        assert session.step is ConversationStep.CHARACTER
        assert messenger.messages[-1]["text"] == ASK_CHARACTER_MESSAGE
        assert messenger.messages[-1]["remove_keyboard"] is True

    def test_invalid_theme_keeps_step(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")

        bot.handle_message(USER, CHAT, "Horror")

        assert sessions.get(USER).step is ConversationStep.THEME
        assert messenger.messages[-1]["text"] == INVALID_THEME_MESSAGE

    @pytest.mark.parametrize("text", [" Fantasy", "Fantasy ", "fan tasy"])
    def test_theme_must_match_exactly_apart_from_case(self, bot, messenger, sessions, text):
        bot.handle_message(USER, CHAT, "/generate")

        bot.handle_message(USER, CHAT, text)

        assert sessions.get(USER).step is ConversationStep.THEME
        assert messenger.messages[-1]["text"] == INVALID_THEME_MESSAGE

    @pytest.mark.parametrize("name", ["", "  "])
    def test_blank_character_name_accepted(self, bot, messenger, sessions, name):
        bot.handle_message(USER, CHAT, "/generate")
        bot.handle_message(USER, CHAT, "Fantasy")

        bot.handle_message(USER, CHAT, name)

        session = sessions.get(USER)
        assert session.step is ConversationStep.SETTING
        assert [c.name for c in session.characters] == [name]
        assert messenger.messages[-1]["text"] == ASK_SETTING_MESSAGE

    def test_character_then_setting(self, bot, messenger, sessions):
        bot.handle_message(USER, CHAT, "/generate")
        bot.handle_message(USER, CHAT, "Fantasy")

        bot.handle_message(USER, CHAT, "Mara")
        assert messenger.messages[-1]["text"] == ASK_SETTING_MESSAGE
        assert [c.name for c in sessions.get(USER).characters] == ["Mara"]

        bot.handle_message(USER, CHAT, "A floating castle")
        session = sessions.get(USER)
        assert session.setting == "A floating castle"
        assert session.step is ConversationStep.LENGTH
        assert messenger.messages[-1]["text"] == CHOOSE_LENGTH_MESSAGE
        assert messenger.messages[-1]["keyboard"] == LENGTH_KEYBOARD

    def test_invalid_length_keeps_step(self, bot, messenger, sessions):
        walk_to_length(bot)

        bot.handle_message(USER, CHAT, "medium")

        assert sessions.get(USER).step is ConversationStep.LENGTH
        assert messenger.messages[-1]["text"] == INVALID_LENGTH_MESSAGE

    def test_sessions_are_per_user(self, bot, sessions):
        bot.handle_message(1, 10, "/generate")
        bot.handle_message(2, 20, "/generate")

        bot.handle_message(1, 10, "Comedy")

        assert sessions.get(1).step is ConversationStep.CHARACTER
        assert sessions.get(2).step is ConversationStep.THEME

    def test_none_text_ignored(self, bot, messenger):
        bot.handle_message(USER, CHAT, None)

        assert messenger.messages == []


class TestGeneration:
    def test_full_flow(self, bot, messenger, sessions, memory_storage, fake_provider):
        walk_to_length(bot)
        sent_before = len(messenger.messages)

        bot.handle_message(USER, CHAT, "Short (250-500 words)")

        new_messages = messenger.messages[sent_before:]
        assert new_messages[0]["text"] == GENERATING_MESSAGE
        assert new_messages[0]["remove_keyboard"] is True
        assert new_messages[1]["text"] == (
            "📖 *The Glass Jar*\n\n"
            "Theme: fantasy\n"
            "Setting: A floating castle\n\n"
            "Para one.\n\nPara two."
        )
        assert new_messages[1]["parse_mode"] == "Markdown"
        assert new_messages[2]["text"] == SUCCESS_MESSAGE
        assert sessions.get(USER) is None

        story = memory_storage.get_story_by_id(1)
        assert story.theme == "fantasy"
        assert story.setting == "A floating castle"
        assert [c.name for c in story.characters] == ["Mara"]
        assert "LENGTH: 250-500 words" in fake_provider.calls[0]["prompt"]

    @pytest.mark.parametrize("name", ["", "  "])
    def test_blank_character_name_persisted(self, bot, messenger, sessions, memory_storage, name):
        bot.handle_message(USER, CHAT, "/generate")
        bot.handle_message(USER, CHAT, "Mystery")
        bot.handle_message(USER, CHAT, name)
        bot.handle_message(USER, CHAT, "A lighthouse")

        bot.handle_message(USER, CHAT, "Medium (500-1000 words)")

        assert messenger.texts[-1] == SUCCESS_MESSAGE
        story = memory_storage.get_story_by_id(1)
        assert [c.name for c in story.characters] == [name]
        assert sessions.get(USER) is None

    def test_long_story_sent_in_chunks(self, messenger, sessions, memory_storage):
        content = "x" * 9000
        client = StoryGenerationClient(FakeProvider([story_json("Long", content)]))
        bot = ConversationBot(messenger, StoryGenerationService(memory_storage, client), sessions)
        walk_to_length(bot)

        bot.handle_message(USER, CHAT, "Long (1000-1500 words)")

        story_parts = [m for m in messenger.messages if m["parse_mode"] == "Markdown"]
        assert len(story_parts) == 3
        assert all(len(m["text"]) <= MAX_MESSAGE_LENGTH for m in story_parts)
        assert "".join(m["text"] for m in story_parts).endswith(content)

    def test_generation_failure(self, messenger, sessions, memory_storage):
        client = StoryGenerationClient(FakeProvider([RuntimeError("quota")]))
        bot = ConversationBot(messenger, StoryGenerationService(memory_storage, client), sessions)
        walk_to_length(bot)

        bot.handle_message(USER, CHAT, "Medium (500-1000 words)")

        assert messenger.texts[-1] == FAILURE_MESSAGE
        assert sessions.get(USER) is None
        assert memory_storage.count_stories() == 0

    def test_send_failure_reports_error_and_clears_session(self, sessions, memory_storage, generation_client):
        messenger = RecordingMessenger(fail_on_markdown=True)
        bot = ConversationBot(messenger, StoryGenerationService(memory_storage, generation_client), sessions)
        walk_to_length(bot)

        bot.handle_message(USER, CHAT, "Short (250-500 words)")

        assert messenger.texts[-1] == FAILURE_MESSAGE
        assert sessions.get(USER) is None

    def test_after_generation_text_is_ignored(self, bot, messenger):
        walk_to_length(bot)
        bot.handle_message(USER, CHAT, "Short (250-500 words)")
        sent = len(messenger.messages)

        bot.handle_message(USER, CHAT, "Fantasy")

        assert len(messenger.messages) == sent


class TestHelpers:
    def test_split_message_keeps_newlines(self):
        text = ("line\n" * 1000)

        parts = split_message(text, size=4000)

        assert [len(p) for p in parts] == [4000, 1000]
        assert "".join(parts) == text

    def test_split_short_message(self):
        assert split_message("hello") == ["hello"]

    @pytest.mark.parametrize("text,expected", [
        ("/start", "start"),
        ("/Generate now", "generate"),
        ("/help@StoryForgeBot", "help"),
        ("hello", None),
        ("", None),
    ])
    def test_parse_command(self, text, expected):
        assert parse_command(text) == expected
