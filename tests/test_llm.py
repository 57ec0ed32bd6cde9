"""Tests for the story generation client and the provider factory."""

from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeProvider, story_json
from src.storyforge.config import Settings
from src.storyforge.models import GenerateStoryRequest
from src.storyforge.providers import factory
from src.storyforge.utils.errors import GenerationError
from src.storyforge.utils.llm import (
    UNTITLED_STORY,
    StoryGenerationClient,
    parse_story_payload,
    resolve_title,
)
from src.storyforge.utils.story_prompt_builder import STORY_SYSTEM_PROMPT


def _request(**overrides):
    values = {"theme": "fantasy", "length": "medium"}
    values.update(overrides)
    return GenerateStoryRequest(**values)


class TestStoryGenerationClient:
    def test_returns_model_title_and_content(self):
        provider = FakeProvider([story_json("Moon Harbor", "One.\n\nTwo.")])

        story = StoryGenerationClient(provider).generate(_request())

        assert story.title == "Moon Harbor"
        assert story.content == "One.\n\nTwo."

    def test_caller_title_wins(self):
        provider = FakeProvider([story_json("Model Title", "Text")])

        story = StoryGenerationClient(provider).generate(_request(title="X"))

        assert story.title == "X"

    @pytest.mark.parametrize("model_title", [None, "", "   "])
    def test_untitled_fallback(self, model_title):
        provider = FakeProvider([story_json(model_title, "Text")])

        story = StoryGenerationClient(provider).generate(_request())

        assert story.title == UNTITLED_STORY

    def test_sends_prompt_system_instruction_and_json_mode(self):
        provider = FakeProvider([story_json("T", "Text")])

        StoryGenerationClient(provider).generate(_request(length="long"))

        call = provider.calls[0]
        assert "LENGTH: 1000-1500 words" in call["prompt"]
        assert call["system_prompt"] == STORY_SYSTEM_PROMPT
        assert call["json_response"] is True

    @pytest.mark.parametrize("raw", [
        "",
        "not json at all",
        "[1, 2, 3]",
        '{"title": "No content"}',
        '{"title": "T", "content": ""}',
        '{"title": "T", "content": 42}',
    ])
    def test_unusable_answer_raises_generation_error(self, raw):
        provider = FakeProvider([raw])

        with pytest.raises(GenerationError) as exc_info:
            StoryGenerationClient(provider).generate(_request())

        assert str(exc_info.value) == GenerationError.DEFAULT_MESSAGE

    def test_provider_exception_wrapped(self):
        provider = FakeProvider([ConnectionError("network down")])

        with pytest.raises(GenerationError) as exc_info:
            StoryGenerationClient(provider).generate(_request())

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_no_retry_on_failure(self):
        provider = FakeProvider([TimeoutError("slow"), story_json("T", "Text")])

        with pytest.raises(GenerationError):
            StoryGenerationClient(provider).generate(_request())

        assert len(provider.calls) == 1

    def test_default_provider_is_lazy(self):
        with patch("src.storyforge.providers.factory.get_default_provider") as get_default:
            get_default.return_value = FakeProvider()
            client = StoryGenerationClient()
            get_default.assert_not_called()

            client.generate(_request())

            get_default.assert_called_once()

    def test_missing_api_key_becomes_generation_error(self):
        with patch("src.storyforge.providers.factory.get_default_provider",
                   side_effect=ValueError("GOOGLE_API_KEY environment variable is required")):
            with pytest.raises(GenerationError):
                StoryGenerationClient().generate(_request())


class TestHelpers:
    def test_parse_story_payload(self):
        assert parse_story_payload('{"title": "T", "content": "C"}') == {"title": "T", "content": "C"}

    def test_resolve_title(self):
        assert resolve_title("Mine", "Theirs") == "Mine"
        assert resolve_title(None, "  Theirs  ") == "Theirs"
        assert resolve_title("", None) == UNTITLED_STORY
        assert resolve_title(None, 12) == UNTITLED_STORY


class TestProviderFactory:
    def setup_method(self):
        factory.reset_default_provider()

    def teardown_method(self):
        factory.reset_default_provider()

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            factory.create_provider("openai", settings=Settings())

    @patch("src.storyforge.providers.gemini.genai")
    def test_gemini_created_from_settings(self, mock_genai):
        settings = Settings(google_api_key="key-123", llm_model="gemini-2.5-pro", llm_temperature=0.3, llm_timeout=45.0)

        provider = factory.create_provider(settings=settings)

        mock_genai.configure.assert_called_once_with(api_key="key-123")
        assert provider.model_name == "models/gemini-2.5-pro"
        assert provider.temperature == 0.3
        assert provider.timeout == 45.0

    @patch("src.storyforge.providers.factory.create_provider")
    def test_default_provider_cached(self, mock_create):
        mock_create.return_value = MagicMock()

        first = factory.get_default_provider()
        second = factory.get_default_provider()

        assert first is second
        mock_create.assert_called_once()
