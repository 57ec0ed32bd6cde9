"""Tests for the story prompt text."""

import pytest

from src.storyforge.models import CharacterInput, GenerateStoryRequest, StoryLength
from src.storyforge.utils.story_prompt_builder import (
    DEFAULT_CHARACTER_INSTRUCTION,
    DEFAULT_TITLE_INSTRUCTION,
    STORY_SYSTEM_PROMPT,
    build_story_prompt,
)


def _request(**overrides):
    values = {"theme": "fantasy", "length": "short"}
    values.update(overrides)
    return GenerateStoryRequest(**values)


class TestBuildStoryPrompt:
    @pytest.mark.parametrize("length,band", [
        ("short", "250-500"),
        ("medium", "500-1000"),
        ("long", "1000-1500"),
    ])
    def test_length_band_in_prompt(self, length, band):
        prompt = build_story_prompt(_request(length=length))

        assert f"LENGTH: {band} words" in prompt

    def test_theme_included(self):
        assert "THEME: mystery" in build_story_prompt(_request(theme="mystery"))

    def test_title_given(self):
        prompt = build_story_prompt(_request(title="The Glass Jar"))

        assert "TITLE: The Glass Jar" in prompt
        assert DEFAULT_TITLE_INSTRUCTION not in prompt

    def test_title_missing_asks_for_one(self):
        prompt = build_story_prompt(_request())

        assert DEFAULT_TITLE_INSTRUCTION in prompt
        assert "TITLE:" not in prompt

    def test_setting_optional(self):
        assert "SETTING: A lighthouse" in build_story_prompt(_request(setting="A lighthouse"))
        assert "SETTING:" not in build_story_prompt(_request())

    def test_characters_listed(self):
        prompt = build_story_prompt(_request(characters=[
            CharacterInput(name="Mara", description="A lighthouse keeper"),
            CharacterInput(name="Tom"),
        ]))

        assert "- Mara - A lighthouse keeper" in prompt
        assert "- Tom\n" in prompt
        assert DEFAULT_CHARACTER_INSTRUCTION not in prompt

    def test_no_characters_asks_model_to_create_them(self):
        assert f"- {DEFAULT_CHARACTER_INSTRUCTION}" in build_story_prompt(_request())
        assert f"- {DEFAULT_CHARACTER_INSTRUCTION}" in build_story_prompt(_request(characters=[]))

    def test_plot_elements_optional(self):
        prompt = build_story_prompt(_request(plot_elements="A stolen map"))

        assert "ADDITIONAL PLOT ELEMENTS: A stolen map" in prompt
        assert "ADDITIONAL PLOT ELEMENTS" not in build_story_prompt(_request())

    def test_asks_for_json_title_and_content(self):
        prompt = build_story_prompt(_request())

        assert '"title"' in prompt
        assert '"content"' in prompt
        assert "JSON" in STORY_SYSTEM_PROMPT

    def test_length_enum_accepted(self):
        request = GenerateStoryRequest(theme="comedy", length=StoryLength.LONG)

        assert "LENGTH: 1000-1500 words" in build_story_prompt(request)
