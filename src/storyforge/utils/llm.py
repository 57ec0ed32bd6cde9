"""
LLM client layer.

``BaseLLMClient`` is the provider-agnostic interface implemented by the
concrete providers in ``src.storyforge.providers``. ``StoryGenerationClient``
turns a generation request into a prompt, calls the provider once and parses
the structured ``{"title", "content"}`` answer.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..models import GenerateStoryRequest, GeneratedStory
from .errors import GenerationError
from .story_prompt_builder import STORY_SYSTEM_PROMPT, build_story_prompt

logger = logging.getLogger(__name__)

UNTITLED_STORY = "Untitled Story"


class BaseLLMClient(ABC):
    """Interface every LLM provider implements."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        json_response: bool = False,
    ) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            temperature: Overrides the provider default when given
            json_response: Ask the model for a JSON document

        Returns:
            Generated text (may be empty)
        """
        pass

    @abstractmethod
    def check_availability(self) -> bool:
        pass


def parse_story_payload(raw: str) -> Dict[str, Any]:
    """
    Parse the model's JSON answer.

    Raises:
        ValueError: If the text is empty, not JSON, not an object, or lacks
            a non-empty string ``content`` field
    """
    if not raw or not raw.strip():
        raise ValueError("No content returned from the generation API")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    content = payload.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValueError("Generation API response has no story content")
    return payload


def resolve_title(requested: Optional[str], generated: Any) -> str:
    """Caller title wins, then the model's title, then the fixed fallback."""
    if requested:
        return requested
    if isinstance(generated, str) and generated.strip():
        return generated.strip()
    return UNTITLED_STORY


class StoryGenerationClient:
    """Generates story prose through an LLM provider."""

    def __init__(self, provider: Optional[BaseLLMClient] = None):
        """
        Args:
            provider: LLM provider (the default provider is created lazily if None)
        """
        self._provider = provider

    @property
    def provider(self) -> BaseLLMClient:
        if self._provider is None:
            from ..providers.factory import get_default_provider
            self._provider = get_default_provider()
        return self._provider

    def generate(self, request: GenerateStoryRequest) -> GeneratedStory:
        """
        Generate a story for the given parameters.

        Every failure (provider error, empty answer, malformed payload) is
        logged and re-raised as GenerationError. Nothing is retried.

        Raises:
            GenerationError: If no usable story could be produced
        """
        prompt = build_story_prompt(request)
        try:
            raw = self.provider.generate(
                prompt,
                system_prompt=STORY_SYSTEM_PROMPT,
                json_response=True,
            )
            payload = parse_story_payload(raw)
        except Exception as e:
            logger.error(f"Error generating story with the LLM provider: {e}", exc_info=True)
            raise GenerationError() from e

        title = resolve_title(request.title, payload.get("title"))
        logger.info(f"Generated story '{title}' ({len(payload['content'].split())} words)")
        return GeneratedStory(title=title, content=payload["content"])
