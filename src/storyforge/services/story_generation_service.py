"""
Story generation service.

Validates generation parameters, calls the generation client and persists the
story together with its characters. The HTTP API, the chat bot and the CLI all
go through this service.
"""

import logging
from typing import Any, List

from pydantic import ValidationError

from ..models import (
    CharacterInput,
    GenerateStoryRequest,
    NewStory,
    Story,
    blank_to_none,
    format_validation_error,
)
from ..utils.errors import GenerationError, StorageError
from ..utils.llm import StoryGenerationClient
from ..utils.storage import StoryStorage
from .outcomes import Outcome

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = "Failed to generate story"


class StoryGenerationService:
    """Service for generating and saving new stories."""

    def __init__(self, storage: StoryStorage, generation_client: StoryGenerationClient):
        self.storage = storage
        self.generation_client = generation_client

    def generate(self, payload: Any) -> Outcome[Story]:
        """
        Validate a raw request body and generate a story from it.

        Returns:
            ok(Story with characters), invalid with a readable validation
            message, or external_failure when generation or storage fails
        """
        try:
            request = GenerateStoryRequest.model_validate(payload)
        except ValidationError as e:
            message = format_validation_error(e)
            logger.info(f"Rejected generation request: {message}")
            return Outcome.invalid(message)
        return self.generate_from_request(request)

    def generate_from_request(self, request: GenerateStoryRequest) -> Outcome[Story]:
        """Generate and persist a story for already-validated parameters."""
        try:
            generated = self.generation_client.generate(request)
        except GenerationError as e:
            logger.error(f"Story generation failed: {e.__cause__ or e}")
            return Outcome.external_failure(GENERATION_FAILED_MESSAGE)

        characters: List[CharacterInput] = [
            CharacterInput(name=c.name, description=blank_to_none(c.description))
            for c in (request.characters or [])
        ]
        new_story = NewStory(
            user_id=None,
            title=generated.title,
            content=generated.content,
            theme=request.theme,
            setting=blank_to_none(request.setting),
        )

        try:
            story = self.storage.create_story_with_characters(new_story, characters)
        except StorageError as e:
            logger.error(f"Failed to save generated story: {e}", exc_info=True)
            return Outcome.external_failure(GENERATION_FAILED_MESSAGE)

        logger.info(f"Saved story {story.id} '{story.title}' with {len(characters)} character(s)")
        return Outcome.ok(story)
