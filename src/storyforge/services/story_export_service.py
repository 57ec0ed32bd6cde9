"""
Story export service.

Loads a story with its characters and renders it to a PDF document.
"""

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..exports import export_story_pdf, sanitize_filename
from ..models import ExportPdfRequest
from ..utils.errors import StorageError
from ..utils.storage import StoryStorage
from .outcomes import Outcome

logger = logging.getLogger(__name__)

EXPORT_FAILED_MESSAGE = "Failed to export story to PDF"


@dataclass(frozen=True)
class ExportedDocument:
    filename: str
    content: bytes
    mimetype: str = "application/pdf"


class StoryExportService:
    """Service for exporting stories as PDF."""

    def __init__(self, storage: StoryStorage):
        self.storage = storage

    def export_pdf(self, payload: Any) -> Outcome[ExportedDocument]:
        """
        Export the story named by ``{"storyId": <int>}``.

        Returns:
            ok(ExportedDocument), invalid for a malformed body, not_found when
            the story does not exist, external_failure if rendering fails
        """
        try:
            request = ExportPdfRequest.model_validate(payload)
        except ValidationError:
            return Outcome.invalid("Invalid request")
        return self.export_story(request.story_id)

    def export_story(self, story_id: int) -> Outcome[ExportedDocument]:
        try:
            story = self.storage.get_story_by_id(story_id)
        except StorageError as e:
            logger.error(f"Error loading story {story_id} for export: {e}", exc_info=True)
            return Outcome.external_failure(EXPORT_FAILED_MESSAGE)

        if story is None:
            return Outcome.not_found("Story not found")

        try:
            content = export_story_pdf(story)
        except Exception as e:
            logger.error(f"Error exporting story {story_id} to PDF: {e}", exc_info=True)
            return Outcome.external_failure(EXPORT_FAILED_MESSAGE)

        filename = f"{sanitize_filename(story.title, story.id)}.pdf"
        logger.info(f"Exported story {story_id} to PDF ({len(content)} bytes)")
        return Outcome.ok(ExportedDocument(filename=filename, content=content))
