"""
Service layer for the StoryForge application.

Services hold the business logic shared by the Flask routes, the chat bot and
the CLI. They return ``Outcome`` values instead of raising for expected
failures (bad input, missing story, generation or export failure).
"""

from .outcomes import Outcome, OutcomeKind, STATUS_CODES
from .story_service import StoryService
from .story_generation_service import StoryGenerationService
from .story_export_service import StoryExportService, ExportedDocument

__all__ = [
    'Outcome',
    'OutcomeKind',
    'STATUS_CODES',
    'StoryService',
    'StoryGenerationService',
    'StoryExportService',
    'ExportedDocument',
]
