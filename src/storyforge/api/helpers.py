"""
Helper functions for API route handlers.

Shared between route modules: turning service outcomes into Flask responses
and looking up the services registered on the current app.
"""

from io import BytesIO
from typing import Any, Callable, Optional, Tuple

from flask import Response, current_app, jsonify, send_file

from src.storyforge.services import (
    ExportedDocument,
    Outcome,
    StoryExportService,
    StoryGenerationService,
    StoryService,
)
from src.storyforge.services.outcomes import ERROR_CODES
from src.storyforge.utils.errors import error_body



def get_story_service() -> StoryService:
    return current_app.extensions["story_service"]


def get_generation_service() -> StoryGenerationService:
    return current_app.extensions["story_generation_service"]


def get_export_service() -> StoryExportService:
    return current_app.extensions["story_export_service"]


def error_response(outcome: Outcome) -> Tuple[Response, int]:
    """
    Build the JSON error body for a failed outcome.

    Format: {"error": <message>, "error_code": <CODE>, "details": {...}}
    """
    body = error_body(outcome.message, ERROR_CODES[outcome.kind], outcome.details)
    return jsonify(body), outcome.status_code


def outcome_response(
    outcome: Outcome,
    serialize: Optional[Callable[[Any], Any]] = None
) -> Tuple[Response, int]:
    """
    Convert a service outcome into a JSON response.

    Args:
        outcome: Result returned by a service
        serialize: Converts the ok value to JSON-ready data (defaults to ``to_dict()``)
    """
    if not outcome.is_ok:
        return error_response(outcome)
    value = outcome.value
    data = serialize(value) if serialize else value.to_dict()
    return jsonify(data), outcome.status_code


def document_response(document: ExportedDocument) -> Response:
    """Send an exported document as a file attachment."""
    return send_file(
        BytesIO(document.content),
        mimetype=document.mimetype,
        as_attachment=True,
        download_name=document.filename,
    )
