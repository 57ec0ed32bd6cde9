"""
Flask route handlers for the StoryForge API.

Handlers stay thin: parse the request, call a service, and map the returned
outcome to a response.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask
    from flask_limiter import Limiter

from flask import current_app, jsonify, render_template, request

from src.storyforge.models import LENGTH_LABELS, THEMES, Theme
from src.storyforge.api.helpers import (
    document_response,
    error_response,
    get_export_service,
    get_generation_service,
    get_story_service,
    outcome_response,
)

logger = logging.getLogger(__name__)


def register_routes(flask_app: 'Flask', limiter_instance: 'Limiter') -> None:
    """
    Register all application routes.

    Args:
        flask_app: Flask application instance
        limiter_instance: Limiter instance for rate limiting
    """

    @flask_app.route('/')
    def index():
        """Render the web client with the theme and length choices."""
        return render_template(
            'index.html',
            themes=[(theme.value, theme.label) for theme in Theme],
            lengths=[(length.value, label) for length, label in LENGTH_LABELS.items()],
        )

    @flask_app.route('/api/health')
    def health():
        return jsonify({"status": "ok"})

    @flask_app.route('/api/themes', methods=['GET'])
    def get_themes():
        """List the story themes and length options offered to clients."""
        return jsonify({
            "themes": THEMES,
            "lengths": {length.value: label for length, label in LENGTH_LABELS.items()},
        })

    @flask_app.route('/api/stories/recent', methods=['GET'])
    @limiter_instance.limit(lambda: current_app.config["READ_RATE_LIMIT"])
    def recent_stories():
        """
        List the most recent stories, newest first.

        Returns:
            JSON array of stories without characters
        """
        outcome = get_story_service().recent_stories()
        return outcome_response(outcome, lambda stories: [story.to_dict() for story in stories])

    @flask_app.route('/api/stories/<story_id>', methods=['GET'])
    @limiter_instance.limit(lambda: current_app.config["READ_RATE_LIMIT"])
    def get_story(story_id: str):
        """
        Get a story with its characters.

        Returns:
            JSON story; 400 for a non-numeric id, 404 if it does not exist
        """
        return outcome_response(get_story_service().get_story(story_id))

    @flask_app.route('/api/stories/generate', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
    def generate_story():
        """
        Generate a new story and save it.

        Request JSON:
            theme (str, required), length ("short"|"medium"|"long", required),
            title, setting, plotElements (str, optional),
            characters (list of {name, description?}, optional)

        Returns:
            JSON story with characters; 400 on invalid input, 500 if the
            generation API or storage fails
        """
        payload = request.get_json(silent=True)
        outcome = get_generation_service().generate(payload)
        return outcome_response(outcome)

    @flask_app.route('/api/stories/export-pdf', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["EXPORT_RATE_LIMIT"])
    def export_pdf():
        """
        Export a story as a PDF download.

        Request JSON:
            storyId (int, required)
        """
        payload = request.get_json(silent=True)
        outcome = get_export_service().export_pdf(payload)
        if not outcome.is_ok:
            return error_response(outcome)
        return document_response(outcome.value)
