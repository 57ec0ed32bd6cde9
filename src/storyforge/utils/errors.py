"""
Error handling utilities for StoryForge.

Two kinds of failure live here. Storage and generation errors are raised
below the service layer and turned into outcomes by the services. Framework
failures (unknown routes, wrong methods, rate limits, crashes) never reach a
service; ``register_error_handlers`` answers them with the same JSON error
body the routes use.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class StorageError(Exception):
    """Raised when the underlying store fails."""


class StorageIntegrityError(StorageError):
    """Raised when a write violates a uniqueness or reference constraint."""


class GenerationError(Exception):
    """Raised when the external generation API does not yield a usable story."""

    DEFAULT_MESSAGE = "Failed to generate story. Please try again later."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.DEFAULT_MESSAGE)


class APIError(Exception):
    """Framework-level API error with a fixed status and error code."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RouteNotFoundError(APIError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, path: str):
        super().__init__(f"No endpoint at '{path}'.", {"path": path})


class MethodNotAllowedError(APIError):
    status_code = 405
    error_code = "METHOD_NOT_ALLOWED"

    def __init__(self, method: str, path: str):
        super().__init__(f"Method '{method}' not allowed for '{path}'.")


class RateLimitError(APIError):
    status_code = 429
    error_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, limit: Optional[str] = None):
        details = {"limit": limit} if limit else None
        super().__init__("Rate limit exceeded. Please try again later.", details)


def error_body(message: str, error_code: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build the JSON error body: {"error", "error_code", "details"?}."""
    body: Dict[str, Any] = {"error": message, "error_code": error_code}
    if details:
        body["details"] = details
    return body


def api_error_response(error: APIError):
    logger.info(f"{request.method} {request.path}: {type(error).__name__}: {error.message}")
    return jsonify(error_body(error.message, error.error_code, error.details)), error.status_code


def internal_error_response(error: Exception, debug: bool = False):
    """
    Answer an unexpected exception with a 500.

    The exception is always logged with its traceback. It is only echoed back
    to the client in debug mode.
    """
    logger.error(
        f"Unhandled error on {request.method} {request.path}: {type(error).__name__}: {error}",
        exc_info=error,
    )
    if not debug:
        return jsonify(error_body(INTERNAL_ERROR_MESSAGE, APIError.error_code)), 500

    body = error_body(str(error), APIError.error_code)
    body["error_type"] = type(error).__name__
    body["traceback"] = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
    return jsonify(body), 500


def register_error_handlers(app, debug: bool = False):
    """
    Register error handlers for the Flask app.

    Args:
        app: Flask application instance
        debug: Whether to include exception details in 500 responses
    """
    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        return api_error_response(error)

    @app.errorhandler(404)
    def handle_not_found(error):
        return api_error_response(RouteNotFoundError(request.path))

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return api_error_response(MethodNotAllowedError(request.method, request.path))

    @app.errorhandler(429)
    def handle_rate_limit(error):
        # flask-limiter puts the exceeded limit in the description, e.g. "10 per 1 minute"
        return api_error_response(RateLimitError(getattr(error, "description", None)))

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        error_code = (error.name or "HTTP_ERROR").upper().replace(" ", "_")
        return jsonify(error_body(error.description, error_code)), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        return internal_error_response(error, debug=debug)
