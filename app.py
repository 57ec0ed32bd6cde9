"""Flask web app for StoryForge."""

# Load environment variables from .env file before other imports
from dotenv import load_dotenv  # type: ignore[import-untyped]

load_dotenv()  # noqa: E402

import logging  # noqa: E402
from typing import Optional  # noqa: E402
from flask import Flask  # noqa: E402
from flask_cors import CORS  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter import Limiter  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter.util import get_remote_address  # type: ignore[import-untyped]  # noqa: E402
from src.storyforge.config import Settings  # noqa: E402
from src.storyforge.api import register_routes  # noqa: E402
from src.storyforge.services import (  # noqa: E402
    StoryExportService,
    StoryGenerationService,
    StoryService,
)
from src.storyforge.utils import create_storage, StoryGenerationClient  # noqa: E402
from src.storyforge.utils.errors import register_error_handlers  # noqa: E402
from src.storyforge.utils.storage import StoryStorage  # noqa: E402

_settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if _settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

GENERATE_RATE_LIMIT = "10 per minute"
EXPORT_RATE_LIMIT = "50 per hour"
READ_RATE_LIMIT = "100 per hour"


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StoryStorage] = None,
    generation_client: Optional[StoryGenerationClient] = None
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        settings: Runtime settings (read from the environment if None)
        storage: Story store (chosen from settings if None)
        generation_client: Story generation client (uses the default LLM provider if None)

    Returns:
        Configured Flask app with routes, rate limiting and error handlers
    """
    settings = settings or _settings

    flask_app = Flask(__name__, static_folder='static', template_folder='templates')
    flask_app.config.update(
        RATELIMIT_ENABLED=settings.rate_limit_enabled,
        GENERATE_RATE_LIMIT=GENERATE_RATE_LIMIT,
        EXPORT_RATE_LIMIT=EXPORT_RATE_LIMIT,
        READ_RATE_LIMIT=READ_RATE_LIMIT,
    )
    CORS(flask_app)

    # Configure rate limiting
    limiter = Limiter(
        app=flask_app,
        key_func=get_remote_address,
        default_limits=settings.default_rate_limits,
        storage_uri=settings.rate_limit_storage_uri,  # Use Redis in production if available
        headers_enabled=True
    )

    if storage is None:
        storage = create_storage(settings)
    if generation_client is None:
        generation_client = StoryGenerationClient()

    # Route decorators only hold a weak reference to the limiter
    flask_app.extensions["story_limiter"] = limiter
    flask_app.extensions["story_storage"] = storage
    flask_app.extensions["story_service"] = StoryService(
        storage, recent_limit=settings.recent_stories_limit
    )
    flask_app.extensions["story_generation_service"] = StoryGenerationService(storage, generation_client)
    flask_app.extensions["story_export_service"] = StoryExportService(storage)

    register_error_handlers(flask_app, debug=settings.debug)
    register_routes(flask_app, limiter)

    logger.info(f"Story storage initialized with {storage.count_stories()} stories")
    return flask_app


def check_llm_setup(settings: Settings) -> None:
    """
    Check LLM setup and log helpful feedback at startup.

    Verifies that GOOGLE_API_KEY is set and that the configured model is
    listed by the API. Generation requests fail with a 500 until it is.
    """
    if not settings.google_api_key:
        logger.warning(
            "GOOGLE_API_KEY not set: story generation will fail until it is configured "
            "(get a key from https://aistudio.google.com/app/apikey)"
        )
        return

    try:
        from src.storyforge.providers import get_default_provider

        provider = get_default_provider()
        if provider.check_availability():
            logger.info(f"Google Gemini API ready: using model '{provider.model_name}'")
        else:
            logger.warning(f"Google Gemini API configured but model '{provider.model_name}' may not be available")
    except ValueError as e:
        logger.warning(f"Could not initialize LLM provider: {e}")


app = create_app()


if __name__ == '__main__':
    check_llm_setup(_settings)
    app.run(debug=_settings.debug, host=_settings.host, port=_settings.port)
