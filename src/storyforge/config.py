"""
Application configuration.

Settings are read from environment variables (a ``.env`` file is loaded by the
entry points before this module is used). Integer and string values are
validated so that a bad deployment value fails fast at startup.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

# Go up 3 levels: storyforge -> src -> project root
_PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_DATABASE_PATH = _PROJECT_ROOT / "data" / "storyforge.db"


def get_env_int(var_name: str, default: int, min_value: int = 1, max_value: int = 100000) -> int:
    """Safely get and validate an integer environment variable."""
    value = os.getenv(var_name)
    if value is None or value == "":
        return default
    try:
        int_value = int(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a valid integer, got '{value}'")
    if int_value < min_value or int_value > max_value:
        raise ValueError(
            f"{var_name} must be between {min_value} and {max_value}, got {int_value}"
        )
    return int_value


def get_env_float(var_name: str, default: Optional[float]) -> Optional[float]:
    """Safely get a float environment variable."""
    value = os.getenv(var_name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a number, got '{value}'")


def get_env_str(var_name: str, default: str, allowed_values: Optional[List[str]] = None) -> str:
    """Safely get and validate a string environment variable."""
    value = os.getenv(var_name, default)
    if allowed_values and value not in allowed_values:
        raise ValueError(
            f"{var_name} must be one of {allowed_values}, got '{value}'"
        )
    return value


def get_env_bool(var_name: str, default: bool) -> bool:
    """Read a true/false environment flag."""
    value = os.getenv(var_name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime settings for the web app, the CLI and the bot."""

    env: str = "production"
    host: str = "0.0.0.0"
    port: int = 5000

    use_db_storage: bool = False
    database_path: Path = DEFAULT_DATABASE_PATH
    recent_stories_limit: int = 10

    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    default_rate_limits: List[str] = field(
        default_factory=lambda: ["200 per day", "50 per hour"]
    )

    llm_provider: str = "gemini"
    llm_model: str = "gemini-2.5-flash"
    llm_temperature: float = 0.7
    llm_timeout: Optional[float] = None
    google_api_key: Optional[str] = None

    telegram_bot_token: Optional[str] = None
    bot_session_ttl_seconds: int = 3600
    bot_poll_timeout: int = 30
    bot_workers: int = 8

    @property
    def debug(self) -> bool:
        return self.env == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            env=get_env_str("FLASK_ENV", "production"),
            host=get_env_str("HOST", "0.0.0.0"),
            port=get_env_int("PORT", 5000, min_value=1, max_value=65535),
            use_db_storage=get_env_bool("USE_DB_STORAGE", False),
            database_path=Path(os.getenv("DATABASE_PATH") or DEFAULT_DATABASE_PATH),
            recent_stories_limit=get_env_int("RECENT_STORIES_LIMIT", 10, min_value=1, max_value=100),
            rate_limit_enabled=get_env_bool("RATELIMIT_ENABLED", True),
            rate_limit_storage_uri=get_env_str("REDIS_URL", "memory://"),
            llm_provider=get_env_str("LLM_PROVIDER", "gemini").lower(),
            llm_model=get_env_str("LLM_MODEL", "gemini-2.5-flash"),
            llm_temperature=get_env_float("LLM_TEMPERATURE", 0.7),
            llm_timeout=get_env_float("LLM_TIMEOUT", None),
            google_api_key=os.getenv("GOOGLE_API_KEY") or None,
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            bot_session_ttl_seconds=get_env_int("BOT_SESSION_TTL_SECONDS", 3600, min_value=1, max_value=7 * 24 * 3600),
            bot_poll_timeout=get_env_int("BOT_POLL_TIMEOUT", 30, min_value=0, max_value=600),
            bot_workers=get_env_int("BOT_WORKERS", 8, min_value=1, max_value=64),
        )
