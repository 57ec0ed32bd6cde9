"""
Provider selection.

``LLM_PROVIDER`` names the backend; each supported name maps to a builder
that reads its own settings. The app and the bot share one default provider
per process.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..config import Settings
from ..utils.llm import BaseLLMClient

logger = logging.getLogger(__name__)

_default_provider: Optional[BaseLLMClient] = None


def _build_gemini(settings: Settings, overrides: Dict[str, Any]) -> BaseLLMClient:
    from .gemini import GeminiProvider

    options = {
        "api_key": settings.google_api_key,
        "model_name": settings.llm_model,
        "temperature": settings.llm_temperature,
        "timeout": settings.llm_timeout,
    }
    options.update(overrides)
    return GeminiProvider(**options)


_BUILDERS: Dict[str, Callable[[Settings, Dict[str, Any]], BaseLLMClient]] = {
    "gemini": _build_gemini,
}
SUPPORTED_PROVIDERS = sorted(_BUILDERS)


def create_provider(
    provider_name: Optional[str] = None,
    settings: Optional[Settings] = None,
    **overrides
) -> BaseLLMClient:
    """
    Build a provider by name.

    Args:
        provider_name: Backend name (None uses LLM_PROVIDER)
        settings: Application settings (read from the environment if None)
        **overrides: Constructor arguments that replace the configured ones

    Raises:
        ValueError: For an unknown name or a provider missing its credentials
    """
    settings = settings or Settings.from_env()
    name = (provider_name or settings.llm_provider).lower()

    builder = _BUILDERS.get(name)
    if builder is None:
        raise ValueError(
            f"Unknown LLM provider: {name}. Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )
    return builder(settings, overrides)


def get_default_provider() -> BaseLLMClient:
    """Return the process-wide provider, building it from the environment on first use."""
    global _default_provider

    if _default_provider is None:
        _default_provider = create_provider()
        logger.info(f"Using {type(_default_provider).__name__} ({_default_provider.model_name})")

    return _default_provider


def reset_default_provider() -> None:
    global _default_provider
    _default_provider = None
