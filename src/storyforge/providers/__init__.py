"""
LLM Provider implementations.

Currently supports Google Gemini API via GeminiProvider. The Gemini module is
imported lazily by the factory so the rest of the app loads without the SDK
being configured.
"""

from .factory import create_provider, get_default_provider, reset_default_provider

__all__ = [
    "create_provider",
    "get_default_provider",
    "reset_default_provider",
]
