"""
Google Gemini provider.

Everything that touches ``google.generativeai`` stays in this module.
"""

import os
import logging
import time
from typing import Any, Dict, Optional

import google.generativeai as genai  # type: ignore[import-untyped]

from ..utils.llm import BaseLLMClient

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
MODEL_PREFIX = "models/"


def _full_model_name(model_name: str) -> str:
    """``gemini-2.5-flash`` and ``models/gemini-2.5-flash`` both become the latter."""
    return MODEL_PREFIX + model_name.replace(MODEL_PREFIX, "")


def _response_text(response: Any) -> str:
    try:
        return (response.text or "").strip()
    except ValueError:
        # The SDK raises when the candidate carries no text, e.g. a safety block
        candidates = getattr(response, "candidates", None) or []
        reason = getattr(candidates[0], "finish_reason", "UNKNOWN") if candidates else "UNKNOWN"
        logger.warning(f"Gemini returned no text (finish reason: {reason})")
        return ""


class GeminiProvider(BaseLLMClient):
    """
    Story provider backed by a Gemini model.

    The system prompt is attached to the model as its system instruction.
    JSON answers are requested through the ``application/json`` response
    MIME type.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_GEMINI_MODEL,
        temperature: float = 0.7,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            api_key: Google API key (falls back to GOOGLE_API_KEY)
            model_name: Gemini model, with or without the "models/" prefix
            temperature: Default sampling temperature
            timeout: Request timeout in seconds; None leaves it to the SDK

        Raises:
            ValueError: If no API key is available
        """
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY environment variable is required")

        genai.configure(api_key=self.api_key)
        self._model_name = _full_model_name(model_name)
        self.temperature = temperature
        self.timeout = timeout

    @property
    def model_name(self) -> str:
        return self._model_name

    def _request_options(self) -> Optional[Dict[str, float]]:
        return {"timeout": self.timeout} if self.timeout else None

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        json_response: bool = False,
    ) -> str:
        """Send one prompt and return the stripped answer ("" if the model gave no text)."""
        model = genai.GenerativeModel(self.model_name, system_instruction=system_prompt)

        config: Dict[str, Any] = {
            "temperature": self.temperature if temperature is None else temperature,
        }
        if json_response:
            config["response_mime_type"] = "application/json"

        started = time.monotonic()
        response = model.generate_content(
            prompt,
            generation_config=genai.GenerationConfig(**config),
            request_options=self._request_options(),
        )
        logger.debug(f"Gemini answered in {time.monotonic() - started:.2f}s")
        return _response_text(response)

    def check_availability(self) -> bool:
        """True if the configured model appears in the account's model list."""
        try:
            listed = {
                _full_model_name(model.name)
                for model in genai.list_models()
                if getattr(model, "name", None)
            }
        except Exception as e:
            logger.error(f"Could not list Gemini models: {e}", exc_info=True)
            return False

        if self.model_name not in listed:
            logger.warning(f"Gemini model '{self.model_name}' is not available for this API key")
            return False
        return True
