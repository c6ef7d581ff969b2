"""Text-completion collaborator backed by the Gemini REST API."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import requests

from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AICompletionError(Exception):
    """Raised when the language model call fails or returns no text."""


class TextCompletionClient(Protocol):
    def complete(self, prompt: str, model: str) -> str:
        ...


def extract_candidate_text(payload: dict[str, Any]) -> str:
    """Join the text parts of the first candidate in a generateContent payload."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))


class GeminiCompletionClient:
    """Calls models/{model}:generateContent with a bounded timeout."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_seconds: float,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def complete(self, prompt: str, model: str) -> str:
        url = f"{self._base_url}/models/{model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = self._session.post(
                url,
                params={"key": self._api_key},
                json=body,
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as exc:
            raise AICompletionError(f"Gemini request failed: {exc}") from exc
        except ValueError as exc:
            raise AICompletionError("Gemini returned a non-JSON response") from exc

        text = extract_candidate_text(payload)
        if not text.strip():
            raise AICompletionError("Gemini returned an empty response")
        return text


def build_completion_client(settings: Optional[Settings] = None) -> Optional[GeminiCompletionClient]:
    """Return a configured client, or None when no API key is set."""
    resolved = settings or get_settings()
    if not resolved.gemini_api_key:
        logger.warning("GOOGLE_API_KEY/GEMINI_API_KEY not set; district extraction will use fallback parsing")
        return None
    return GeminiCompletionClient(
        api_key=resolved.gemini_api_key,
        base_url=resolved.gemini_base_url,
        timeout_seconds=resolved.ai_request_timeout_seconds,
    )
