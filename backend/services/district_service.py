"""District extraction from free-text pickup addresses."""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from backend.services.ai_client import TextCompletionClient
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_CODE_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)

DISTRICT_PROMPT_TEMPLATE = """You extract locations from postal addresses.

Identify the district or city in the address below.
Return ONLY a JSON object in exactly this format, with no other text:
{{"district": "<district or city name>"}}

Address:
{address}
"""


def extract_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Parse the first {...} block in model output, ignoring markdown fences."""
    if not text:
        return None
    cleaned = _CODE_FENCE_PATTERN.sub("", text).strip()
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace == -1 or last_brace < first_brace:
        return None
    try:
        parsed = json.loads(cleaned[first_brace : last_brace + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def fallback_district(address: str) -> str:
    """Second-to-last comma segment, or the last one when there is only one."""
    segments = address.split(",")
    if len(segments) >= 2:
        return segments[-2].strip()
    return segments[-1].strip()


class DistrictExtractionService:
    """Resolves a scheduling district; never raises to its caller."""

    def __init__(
        self,
        completion_client: Optional[TextCompletionClient] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._completion_client = completion_client

    def extract_district(self, address: str) -> str:
        district = self._extract_with_model(address)
        if district:
            return district

        fallback = fallback_district(address)
        logger.warning("District extraction degraded; using fallback parsing -> %r", fallback)
        return fallback

    def _extract_with_model(self, address: str) -> Optional[str]:
        if self._completion_client is None:
            return None
        prompt = DISTRICT_PROMPT_TEMPLATE.format(address=address)
        try:
            raw_text = self._completion_client.complete(prompt, self._settings.gemini_model)
        except Exception as exc:
            logger.warning("District extraction model call failed: %s", exc)
            return None
        if not isinstance(raw_text, str):
            logger.warning(
                "District extraction returned %s instead of text",
                type(raw_text).__name__,
            )
            return None

        parsed = extract_json_object(raw_text)
        if parsed is None:
            logger.warning("District extraction returned unparsable output")
            return None
        district = parsed.get("district")
        if not isinstance(district, str) or not district.strip():
            return None
        return district.strip()
