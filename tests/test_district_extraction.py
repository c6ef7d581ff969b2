from __future__ import annotations

import pytest

from backend.services.ai_client import AICompletionError
from backend.services.district_service import (
    DistrictExtractionService,
    extract_json_object,
    fallback_district,
)


class StubCompletionClient:
    def __init__(self, response: str | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.calls: list[tuple[str, str]] = []

    def complete(self, prompt: str, model: str) -> str:
        self.calls.append((prompt, model))
        if self._error is not None:
            raise self._error
        return self._response or ""


def test_model_district_is_trimmed_and_returned():
    client = StubCompletionClient('{"district": "  Pune  "}')
    service = DistrictExtractionService(completion_client=client)

    assert service.extract_district("Flat 4, Baner Road, Pune, Maharashtra") == "Pune"
    prompt, _ = client.calls[0]
    assert "Baner Road" in prompt
    assert '{"district"' in prompt


def test_model_response_inside_code_fence_is_parsed():
    client = StubCompletionClient('Sure!\n```json\n{"district": "Chennai"}\n```')
    service = DistrictExtractionService(completion_client=client)

    assert service.extract_district("7 Anna Salai, Chennai, Tamil Nadu") == "Chennai"


@pytest.mark.parametrize(
    "address, expected",
    [
        ("12 MG Road, Indiranagar, Bengaluru, 560038", "Bengaluru"),
        ("Sector 5, Noida", "Sector 5"),
        ("  House 9 ,  Kochi  , Kerala ", "Kochi"),
        ("Kolkata", "Kolkata"),
        ("  Lone Street  ", "Lone Street"),
        ("", ""),
    ],
)
def test_fallback_uses_second_to_last_segment(address, expected):
    assert fallback_district(address) == expected


@pytest.mark.parametrize(
    "client",
    [
        StubCompletionClient(error=AICompletionError("timeout")),
        StubCompletionClient(error=RuntimeError("boom")),
        StubCompletionClient("not json at all"),
        StubCompletionClient('{"district": "   "}'),
        StubCompletionClient('{"city": "Mumbai"}'),
        StubCompletionClient('{"district": 42}'),
        StubCompletionClient("[1, 2, 3]"),
    ],
)
def test_degraded_model_output_falls_back(client):
    service = DistrictExtractionService(completion_client=client)

    district = service.extract_district("221B Baker St, Andheri, Mumbai")

    assert district == "Andheri"
    assert len(client.calls) == 1


def test_missing_client_uses_fallback_without_raising():
    service = DistrictExtractionService(completion_client=None)
    assert service.extract_district("Lane 3, Hyderabad, Telangana") == "Hyderabad"


def test_extract_json_object_handles_surrounding_text():
    assert extract_json_object('prefix {"district": "Goa"} suffix') == {"district": "Goa"}
    assert extract_json_object(None) is None
    assert extract_json_object("{broken") is None


@pytest.mark.parametrize("raw", [b'{"district": "Pune"}', {"district": "Pune"}, 17])
def test_non_text_model_output_falls_back(raw):
    client = StubCompletionClient(raw)
    service = DistrictExtractionService(completion_client=client)

    assert service.extract_district("a, Baner, Pune") == "Baner"
