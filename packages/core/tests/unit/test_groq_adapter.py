"""Tests for GroqSuggestionAdapter."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from assetdesk.domain.interfaces.suggestion_provider import SuggestionProvider
from assetdesk.domain.models.suggestion import IncidentInfo
from assetdesk.infrastructure.adapters.groq_adapter import (
    FALLBACK_MEASURES,
    GroqSuggestionAdapter,
    strip_code_fences,
)


@pytest.fixture
def incident() -> IncidentInfo:
    return IncidentInfo(
        description="Switch on floor 2 keeps rebooting", severity="high", department="IT"
    )


@pytest.fixture
def adapter() -> GroqSuggestionAdapter:
    return GroqSuggestionAdapter(api_key="gsk_test_key_1234567890")


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _mock_client(mock_client_class: MagicMock, response: MagicMock | None = None) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client_class.return_value.__aenter__.return_value = mock_client
    if response is not None:
        mock_client.post = AsyncMock(return_value=response)
    return mock_client


def _response(payload: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


VALID_CONTENT = json.dumps(
    {
        "diagnosis": "Power supply failure",
        "measure": ["1. Check PSU", "2. Replace PSU"],
        "incident_type": "hardware|network",
        "resolution_strategy_type": "immediate_fix",
        "recommendation": "Use redundant power supplies",
    }
)


def test_is_suggestion_provider(adapter: GroqSuggestionAdapter) -> None:
    assert isinstance(adapter, SuggestionProvider)


def test_strip_code_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestSuggest:
    """Tests for suggest()."""

    @pytest.mark.asyncio
    async def test_success(self, adapter, incident) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class, _response(_completion(VALID_CONTENT)))

            suggestion = await adapter.suggest(incident)

        assert suggestion.diagnosis == "Power supply failure"
        assert suggestion.measure == ["1. Check PSU", "2. Replace PSU"]
        assert suggestion.incident_type == "hardware"
        assert suggestion.resolution_strategy_type == "immediate_fix"

        call = mock_client.post.await_args
        assert call.args[0] == "https://api.groq.com/openai/v1/chat/completions"
        assert call.kwargs["headers"]["Authorization"] == "Bearer gsk_test_key_1234567890"
        body = call.kwargs["json"]
        assert body["model"] == GroqSuggestionAdapter.MODEL
        assert "Switch on floor 2 keeps rebooting" in body["messages"][0]["content"]
        assert "- Department affected or where declared: IT" in body["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_fenced_content(self, adapter, incident) -> None:
        content = f"```json\n{VALID_CONTENT}\n```"
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_client(mock_client_class, _response(_completion(content)))

            suggestion = await adapter.suggest(incident)

        assert suggestion.diagnosis == "Power supply failure"

    @pytest.mark.asyncio
    async def test_missing_api_key_uses_fallback(self, incident) -> None:
        adapter = GroqSuggestionAdapter(api_key=None)
        with patch("httpx.AsyncClient") as mock_client_class:
            suggestion = await adapter.suggest(incident)

        mock_client_class.assert_not_called()
        assert suggestion.measure == FALLBACK_MEASURES
        assert suggestion.incident_type == "other"

    @pytest.mark.asyncio
    async def test_http_error_uses_fallback(self, adapter, incident) -> None:
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Server error",
            request=httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions"),
            response=httpx.Response(503),
        )
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_client(mock_client_class, response)

            suggestion = await adapter.suggest(incident)

        assert suggestion.diagnosis == incident.description
        assert suggestion.resolution_strategy_type == "immediate_fix"

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(self, adapter, incident) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post = AsyncMock(side_effect=httpx.TimeoutException("timed out"))

            suggestion = await adapter.suggest(incident)

        assert suggestion.measure == FALLBACK_MEASURES

    @pytest.mark.asyncio
    async def test_invalid_json_uses_fallback(self, adapter, incident) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_client(mock_client_class, _response(_completion("I think it is the PSU.")))

            suggestion = await adapter.suggest(incident)

        assert suggestion.measure == FALLBACK_MEASURES

    @pytest.mark.asyncio
    async def test_long_description_truncated_in_fallback(self) -> None:
        adapter = GroqSuggestionAdapter(api_key="")
        incident = IncidentInfo(description="x" * 150, severity="low")

        suggestion = await adapter.suggest(incident)

        assert suggestion.diagnosis.endswith("x" * 100 + "...")
        assert suggestion.diagnosis.startswith("AI analysis is not possible")


class TestNormalizeResponse:
    """Tests for normalize_response()."""

    def test_missing_fields_default(self, adapter) -> None:
        suggestion = adapter.normalize_response(_completion('{"diagnosis": "Cable"}'))

        assert suggestion.diagnosis == "Cable"
        assert suggestion.measure == ["Manually analyse the Incident"]
        assert suggestion.incident_type == "Not specified"
        assert suggestion.recommendation == "Not specified"

    @pytest.mark.parametrize(
        "payload",
        [{}, {"choices": []}, _completion("[1, 2]"), {"choices": [{"message": {"content": 3}}]}],
    )
    def test_unusable_payload_raises(self, adapter, payload) -> None:
        with pytest.raises(ValueError):
            adapter.normalize_response(payload)
