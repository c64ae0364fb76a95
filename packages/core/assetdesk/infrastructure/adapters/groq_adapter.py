"""Groq chat-completions adapter for incident resolution suggestions."""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import structlog

from assetdesk.domain.interfaces.suggestion_provider import SuggestionProvider
from assetdesk.domain.models.incident import IncidentType, ResolutionStrategyType
from assetdesk.domain.models.suggestion import AISuggestion, IncidentInfo

logger = structlog.get_logger(__name__)

NOT_SPECIFIED = "Not specified"

FALLBACK_MEASURES = [
    "1. Identify the components involved in the incident",
    "2. Check network connections and power supply",
    "3. Restart the relevant services/equipment",
    "4. Test the functionality after intervention",
    "5. Document the solution and escalate if necessary",
]

FALLBACK_RECOMMENDATION = (
    "Perform regular maintenance and updates to prevent similar incidents in the future."
)

SYSTEM_PROMPT = """You are an IT expert supporting the incident managers of the organization.
Your role is to provide a precise diagnosis and clear, practical resolution steps so that
reported problems are resolved effectively. Analyze the following incident and answer in
strict JSON.

INCIDENT RELEVANT DETAILS:
- Description: {description}
- Department affected or where declared: {department}
- Severity: {severity}

OBLIGATORY RESPONSE FORMAT (JSON only):
{{
  "diagnosis": "Most likely cause of the incident",
  "measure": [
    "1. Specific action to take",
    "2. Verification or test to perform",
    "3. Configuration to modify",
    "4. Escalation if necessary",
    "5. Final validation"
  ],
  "incident_type": "software|hardware|network|security|other",
  "resolution_strategy_type": "immediate_fix|workaround|long_term_solution",
  "recommendation": "Preventive measures to adopt to avoid recurrence of the incident"
}}

Now analyse the submitted incident and return a JSON response."""

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def strip_code_fences(content: str) -> str:
    """Return the JSON body of a reply that may be wrapped in markdown fences.

    >>> strip_code_fences('```json\\n{"a": 1}\\n```')
    '{"a": 1}'
    """
    content = content.strip()
    match = _FENCE_PATTERN.search(content)
    if match:
        return match.group(1).strip()
    return content


class GroqSuggestionAdapter(SuggestionProvider):
    """Groq (OpenAI-compatible) suggestion adapter.

    Sends the incident to the chat-completions endpoint and parses the JSON
    reply. Every failure degrades to `fallback_suggestion`, so callers never
    see provider errors.

    Example:
        ```python
        adapter = GroqSuggestionAdapter(api_key="gsk_...")
        suggestion = await adapter.suggest(
            IncidentInfo(description="Printer offline", severity="low", department="Finance")
        )
        ```
    """

    BASE_URL = "https://api.groq.com/openai/v1"
    """Groq API base URL."""

    MODEL = "llama-3.1-8b-instant"
    """Default chat model."""

    TIMEOUT = 30.0
    """Request timeout in seconds."""

    TEMPERATURE = 0.1
    MAX_TOKENS = 1000

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Groq API key. When empty, every call returns the fallback.
            base_url: Optional base URL override (for testing).
            model: Optional model override.
            timeout: Optional timeout override.
        """
        self.api_key = api_key or None
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.model = model or self.MODEL
        self.timeout = timeout or self.TIMEOUT

    def _build_request(self, incident: IncidentInfo) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": SYSTEM_PROMPT.format(
                        description=incident.description,
                        department=incident.department,
                        severity=incident.severity,
                    ),
                },
                {"role": "user", "content": f"Analyse this incident: {incident.description}"},
            ],
            "temperature": self.TEMPERATURE,
            "max_tokens": self.MAX_TOKENS,
        }

    async def suggest(self, incident: IncidentInfo) -> AISuggestion:
        if not self.api_key:
            logger.warning("suggestion_fallback_used", reason="missing_api_key")
            return self.fallback_suggestion(incident)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=self._build_request(incident),
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
                response.raise_for_status()
                response_data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "suggestion_fallback_used",
                reason="http_error",
                status_code=e.response.status_code,
            )
            return self.fallback_suggestion(incident)
        except httpx.TimeoutException:
            logger.warning("suggestion_fallback_used", reason="timeout", timeout=self.timeout)
            return self.fallback_suggestion(incident)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("suggestion_fallback_used", reason="request_failed", error=str(e))
            return self.fallback_suggestion(incident)

        try:
            return self.normalize_response(response_data)
        except ValueError as e:
            logger.warning("suggestion_fallback_used", reason="unparsable_response", error=str(e))
            return self.fallback_suggestion(incident)

    def normalize_response(self, provider_response: Any) -> AISuggestion:
        """Parse a chat-completions payload into an AISuggestion.

        Missing fields default to "Not specified"; a non-list `measure` is
        replaced by a single manual-analysis step. Pipe-delimited type and
        strategy fields are reduced to their first alternative.

        Raises:
            ValueError: If the payload has no message content or the content
                is not a JSON object.
        """
        try:
            content = provider_response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Missing message content: {e}") from e
        if not isinstance(content, str):
            raise ValueError("Message content is not text")

        try:
            parsed = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON content: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("JSON content is not an object")

        measure = parsed.get("measure")
        suggestion = AISuggestion(
            diagnosis=str(parsed.get("diagnosis") or NOT_SPECIFIED),
            measure=(
                [str(step) for step in measure]
                if isinstance(measure, list)
                else ["Manually analyse the Incident"]
            ),
            incident_type=str(parsed.get("incident_type") or NOT_SPECIFIED),
            resolution_strategy_type=str(parsed.get("resolution_strategy_type") or NOT_SPECIFIED),
            recommendation=str(parsed.get("recommendation") or NOT_SPECIFIED),
        )
        return suggestion.normalized()

    def fallback_suggestion(self, incident: IncidentInfo) -> AISuggestion:
        description = incident.description
        if len(description) > 100:
            diagnosis = (
                f"AI analysis is not possible in the meantime. Incident: {description[:100]}..."
            )
        else:
            diagnosis = description
        return AISuggestion(
            diagnosis=diagnosis,
            measure=list(FALLBACK_MEASURES),
            incident_type=IncidentType.Other.value,
            resolution_strategy_type=ResolutionStrategyType.ImmediateFix.value,
            recommendation=FALLBACK_RECOMMENDATION,
        )
