"""SuggestionProvider abstract interface for AI resolution suggestions.

All LLM-backed implementations must conform to this interface so the triage
workflow never depends on a specific provider's wire format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from assetdesk.domain.models.suggestion import AISuggestion, IncidentInfo


class SuggestionProvider(ABC):
    """Abstract interface for incident resolution suggestion providers.

    Key Responsibilities:
    - Translate incident details into a provider-specific request
    - Normalize the provider response to an AISuggestion
    - Degrade to a deterministic fallback suggestion instead of raising

    Example Usage:
        ```python
        class GroqSuggestionAdapter(SuggestionProvider):
            async def suggest(self, incident: IncidentInfo) -> AISuggestion:
                # Build chat completion request, call Groq, parse JSON content
                ...

            def normalize_response(self, provider_response: Any) -> AISuggestion:
                ...
        ```
    """

    @abstractmethod
    async def suggest(self, incident: IncidentInfo) -> AISuggestion:
        """Produce a resolution suggestion for an incident.

        Implementations never raise for provider failures (missing key,
        timeout, malformed response); they return `fallback_suggestion`.

        Args:
            incident: Description, severity and department of the incident.

        Returns:
            AISuggestion: Diagnosis, measures, type, strategy and recommendation.
        """
        ...

    @abstractmethod
    def normalize_response(self, provider_response: Any) -> AISuggestion:
        """Normalize a raw provider response to an AISuggestion.

        Raises:
            ValueError: If the response carries no usable suggestion.
        """
        ...

    @abstractmethod
    def fallback_suggestion(self, incident: IncidentInfo) -> AISuggestion:
        """Deterministic suggestion used when the provider is unavailable."""
        ...

    async def close(self) -> None:
        """Release provider resources (HTTP clients)."""
        return None
