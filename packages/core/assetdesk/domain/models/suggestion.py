"""AI suggestion request/response models."""

from pydantic import BaseModel, Field


class IncidentInfo(BaseModel):
    """Incident details sent to the suggestion service."""

    description: str
    severity: str
    department: str = "Unknown"


class AISuggestion(BaseModel):
    """Structured resolution suggestion.

    `incident_type` and `resolution_strategy_type` may hold pipe-delimited
    alternatives as returned by the model ("software|network"); use
    `primary_incident_type` / `primary_strategy_type` to take the first one.
    """

    diagnosis: str
    measure: list[str] = Field(default_factory=list)
    incident_type: str
    resolution_strategy_type: str
    recommendation: str

    @property
    def primary_incident_type(self) -> str:
        return first_alternative(self.incident_type)

    @property
    def primary_strategy_type(self) -> str:
        return first_alternative(self.resolution_strategy_type)

    def normalized(self) -> "AISuggestion":
        """Copy of this suggestion with the first alternative of each multi-value field."""
        return self.model_copy(
            update={
                "incident_type": self.primary_incident_type,
                "resolution_strategy_type": self.primary_strategy_type,
            }
        )


def split_alternatives(value: str | None) -> list[str]:
    """Split a pipe-delimited field into its non-empty candidates.

    >>> split_alternatives("software|network")
    ['software', 'network']
    >>> split_alternatives(" | ")
    []
    """
    if not value:
        return []
    return [part.strip() for part in value.split("|") if part.strip()]


def first_alternative(value: str | None, default: str = "") -> str:
    candidates = split_alternatives(value)
    return candidates[0] if candidates else default
