"""Incident, resolution and AI proposal models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assetdesk.domain.models.suggestion import first_alternative


class IncidentStatus(str, Enum):
    """Status of an incident in the triage workflow.

    pending -> in_progress -> resolved | closed. Resolved and closed are
    terminal.
    """

    Pending = "pending"
    InProgress = "in_progress"
    Resolved = "resolved"
    Closed = "closed"


class IncidentSeverity(str, Enum):
    Low = "low"
    Medium = "medium"
    High = "high"
    Critical = "critical"


class IncidentType(str, Enum):
    Software = "software"
    Hardware = "hardware"
    Network = "network"
    Security = "security"
    Other = "other"


class ResolutionStrategyType(str, Enum):
    ImmediateFix = "immediate_fix"
    Workaround = "workaround"
    LongTermSolution = "long_term_solution"


class Incident(BaseModel):
    """A reported problem tied to a room."""

    id: str
    incident_id: str
    description: str
    severity: IncidentSeverity
    status: IncidentStatus = IncidentStatus.Pending
    reporter_full_name: str
    reporter_email: str
    reporter_contact: str | None = None
    room_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(validate_assignment=True)


class DepartmentSummary(BaseModel):
    name: str
    contact: str = ""


class IncidentView(Incident):
    """Incident joined with its room and the room's department."""

    room_number: str | None = None
    floor_number: int | None = None
    building_name: str | None = None
    department_id: str | None = None
    department: DepartmentSummary | None = None


class IncidentResolution(BaseModel):
    """Terminal record written when an incident is marked resolved."""

    id: str
    resolution_id: str
    incident_id: str
    admin_id: str
    resolution_time: datetime = Field(default_factory=datetime.utcnow)
    incident_type: IncidentType | None = None
    diagnosis: str = ""
    resolution_strategy_type: ResolutionStrategyType | None = None
    measure: str = ""
    recommendation: str | None = None

    model_config = ConfigDict(frozen=True)


class AIResolutionProposal(BaseModel):
    """Machine-generated draft resolution saved during acknowledgement."""

    id: str
    proposal_id: str
    incident_id: str
    admin_id: str
    incident_type: IncidentType | None = None
    diagnosis: str = ""
    resolution_strategy_type: ResolutionStrategyType | None = None
    measure: str = ""
    recommendation: str | None = None

    model_config = ConfigDict(frozen=True)


class ResolutionDetails(BaseModel):
    """Operator-supplied resolution fields (from an AI suggestion or typed in).

    Pipe-delimited type/strategy values keep their first alternative, and a
    list of measures is joined one step per line.
    """

    incident_type: IncidentType | None = None
    diagnosis: str = ""
    resolution_strategy_type: ResolutionStrategyType | None = None
    measure: str = ""
    recommendation: str | None = None

    @field_validator("incident_type", "resolution_strategy_type", mode="before")
    @classmethod
    def take_first_alternative(cls, v: Any) -> Any:
        if isinstance(v, str):
            candidate = first_alternative(v)
            # "Not specified" is what the suggestion service returns for a missing field
            if not candidate or candidate.casefold() == "not specified":
                return None
            return candidate.lower()
        return v

    @field_validator("measure", mode="before")
    @classmethod
    def join_steps(cls, v: Any) -> Any:
        if isinstance(v, list):
            return "\n".join(str(step) for step in v)
        return v if v is not None else ""
