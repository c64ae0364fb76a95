"""Asset data models and the asset state enum."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AssetState(str, Enum):
    """Lifecycle state of a tracked asset."""

    InStock = "in_stock"
    """Asset is stored and not assigned to a room."""

    InUse = "in_use"
    """Asset is deployed in a room and in active service."""

    Retired = "retired"
    """Asset has been taken out of service permanently."""

    HasIssues = "has_issues"
    """Asset is deployed but currently broken."""

    UnderMaintenance = "under_maintenance"
    """Asset is being serviced."""


LOCATED_STATES: frozenset[str] = frozenset(
    {AssetState.InUse.value, AssetState.UnderMaintenance.value, AssetState.HasIssues.value}
)
"""States for which the asset location is displayed."""


class Criticality(str, Enum):
    """Business-impact ranking of an asset."""

    Low = "low"
    Medium = "medium"
    High = "high"


class AssetType(BaseModel):
    """A category of equipment (laptop, printer, switch...)."""

    id: str = Field(..., description="Document identifier")
    name: str = Field(..., min_length=1)
    description: str = Field(default="")

    model_config = ConfigDict(str_strip_whitespace=True)


class Asset(BaseModel):
    """Represents a tracked piece of IT equipment.

    `asset_id` is the human-readable sequential identifier (AST-0001); `id`
    is the document identifier used for lookups and references.
    """

    id: str = Field(..., description="Document identifier")
    asset_id: str = Field(..., description="Human-readable identifier, e.g. AST-0001")
    type_id: str = Field(..., description="Reference to the AssetType")
    model_number: str = Field(..., min_length=1)
    lifespan: float = Field(..., description="Expected lifespan in years", gt=0)
    maintenance_frequency: float = Field(
        ..., description="Routine maintenance interval in months", gt=0
    )
    criticality: Criticality | None = None
    state: AssetState
    date_in_production: datetime | None = None
    office_id: str | None = Field(default=None, description="Reference to the Room")

    model_config = ConfigDict(
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    @field_validator("asset_id")
    @classmethod
    def validate_asset_id(cls, v: str) -> str:
        if not v.startswith("AST-"):
            raise ValueError("asset_id must start with 'AST-'")
        return v

    @field_validator("date_in_production")
    @classmethod
    def store_naive_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @property
    def is_located(self) -> bool:
        return self.state.value in LOCATED_STATES


class AssetLocation(BaseModel):
    """Location block of a joined asset view."""

    room_number: str | None = None
    floor: int | None = None
    building: str | None = None
    department: str | None = None


class AssetView(BaseModel):
    """Asset joined with its type name and, conditionally, its location.

    Fields are loosely typed on purpose: a view is read back from whatever
    the store holds and must never fail validation on a malformed record.
    """

    id: str
    asset_id: str | None = None
    model_number: str | None = None
    state: str | None = None
    date_in_production: datetime | None = None
    lifespan: Any = None
    maintenance_frequency: Any = None
    criticality: str | None = None
    asset_type: str | None = None
    location: AssetLocation | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("date_in_production", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        # Unparseable dates degrade to None instead of failing the whole listing.
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v)
            except ValueError:
                return None
        return None


def format_asset_id(sequence: int) -> str:
    """Format a sequence number as a human-readable asset id."""
    return f"AST-{sequence:04d}"
