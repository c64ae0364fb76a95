"""Append-only asset history records: maintenance, state changes, movements."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from assetdesk.domain.models.asset import AssetState


class MaintenanceType(str, Enum):
    """Kind of maintenance performed on an asset."""

    Routine = "routine"
    Repair = "repair"
    Upgrade = "upgrade"


class AssetMaintenance(BaseModel):
    """Immutable maintenance log entry."""

    id: str
    maintenance_id: str = Field(..., description="Human-readable id, e.g. MT-1718000000000")
    asset_id: str = Field(..., description="Reference to the Asset document")
    performed_at: datetime = Field(default_factory=datetime.utcnow)
    performed_by: str = Field(..., description="Reference to the Admin")
    maintenance_type: MaintenanceType
    notes: str | None = None
    next_due_date: datetime | None = None

    model_config = ConfigDict(frozen=True)


class AssetStateHistory(BaseModel):
    """Immutable record of an asset state change."""

    id: str
    history_id: str
    asset_id: str
    previous_state: AssetState
    new_state: AssetState
    changed_at: datetime = Field(default_factory=datetime.utcnow)
    changed_by: str
    notes: str | None = None

    model_config = ConfigDict(frozen=True)


class AssetMovement(BaseModel):
    """Immutable record of an asset moving between rooms."""

    id: str
    movement_id: str
    asset_id: str
    from_office_id: str | None = Field(
        default=None, description="Previous room, None on first assignment"
    )
    to_office_id: str
    moved_at: datetime = Field(default_factory=datetime.utcnow)
    moved_by: str
    reason: str | None = None

    model_config = ConfigDict(frozen=True)
