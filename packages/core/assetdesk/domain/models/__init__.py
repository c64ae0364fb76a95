"""Domain models for AssetDesk."""

from assetdesk.domain.models.admin import Admin, AdminDepartment, AdminRole, AdminStatus
from assetdesk.domain.models.asset import (
    LOCATED_STATES,
    Asset,
    AssetLocation,
    AssetState,
    AssetType,
    AssetView,
    Criticality,
)
from assetdesk.domain.models.asset_history import (
    AssetMaintenance,
    AssetMovement,
    AssetStateHistory,
    MaintenanceType,
)
from assetdesk.domain.models.incident import (
    AIResolutionProposal,
    DepartmentSummary,
    Incident,
    IncidentResolution,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    IncidentView,
    ResolutionDetails,
    ResolutionStrategyType,
)
from assetdesk.domain.models.location import Department, DepartmentListing, Room
from assetdesk.domain.models.maintenance_due import DueKind, MaintenanceDue
from assetdesk.domain.models.suggestion import AISuggestion, IncidentInfo
from assetdesk.domain.models.system_error import (
    AssetDeskError,
    ErrorCategory,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "Admin",
    "AdminDepartment",
    "AdminRole",
    "AdminStatus",
    "LOCATED_STATES",
    "Asset",
    "AssetLocation",
    "AssetState",
    "AssetType",
    "AssetView",
    "Criticality",
    "AssetMaintenance",
    "AssetMovement",
    "AssetStateHistory",
    "MaintenanceType",
    "AIResolutionProposal",
    "DepartmentSummary",
    "Incident",
    "IncidentResolution",
    "IncidentSeverity",
    "IncidentStatus",
    "IncidentType",
    "IncidentView",
    "ResolutionDetails",
    "ResolutionStrategyType",
    "Department",
    "DepartmentListing",
    "Room",
    "DueKind",
    "MaintenanceDue",
    "AISuggestion",
    "IncidentInfo",
    "AssetDeskError",
    "ErrorCategory",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ValidationError",
]
