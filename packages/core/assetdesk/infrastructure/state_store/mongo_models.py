"""MongoDB document models using Beanie ODM.

This module provides Beanie document models for MongoDB persistence. Each
document mirrors a domain model field for field and stores its identifier as
a string `_id`, so `$lookup` joins work across collections. Collection names
follow the pluralized names of the existing application database.

Example:
    ```python
    from motor.motor_asyncio import AsyncIOMotorClient
    from assetdesk.infrastructure.state_store.mongo_models import initialize_beanie_models

    client = AsyncIOMotorClient("mongodb://localhost:27017")
    await initialize_beanie_models(client["assetdesk"])
    ```
"""

from datetime import datetime
from typing import Any, ClassVar

from beanie import Document, Indexed, init_beanie
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import IndexModel

from assetdesk.domain.models.admin import Admin, AdminDepartment, AdminRole, AdminStatus
from assetdesk.domain.models.asset import Asset, AssetState, AssetType, Criticality
from assetdesk.domain.models.asset_history import (
    AssetMaintenance,
    AssetMovement,
    AssetStateHistory,
    MaintenanceType,
)
from assetdesk.domain.models.incident import (
    AIResolutionProposal,
    Incident,
    IncidentResolution,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    ResolutionStrategyType,
)
from assetdesk.domain.models.location import Department, Room


class DomainDocumentMixin:
    """Conversion between a Beanie document and its domain model."""

    domain_model: ClassVar[type[BaseModel]]

    @classmethod
    def from_domain_model(cls, model: BaseModel) -> Any:
        """Create the document from a domain model instance."""
        return cls(**model.model_dump())

    def to_domain_model(self) -> Any:
        """Convert the document back to its domain model."""
        data = self.model_dump(exclude={"revision_id"})  # type: ignore[attr-defined]
        return self.domain_model.model_validate(data)


class AssetDocument(DomainDocumentMixin, Document):
    """Beanie document for Asset.

    Indexes:
        - asset_id: Unique human-readable identifier
        - state: Listing and overview grouping
    """

    domain_model: ClassVar[type[BaseModel]] = Asset

    id: str  # Maps to MongoDB _id
    asset_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    type_id: str
    model_number: str
    lifespan: float
    maintenance_frequency: float
    criticality: Criticality | None = None
    state: AssetState
    date_in_production: datetime | None = None
    office_id: str | None = None

    class Settings:
        name = "assets"
        indexes = [IndexModel([("state", 1)])]


class AssetTypeDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = AssetType

    id: str
    name: Indexed(str)  # type: ignore[valid-type]
    description: str = ""

    class Settings:
        name = "assettypes"


class AssetMaintenanceDocument(DomainDocumentMixin, Document):
    """Beanie document for AssetMaintenance (append-only)."""

    domain_model: ClassVar[type[BaseModel]] = AssetMaintenance

    id: str
    maintenance_id: str
    asset_id: str
    performed_at: datetime
    performed_by: str
    maintenance_type: MaintenanceType
    notes: str | None = None
    next_due_date: datetime | None = None

    class Settings:
        name = "assetmaintenances"
        indexes = [
            IndexModel([("asset_id", 1), ("performed_at", -1)]),  # latest per asset
            IndexModel([("next_due_date", 1)]),
        ]


class AssetStateHistoryDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = AssetStateHistory

    id: str
    history_id: str
    asset_id: str
    previous_state: AssetState
    new_state: AssetState
    changed_at: datetime
    changed_by: str
    notes: str | None = None

    class Settings:
        name = "assetstatehistories"
        indexes = [IndexModel([("asset_id", 1), ("changed_at", -1)])]


class AssetMovementDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = AssetMovement

    id: str
    movement_id: str
    asset_id: str
    from_office_id: str | None = None
    to_office_id: str
    moved_at: datetime
    moved_by: str
    reason: str | None = None

    class Settings:
        name = "assetmovements"
        indexes = [IndexModel([("asset_id", 1), ("moved_at", -1)])]


class RoomDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = Room

    id: str
    room_number: str
    floor_number: int
    building_name: str
    department_id: str | None = None

    class Settings:
        name = "rooms"
        indexes = [IndexModel([("department_id", 1)])]


class DepartmentDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = Department

    id: str
    department_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    name: str
    contact: str = ""

    class Settings:
        name = "departments"


class AdminDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = Admin

    id: str
    admin_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    name: str
    email: str
    phone: str = ""
    status: AdminStatus = AdminStatus.Active
    role: AdminRole = AdminRole.IncidentManager

    class Settings:
        name = "admins"


class AdminDepartmentDocument(DomainDocumentMixin, Document):
    """Admin/department link. The `_id` is derived from both sides, so links are unique."""

    domain_model: ClassVar[type[BaseModel]] = AdminDepartment

    id: str
    admin_id: Indexed(str)  # type: ignore[valid-type]
    department_id: Indexed(str)  # type: ignore[valid-type]

    class Settings:
        name = "admindepartments"

    @classmethod
    def from_domain_model(cls, model: BaseModel) -> "AdminDepartmentDocument":
        link = AdminDepartment.model_validate(model.model_dump())
        return cls(
            id=f"{link.admin_id}:{link.department_id}",
            admin_id=link.admin_id,
            department_id=link.department_id,
        )


class IncidentDocument(DomainDocumentMixin, Document):
    """Beanie document for Incident.

    Indexes:
        - room_id + status: Operator visibility queries
        - created_at: Newest-first listings
    """

    domain_model: ClassVar[type[BaseModel]] = Incident

    id: str
    incident_id: str
    description: str
    severity: IncidentSeverity
    status: IncidentStatus = IncidentStatus.Pending
    reporter_full_name: str
    reporter_email: str
    reporter_contact: str | None = None
    room_id: str
    created_at: datetime
    updated_at: datetime

    class Settings:
        name = "incidents"
        indexes = [
            IndexModel([("room_id", 1), ("status", 1)]),
            IndexModel([("created_at", -1)]),
        ]


class IncidentResolutionDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = IncidentResolution

    id: str
    resolution_id: str
    incident_id: Indexed(str)  # type: ignore[valid-type]
    admin_id: str
    resolution_time: datetime
    incident_type: IncidentType | None = None
    diagnosis: str = ""
    resolution_strategy_type: ResolutionStrategyType | None = None
    measure: str = ""
    recommendation: str | None = None

    class Settings:
        name = "incidentresolutions"


class AIResolutionProposalDocument(DomainDocumentMixin, Document):
    domain_model: ClassVar[type[BaseModel]] = AIResolutionProposal

    id: str
    proposal_id: str
    incident_id: Indexed(str)  # type: ignore[valid-type]
    admin_id: str
    incident_type: IncidentType | None = None
    diagnosis: str = ""
    resolution_strategy_type: ResolutionStrategyType | None = None
    measure: str = ""
    recommendation: str | None = None

    class Settings:
        name = "airesolutionproposals"


DOCUMENT_MODELS: list[type[Document]] = [
    AssetDocument,
    AssetTypeDocument,
    AssetMaintenanceDocument,
    AssetStateHistoryDocument,
    AssetMovementDocument,
    RoomDocument,
    DepartmentDocument,
    AdminDocument,
    AdminDepartmentDocument,
    IncidentDocument,
    IncidentResolutionDocument,
    AIResolutionProposalDocument,
]


async def initialize_beanie_models(database: AsyncIOMotorDatabase) -> None:
    """Initialize Beanie with all document models.

    Registers all document models and creates their indexes. Call once at
    application startup.

    Raises:
        Exception: If Beanie initialization fails.
    """
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
