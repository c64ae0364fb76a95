"""DocumentStore interface for persistence of assets, incidents and locations.

This module defines the abstract DocumentStore interface that provides a
consistent API over the document database (MongoDB in production, an
in-memory store for development and tests).

Example:
    ```python
    from assetdesk.domain.interfaces.document_store import DocumentStore, IncidentQuery
    from assetdesk.infrastructure.state_store.memory_store import InMemoryDocumentStore

    store: DocumentStore = InMemoryDocumentStore()

    # Joined asset views (type name + conditional location)
    views = await store.list_asset_views()

    # Latest maintenance per asset, one query for the whole listing
    latest = await store.latest_maintenance_dates([v.id for v in views])

    # Pending incidents in a set of rooms
    query = IncidentQuery(status="pending", room_ids=["65f0..."])
    incidents = await store.query_incidents(query)
    ```
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from assetdesk.domain.models.admin import Admin, AdminDepartment
from assetdesk.domain.models.analytics import (
    DailySeverityCount,
    DepartmentAssetStats,
    IssueSpan,
    ResolutionTypeStats,
)
from assetdesk.domain.models.asset import Asset, AssetType, AssetView
from assetdesk.domain.models.asset_history import (
    AssetMaintenance,
    AssetMovement,
    AssetStateHistory,
)
from assetdesk.domain.models.incident import (
    AIResolutionProposal,
    Incident,
    IncidentResolution,
    IncidentStatus,
    IncidentView,
)
from assetdesk.domain.models.location import Department, Room


class IncidentQuery(BaseModel):
    """Filter parameters for incident queries.

    Attributes:
        status: Match this status. If None, matches all statuses.
        room_ids: Restrict to incidents in these rooms. None means no
            restriction; an empty list matches nothing.
        severity: Match this severity.
        department_id: Match incidents whose room belongs to this department.
        created_from: Lower bound (inclusive) on created_at.
        created_to: Upper bound (inclusive) on created_at.
    """

    status: IncidentStatus | None = None
    room_ids: list[str] | None = None
    severity: str | None = None
    department_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class DocumentStore(ABC):
    """Abstract interface for document persistence.

    Implementations must keep history records append-only and honour the
    atomicity of the multi-document operations (`create_asset` with a
    history entry, `transition_incident`, `create_department`).
    """

    # -- lifecycle -------------------------------------------------------

    async def initialize(self) -> None:
        """Prepare the store for use (connect, register models)."""

    async def close(self) -> None:
        """Release connections held by the store."""

    async def check_connection(self) -> bool:
        """Return True if the backing database is reachable."""
        return True

    # -- assets ----------------------------------------------------------

    @abstractmethod
    async def count_assets(self) -> int:
        """Return the number of asset documents."""

    @abstractmethod
    async def create_asset(
        self, asset: Asset, history: AssetStateHistory | None = None
    ) -> None:
        """Insert an asset and, if given, its initial state history entry atomically.

        Raises:
            DuplicateDocumentError: If another asset already uses `asset.asset_id`.
            DocumentStoreError: If either write fails. Neither is kept.
        """

    @abstractmethod
    async def get_asset(self, asset_id: str) -> Asset | None:
        """Retrieve an asset by document id."""

    @abstractmethod
    async def save_asset(self, asset: Asset) -> None:
        """Replace the live asset document."""

    @abstractmethod
    async def list_asset_views(self) -> list[AssetView]:
        """List all assets joined with type name and conditional location.

        Views are returned in insertion order.
        """

    @abstractmethod
    async def get_asset_view(self, asset_id: str) -> AssetView | None:
        """Joined view of a single asset."""

    @abstractmethod
    async def latest_maintenance_dates(self, asset_ids: list[str]) -> dict[str, datetime]:
        """Map each asset id to the `performed_at` of its most recent maintenance.

        Assets without maintenance records are absent from the result.
        """

    @abstractmethod
    async def save_maintenance(self, record: AssetMaintenance) -> None:
        """Append a maintenance record."""

    @abstractmethod
    async def list_maintenance(self, asset_id: str) -> list[AssetMaintenance]:
        """Maintenance records of an asset, newest first."""

    @abstractmethod
    async def count_overdue_maintenance(self, now: datetime) -> int:
        """Count maintenance records whose next_due_date is before `now`."""

    @abstractmethod
    async def save_state_history(self, record: AssetStateHistory) -> None:
        """Append a state history record."""

    @abstractmethod
    async def list_state_history(self, asset_id: str) -> list[AssetStateHistory]:
        """State history of an asset, newest first."""

    @abstractmethod
    async def save_movement(self, record: AssetMovement) -> None:
        """Append a movement record."""

    @abstractmethod
    async def list_movements(self, asset_id: str) -> list[AssetMovement]:
        """Movements of an asset, newest first."""

    # -- asset types -----------------------------------------------------

    @abstractmethod
    async def list_asset_types(self) -> list[AssetType]:
        """All asset types sorted by name."""

    @abstractmethod
    async def find_asset_type_by_name(self, name: str) -> AssetType | None:
        """Case-insensitive lookup by name."""

    @abstractmethod
    async def save_asset_type(self, asset_type: AssetType) -> None:
        """Insert or replace an asset type."""

    # -- locations and admins --------------------------------------------

    @abstractmethod
    async def get_room(self, room_id: str) -> Room | None:
        """Retrieve a room by id."""

    @abstractmethod
    async def save_room(self, room: Room) -> None:
        """Insert or replace a room."""

    @abstractmethod
    async def list_rooms(self, department_ids: list[str] | None = None) -> list[Room]:
        """Rooms, optionally restricted to the given departments."""

    @abstractmethod
    async def get_department(self, department_id: str) -> Department | None:
        """Retrieve a department by document id."""

    @abstractmethod
    async def save_department(self, department: Department) -> None:
        """Insert or replace a department."""

    @abstractmethod
    async def list_departments(self) -> list[Department]:
        """All departments in insertion order."""

    @abstractmethod
    async def assign_rooms(self, department_id: str, room_ids: list[str]) -> int:
        """Move the given rooms to a department, whatever they belonged to.

        Returns:
            The number of rooms whose department actually changed.
        """

    @abstractmethod
    async def create_department(
        self,
        department: Department,
        room_ids: list[str],
        admin_ids: list[str],
    ) -> Department:
        """Create a department, claim unassigned rooms and link admins atomically.

        Raises:
            DocumentStoreError: If any step fails. No partial state is kept.
        """

    @abstractmethod
    async def get_admin(self, admin_id: str) -> Admin | None:
        """Retrieve an admin by document id."""

    @abstractmethod
    async def save_admin(self, admin: Admin) -> None:
        """Insert or replace an admin."""

    @abstractmethod
    async def list_admins(self, admin_ids: list[str] | None = None) -> list[Admin]:
        """Admins, optionally restricted to the given ids."""

    @abstractmethod
    async def link_admin_department(self, link: AdminDepartment) -> None:
        """Assign an admin to a department (idempotent)."""

    @abstractmethod
    async def list_admin_links(
        self,
        admin_id: str | None = None,
        department_id: str | None = None,
    ) -> list[AdminDepartment]:
        """Admin/department links filtered by either side."""

    # -- incidents -------------------------------------------------------

    @abstractmethod
    async def save_incident(self, incident: Incident) -> None:
        """Insert or replace an incident."""

    @abstractmethod
    async def get_incident(self, incident_id: str) -> Incident | None:
        """Retrieve an incident by document id."""

    @abstractmethod
    async def query_incidents(self, query: IncidentQuery) -> list[IncidentView]:
        """Incidents joined with room and department, newest first."""

    @abstractmethod
    async def count_incidents(self, query: IncidentQuery) -> int:
        """Count incidents matching the query."""

    @abstractmethod
    async def transition_incident(
        self,
        incident_id: str,
        expected_status: IncidentStatus,
        new_status: IncidentStatus,
        updated_at: datetime,
        proposal: AIResolutionProposal | None = None,
        resolution: IncidentResolution | None = None,
    ) -> Incident | None:
        """Move an incident from `expected_status` to `new_status` atomically.

        The status update and the optional proposal/resolution insert either
        all succeed or are all rolled back.

        Returns:
            The updated incident, or None if no incident with that id is in
            `expected_status` (nothing is written in that case).

        Raises:
            DocumentStoreError: If a write fails. Nothing is kept.
        """

    @abstractmethod
    async def get_proposal_for_incident(self, incident_id: str) -> AIResolutionProposal | None:
        """The AI proposal saved for an incident, if any."""

    @abstractmethod
    async def list_resolutions(self, incident_id: str | None = None) -> list[IncidentResolution]:
        """Incident resolutions, optionally for a single incident."""

    # -- analytics -------------------------------------------------------
    # Aggregates come back in no particular order.

    @abstractmethod
    async def count_assets_with_history(self, changed_before: datetime) -> int:
        """Distinct assets with a state history record changed before the cutoff."""

    @abstractmethod
    async def issue_spans(self) -> list[IssueSpan]:
        """Per asset, the first and last transition into `has_issues` and their count."""

    @abstractmethod
    async def average_repair_hours(self) -> dict[str, float]:
        """Per asset, mean hours from `next_due_date` to `performed_at` of its maintenance.

        Records without `next_due_date` are ignored; assets left with none
        are absent from the result.
        """

    @abstractmethod
    async def department_asset_stats(self) -> list[DepartmentAssetStats]:
        """Asset count and mean maintenance frequency per department name.

        Built over rooms: every room contributes the assets whose office it
        is, and rooms without a department are grouped under None.
        """

    @abstractmethod
    async def daily_incident_counts(
        self, created_from: datetime | None = None
    ) -> list[DailySeverityCount]:
        """Incidents per creation day and severity, optionally from a date on."""

    @abstractmethod
    async def resolution_stats(
        self,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[ResolutionTypeStats]:
        """Resolution durations per incident type.

        Only resolutions whose incident exists and was created within the
        (inclusive) window are counted.
        """


class DocumentStoreError(Exception):
    """Raised when document store operations fail."""

    pass


class DuplicateDocumentError(DocumentStoreError):
    """Raised when an insert collides with a unique key such as an asset id."""

    pass
