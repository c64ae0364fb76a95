"""In-memory document store implementation.

This module provides an in-memory implementation of the DocumentStore
interface using Python dictionaries and lists. It needs no external services
and is used for local development and tests.

Example:
    ```python
    from assetdesk.infrastructure.state_store.memory_store import InMemoryDocumentStore

    store = InMemoryDocumentStore()
    await store.save_room(Room(id=room_id, room_number="101", floor_number=1, building_name="A"))
    await store.create_asset(asset, history)
    views = await store.list_asset_views()
    ```
"""

import asyncio
from collections import Counter
from datetime import datetime

from assetdesk.domain.interfaces.document_store import (
    DocumentStore,
    DocumentStoreError,
    DuplicateDocumentError,
    IncidentQuery,
)
from assetdesk.domain.models.admin import Admin, AdminDepartment
from assetdesk.domain.models.analytics import (
    DailySeverityCount,
    DepartmentAssetStats,
    IssueSpan,
    ResolutionTypeStats,
)
from assetdesk.domain.models.asset import (
    LOCATED_STATES,
    Asset,
    AssetLocation,
    AssetState,
    AssetType,
    AssetView,
)
from assetdesk.domain.models.asset_history import (
    AssetMaintenance,
    AssetMovement,
    AssetStateHistory,
)
from assetdesk.domain.models.incident import (
    AIResolutionProposal,
    DepartmentSummary,
    Incident,
    IncidentResolution,
    IncidentStatus,
    IncidentView,
)
from assetdesk.domain.models.location import Department, Room


class InMemoryDocumentStore(DocumentStore):
    """In-memory implementation of DocumentStore.

    Thread Safety:
        - Write operations use a single asyncio.Lock
        - Read operations take no lock (dict reads are atomic in Python)

    Atomicity:
        Multi-document operations snapshot what they touch and restore it if
        any step raises, so a failed operation leaves no partial state.

    Attributes:
        _assets: Asset documents keyed by id (insertion ordered)
        _incidents: Incident documents keyed by id
        _maintenance / _state_history / _movements: append-only history lists
        _write_lock: asyncio.Lock for write operations
    """

    def __init__(self) -> None:
        self._assets: dict[str, Asset] = {}
        self._asset_types: dict[str, AssetType] = {}
        self._maintenance: list[AssetMaintenance] = []
        self._state_history: list[AssetStateHistory] = []
        self._movements: list[AssetMovement] = []
        self._rooms: dict[str, Room] = {}
        self._departments: dict[str, Department] = {}
        self._admins: dict[str, Admin] = {}
        self._admin_links: list[AdminDepartment] = []
        self._incidents: dict[str, Incident] = {}
        self._proposals: list[AIResolutionProposal] = []
        self._resolutions: list[IncidentResolution] = []

        self._write_lock = asyncio.Lock()

    # -- assets ----------------------------------------------------------

    async def count_assets(self) -> int:
        return len(self._assets)

    async def create_asset(
        self, asset: Asset, history: AssetStateHistory | None = None
    ) -> None:
        async with self._write_lock:
            if any(existing.asset_id == asset.asset_id for existing in self._assets.values()):
                raise DuplicateDocumentError(f"Asset id {asset.asset_id} already exists")
            self._insert_asset(asset, history)

    def _insert_asset(self, asset: Asset, history: AssetStateHistory | None) -> None:
        try:
            self._assets[asset.id] = asset
            try:
                if history is not None:
                    self._store_state_history(history)
            except Exception:
                del self._assets[asset.id]
                raise
        except Exception as e:
            raise DocumentStoreError(f"Failed to create asset {asset.asset_id}: {e}") from e

    async def get_asset(self, asset_id: str) -> Asset | None:
        return self._assets.get(asset_id)

    async def save_asset(self, asset: Asset) -> None:
        try:
            async with self._write_lock:
                self._assets[asset.id] = asset
        except Exception as e:
            raise DocumentStoreError(f"Failed to save asset {asset.id}: {e}") from e

    async def list_asset_views(self) -> list[AssetView]:
        try:
            return [self._build_asset_view(asset) for asset in list(self._assets.values())]
        except Exception as e:
            raise DocumentStoreError(f"Failed to list assets: {e}") from e

    async def get_asset_view(self, asset_id: str) -> AssetView | None:
        asset = self._assets.get(asset_id)
        if asset is None:
            return None
        return self._build_asset_view(asset)

    def _build_asset_view(self, asset: Asset) -> AssetView:
        """Join an asset with its type name and, for located states, its room."""
        asset_type = self._asset_types.get(asset.type_id)
        location = None
        if asset.state.value in LOCATED_STATES:
            room = self._rooms.get(asset.office_id) if asset.office_id else None
            department = (
                self._departments.get(room.department_id)
                if room is not None and room.department_id
                else None
            )
            location = AssetLocation(
                room_number=room.room_number if room else None,
                floor=room.floor_number if room else None,
                building=room.building_name if room else None,
                department=department.name if department else None,
            )
        return AssetView(
            id=asset.id,
            asset_id=asset.asset_id,
            model_number=asset.model_number,
            state=asset.state.value,
            date_in_production=asset.date_in_production,
            lifespan=asset.lifespan,
            maintenance_frequency=asset.maintenance_frequency,
            criticality=asset.criticality.value if asset.criticality else None,
            asset_type=asset_type.name if asset_type else None,
            location=location,
        )

    async def latest_maintenance_dates(self, asset_ids: list[str]) -> dict[str, datetime]:
        wanted = set(asset_ids)
        latest: dict[str, datetime] = {}
        for record in self._maintenance:
            if record.asset_id not in wanted:
                continue
            current = latest.get(record.asset_id)
            if current is None or record.performed_at > current:
                latest[record.asset_id] = record.performed_at
        return latest

    async def save_maintenance(self, record: AssetMaintenance) -> None:
        try:
            async with self._write_lock:
                self._maintenance.append(record)
        except Exception as e:
            raise DocumentStoreError(
                f"Failed to save maintenance {record.maintenance_id}: {e}"
            ) from e

    async def list_maintenance(self, asset_id: str) -> list[AssetMaintenance]:
        records = [r for r in self._maintenance if r.asset_id == asset_id]
        return sorted(reversed(records), key=lambda r: r.performed_at, reverse=True)

    async def count_overdue_maintenance(self, now: datetime) -> int:
        return sum(
            1
            for r in self._maintenance
            if r.next_due_date is not None and r.next_due_date < now
        )

    async def save_state_history(self, record: AssetStateHistory) -> None:
        try:
            async with self._write_lock:
                self._store_state_history(record)
        except Exception as e:
            raise DocumentStoreError(
                f"Failed to save state history {record.history_id}: {e}"
            ) from e

    def _store_state_history(self, record: AssetStateHistory) -> None:
        self._state_history.append(record)

    async def list_state_history(self, asset_id: str) -> list[AssetStateHistory]:
        records = [r for r in self._state_history if r.asset_id == asset_id]
        return sorted(reversed(records), key=lambda r: r.changed_at, reverse=True)

    async def save_movement(self, record: AssetMovement) -> None:
        try:
            async with self._write_lock:
                self._movements.append(record)
        except Exception as e:
            raise DocumentStoreError(f"Failed to save movement {record.movement_id}: {e}") from e

    async def list_movements(self, asset_id: str) -> list[AssetMovement]:
        records = [r for r in self._movements if r.asset_id == asset_id]
        return sorted(reversed(records), key=lambda r: r.moved_at, reverse=True)

    # -- asset types -----------------------------------------------------

    async def list_asset_types(self) -> list[AssetType]:
        return sorted(self._asset_types.values(), key=lambda t: t.name)

    async def find_asset_type_by_name(self, name: str) -> AssetType | None:
        wanted = name.strip().casefold()
        for asset_type in self._asset_types.values():
            if asset_type.name.casefold() == wanted:
                return asset_type
        return None

    async def save_asset_type(self, asset_type: AssetType) -> None:
        try:
            async with self._write_lock:
                self._asset_types[asset_type.id] = asset_type
        except Exception as e:
            raise DocumentStoreError(f"Failed to save asset type {asset_type.name}: {e}") from e

    # -- locations and admins --------------------------------------------

    async def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    async def save_room(self, room: Room) -> None:
        async with self._write_lock:
            self._rooms[room.id] = room

    async def list_rooms(self, department_ids: list[str] | None = None) -> list[Room]:
        rooms = list(self._rooms.values())
        if department_ids is None:
            return rooms
        wanted = set(department_ids)
        return [room for room in rooms if room.department_id in wanted]

    async def get_department(self, department_id: str) -> Department | None:
        return self._departments.get(department_id)

    async def save_department(self, department: Department) -> None:
        async with self._write_lock:
            self._departments[department.id] = department

    async def list_departments(self) -> list[Department]:
        return list(self._departments.values())

    async def create_department(
        self,
        department: Department,
        room_ids: list[str],
        admin_ids: list[str],
    ) -> Department:
        try:
            async with self._write_lock:
                rooms_snapshot = dict(self._rooms)
                links_snapshot = list(self._admin_links)
                try:
                    self._departments[department.id] = department
                    for room_id in room_ids:
                        room = self._rooms.get(room_id)
                        if room is not None and room.department_id is None:
                            self._rooms[room_id] = room.model_copy(
                                update={"department_id": department.id}
                            )
                    for admin_id in admin_ids:
                        self._store_admin_link(
                            AdminDepartment(admin_id=admin_id, department_id=department.id)
                        )
                except Exception:
                    self._departments.pop(department.id, None)
                    self._rooms = rooms_snapshot
                    self._admin_links = links_snapshot
                    raise
            return department
        except Exception as e:
            raise DocumentStoreError(
                f"Failed to create department {department.department_id}: {e}"
            ) from e

    async def assign_rooms(self, department_id: str, room_ids: list[str]) -> int:
        modified = 0
        async with self._write_lock:
            for room_id in dict.fromkeys(room_ids):
                room = self._rooms.get(room_id)
                if room is not None and room.department_id != department_id:
                    self._rooms[room_id] = room.model_copy(update={"department_id": department_id})
                    modified += 1
        return modified

    async def get_admin(self, admin_id: str) -> Admin | None:
        return self._admins.get(admin_id)

    async def save_admin(self, admin: Admin) -> None:
        async with self._write_lock:
            self._admins[admin.id] = admin

    async def list_admins(self, admin_ids: list[str] | None = None) -> list[Admin]:
        admins = list(self._admins.values())
        if admin_ids is None:
            return admins
        wanted = set(admin_ids)
        return [admin for admin in admins if admin.id in wanted]

    async def link_admin_department(self, link: AdminDepartment) -> None:
        async with self._write_lock:
            self._store_admin_link(link)

    def _store_admin_link(self, link: AdminDepartment) -> None:
        if link not in self._admin_links:
            self._admin_links.append(link)

    async def list_admin_links(
        self,
        admin_id: str | None = None,
        department_id: str | None = None,
    ) -> list[AdminDepartment]:
        return [
            link
            for link in self._admin_links
            if (admin_id is None or link.admin_id == admin_id)
            and (department_id is None or link.department_id == department_id)
        ]

    # -- incidents -------------------------------------------------------

    async def save_incident(self, incident: Incident) -> None:
        try:
            async with self._write_lock:
                self._incidents[incident.id] = incident
        except Exception as e:
            raise DocumentStoreError(f"Failed to save incident {incident.id}: {e}") from e

    async def get_incident(self, incident_id: str) -> Incident | None:
        return self._incidents.get(incident_id)

    async def query_incidents(self, query: IncidentQuery) -> list[IncidentView]:
        try:
            matches = [
                incident
                for incident in list(self._incidents.values())
                if self._matches_incident_filters(incident, query)
            ]
            matches.sort(key=lambda i: i.created_at, reverse=True)
            if query.limit is not None:
                matches = matches[: query.limit]
            return [self._build_incident_view(incident) for incident in matches]
        except Exception as e:
            raise DocumentStoreError(f"Failed to query incidents: {e}") from e

    async def count_incidents(self, query: IncidentQuery) -> int:
        return sum(
            1
            for incident in list(self._incidents.values())
            if self._matches_incident_filters(incident, query)
        )

    def _matches_incident_filters(self, incident: Incident, query: IncidentQuery) -> bool:
        """Check if an Incident matches query filters."""
        if query.status is not None and incident.status != query.status:
            return False
        if query.room_ids is not None and incident.room_id not in query.room_ids:
            return False
        if query.severity is not None and incident.severity.value != query.severity:
            return False
        if query.department_id is not None:
            room = self._rooms.get(incident.room_id)
            if room is None or room.department_id != query.department_id:
                return False
        if query.created_from is not None and incident.created_at < query.created_from:
            return False
        return not (query.created_to is not None and incident.created_at > query.created_to)

    def _build_incident_view(self, incident: Incident) -> IncidentView:
        room = self._rooms.get(incident.room_id)
        department = (
            self._departments.get(room.department_id)
            if room is not None and room.department_id
            else None
        )
        return IncidentView(
            **incident.model_dump(),
            room_number=room.room_number if room else None,
            floor_number=room.floor_number if room else None,
            building_name=room.building_name if room else None,
            department_id=room.department_id if room else None,
            department=(
                DepartmentSummary(name=department.name, contact=department.contact)
                if department
                else None
            ),
        )

    async def transition_incident(
        self,
        incident_id: str,
        expected_status: IncidentStatus,
        new_status: IncidentStatus,
        updated_at: datetime,
        proposal: AIResolutionProposal | None = None,
        resolution: IncidentResolution | None = None,
    ) -> Incident | None:
        try:
            async with self._write_lock:
                current = self._incidents.get(incident_id)
                if current is None or current.status != expected_status:
                    return None

                proposals_snapshot = list(self._proposals)
                resolutions_snapshot = list(self._resolutions)
                updated = current.model_copy(
                    update={"status": new_status, "updated_at": updated_at}
                )
                self._incidents[incident_id] = updated
                try:
                    if proposal is not None:
                        self._store_proposal(proposal)
                    if resolution is not None:
                        self._store_resolution(resolution)
                except Exception:
                    self._incidents[incident_id] = current
                    self._proposals = proposals_snapshot
                    self._resolutions = resolutions_snapshot
                    raise
                return updated
        except Exception as e:
            raise DocumentStoreError(f"Failed to transition incident {incident_id}: {e}") from e

    def _store_proposal(self, proposal: AIResolutionProposal) -> None:
        self._proposals.append(proposal)

    def _store_resolution(self, resolution: IncidentResolution) -> None:
        self._resolutions.append(resolution)

    async def get_proposal_for_incident(self, incident_id: str) -> AIResolutionProposal | None:
        for proposal in reversed(self._proposals):
            if proposal.incident_id == incident_id:
                return proposal
        return None

    async def list_resolutions(self, incident_id: str | None = None) -> list[IncidentResolution]:
        if incident_id is None:
            return list(self._resolutions)
        return [r for r in self._resolutions if r.incident_id == incident_id]

    # -- analytics -------------------------------------------------------

    async def count_assets_with_history(self, changed_before: datetime) -> int:
        return len({r.asset_id for r in self._state_history if r.changed_at < changed_before})

    async def issue_spans(self) -> list[IssueSpan]:
        spans: dict[str, list[datetime]] = {}
        for record in self._state_history:
            if record.new_state == AssetState.HasIssues:
                spans.setdefault(record.asset_id, []).append(record.changed_at)
        return [
            IssueSpan(
                asset_id=asset_id,
                first_issue_at=min(changes),
                last_issue_at=max(changes),
                issue_count=len(changes),
            )
            for asset_id, changes in spans.items()
        ]

    async def average_repair_hours(self) -> dict[str, float]:
        offsets: dict[str, list[float]] = {}
        for record in self._maintenance:
            if record.next_due_date is None:
                continue
            hours = (record.performed_at - record.next_due_date).total_seconds() / 3600
            offsets.setdefault(record.asset_id, []).append(hours)
        return {asset_id: sum(hours) / len(hours) for asset_id, hours in offsets.items()}

    async def department_asset_stats(self) -> list[DepartmentAssetStats]:
        frequencies: dict[str | None, list[float]] = {}
        assets = list(self._assets.values())
        for room in list(self._rooms.values()):
            department = self._departments.get(room.department_id) if room.department_id else None
            placed = [asset.maintenance_frequency for asset in assets if asset.office_id == room.id]
            frequencies.setdefault(department.name if department else None, []).extend(placed)
        return [
            DepartmentAssetStats(
                department=name,
                asset_count=len(values),
                average_maintenance_frequency=sum(values) / len(values) if values else None,
            )
            for name, values in frequencies.items()
        ]

    async def daily_incident_counts(
        self, created_from: datetime | None = None
    ) -> list[DailySeverityCount]:
        counts: Counter[tuple[str, str]] = Counter(
            (incident.created_at.strftime("%Y-%m-%d"), incident.severity.value)
            for incident in list(self._incidents.values())
            if created_from is None or incident.created_at >= created_from
        )
        return [
            DailySeverityCount(date=date, severity=severity, count=count)
            for (date, severity), count in counts.items()
        ]

    async def resolution_stats(
        self,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[ResolutionTypeStats]:
        durations: dict[str | None, list[float]] = {}
        for resolution in self._resolutions:
            incident = self._incidents.get(resolution.incident_id)
            if incident is None:
                continue
            if created_from is not None and incident.created_at < created_from:
                continue
            if created_to is not None and incident.created_at > created_to:
                continue
            hours = (resolution.resolution_time - incident.created_at).total_seconds() / 3600
            key = resolution.incident_type.value if resolution.incident_type else None
            durations.setdefault(key, []).append(hours)
        return [
            ResolutionTypeStats(
                incident_type=incident_type,
                count=len(hours),
                average_hours=sum(hours) / len(hours),
                min_hours=min(hours),
                max_hours=max(hours),
            )
            for incident_type, hours in durations.items()
        ]
