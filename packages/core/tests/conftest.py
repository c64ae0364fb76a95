"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from dotenv import load_dotenv

from assetdesk.domain.interfaces.observability_manager import ObservabilityManager
from assetdesk.domain.models.admin import Admin, AdminDepartment, AdminRole
from assetdesk.domain.models.asset import Asset, AssetState, AssetType, format_asset_id
from assetdesk.domain.models.incident import (
    Incident,
    IncidentResolution,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
)
from assetdesk.domain.models.location import Department, Room
from assetdesk.infrastructure.state_store.memory_store import InMemoryDocumentStore
from assetdesk.infrastructure.utils.validation import new_document_id

# Load .env file from project root
project_root = Path(__file__).parent.parent.parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)


class MockObservabilityManager(ObservabilityManager):
    """Observability manager that records events and logs for assertions."""

    def __init__(self, emit_error: bool = False) -> None:
        self.events: list[dict[str, Any]] = []
        self.logs: list[dict[str, Any]] = []
        self.emit_error = emit_error

    async def emit_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.emit_error:
            raise RuntimeError("event sink unavailable")
        self.events.append({"event_type": event_type, "payload": payload, "metadata": metadata})

    async def log(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.logs.append({"level": level, "message": message, "context": context})

    def event_types(self) -> list[str]:
        return [event["event_type"] for event in self.events]


@pytest.fixture
def observability() -> MockObservabilityManager:
    """Observability manager recording emitted events."""
    return MockObservabilityManager()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
async def org(store: InMemoryDocumentStore) -> SimpleNamespace:
    """Seed two departments with one room each, a laptop type and three admins.

    - `manager` is linked to Finance only
    - `superadmin` holds the elevated role and no links
    - `unassigned` is an incident manager without any department
    """
    finance = Department(id=new_document_id(), department_id="DEP-FIN", name="Finance")
    it = Department(
        id=new_document_id(), department_id="DEP-IT", name="IT", contact="it@example.com"
    )
    finance_room = Room(
        id=new_document_id(),
        room_number="101",
        floor_number=1,
        building_name="HQ",
        department_id=finance.id,
    )
    it_room = Room(
        id=new_document_id(),
        room_number="204",
        floor_number=2,
        building_name="HQ",
        department_id=it.id,
    )
    spare_room = Room(
        id=new_document_id(), room_number="B12", floor_number=-1, building_name="Annex"
    )
    laptop = AssetType(id=new_document_id(), name="Laptop", description="Portable computer")
    manager = Admin(
        id=new_document_id(),
        admin_id="mdupont",
        name="Marie Dupont",
        email="marie@example.com",
    )
    superadmin = Admin(
        id=new_document_id(),
        admin_id="root",
        name="Root Admin",
        email="root@example.com",
        role=AdminRole.SuperAdmin,
    )
    unassigned = Admin(
        id=new_document_id(),
        admin_id="nobody",
        name="No Department",
        email="nobody@example.com",
    )

    for department in (finance, it):
        await store.save_department(department)
    for room in (finance_room, it_room, spare_room):
        await store.save_room(room)
    for admin in (manager, superadmin, unassigned):
        await store.save_admin(admin)
    await store.save_asset_type(laptop)
    await store.link_admin_department(
        AdminDepartment(admin_id=manager.id, department_id=finance.id)
    )

    return SimpleNamespace(
        finance=finance,
        it=it,
        finance_room=finance_room,
        it_room=it_room,
        spare_room=spare_room,
        laptop=laptop,
        manager=manager,
        superadmin=superadmin,
        unassigned=unassigned,
    )


@pytest.fixture
def make_asset(store: InMemoryDocumentStore, org: SimpleNamespace):
    """Factory inserting an asset (no history) and returning it."""

    async def _make(
        state: AssetState = AssetState.InUse,
        maintenance_frequency: float = 6,
        date_in_production: datetime | None = datetime(2024, 1, 15),
        criticality: str | None = None,
        office_id: str | None = None,
    ) -> Asset:
        asset = Asset(
            id=new_document_id(),
            asset_id=format_asset_id(await store.count_assets() + 1),
            type_id=org.laptop.id,
            model_number="XPS-13",
            lifespan=5,
            maintenance_frequency=maintenance_frequency,
            criticality=criticality,
            state=state,
            date_in_production=date_in_production,
            office_id=office_id if office_id is not None else org.finance_room.id,
        )
        await store.create_asset(asset)
        return asset

    return _make


@pytest.fixture
def make_incident(store: InMemoryDocumentStore, org: SimpleNamespace):
    """Factory inserting an incident and returning it."""
    counter = {"value": 0}

    async def _make(
        severity: IncidentSeverity | str = IncidentSeverity.Medium,
        status: IncidentStatus = IncidentStatus.Pending,
        room_id: str | None = None,
        created_at: datetime | None = None,
        description: str = "Printer offline",
    ) -> Incident:
        counter["value"] += 1
        incident = Incident(
            id=new_document_id(),
            incident_id=f"INC-{counter['value']:04d}",
            description=description,
            severity=severity,
            status=status,
            reporter_full_name="Jean Martin",
            reporter_email="jean@example.com",
            room_id=room_id or org.finance_room.id,
            created_at=created_at or datetime(2024, 3, counter["value"], 9, 0),
        )
        await store.save_incident(incident)
        return incident

    return _make


@pytest.fixture
def resolve_incident(store: InMemoryDocumentStore, org: SimpleNamespace, make_incident):
    """Factory inserting an incident resolved `hours` after it was reported."""

    async def _resolve(
        hours: float,
        incident_type: IncidentType | None = IncidentType.Hardware,
        created_at: datetime | None = None,
        severity: IncidentSeverity | str = IncidentSeverity.Medium,
    ) -> Incident:
        incident = await make_incident(
            severity=severity, status=IncidentStatus.InProgress, created_at=created_at
        )
        resolution = IncidentResolution(
            id=new_document_id(),
            resolution_id=f"RES-{incident.incident_id}",
            incident_id=incident.id,
            admin_id=org.manager.id,
            resolution_time=incident.created_at + timedelta(hours=hours),
            incident_type=incident_type,
        )
        return await store.transition_incident(
            incident.id,
            expected_status=IncidentStatus.InProgress,
            new_status=IncidentStatus.Resolved,
            updated_at=resolution.resolution_time,
            resolution=resolution,
        )

    return _resolve
