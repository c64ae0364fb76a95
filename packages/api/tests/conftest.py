"""Shared fixtures for the AssetDesk API tests."""

import asyncio
from collections.abc import Iterator
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from assetdesk.domain.models.admin import Admin, AdminDepartment, AdminRole
from assetdesk.domain.models.asset import AssetType
from assetdesk.domain.models.incident import Incident, IncidentSeverity, IncidentStatus
from assetdesk.domain.models.location import Department, Room
from assetdesk.domain.models.suggestion import AISuggestion
from assetdesk.infrastructure.config.settings import AppSettings
from assetdesk.infrastructure.state_store.memory_store import InMemoryDocumentStore
from assetdesk.infrastructure.utils.validation import new_document_id
from assetdesk_api.main import create_app


def _incident(
    incident_id: str,
    room: Room,
    severity: IncidentSeverity,
    status: IncidentStatus,
    day: int,
) -> Incident:
    return Incident(
        id=new_document_id(),
        incident_id=incident_id,
        description="Printer offline",
        severity=severity,
        status=status,
        reporter_full_name="Jean Martin",
        reporter_email="jean@example.com",
        room_id=room.id,
        created_at=datetime(2024, 3, day, 9, 0),
    )


async def _seed(store: InMemoryDocumentStore) -> SimpleNamespace:
    finance = Department(id=new_document_id(), department_id="DEP-FIN", name="Finance")
    it = Department(id=new_document_id(), department_id="DEP-IT", name="IT")
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
        id=new_document_id(), admin_id="mdupont", name="Marie Dupont", email="marie@example.com"
    )
    superadmin = Admin(
        id=new_document_id(),
        admin_id="root",
        name="Root Admin",
        email="root@example.com",
        role=AdminRole.SuperAdmin,
    )

    for department in (finance, it):
        await store.save_department(department)
    for room in (finance_room, it_room, spare_room):
        await store.save_room(room)
    for admin in (manager, superadmin):
        await store.save_admin(admin)
    await store.save_asset_type(laptop)
    await store.link_admin_department(
        AdminDepartment(admin_id=manager.id, department_id=finance.id)
    )

    incidents = SimpleNamespace(
        finance_low=_incident(
            "INC-0001", finance_room, IncidentSeverity.Low, IncidentStatus.Pending, 1
        ),
        finance_critical=_incident(
            "INC-0002", finance_room, IncidentSeverity.Critical, IncidentStatus.Pending, 2
        ),
        it_pending=_incident(
            "INC-0003", it_room, IncidentSeverity.High, IncidentStatus.Pending, 3
        ),
        finance_working=_incident(
            "INC-0004", finance_room, IncidentSeverity.Medium, IncidentStatus.InProgress, 4
        ),
        it_working=_incident(
            "INC-0005", it_room, IncidentSeverity.High, IncidentStatus.InProgress, 5
        ),
    )
    for incident in vars(incidents).values():
        await store.save_incident(incident)

    return SimpleNamespace(
        finance=finance,
        it=it,
        finance_room=finance_room,
        it_room=it_room,
        spare_room=spare_room,
        laptop=laptop,
        manager=manager,
        superadmin=superadmin,
        incidents=incidents,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def seeded(store: InMemoryDocumentStore) -> SimpleNamespace:
    """Two departments, three rooms, a Laptop type, two admins and five incidents."""
    return asyncio.run(_seed(store))


@pytest.fixture
def suggestion() -> AISuggestion:
    return AISuggestion(
        diagnosis="Print spooler stuck",
        measure=["1. Restart the spooler", "2. Print a test page"],
        incident_type="software",
        resolution_strategy_type="immediate_fix",
        recommendation="Schedule spooler health checks",
    )


@pytest.fixture
def suggestion_provider(suggestion: AISuggestion) -> AsyncMock:
    provider = AsyncMock()
    provider.suggest.return_value = suggestion
    return provider


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(store_backend="memory", log_json=False)


@pytest.fixture
def client(
    settings: AppSettings,
    store: InMemoryDocumentStore,
    seeded: SimpleNamespace,
    suggestion_provider: AsyncMock,
) -> Iterator[TestClient]:
    """Test client with the lifespan running over the seeded store."""
    app = create_app(settings, document_store=store, suggestion_provider=suggestion_provider)
    with TestClient(app) as test_client:
        yield test_client
