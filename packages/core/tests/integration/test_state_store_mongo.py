"""Integration tests for MongoDocumentStore.

Need a running MongoDB server (MONGODB_URL, default mongodb://localhost:27017).
Tests that write multi-document transactions also need a replica set and
are skipped on a standalone server.
"""

import os
from collections.abc import AsyncIterator
from datetime import datetime, timedelta

import pytest
from motor.motor_asyncio import AsyncIOMotorClient

from assetdesk.domain.interfaces.document_store import (
    DocumentStoreError,
    DuplicateDocumentError,
    IncidentQuery,
)
from assetdesk.domain.models.admin import Admin, AdminDepartment
from assetdesk.domain.models.asset import Asset, AssetState, AssetType
from assetdesk.domain.models.asset_history import (
    AssetMaintenance,
    AssetStateHistory,
    MaintenanceType,
)
from assetdesk.domain.models.incident import (
    AIResolutionProposal,
    Incident,
    IncidentResolution,
    IncidentStatus,
    IncidentType,
)
from assetdesk.domain.models.location import Department, Room
from assetdesk.infrastructure.state_store.mongo_store import MongoDocumentStore
from assetdesk.infrastructure.utils.validation import new_document_id

pytestmark = pytest.mark.integration

TEST_DATABASE = "test_assetdesk"


@pytest.fixture
def mongodb_url() -> str:
    """Get MongoDB connection URL from environment or use default."""
    return os.getenv("MONGODB_URL", "mongodb://localhost:27017")


@pytest.fixture
async def server_info(mongodb_url: str) -> dict:
    """Skip when MongoDB is unreachable; return the server `hello` reply."""
    client = AsyncIOMotorClient(mongodb_url, serverSelectionTimeoutMS=2000)
    try:
        await client.admin.command("ping")
        hello = await client.admin.command("hello")
    except Exception:
        pytest.skip(
            "MongoDB is not available. Start MongoDB with 'docker-compose up -d' or set MONGODB_URL"
        )
    finally:
        client.close()
    return hello


@pytest.fixture
async def mongo_store(mongodb_url: str, server_info: dict) -> AsyncIterator[MongoDocumentStore]:
    """Initialized store on a scratch database, dropped afterwards."""
    store = MongoDocumentStore(
        connection_url=mongodb_url,
        database_name=TEST_DATABASE,
        server_selection_timeout_ms=3000,
    )
    await store.initialize()
    yield store
    client = AsyncIOMotorClient(mongodb_url)
    await client.drop_database(TEST_DATABASE)
    client.close()
    await store.close()


@pytest.fixture
def replica_set(server_info: dict) -> None:
    if "setName" not in server_info:
        pytest.skip("MongoDB transactions need a replica set")


def _asset(
    type_id: str,
    office_id: str,
    state: AssetState = AssetState.InUse,
    asset_id: str = "AST-0001",
) -> Asset:
    return Asset(
        id=new_document_id(),
        asset_id=asset_id,
        type_id=type_id,
        model_number="XPS-13",
        lifespan=5,
        maintenance_frequency=6,
        state=state,
        date_in_production=datetime(2024, 1, 15),
        office_id=office_id,
    )


async def _seed_location(store: MongoDocumentStore) -> tuple[Department, Room, AssetType]:
    department = Department(id=new_document_id(), department_id="DEP-FIN", name="Finance")
    room = Room(
        id=new_document_id(),
        room_number="101",
        floor_number=1,
        building_name="HQ",
        department_id=department.id,
    )
    asset_type = AssetType(id=new_document_id(), name="Laptop", description="Portable")
    await store.save_department(department)
    await store.save_room(room)
    await store.save_asset_type(asset_type)
    return department, room, asset_type


class TestConnection:
    """Connection lifecycle tests."""

    @pytest.mark.asyncio
    async def test_initialize_and_health(self, mongo_store: MongoDocumentStore) -> None:
        assert mongo_store._initialized is True
        assert await mongo_store.check_connection() is True

    @pytest.mark.asyncio
    async def test_close(self, mongodb_url: str, server_info: dict) -> None:
        store = MongoDocumentStore(connection_url=mongodb_url, database_name=TEST_DATABASE)
        await store.initialize()

        await store.close()

        assert store._client is None
        assert await store.check_connection() is False

    def test_missing_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MONGODB_URL", raising=False)

        with pytest.raises(DocumentStoreError, match="connection URL not provided"):
            MongoDocumentStore()

    @pytest.mark.asyncio
    async def test_unreachable_server(self) -> None:
        store = MongoDocumentStore(
            connection_url="mongodb://localhost:1",
            server_selection_timeout_ms=200,
            connect_timeout_ms=200,
        )

        with pytest.raises(DocumentStoreError):
            await store.initialize()

    @pytest.mark.asyncio
    async def test_closed_store_refuses_transactions(self) -> None:
        store = MongoDocumentStore(connection_url="mongodb://localhost:27017")
        await store.close()

        with pytest.raises(DocumentStoreError, match="client not initialized"):
            await store.create_asset(_asset(new_document_id(), new_document_id()))
        with pytest.raises(DocumentStoreError, match="client not initialized"):
            await store.transition_incident(
                new_document_id(),
                IncidentStatus.Pending,
                IncidentStatus.InProgress,
                datetime(2024, 3, 1),
            )


class TestAssets:
    """Asset persistence and joined views."""

    @pytest.mark.asyncio
    async def test_create_asset_with_history(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, asset_type = await _seed_location(mongo_store)
        asset = _asset(asset_type.id, room.id)
        history = AssetStateHistory(
            id=new_document_id(),
            history_id="HIS-1",
            asset_id=asset.id,
            previous_state=AssetState.InStock,
            new_state=AssetState.InUse,
            changed_by=new_document_id(),
        )

        await mongo_store.create_asset(asset, history)

        assert await mongo_store.get_asset(asset.id) == asset
        assert [h.history_id for h in await mongo_store.list_state_history(asset.id)] == [
            "HIS-1"
        ]
        assert await mongo_store.count_assets() == 1

    @pytest.mark.asyncio
    async def test_duplicate_asset_id(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, asset_type = await _seed_location(mongo_store)
        await mongo_store.create_asset(_asset(asset_type.id, room.id))

        with pytest.raises(DuplicateDocumentError):
            await mongo_store.create_asset(_asset(asset_type.id, room.id))

        assert await mongo_store.count_assets() == 1

    @pytest.mark.asyncio
    async def test_asset_view_joins_type_and_location(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, asset_type = await _seed_location(mongo_store)
        located = _asset(asset_type.id, room.id, AssetState.InUse)
        stocked = _asset(asset_type.id, room.id, AssetState.InStock, asset_id="AST-0002")
        await mongo_store.create_asset(located)
        await mongo_store.create_asset(stocked)

        views = {view.id: view for view in await mongo_store.list_asset_views()}

        assert views[located.id].asset_type == "Laptop"
        assert views[located.id].location.department == "Finance"
        assert views[located.id].location.room_number == "101"
        assert views[stocked.id].location is None

    @pytest.mark.asyncio
    async def test_latest_maintenance_dates(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, asset_type = await _seed_location(mongo_store)
        asset = _asset(asset_type.id, room.id)
        await mongo_store.create_asset(asset)
        for month in (2, 7, 4):
            await mongo_store.save_maintenance(
                AssetMaintenance(
                    id=new_document_id(),
                    maintenance_id=f"MT-{month}",
                    asset_id=asset.id,
                    performed_at=datetime(2024, month, 1),
                    performed_by=new_document_id(),
                    maintenance_type=MaintenanceType.Routine,
                    next_due_date=datetime(2024, month + 1, 1),
                )
            )

        latest = await mongo_store.latest_maintenance_dates([asset.id])

        assert latest == {asset.id: datetime(2024, 7, 1)}
        assert await mongo_store.count_overdue_maintenance(datetime(2024, 6, 1)) == 2
        assert [r.maintenance_id for r in await mongo_store.list_maintenance(asset.id)] == [
            "MT-7",
            "MT-4",
            "MT-2",
        ]

    @pytest.mark.asyncio
    async def test_asset_type_lookup_is_case_insensitive(
        self, mongo_store: MongoDocumentStore
    ) -> None:
        await mongo_store.save_asset_type(
            AssetType(id=new_document_id(), name="Printer", description="Network printer")
        )

        found = await mongo_store.find_asset_type_by_name("printer")

        assert found is not None
        assert found.name == "Printer"


class TestIncidents:
    """Incident queries and transactional transitions."""

    async def _incident(self, store: MongoDocumentStore, room_id: str, **kwargs) -> Incident:
        incident = Incident(
            id=new_document_id(),
            incident_id=f"INC-{new_document_id()[-4:]}",
            description="Printer offline",
            severity=kwargs.pop("severity", "medium"),
            reporter_full_name="Jean Martin",
            reporter_email="jean@example.com",
            room_id=room_id,
            **kwargs,
        )
        await store.save_incident(incident)
        return incident

    @pytest.mark.asyncio
    async def test_query_by_rooms_and_department(self, mongo_store: MongoDocumentStore) -> None:
        department, room, _ = await _seed_location(mongo_store)
        other_room = Room(id=new_document_id(), room_number="9", floor_number=0, building_name="B")
        await mongo_store.save_room(other_room)
        visible = await self._incident(mongo_store, room.id)
        await self._incident(mongo_store, other_room.id)

        by_room = await mongo_store.query_incidents(IncidentQuery(room_ids=[room.id]))
        by_department = await mongo_store.query_incidents(
            IncidentQuery(department_id=department.id)
        )

        assert [i.id for i in by_room] == [visible.id]
        assert [i.id for i in by_department] == [visible.id]
        assert by_room[0].department.name == "Finance"
        assert await mongo_store.count_incidents(IncidentQuery(room_ids=[])) == 0

    @pytest.mark.asyncio
    async def test_transition_with_proposal(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, _ = await _seed_location(mongo_store)
        incident = await self._incident(mongo_store, room.id)
        proposal = AIResolutionProposal(
            id=new_document_id(),
            proposal_id="PROP-1",
            incident_id=incident.id,
            admin_id=new_document_id(),
            diagnosis="Paper jam",
        )

        updated = await mongo_store.transition_incident(
            incident.id,
            expected_status=IncidentStatus.Pending,
            new_status=IncidentStatus.InProgress,
            updated_at=datetime(2024, 3, 2),
            proposal=proposal,
        )

        assert updated.status == IncidentStatus.InProgress
        assert await mongo_store.get_proposal_for_incident(incident.id) == proposal

    @pytest.mark.asyncio
    async def test_transition_from_wrong_status(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, _ = await _seed_location(mongo_store)
        incident = await self._incident(mongo_store, room.id, status=IncidentStatus.Closed)

        updated = await mongo_store.transition_incident(
            incident.id,
            expected_status=IncidentStatus.InProgress,
            new_status=IncidentStatus.Resolved,
            updated_at=datetime(2024, 3, 2),
        )

        assert updated is None
        assert (await mongo_store.get_incident(incident.id)).status == IncidentStatus.Closed


class TestDepartments:
    """Atomic department creation."""

    @pytest.mark.asyncio
    async def test_create_department(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        free_room = Room(id=new_document_id(), room_number="7", floor_number=0, building_name="B")
        admin = Admin(id=new_document_id(), admin_id="mdupont", name="Marie", email="m@x.io")
        await mongo_store.save_room(free_room)
        await mongo_store.save_admin(admin)
        department = Department(id=new_document_id(), department_id="DEP-HR", name="HR")

        await mongo_store.create_department(department, [free_room.id], [admin.id])

        assert (await mongo_store.get_room(free_room.id)).department_id == department.id
        assert await mongo_store.list_admin_links(admin_id=admin.id) == [
            AdminDepartment(admin_id=admin.id, department_id=department.id)
        ]
        assert [d.name for d in await mongo_store.list_departments()] == ["HR"]

    @pytest.mark.asyncio
    async def test_assign_rooms(self, mongo_store: MongoDocumentStore) -> None:
        department, room, _ = await _seed_location(mongo_store)
        free_room = Room(id=new_document_id(), room_number="7", floor_number=0, building_name="B")
        await mongo_store.save_room(free_room)

        modified = await mongo_store.assign_rooms(department.id, [free_room.id, room.id])

        assert modified == 1
        assert (await mongo_store.get_room(free_room.id)).department_id == department.id
        assert await mongo_store.assign_rooms(department.id, []) == 0


class TestAnalytics:
    """Aggregation pipelines behind the overview and the dashboard."""

    @pytest.mark.asyncio
    async def test_history_aggregates(self, mongo_store: MongoDocumentStore) -> None:
        _, room, asset_type = await _seed_location(mongo_store)
        asset = _asset(asset_type.id, room.id)
        await mongo_store.save_asset(asset)
        for changed_at in (datetime(2024, 1, 1), datetime(2024, 1, 3), datetime(2024, 1, 5)):
            await mongo_store.save_state_history(
                AssetStateHistory(
                    id=new_document_id(),
                    history_id=f"HIST-{new_document_id()}",
                    asset_id=asset.id,
                    previous_state=AssetState.InUse,
                    new_state=AssetState.HasIssues,
                    changed_at=changed_at,
                    changed_by="admin",
                )
            )

        (span,) = await mongo_store.issue_spans()

        assert (span.asset_id, span.issue_count) == (asset.id, 3)
        assert span.last_issue_at - span.first_issue_at == timedelta(days=4)
        assert await mongo_store.count_assets_with_history(datetime(2024, 1, 2)) == 1
        assert await mongo_store.count_assets_with_history(datetime(2023, 1, 1)) == 0

    @pytest.mark.asyncio
    async def test_repair_hours_and_department_stats(
        self, mongo_store: MongoDocumentStore
    ) -> None:
        _, room, asset_type = await _seed_location(mongo_store)
        spare = Room(id=new_document_id(), room_number="7", floor_number=0, building_name="B")
        await mongo_store.save_room(spare)
        asset = _asset(asset_type.id, room.id)
        await mongo_store.save_asset(asset)
        for next_due in (datetime(2024, 4, 30, 14), None):
            await mongo_store.save_maintenance(
                AssetMaintenance(
                    id=new_document_id(),
                    maintenance_id=f"MT-{new_document_id()}",
                    asset_id=asset.id,
                    performed_at=datetime(2024, 5, 1),
                    performed_by="admin",
                    maintenance_type=MaintenanceType.Repair,
                    next_due_date=next_due,
                )
            )

        stats = {row.department: row for row in await mongo_store.department_asset_stats()}

        assert await mongo_store.average_repair_hours() == {asset.id: 10.0}
        assert (stats["Finance"].asset_count, stats["Finance"].average_maintenance_frequency) == (
            1,
            6.0,
        )
        assert stats[None].asset_count == 0
        assert stats[None].average_maintenance_frequency is None

    @pytest.mark.asyncio
    async def test_daily_incident_counts(self, mongo_store: MongoDocumentStore) -> None:
        _, room, _ = await _seed_location(mongo_store)
        for severity, created_at in (
            ("low", datetime(2024, 3, 1, 8)),
            ("low", datetime(2024, 3, 1, 18)),
            ("high", datetime(2024, 3, 2, 8)),
        ):
            await mongo_store.save_incident(
                Incident(
                    id=new_document_id(),
                    incident_id=f"INC-{new_document_id()[-4:]}",
                    description="Printer offline",
                    severity=severity,
                    reporter_full_name="Jean Martin",
                    reporter_email="jean@example.com",
                    room_id=room.id,
                    created_at=created_at,
                )
            )

        rows = await mongo_store.daily_incident_counts(datetime(2024, 3, 1))

        assert sorted((r.date, r.severity, r.count) for r in rows) == [
            ("2024-03-01", "low", 2),
            ("2024-03-02", "high", 1),
        ]
        assert await mongo_store.daily_incident_counts(datetime(2024, 4, 1)) == []

    @pytest.mark.asyncio
    async def test_resolution_stats(
        self, mongo_store: MongoDocumentStore, replica_set: None
    ) -> None:
        _, room, _ = await _seed_location(mongo_store)
        for hours, created_at in ((2, datetime(2024, 3, 1)), (6, datetime(2024, 3, 2))):
            incident = Incident(
                id=new_document_id(),
                incident_id=f"INC-{new_document_id()[-4:]}",
                description="Printer offline",
                severity="medium",
                status=IncidentStatus.InProgress,
                reporter_full_name="Jean Martin",
                reporter_email="jean@example.com",
                room_id=room.id,
                created_at=created_at,
            )
            await mongo_store.save_incident(incident)
            await mongo_store.transition_incident(
                incident.id,
                expected_status=IncidentStatus.InProgress,
                new_status=IncidentStatus.Resolved,
                updated_at=created_at + timedelta(hours=hours),
                resolution=IncidentResolution(
                    id=new_document_id(),
                    resolution_id=f"RES-{new_document_id()}",
                    incident_id=incident.id,
                    admin_id=new_document_id(),
                    resolution_time=created_at + timedelta(hours=hours),
                    incident_type=IncidentType.Hardware,
                ),
            )

        (stats,) = await mongo_store.resolution_stats()

        assert stats.incident_type == "hardware"
        assert (stats.count, stats.average_hours) == (2, 4.0)
        assert (stats.min_hours, stats.max_hours) == (2.0, 6.0)
        assert await mongo_store.resolution_stats(created_from=datetime(2024, 3, 2)) != []
        assert await mongo_store.resolution_stats(created_to=datetime(2024, 2, 1)) == []
