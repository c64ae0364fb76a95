"""MongoDB document store implementation.

This module provides a MongoDB-backed implementation of the DocumentStore
interface using motor (async MongoDB driver) and beanie (Pydantic-based ODM).
Joined views are built with aggregation pipelines (`$lookup`), and the
multi-document operations run inside MongoDB transactions, which require a
replica set deployment.

Example:
    ```python
    from assetdesk.infrastructure.state_store.mongo_store import MongoDocumentStore

    store = MongoDocumentStore("mongodb://localhost:27017", database_name="assetdesk")
    await store.initialize()

    views = await store.list_asset_views()
    ```
"""

import os
import re
from datetime import datetime
from typing import Any

import structlog
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReturnDocument
from pymongo.errors import (
    ConfigurationError,
    ConnectionFailure,
    DuplicateKeyError,
    NetworkTimeout,
    OperationFailure,
    ServerSelectionTimeoutError,
)

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
from assetdesk.infrastructure.state_store.mongo_models import (
    AdminDepartmentDocument,
    AdminDocument,
    AIResolutionProposalDocument,
    AssetDocument,
    AssetMaintenanceDocument,
    AssetMovementDocument,
    AssetStateHistoryDocument,
    AssetTypeDocument,
    DepartmentDocument,
    IncidentDocument,
    IncidentResolutionDocument,
    RoomDocument,
    initialize_beanie_models,
)

logger = structlog.get_logger(__name__)

MS_PER_HOUR = 3_600_000


def _asset_view_pipeline(match: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    """Asset ⋈ type ⋈ room ⋈ department, location only for located states."""
    pipeline: list[dict[str, Any]] = []
    if match:
        pipeline.append({"$match": match})
    pipeline.extend(
        [
            {
                "$lookup": {
                    "from": AssetTypeDocument.Settings.name,
                    "localField": "type_id",
                    "foreignField": "_id",
                    "as": "type_info",
                }
            },
            {"$unwind": {"path": "$type_info", "preserveNullAndEmptyArrays": True}},
            {
                "$lookup": {
                    "from": RoomDocument.Settings.name,
                    "localField": "office_id",
                    "foreignField": "_id",
                    "as": "room_info",
                }
            },
            {"$unwind": {"path": "$room_info", "preserveNullAndEmptyArrays": True}},
            {
                "$lookup": {
                    "from": DepartmentDocument.Settings.name,
                    "localField": "room_info.department_id",
                    "foreignField": "_id",
                    "as": "department_info",
                }
            },
            {"$unwind": {"path": "$department_info", "preserveNullAndEmptyArrays": True}},
            {"$sort": {"_id": 1}},
            {
                "$project": {
                    "_id": 1,
                    "asset_id": 1,
                    "model_number": 1,
                    "state": 1,
                    "date_in_production": 1,
                    "lifespan": 1,
                    "maintenance_frequency": 1,
                    "criticality": 1,
                    "asset_type": "$type_info.name",
                    "location": {
                        "$cond": {
                            "if": {"$in": ["$state", sorted(LOCATED_STATES)]},
                            "then": {
                                "room_number": "$room_info.room_number",
                                "floor": "$room_info.floor_number",
                                "building": "$room_info.building_name",
                                "department": "$department_info.name",
                            },
                            "else": "$$REMOVE",
                        }
                    },
                }
            },
        ]
    )
    return pipeline


def _incident_match(query: IncidentQuery) -> dict[str, Any]:
    match: dict[str, Any] = {}
    if query.status is not None:
        match["status"] = query.status.value
    if query.room_ids is not None:
        match["room_id"] = {"$in": list(query.room_ids)}
    if query.severity is not None:
        match["severity"] = query.severity
    if query.created_from is not None or query.created_to is not None:
        created: dict[str, datetime] = {}
        if query.created_from is not None:
            created["$gte"] = query.created_from
        if query.created_to is not None:
            created["$lte"] = query.created_to
        match["created_at"] = created
    return match


def _incident_pipeline(query: IncidentQuery) -> list[dict[str, Any]]:
    """Incident ⋈ room ⋈ department, filtered and sorted newest first."""
    pipeline: list[dict[str, Any]] = [
        {"$match": _incident_match(query)},
        {
            "$lookup": {
                "from": RoomDocument.Settings.name,
                "localField": "room_id",
                "foreignField": "_id",
                "as": "room",
            }
        },
        {"$unwind": {"path": "$room", "preserveNullAndEmptyArrays": True}},
    ]
    if query.department_id is not None:
        pipeline.append({"$match": {"room.department_id": query.department_id}})
    pipeline.extend(
        [
            {
                "$lookup": {
                    "from": DepartmentDocument.Settings.name,
                    "localField": "room.department_id",
                    "foreignField": "_id",
                    "as": "department",
                }
            },
            {"$unwind": {"path": "$department", "preserveNullAndEmptyArrays": True}},
            {"$sort": {"created_at": -1}},
        ]
    )
    if query.limit is not None:
        pipeline.append({"$limit": query.limit})
    return pipeline


def _incident_view_from_doc(doc: dict[str, Any]) -> IncidentView:
    room = doc.pop("room", None) or {}
    department = doc.pop("department", None)
    doc["id"] = doc.pop("_id")
    return IncidentView.model_validate(
        {
            **doc,
            "room_number": room.get("room_number"),
            "floor_number": room.get("floor_number"),
            "building_name": room.get("building_name"),
            "department_id": room.get("department_id"),
            "department": (
                DepartmentSummary(
                    name=department.get("name", ""), contact=department.get("contact", "")
                )
                if department
                else None
            ),
        }
    )


class MongoDocumentStore(DocumentStore):
    """MongoDB implementation of DocumentStore.

    Connection Configuration:
        - Connection string passed in or read from MONGODB_URL
        - Connection pooling configured via motor client options
        - Health check via ping operation

    Error Handling:
        - Connection errors raise DocumentStoreError with context
        - Every operation wraps driver errors in DocumentStoreError

    Attributes:
        _client: AsyncIOMotorClient instance for MongoDB connection
        _database_name: Name of the MongoDB database to use
        _initialized: Whether the connection has been initialized
    """

    def __init__(
        self,
        connection_url: str | None = None,
        database_name: str = "assetdesk",
        max_pool_size: int = 100,
        min_pool_size: int = 0,
        connect_timeout_ms: int = 20000,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """Initialize MongoDocumentStore with connection configuration.

        Args:
            connection_url: MongoDB connection string. If None, reads from
                the MONGODB_URL environment variable.
            database_name: Name of the MongoDB database to use.
            max_pool_size: Maximum number of connections in the pool.
            min_pool_size: Minimum number of connections in the pool.
            connect_timeout_ms: Connection timeout in milliseconds.
            server_selection_timeout_ms: Server selection timeout in milliseconds.

        Raises:
            DocumentStoreError: If the connection URL is missing or invalid.
        """
        if connection_url is None:
            connection_url = os.getenv("MONGODB_URL")
            if connection_url is None:
                raise DocumentStoreError(
                    "MongoDB connection URL not provided. Set MONGODB_URL or pass connection_url."
                )

        self._database_name = database_name
        self._initialized = False

        try:
            self._client: AsyncIOMotorClient | None = AsyncIOMotorClient(
                connection_url,
                maxPoolSize=max_pool_size,
                minPoolSize=min_pool_size,
                connectTimeoutMS=connect_timeout_ms,
                serverSelectionTimeoutMS=server_selection_timeout_ms,
            )
            logger.info(
                "mongodb_client_created",
                database=database_name,
                max_pool_size=max_pool_size,
                min_pool_size=min_pool_size,
            )
        except (ConfigurationError, ValueError) as e:
            error_msg = f"Invalid MongoDB connection URL: {e}"
            logger.error("mongodb_connection_error", error=error_msg)
            raise DocumentStoreError(error_msg) from e

    async def initialize(self) -> None:
        """Verify connectivity and register Beanie document models.

        Raises:
            DocumentStoreError: If connection or authentication fails.
        """
        if self._initialized:
            return

        if self._client is None:
            raise DocumentStoreError("MongoDB client not initialized")

        try:
            await self._client.admin.command("ping")
            await initialize_beanie_models(self._client[self._database_name])
            self._initialized = True
            logger.info("mongodb_initialized", database=self._database_name)
        except (ConnectionFailure, ServerSelectionTimeoutError, NetworkTimeout) as e:
            error_msg = f"Failed to connect to MongoDB: {e}"
            logger.error("mongodb_connection_failure", error=error_msg)
            raise DocumentStoreError(error_msg) from e
        except OperationFailure as e:
            # Error code 18 is AuthenticationFailed
            if e.code == 18 or "authentication" in str(e).lower():
                error_msg = f"MongoDB authentication failed: {e}"
                logger.error("mongodb_authentication_failure", error=error_msg)
                raise DocumentStoreError(error_msg) from e
            raise DocumentStoreError(f"MongoDB initialization failed: {e}") from e
        except Exception as e:
            error_msg = f"Unexpected error during MongoDB initialization: {e}"
            logger.error("mongodb_initialization_error", error=error_msg)
            raise DocumentStoreError(error_msg) from e

    async def check_connection(self) -> bool:
        if self._client is None:
            return False

        try:
            await self._client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("mongodb_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._initialized = False
            logger.info("mongodb_connection_closed")

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def _session_client(self) -> AsyncIOMotorClient:
        """Client for opening transaction sessions.

        Raises:
            DocumentStoreError: If the store was closed or never connected.
        """
        await self._ensure_initialized()
        if self._client is None:
            logger.error("mongodb_client_unavailable", database=self._database_name)
            raise DocumentStoreError("MongoDB client not initialized")
        return self._client

    def _fail(self, event: str, error_msg: str, e: Exception, **context: Any) -> DocumentStoreError:
        logger.error(event, error=error_msg, error_type=type(e).__name__, **context)
        return DocumentStoreError(error_msg)

    # -- assets ----------------------------------------------------------

    async def count_assets(self) -> int:
        await self._ensure_initialized()
        try:
            return await AssetDocument.find_all().count()
        except Exception as e:
            raise self._fail("mongodb_count_assets_error", f"Failed to count assets: {e}", e) from e

    async def create_asset(
        self, asset: Asset, history: AssetStateHistory | None = None
    ) -> None:
        """Insert the asset and its initial history entry in one transaction."""
        client = await self._session_client()
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    await AssetDocument.from_domain_model(asset).insert(session=session)
                    if history is not None:
                        await AssetStateHistoryDocument.from_domain_model(history).insert(
                            session=session
                        )
        except DuplicateKeyError as e:
            logger.warning("mongodb_duplicate_asset_id", asset_id=asset.asset_id)
            raise DuplicateDocumentError(f"Asset id {asset.asset_id} already exists") from e
        except Exception as e:
            raise self._fail(
                "mongodb_create_asset_error",
                f"Failed to create asset {asset.asset_id}: {e}",
                e,
                asset_id=asset.asset_id,
            ) from e

    async def get_asset(self, asset_id: str) -> Asset | None:
        await self._ensure_initialized()
        try:
            doc = await AssetDocument.get(asset_id)
            return doc.to_domain_model() if doc is not None else None
        except Exception as e:
            raise self._fail(
                "mongodb_get_asset_error", f"Failed to get asset {asset_id}: {e}", e
            ) from e

    async def save_asset(self, asset: Asset) -> None:
        await self._ensure_initialized()
        try:
            await AssetDocument.from_domain_model(asset).save()
        except Exception as e:
            raise self._fail(
                "mongodb_save_asset_error", f"Failed to save asset {asset.id}: {e}", e
            ) from e

    async def list_asset_views(self) -> list[AssetView]:
        await self._ensure_initialized()
        try:
            docs = await AssetDocument.aggregate(_asset_view_pipeline()).to_list()
            return [AssetView.model_validate({**doc, "id": doc["_id"]}) for doc in docs]
        except Exception as e:
            raise self._fail("mongodb_list_assets_error", f"Failed to list assets: {e}", e) from e

    async def get_asset_view(self, asset_id: str) -> AssetView | None:
        await self._ensure_initialized()
        try:
            docs = await AssetDocument.aggregate(
                _asset_view_pipeline({"_id": asset_id})
            ).to_list()
        except Exception as e:
            raise self._fail(
                "mongodb_get_asset_view_error", f"Failed to get asset {asset_id}: {e}", e
            ) from e
        if not docs:
            return None
        return AssetView.model_validate({**docs[0], "id": docs[0]["_id"]})

    async def latest_maintenance_dates(self, asset_ids: list[str]) -> dict[str, datetime]:
        """Single `$group` aggregation over all requested assets."""
        if not asset_ids:
            return {}
        await self._ensure_initialized()
        pipeline = [
            {"$match": {"asset_id": {"$in": list(asset_ids)}}},
            {"$group": {"_id": "$asset_id", "latest": {"$max": "$performed_at"}}},
        ]
        try:
            rows = await AssetMaintenanceDocument.aggregate(pipeline).to_list()
        except Exception as e:
            raise self._fail(
                "mongodb_latest_maintenance_error",
                f"Failed to fetch latest maintenance dates: {e}",
                e,
            ) from e
        return {row["_id"]: row["latest"] for row in rows if row.get("latest") is not None}

    async def save_maintenance(self, record: AssetMaintenance) -> None:
        await self._ensure_initialized()
        try:
            await AssetMaintenanceDocument.from_domain_model(record).insert()
        except Exception as e:
            raise self._fail(
                "mongodb_save_maintenance_error",
                f"Failed to save maintenance {record.maintenance_id}: {e}",
                e,
            ) from e

    async def list_maintenance(self, asset_id: str) -> list[AssetMaintenance]:
        await self._ensure_initialized()
        try:
            docs = (
                await AssetMaintenanceDocument.find(AssetMaintenanceDocument.asset_id == asset_id)
                .sort("-performed_at")
                .to_list()
            )
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_maintenance_error", f"Failed to list maintenance: {e}", e
            ) from e

    async def count_overdue_maintenance(self, now: datetime) -> int:
        await self._ensure_initialized()
        try:
            return await AssetMaintenanceDocument.find({"next_due_date": {"$lt": now}}).count()
        except Exception as e:
            raise self._fail(
                "mongodb_count_overdue_error", f"Failed to count overdue maintenance: {e}", e
            ) from e

    async def save_state_history(self, record: AssetStateHistory) -> None:
        await self._ensure_initialized()
        try:
            await AssetStateHistoryDocument.from_domain_model(record).insert()
        except Exception as e:
            raise self._fail(
                "mongodb_save_state_history_error",
                f"Failed to save state history {record.history_id}: {e}",
                e,
            ) from e

    async def list_state_history(self, asset_id: str) -> list[AssetStateHistory]:
        await self._ensure_initialized()
        try:
            docs = (
                await AssetStateHistoryDocument.find(
                    AssetStateHistoryDocument.asset_id == asset_id
                )
                .sort("-changed_at")
                .to_list()
            )
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_state_history_error", f"Failed to list state history: {e}", e
            ) from e

    async def save_movement(self, record: AssetMovement) -> None:
        await self._ensure_initialized()
        try:
            await AssetMovementDocument.from_domain_model(record).insert()
        except Exception as e:
            raise self._fail(
                "mongodb_save_movement_error",
                f"Failed to save movement {record.movement_id}: {e}",
                e,
            ) from e

    async def list_movements(self, asset_id: str) -> list[AssetMovement]:
        await self._ensure_initialized()
        try:
            docs = (
                await AssetMovementDocument.find(AssetMovementDocument.asset_id == asset_id)
                .sort("-moved_at")
                .to_list()
            )
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_movements_error", f"Failed to list movements: {e}", e
            ) from e

    # -- asset types -----------------------------------------------------

    async def list_asset_types(self) -> list[AssetType]:
        await self._ensure_initialized()
        try:
            docs = await AssetTypeDocument.find_all().sort("+name").to_list()
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_asset_types_error", f"Failed to list asset types: {e}", e
            ) from e

    async def find_asset_type_by_name(self, name: str) -> AssetType | None:
        await self._ensure_initialized()
        pattern = f"^{re.escape(name.strip())}$"
        try:
            doc = await AssetTypeDocument.find_one(
                {"name": {"$regex": pattern, "$options": "i"}}
            )
            return doc.to_domain_model() if doc is not None else None
        except Exception as e:
            raise self._fail(
                "mongodb_find_asset_type_error", f"Failed to find asset type {name}: {e}", e
            ) from e

    async def save_asset_type(self, asset_type: AssetType) -> None:
        await self._ensure_initialized()
        try:
            await AssetTypeDocument.from_domain_model(asset_type).save()
        except Exception as e:
            raise self._fail(
                "mongodb_save_asset_type_error",
                f"Failed to save asset type {asset_type.name}: {e}",
                e,
            ) from e

    # -- locations and admins --------------------------------------------

    async def get_room(self, room_id: str) -> Room | None:
        await self._ensure_initialized()
        try:
            doc = await RoomDocument.get(room_id)
            return doc.to_domain_model() if doc is not None else None
        except Exception as e:
            raise self._fail(
                "mongodb_get_room_error", f"Failed to get room {room_id}: {e}", e
            ) from e

    async def save_room(self, room: Room) -> None:
        await self._ensure_initialized()
        try:
            await RoomDocument.from_domain_model(room).save()
        except Exception as e:
            raise self._fail(
                "mongodb_save_room_error", f"Failed to save room {room.id}: {e}", e
            ) from e

    async def list_rooms(self, department_ids: list[str] | None = None) -> list[Room]:
        await self._ensure_initialized()
        try:
            if department_ids is None:
                docs = await RoomDocument.find_all().to_list()
            else:
                docs = await RoomDocument.find(
                    {"department_id": {"$in": list(department_ids)}}
                ).to_list()
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail("mongodb_list_rooms_error", f"Failed to list rooms: {e}", e) from e

    async def get_department(self, department_id: str) -> Department | None:
        await self._ensure_initialized()
        try:
            doc = await DepartmentDocument.get(department_id)
            return doc.to_domain_model() if doc is not None else None
        except Exception as e:
            raise self._fail(
                "mongodb_get_department_error", f"Failed to get department {department_id}: {e}", e
            ) from e

    async def save_department(self, department: Department) -> None:
        await self._ensure_initialized()
        try:
            await DepartmentDocument.from_domain_model(department).save()
        except Exception as e:
            raise self._fail(
                "mongodb_save_department_error",
                f"Failed to save department {department.id}: {e}",
                e,
            ) from e

    async def list_departments(self) -> list[Department]:
        await self._ensure_initialized()
        try:
            docs = await DepartmentDocument.find_all().sort("+_id").to_list()
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_departments_error", f"Failed to list departments: {e}", e
            ) from e

    async def create_department(
        self,
        department: Department,
        room_ids: list[str],
        admin_ids: list[str],
    ) -> Department:
        """Insert the department, claim unassigned rooms and link managers in one transaction."""
        client = await self._session_client()
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    await DepartmentDocument.from_domain_model(department).insert(session=session)
                    if room_ids:
                        await RoomDocument.get_motor_collection().update_many(
                            {"_id": {"$in": list(room_ids)}, "department_id": None},
                            {"$set": {"department_id": department.id}},
                            session=session,
                        )
                    for admin_id in admin_ids:
                        link = AdminDepartment(admin_id=admin_id, department_id=department.id)
                        await AdminDepartmentDocument.from_domain_model(link).save(
                            session=session
                        )
            return department
        except Exception as e:
            raise self._fail(
                "mongodb_create_department_error",
                f"Failed to create department {department.department_id}: {e}",
                e,
            ) from e

    async def assign_rooms(self, department_id: str, room_ids: list[str]) -> int:
        if not room_ids:
            return 0
        await self._ensure_initialized()
        try:
            result = await RoomDocument.get_motor_collection().update_many(
                {"_id": {"$in": list(room_ids)}},
                {"$set": {"department_id": department_id}},
            )
            return result.modified_count
        except Exception as e:
            raise self._fail(
                "mongodb_assign_rooms_error",
                f"Failed to assign rooms to department {department_id}: {e}",
                e,
            ) from e

    async def get_admin(self, admin_id: str) -> Admin | None:
        await self._ensure_initialized()
        try:
            doc = await AdminDocument.get(admin_id)
            return doc.to_domain_model() if doc is not None else None
        except Exception as e:
            raise self._fail(
                "mongodb_get_admin_error", f"Failed to get admin {admin_id}: {e}", e
            ) from e

    async def save_admin(self, admin: Admin) -> None:
        await self._ensure_initialized()
        try:
            await AdminDocument.from_domain_model(admin).save()
        except Exception as e:
            raise self._fail(
                "mongodb_save_admin_error", f"Failed to save admin {admin.id}: {e}", e
            ) from e

    async def list_admins(self, admin_ids: list[str] | None = None) -> list[Admin]:
        await self._ensure_initialized()
        try:
            if admin_ids is None:
                docs = await AdminDocument.find_all().to_list()
            else:
                docs = await AdminDocument.find({"_id": {"$in": list(admin_ids)}}).to_list()
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail("mongodb_list_admins_error", f"Failed to list admins: {e}", e) from e

    async def link_admin_department(self, link: AdminDepartment) -> None:
        await self._ensure_initialized()
        try:
            await AdminDepartmentDocument.from_domain_model(link).save()
        except Exception as e:
            raise self._fail(
                "mongodb_link_admin_error", f"Failed to link admin {link.admin_id}: {e}", e
            ) from e

    async def list_admin_links(
        self,
        admin_id: str | None = None,
        department_id: str | None = None,
    ) -> list[AdminDepartment]:
        await self._ensure_initialized()
        criteria: dict[str, Any] = {}
        if admin_id is not None:
            criteria["admin_id"] = admin_id
        if department_id is not None:
            criteria["department_id"] = department_id
        try:
            docs = await AdminDepartmentDocument.find(criteria).to_list()
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_admin_links_error", f"Failed to list admin links: {e}", e
            ) from e

    # -- incidents -------------------------------------------------------

    async def save_incident(self, incident: Incident) -> None:
        await self._ensure_initialized()
        try:
            await IncidentDocument.from_domain_model(incident).save()
        except Exception as e:
            raise self._fail(
                "mongodb_save_incident_error", f"Failed to save incident {incident.id}: {e}", e
            ) from e

    async def get_incident(self, incident_id: str) -> Incident | None:
        await self._ensure_initialized()
        try:
            doc = await IncidentDocument.get(incident_id)
            return doc.to_domain_model() if doc is not None else None
        except Exception as e:
            raise self._fail(
                "mongodb_get_incident_error", f"Failed to get incident {incident_id}: {e}", e
            ) from e

    async def query_incidents(self, query: IncidentQuery) -> list[IncidentView]:
        await self._ensure_initialized()
        try:
            docs = await IncidentDocument.aggregate(_incident_pipeline(query)).to_list()
            return [_incident_view_from_doc(doc) for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_query_incidents_error", f"Failed to query incidents: {e}", e
            ) from e

    async def count_incidents(self, query: IncidentQuery) -> int:
        await self._ensure_initialized()
        try:
            if query.department_id is None:
                return await IncidentDocument.find(_incident_match(query)).count()
            pipeline = _incident_pipeline(query) + [{"$count": "total"}]
            rows = await IncidentDocument.aggregate(pipeline).to_list()
            return rows[0]["total"] if rows else 0
        except Exception as e:
            raise self._fail(
                "mongodb_count_incidents_error", f"Failed to count incidents: {e}", e
            ) from e

    async def transition_incident(
        self,
        incident_id: str,
        expected_status: IncidentStatus,
        new_status: IncidentStatus,
        updated_at: datetime,
        proposal: AIResolutionProposal | None = None,
        resolution: IncidentResolution | None = None,
    ) -> Incident | None:
        """Conditional status update plus optional insert, in one transaction."""
        client = await self._session_client()
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    raw = await IncidentDocument.get_motor_collection().find_one_and_update(
                        {"_id": incident_id, "status": expected_status.value},
                        {"$set": {"status": new_status.value, "updated_at": updated_at}},
                        return_document=ReturnDocument.AFTER,
                        session=session,
                    )
                    if raw is None:
                        return None
                    if proposal is not None:
                        await AIResolutionProposalDocument.from_domain_model(proposal).insert(
                            session=session
                        )
                    if resolution is not None:
                        await IncidentResolutionDocument.from_domain_model(resolution).insert(
                            session=session
                        )
            raw["id"] = raw.pop("_id")
            return Incident.model_validate(raw)
        except Exception as e:
            raise self._fail(
                "mongodb_transition_incident_error",
                f"Failed to transition incident {incident_id}: {e}",
                e,
                incident_id=incident_id,
                new_status=new_status.value,
            ) from e

    async def get_proposal_for_incident(self, incident_id: str) -> AIResolutionProposal | None:
        await self._ensure_initialized()
        try:
            docs = (
                await AIResolutionProposalDocument.find(
                    AIResolutionProposalDocument.incident_id == incident_id
                )
                .sort("-_id")
                .limit(1)
                .to_list()
            )
            return docs[0].to_domain_model() if docs else None
        except Exception as e:
            raise self._fail(
                "mongodb_get_proposal_error",
                f"Failed to get proposal for incident {incident_id}: {e}",
                e,
            ) from e

    async def list_resolutions(self, incident_id: str | None = None) -> list[IncidentResolution]:
        await self._ensure_initialized()
        try:
            if incident_id is None:
                docs = await IncidentResolutionDocument.find_all().to_list()
            else:
                docs = await IncidentResolutionDocument.find(
                    IncidentResolutionDocument.incident_id == incident_id
                ).to_list()
            return [doc.to_domain_model() for doc in docs]
        except Exception as e:
            raise self._fail(
                "mongodb_list_resolutions_error", f"Failed to list resolutions: {e}", e
            ) from e

    # -- analytics -------------------------------------------------------

    async def _aggregate(
        self, document: Any, pipeline: list[dict[str, Any]], event: str, what: str
    ) -> list[dict[str, Any]]:
        await self._ensure_initialized()
        try:
            return await document.aggregate(pipeline).to_list()
        except Exception as e:
            raise self._fail(event, f"Failed to aggregate {what}: {e}", e) from e

    async def count_assets_with_history(self, changed_before: datetime) -> int:
        rows = await self._aggregate(
            AssetStateHistoryDocument,
            [
                {"$match": {"changed_at": {"$lt": changed_before}}},
                {"$group": {"_id": "$asset_id"}},
                {"$count": "total"},
            ],
            "mongodb_count_assets_with_history_error",
            "asset history",
        )
        return rows[0]["total"] if rows else 0

    async def issue_spans(self) -> list[IssueSpan]:
        rows = await self._aggregate(
            AssetStateHistoryDocument,
            [
                {"$match": {"new_state": AssetState.HasIssues.value}},
                {
                    "$group": {
                        "_id": "$asset_id",
                        "first_issue_at": {"$min": "$changed_at"},
                        "last_issue_at": {"$max": "$changed_at"},
                        "issue_count": {"$sum": 1},
                    }
                },
            ],
            "mongodb_issue_spans_error",
            "issue spans",
        )
        return [IssueSpan.model_validate({**row, "asset_id": row["_id"]}) for row in rows]

    async def average_repair_hours(self) -> dict[str, float]:
        rows = await self._aggregate(
            AssetMaintenanceDocument,
            [
                {"$match": {"next_due_date": {"$ne": None}}},
                {
                    "$group": {
                        "_id": "$asset_id",
                        "average_ms": {"$avg": {"$subtract": ["$performed_at", "$next_due_date"]}},
                    }
                },
            ],
            "mongodb_repair_hours_error",
            "repair durations",
        )
        return {
            row["_id"]: row["average_ms"] / MS_PER_HOUR
            for row in rows
            if row.get("average_ms") is not None
        }

    async def department_asset_stats(self) -> list[DepartmentAssetStats]:
        """Rooms joined with their assets and department, grouped by department name."""
        rows = await self._aggregate(
            RoomDocument,
            [
                {
                    "$lookup": {
                        "from": AssetDocument.Settings.name,
                        "localField": "_id",
                        "foreignField": "office_id",
                        "as": "assets",
                    }
                },
                {
                    "$lookup": {
                        "from": DepartmentDocument.Settings.name,
                        "localField": "department_id",
                        "foreignField": "_id",
                        "as": "department",
                    }
                },
                {"$unwind": {"path": "$department", "preserveNullAndEmptyArrays": True}},
                {"$unwind": {"path": "$assets", "preserveNullAndEmptyArrays": True}},
                {
                    "$group": {
                        "_id": "$department.name",
                        "asset_count": {
                            "$sum": {"$cond": [{"$ifNull": ["$assets._id", False]}, 1, 0]}
                        },
                        "average_maintenance_frequency": {
                            "$avg": "$assets.maintenance_frequency"
                        },
                    }
                },
            ],
            "mongodb_department_stats_error",
            "department asset stats",
        )
        return [
            DepartmentAssetStats.model_validate({**row, "department": row["_id"]}) for row in rows
        ]

    async def daily_incident_counts(
        self, created_from: datetime | None = None
    ) -> list[DailySeverityCount]:
        match: dict[str, Any] = {}
        if created_from is not None:
            match["created_at"] = {"$gte": created_from}
        rows = await self._aggregate(
            IncidentDocument,
            [
                {"$match": match},
                {
                    "$group": {
                        "_id": {
                            "date": {
                                "$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}
                            },
                            "severity": "$severity",
                        },
                        "count": {"$sum": 1},
                    }
                },
            ],
            "mongodb_daily_incidents_error",
            "daily incident counts",
        )
        return [
            DailySeverityCount(
                date=row["_id"]["date"], severity=row["_id"]["severity"], count=row["count"]
            )
            for row in rows
        ]

    async def resolution_stats(
        self,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[ResolutionTypeStats]:
        """Resolutions joined with their incident, durations grouped by incident type."""
        pipeline: list[dict[str, Any]] = [
            {
                "$lookup": {
                    "from": IncidentDocument.Settings.name,
                    "localField": "incident_id",
                    "foreignField": "_id",
                    "as": "incident",
                }
            },
            {"$unwind": "$incident"},
        ]
        created: dict[str, datetime] = {}
        if created_from is not None:
            created["$gte"] = created_from
        if created_to is not None:
            created["$lte"] = created_to
        if created:
            pipeline.append({"$match": {"incident.created_at": created}})
        pipeline.extend(
            [
                {
                    "$project": {
                        "incident_type": 1,
                        "hours": {
                            "$divide": [
                                {"$subtract": ["$resolution_time", "$incident.created_at"]},
                                MS_PER_HOUR,
                            ]
                        },
                    }
                },
                {
                    "$group": {
                        "_id": "$incident_type",
                        "count": {"$sum": 1},
                        "average_hours": {"$avg": "$hours"},
                        "min_hours": {"$min": "$hours"},
                        "max_hours": {"$max": "$hours"},
                    }
                },
            ]
        )
        rows = await self._aggregate(
            IncidentResolutionDocument,
            pipeline,
            "mongodb_resolution_stats_error",
            "resolution stats",
        )
        return [
            ResolutionTypeStats.model_validate({**row, "incident_type": row["_id"]})
            for row in rows
        ]
