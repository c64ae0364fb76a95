"""
Asset endpoints: enriched listing, creation, types, history-tracked updates and overview.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Query, status
from pydantic import BaseModel, Field

from assetdesk.domain.components.asset_enrichment import AssetEnrichmentEngine
from assetdesk.domain.components.asset_lifecycle import AssetLifecycleManager
from assetdesk.domain.components.asset_overview import AssetOverview
from assetdesk.domain.components.department_directory import DepartmentDirectory
from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.domain.models.system_error import NotFoundError
from assetdesk.infrastructure.utils.validation import validate_object_id
from assetdesk_api.dependencies import (
    get_asset_overview,
    get_department_directory,
    get_document_store,
    get_enrichment_engine,
    get_lifecycle_manager,
)
from assetdesk_api.serialization import asset_view_json, to_json

router = APIRouter()


class AssetTypeCreateRequest(BaseModel):
    name: str | None = None
    description: str | None = None


class StateChangeRequest(BaseModel):
    asset_id: str | None = None
    new_state: str | None = None
    changed_by: str | None = None
    notes: str | None = None


class MaintenanceRequest(BaseModel):
    asset_id: str | None = None
    performed_by: str | None = None
    maintenance_type: str | None = None
    notes: str | None = None
    next_due_date: datetime | None = None


class MovementRequest(BaseModel):
    asset_id: str | None = None
    to_office_id: str | None = None
    moved_by: str | None = None
    reason: str | None = None


AssetIdQuery = Annotated[str | None, Query(description="Asset document id")]


@router.get("")
async def list_assets(
    engine: Annotated[AssetEnrichmentEngine, Depends(get_enrichment_engine)],
) -> list[dict[str, Any]]:
    """
    List assets with `nextRoutineMaintenanceDate`, in priority order.
    """
    return [item.to_response() for item in await engine.enrich_all()]


@router.get("/creation")
async def list_asset_views(
    document_store: Annotated[DocumentStore, Depends(get_document_store)],
) -> list[dict[str, Any]]:
    """
    List asset views (type name and, for deployed assets, location) in storage order.
    """
    return [asset_view_json(view) for view in await document_store.list_asset_views()]


@router.post("/creation", status_code=status.HTTP_201_CREATED)
async def create_asset(
    payload: Annotated[dict[str, Any], Body(...)],
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
) -> dict[str, Any]:
    asset = await lifecycle.create_asset(payload)
    return {"message": "Asset created successfully", "asset": to_json(asset)}


@router.get("/types")
async def list_asset_types(
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> list[dict[str, Any]]:
    return [to_json(t) for t in await directory.list_asset_types()]


@router.post("/types", status_code=status.HTTP_201_CREATED)
async def create_asset_type(
    request: Annotated[AssetTypeCreateRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    asset_type = await directory.create_asset_type(request.name or "", request.description or "")
    return to_json(asset_type)


@router.get("/overview")
async def asset_overview(
    overview: Annotated[AssetOverview, Depends(get_asset_overview)],
) -> dict[str, Any]:
    """
    Totals with month-over-month change, MTBF and MTTR, assets per state,
    age distribution and per-department counts and maintenance frequency.
    """
    summary = await overview.summarize()
    return summary.model_dump(mode="json")


@router.get("/update/stateMutation")
async def list_state_changes(
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
    asset_id: AssetIdQuery = None,
) -> list[dict[str, Any]]:
    return [to_json(r) for r in await lifecycle.state_history(asset_id)]


@router.patch("/update/stateMutation")
async def change_asset_state(
    request: Annotated[StateChangeRequest, Body(...)],
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
) -> dict[str, Any]:
    history = await lifecycle.change_state(
        asset_id=request.asset_id,
        new_state=request.new_state,
        changed_by=request.changed_by,
        notes=request.notes,
    )
    return {"message": "Asset state updated successfully", "history": to_json(history)}


@router.get("/update/maintenance")
async def list_maintenance(
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
    asset_id: AssetIdQuery = None,
) -> list[dict[str, Any]]:
    return [to_json(r) for r in await lifecycle.maintenance_history(asset_id)]


@router.post("/update/maintenance", status_code=status.HTTP_201_CREATED)
async def record_maintenance(
    request: Annotated[MaintenanceRequest, Body(...)],
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
) -> dict[str, Any]:
    record = await lifecycle.record_maintenance(
        asset_id=request.asset_id,
        performed_by=request.performed_by,
        maintenance_type=request.maintenance_type,
        notes=request.notes,
        next_due_date=request.next_due_date,
    )
    return {"message": "Maintenance recorded successfully", "maintenance": to_json(record)}


@router.get("/update/mouvement")
async def list_movements(
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
    asset_id: AssetIdQuery = None,
) -> list[dict[str, Any]]:
    return [to_json(r) for r in await lifecycle.movement_history(asset_id)]


@router.post("/update/mouvement", status_code=status.HTTP_201_CREATED)
async def move_asset(
    request: Annotated[MovementRequest, Body(...)],
    lifecycle: Annotated[AssetLifecycleManager, Depends(get_lifecycle_manager)],
) -> dict[str, Any]:
    movement = await lifecycle.move(
        asset_id=request.asset_id,
        to_office_id=request.to_office_id,
        moved_by=request.moved_by,
        reason=request.reason,
    )
    return {"message": "Asset movement recorded successfully", "movement": to_json(movement)}


@router.get("/{asset_id}")
async def get_asset(
    asset_id: Annotated[str, Path(..., description="Asset document id")],
    engine: Annotated[AssetEnrichmentEngine, Depends(get_enrichment_engine)],
) -> dict[str, Any]:
    """
    Single asset view with its `nextRoutineMaintenanceDate`.
    """
    validate_object_id(asset_id, field="asset_id")
    enriched = await engine.enrich_one(asset_id)
    if enriched is None:
        raise NotFoundError("Asset not found", details={"asset_id": asset_id})
    return enriched.to_response()
