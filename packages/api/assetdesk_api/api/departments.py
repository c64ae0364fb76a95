"""
Department directory endpoints.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field

from assetdesk.domain.components.department_directory import DepartmentDirectory
from assetdesk_api.dependencies import get_department_directory
from assetdesk_api.serialization import to_json

router = APIRouter()


class DepartmentCreateRequest(BaseModel):
    department_id: str | None = None
    name: str | None = None
    contact: str = ""
    rooms: list[str] = Field(default_factory=list, description="Room ids to assign")
    managers: list[str] = Field(default_factory=list, description="Admin ids to link")


class LinkAdminsRequest(BaseModel):
    department_id: str | None = Field(default=None, alias="departmentId")
    admin_ids: list[str] | None = Field(default=None, alias="adminIds")


class AssignRoomsRequest(BaseModel):
    department_id: str | None = Field(default=None, alias="departmentId")
    room_ids: list[str] | None = Field(default=None, alias="roomIds")


@router.get("")
async def list_departments(
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> list[dict[str, Any]]:
    """
    Departments with their rooms and managers.
    """
    return [listing.to_response() for listing in await directory.list_departments()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_department(
    request: Annotated[DepartmentCreateRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    """
    Create a department, assign unassigned rooms and link managers, all or nothing.
    """
    department = await directory.create_department(
        department_id=request.department_id or "",
        name=request.name or "",
        contact=request.contact,
        room_ids=request.rooms,
        manager_ids=request.managers,
    )
    return to_json(department)


@router.get("/update")
async def list_unassigned_admins(
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
    department_id: Annotated[str | None, Query(alias="departmentId")] = None,
) -> dict[str, Any]:
    """
    Administrators not yet linked to the department.
    """
    admins = await directory.list_unassigned_admins(department_id or "")
    return {"success": True, "admins": [to_json(admin) for admin in admins]}


@router.post("/update")
async def link_admins(
    request: Annotated[LinkAdminsRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    """
    Link administrators to a department.
    """
    linked = await directory.link_admins(request.department_id or "", request.admin_ids)
    return {"success": True, "linkedCount": linked}


@router.patch("/update")
async def assign_rooms(
    request: Annotated[AssignRoomsRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    """
    Move rooms into a department.
    """
    modified = await directory.assign_rooms(request.department_id or "", request.room_ids)
    return {"success": True, "modifiedCount": modified}
