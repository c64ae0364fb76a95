"""
Administrator endpoints: listing, creation and profile updates.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from assetdesk.domain.components.department_directory import DepartmentDirectory
from assetdesk_api.dependencies import get_department_directory
from assetdesk_api.serialization import to_json

router = APIRouter()


class AdminCreateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str = ""
    role: str | None = None
    status: str | None = None


class AdminAccessRequest(BaseModel):
    id: str | None = Field(default=None, alias="_id")
    role: str | None = None
    status: str | None = None


class AdminContactRequest(BaseModel):
    id: str | None = Field(default=None, alias="_id")
    phone: str | None = None
    email: str | None = None


@router.get("")
async def list_admins(
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> list[dict[str, Any]]:
    return [to_json(admin) for admin in await directory.list_admins()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_admin(
    request: Annotated[AdminCreateRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    """
    Create an administrator; the login handle is derived from the name.
    """
    admin = await directory.create_admin(
        name=request.name or "",
        email=request.email or "",
        phone=request.phone,
        role=request.role,
        status=request.status,
    )
    return {
        "newAdmin": to_json(admin),
        "success": True,
        "message": "Administrator created successfully",
    }


@router.patch("")
async def update_admin_access(
    request: Annotated[AdminAccessRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    """
    Change an administrator's role and status.
    """
    admin = await directory.update_admin_access(request.id or "", request.role, request.status)
    return {
        "updatedAdmin": to_json(admin),
        "success": True,
        "message": "Administrator updated successfully",
    }


@router.put("")
async def update_admin_contact(
    request: Annotated[AdminContactRequest, Body(...)],
    directory: Annotated[DepartmentDirectory, Depends(get_department_directory)],
) -> dict[str, Any]:
    """
    Change an administrator's phone and email.
    """
    admin = await directory.update_admin_contact(request.id or "", request.phone, request.email)
    return {
        "updatedAdmin": to_json(admin),
        "success": True,
        "message": "Administrator updated successfully",
    }
