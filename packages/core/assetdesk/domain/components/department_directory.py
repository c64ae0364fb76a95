"""DepartmentDirectory component: departments, their rooms and managers, and asset types."""

import random
import string
from datetime import datetime
from typing import Any

from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.domain.interfaces.observability_manager import ObservabilityManager
from assetdesk.domain.models.admin import Admin, AdminDepartment, AdminRole, AdminStatus
from assetdesk.domain.models.asset import AssetType
from assetdesk.domain.models.location import Department, DepartmentListing
from assetdesk.domain.models.system_error import NotFoundError, ValidationError
from assetdesk.infrastructure.utils.validation import new_document_id, validate_object_id

MANAGER_ROLES = frozenset({AdminRole.IncidentManager, AdminRole.SuperAdmin})
"""Roles listed as department managers."""


def make_admin_handle(name: str) -> str:
    """Login handle from a full name: first initial plus second word, lowercased.

    A single-word name gets a random leading letter instead of an initial.

    >>> make_admin_handle("Marie Dupont")
    'mdupont'
    """
    words = name.split()
    if len(words) < 2:
        return f"{random.choice(string.ascii_lowercase)}{words[0].lower()}"
    return f"{words[0][0].lower()}{words[1].lower()}"


def _parse_role(value: AdminRole | str | None) -> AdminRole | None:
    if value is None or value == "":
        return None
    try:
        return AdminRole(value)
    except ValueError as e:
        raise ValidationError(f"Invalid role: {value}", field="role") from e


def _parse_status(value: AdminStatus | str | None) -> AdminStatus | None:
    if value is None or value == "":
        return None
    try:
        return AdminStatus(value)
    except ValueError as e:
        raise ValidationError(f"Invalid status: {value}", field="status") from e


class DepartmentDirectory:
    """Reads and writes the organization reference data.

    Department creation is all-or-nothing: the department, its room
    assignments and its manager links are written in one atomic unit.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        observability_manager: ObservabilityManager,
    ) -> None:
        self._document_store = document_store
        self._observability = observability_manager

    async def create_department(
        self,
        department_id: str,
        name: str,
        contact: str = "",
        room_ids: list[str] | None = None,
        manager_ids: list[str] | None = None,
    ) -> Department:
        """Create a department, assign it rooms and link its managers.

        Rooms that already belong to another department are left untouched.

        Raises:
            ValidationError: If a required field is missing or an id is malformed.
            DocumentStoreError: If the atomic write fails; nothing is persisted.
        """
        if not department_id:
            raise ValidationError("Missing required fields", field="department_id")
        if not name:
            raise ValidationError("Missing required fields", field="name")
        room_ids = [validate_object_id(r, field="rooms") for r in room_ids or []]
        manager_ids = [validate_object_id(m, field="managers") for m in manager_ids or []]

        department = Department(
            id=new_document_id(),
            department_id=department_id,
            name=name,
            contact=contact or "",
        )
        created = await self._document_store.create_department(department, room_ids, manager_ids)
        await self._emit(
            "department_created",
            {
                "department_id": created.department_id,
                "rooms": len(room_ids),
                "managers": len(manager_ids),
            },
        )
        return created

    async def list_departments(self) -> list[DepartmentListing]:
        """Every department with its rooms and managers."""
        departments = await self._document_store.list_departments()
        rooms = await self._document_store.list_rooms([d.id for d in departments])
        links = await self._document_store.list_admin_links()
        admins = {
            admin.id: admin
            for admin in await self._document_store.list_admins(
                sorted({link.admin_id for link in links})
            )
        }

        listings = []
        for department in departments:
            managers = [
                admins[link.admin_id]
                for link in links
                if link.department_id == department.id
                and link.admin_id in admins
                and admins[link.admin_id].role in MANAGER_ROLES
            ]
            listings.append(
                DepartmentListing(
                    department=department,
                    rooms=[room for room in rooms if room.department_id == department.id],
                    managers=managers,
                )
            )
        return listings

    async def list_asset_types(self) -> list[AssetType]:
        """Asset types sorted by name."""
        return await self._document_store.list_asset_types()

    async def create_asset_type(self, name: str, description: str) -> AssetType:
        """Create an asset type.

        Raises:
            ValidationError: If name or description is missing, or a type with
                the same name (case-insensitive) exists.
        """
        name = (name or "").strip()
        description = (description or "").strip()
        if not name or not description:
            raise ValidationError("Name and description are required")
        if await self._document_store.find_asset_type_by_name(name) is not None:
            raise ValidationError("Asset type with this name already exists", field="name")

        asset_type = AssetType(id=new_document_id(), name=name, description=description)
        await self._document_store.save_asset_type(asset_type)
        await self._observability.log(
            level="INFO",
            message="asset_type_created",
            context={"asset_type": asset_type.name},
        )
        return asset_type

    async def _require_department(self, department_id: str) -> Department:
        validate_object_id(department_id, field="departmentId")
        department = await self._document_store.get_department(department_id)
        if department is None:
            raise NotFoundError("Department not found", details={"department_id": department_id})
        return department

    async def list_unassigned_admins(self, department_id: str) -> list[Admin]:
        """Admins not yet linked to the department."""
        if not department_id:
            raise ValidationError("departmentId is required", field="departmentId")
        department = await self._require_department(department_id)
        linked = {
            link.admin_id
            for link in await self._document_store.list_admin_links(department_id=department.id)
        }
        admins = await self._document_store.list_admins()
        return [admin for admin in admins if admin.id not in linked]

    async def link_admins(self, department_id: str, admin_ids: list[str] | None) -> int:
        """Link admins to a department; already linked admins are left as they are.

        Returns:
            The number of admins newly linked.

        Raises:
            ValidationError: If the department or the admin list is missing, or
                an id is malformed.
            NotFoundError: If the department does not exist.
        """
        if not department_id or not admin_ids:
            raise ValidationError("Missing departmentId or adminIds array", field="adminIds")
        admin_ids = [validate_object_id(a, field="adminIds") for a in admin_ids]
        department = await self._require_department(department_id)

        linked = {
            link.admin_id
            for link in await self._document_store.list_admin_links(department_id=department.id)
        }
        added = 0
        for admin_id in dict.fromkeys(admin_ids):
            if admin_id in linked:
                continue
            await self._document_store.link_admin_department(
                AdminDepartment(admin_id=admin_id, department_id=department.id)
            )
            added += 1

        await self._emit(
            "department_admins_linked",
            {"department_id": department.department_id, "linked": added},
        )
        return added

    async def assign_rooms(self, department_id: str, room_ids: list[str] | None) -> int:
        """Move rooms to a department, taking them from any department they belonged to.

        Returns:
            The number of rooms whose department changed.

        Raises:
            ValidationError: If the department or the room list is missing, or
                an id is malformed.
            NotFoundError: If the department does not exist.
        """
        if not department_id or room_ids is None:
            raise ValidationError("Missing departmentId or roomIds array", field="roomIds")
        room_ids = [validate_object_id(r, field="roomIds") for r in room_ids]
        department = await self._require_department(department_id)

        modified = await self._document_store.assign_rooms(department.id, room_ids)
        await self._emit(
            "department_rooms_assigned",
            {"department_id": department.department_id, "modified": modified},
        )
        return modified

    # -- administrators --------------------------------------------------

    async def list_admins(self) -> list[Admin]:
        return await self._document_store.list_admins()

    async def create_admin(
        self,
        name: str,
        email: str,
        phone: str = "",
        role: AdminRole | str | None = None,
        status: AdminStatus | str | None = None,
    ) -> Admin:
        """Register an administrator with a login handle derived from the name.

        Raises:
            ValidationError: If name or email is missing, or role/status is invalid.
        """
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email:
            raise ValidationError("Name and email are required")

        admin = Admin(
            id=new_document_id(),
            admin_id=make_admin_handle(name),
            name=name,
            email=email,
            phone=phone or "",
            role=_parse_role(role) or AdminRole.IncidentManager,
            status=_parse_status(status) or AdminStatus.Active,
        )
        await self._document_store.save_admin(admin)
        await self._emit(
            "admin_created",
            {"admin_id": admin.admin_id, "role": admin.role.value, "status": admin.status.value},
        )
        return admin

    async def _require_admin(self, admin_id: str) -> Admin:
        validate_object_id(admin_id, field="_id")
        admin = await self._document_store.get_admin(admin_id)
        if admin is None:
            raise NotFoundError("Administrator not found", details={"admin_id": admin_id})
        return admin

    async def update_admin_access(
        self,
        admin_id: str,
        role: AdminRole | str | None = None,
        status: AdminStatus | str | None = None,
    ) -> Admin:
        """Change an administrator's role and/or status; None keeps the current value."""
        new_role = _parse_role(role)
        new_status = _parse_status(status)
        admin = await self._require_admin(admin_id)

        updated = admin.model_copy(
            update={"role": new_role or admin.role, "status": new_status or admin.status}
        )
        await self._document_store.save_admin(updated)
        await self._emit(
            "admin_updated",
            {
                "admin_id": updated.admin_id,
                "role": updated.role.value,
                "status": updated.status.value,
            },
        )
        return updated

    async def update_admin_contact(
        self,
        admin_id: str,
        phone: str | None = None,
        email: str | None = None,
    ) -> Admin:
        """Change an administrator's phone and/or email; None keeps the current value."""
        admin = await self._require_admin(admin_id)
        changes = {
            key: value.strip()
            for key, value in (("phone", phone), ("email", email))
            if value is not None
        }
        if changes.get("email") == "":
            raise ValidationError("email cannot be empty", field="email")

        updated = admin.model_copy(update=changes)
        await self._document_store.save_admin(updated)
        await self._emit("admin_updated", {"admin_id": updated.admin_id, "fields": sorted(changes)})
        return updated

    async def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        try:
            await self._observability.emit_event(
                event_type=event_type,
                payload=payload,
                metadata={"timestamp": datetime.utcnow().isoformat()},
            )
        except Exception as e:
            await self._observability.log(
                level="WARNING",
                message=f"Failed to emit {event_type} event: {e}",
                context=payload,
            )
