"""Tests for DepartmentDirectory."""

from unittest.mock import patch

import pytest

from assetdesk.domain.components.department_directory import (
    DepartmentDirectory,
    make_admin_handle,
)
from assetdesk.domain.interfaces.document_store import DocumentStoreError
from assetdesk.domain.models.admin import AdminRole, AdminStatus
from assetdesk.domain.models.location import Room
from assetdesk.domain.models.system_error import NotFoundError, ValidationError
from assetdesk.infrastructure.utils.validation import new_document_id


@pytest.fixture
def directory(store, observability) -> DepartmentDirectory:
    return DepartmentDirectory(document_store=store, observability_manager=observability)


class TestCreateDepartment:
    """Tests for atomic department creation."""

    @pytest.mark.asyncio
    async def test_create_department(self, directory, store, org, observability) -> None:
        department = await directory.create_department(
            "DEP-HR",
            "Human Resources",
            contact="hr@example.com",
            room_ids=[org.spare_room.id],
            manager_ids=[org.unassigned.id],
        )

        assert await store.get_department(department.id) == department
        assert (await store.get_room(org.spare_room.id)).department_id == department.id
        links = await store.list_admin_links(admin_id=org.unassigned.id)
        assert [link.department_id for link in links] == [department.id]
        assert observability.event_types() == ["department_created"]

    @pytest.mark.asyncio
    async def test_rooms_of_other_departments_untouched(self, directory, store, org) -> None:
        department = await directory.create_department(
            "DEP-HR", "Human Resources", room_ids=[org.finance_room.id]
        )

        room = await store.get_room(org.finance_room.id)
        assert room.department_id == org.finance.id
        assert room.department_id != department.id

    @pytest.mark.asyncio
    async def test_failed_link_rolls_back_everything(self, directory, store, org) -> None:
        departments_before = await store.list_departments()

        with patch.object(store, "_store_admin_link", side_effect=RuntimeError("write failed")):
            with pytest.raises(DocumentStoreError):
                await directory.create_department(
                    "DEP-HR",
                    "Human Resources",
                    room_ids=[org.spare_room.id],
                    manager_ids=[org.unassigned.id],
                )

        assert await store.list_departments() == departments_before
        assert (await store.get_room(org.spare_room.id)).department_id is None
        assert await store.list_admin_links(admin_id=org.unassigned.id) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("department_id", "name", "field"),
        [("", "Human Resources", "department_id"), ("DEP-HR", "", "name")],
    )
    async def test_missing_required_fields(
        self, directory, department_id: str, name: str, field: str
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await directory.create_department(department_id, name)

        assert exc_info.value.message == "Missing required fields"
        assert exc_info.value.field == field

    @pytest.mark.asyncio
    async def test_malformed_room_id(self, directory, store) -> None:
        with pytest.raises(ValidationError):
            await directory.create_department("DEP-HR", "Human Resources", room_ids=["101"])

        assert await store.list_departments() == []


class TestListDepartments:
    """Tests for the department listing."""

    @pytest.mark.asyncio
    async def test_lists_rooms_and_managers(self, directory, store, org) -> None:
        await store.save_room(
            Room(
                id=new_document_id(),
                room_number="102",
                floor_number=1,
                building_name="HQ",
                department_id=org.finance.id,
            )
        )

        listings = await directory.list_departments()

        by_name = {listing.department.name: listing for listing in listings}
        assert set(by_name) == {"Finance", "IT"}
        finance = by_name["Finance"]
        assert finance.room_count == 2
        assert [admin.id for admin in finance.managers] == [org.manager.id]
        assert by_name["IT"].manager_count == 0

    @pytest.mark.asyncio
    async def test_listing_response(self, directory, org) -> None:
        listings = await directory.list_departments()

        body = next(
            listing.to_response() for listing in listings if listing.department.name == "IT"
        )

        assert body == {
            "_id": org.it.id,
            "department_id": "DEP-IT",
            "name": "IT",
            "contact": "it@example.com",
            "rooms": [{"room_number": "204", "floor_number": 2, "building_name": "HQ"}],
            "roomCount": 1,
            "managers": [],
            "managerCount": 0,
        }

    @pytest.mark.asyncio
    async def test_empty_directory(self, store, observability) -> None:
        directory = DepartmentDirectory(store, observability)

        assert await directory.list_departments() == []


class TestAssetTypes:
    """Tests for asset type management."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, directory, org) -> None:
        created = await directory.create_asset_type(" Printer ", "Network printer")

        types = await directory.list_asset_types()

        assert created.name == "Printer"
        assert [t.name for t in types] == ["Laptop", "Printer"]

    @pytest.mark.asyncio
    async def test_duplicate_name_case_insensitive(self, directory, org) -> None:
        with pytest.raises(ValidationError, match="already exists"):
            await directory.create_asset_type("LAPTOP", "Another laptop type")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("name", "description"), [("", "desc"), ("Switch", "  ")])
    async def test_name_and_description_required(
        self, directory, name: str, description: str
    ) -> None:
        with pytest.raises(ValidationError, match="Name and description are required"):
            await directory.create_asset_type(name, description)


@pytest.mark.parametrize(
    ("name", "handle"),
    [("Marie Dupont", "mdupont"), ("  jean  de la Tour ", "jde"), ("ANNE MARTIN", "amartin")],
)
def test_admin_handle(name: str, handle: str) -> None:
    assert make_admin_handle(name) == handle


def test_single_word_handle_gets_random_initial() -> None:
    with patch("assetdesk.domain.components.department_directory.random.choice") as choice:
        choice.return_value = "q"

        assert make_admin_handle("Cher") == "qcher"


class TestDepartmentUpdate:
    """Tests for linking admins and moving rooms into an existing department."""

    @pytest.mark.asyncio
    async def test_unassigned_admins(self, directory, org) -> None:
        admins = await directory.list_unassigned_admins(org.finance.id)

        assert {admin.id for admin in admins} == {org.superadmin.id, org.unassigned.id}

    @pytest.mark.asyncio
    async def test_unassigned_admins_unknown_department(self, directory) -> None:
        with pytest.raises(NotFoundError, match="Department not found"):
            await directory.list_unassigned_admins(new_document_id())

    @pytest.mark.asyncio
    async def test_link_admins_skips_linked(self, directory, store, org, observability) -> None:
        linked = await directory.link_admins(
            org.finance.id, [org.manager.id, org.unassigned.id, org.unassigned.id]
        )

        assert linked == 1
        links = await store.list_admin_links(department_id=org.finance.id)
        assert {link.admin_id for link in links} == {org.manager.id, org.unassigned.id}
        assert observability.event_types() == ["department_admins_linked"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("admin_ids", [None, []])
    async def test_link_admins_requires_ids(self, directory, org, admin_ids) -> None:
        with pytest.raises(ValidationError, match="Missing departmentId or adminIds array"):
            await directory.link_admins(org.finance.id, admin_ids)

    @pytest.mark.asyncio
    async def test_link_admins_unknown_department(self, directory, store, org) -> None:
        with pytest.raises(NotFoundError):
            await directory.link_admins(new_document_id(), [org.unassigned.id])

        assert await store.list_admin_links(admin_id=org.unassigned.id) == []

    @pytest.mark.asyncio
    async def test_assign_rooms(self, directory, store, org) -> None:
        modified = await directory.assign_rooms(org.it.id, [org.spare_room.id, org.finance_room.id])

        assert modified == 2
        assert (await store.get_room(org.finance_room.id)).department_id == org.it.id
        assert (await store.get_room(org.spare_room.id)).department_id == org.it.id

    @pytest.mark.asyncio
    async def test_assign_no_rooms(self, directory, org) -> None:
        assert await directory.assign_rooms(org.it.id, []) == 0

        with pytest.raises(ValidationError, match="Missing departmentId or roomIds array"):
            await directory.assign_rooms(org.it.id, None)

    @pytest.mark.asyncio
    async def test_assign_malformed_room(self, directory, org) -> None:
        with pytest.raises(ValidationError, match="Invalid roomIds"):
            await directory.assign_rooms(org.it.id, ["B12"])


class TestAdministrators:
    """Tests for administrator management."""

    @pytest.mark.asyncio
    async def test_create_admin(self, directory, store, observability) -> None:
        admin = await directory.create_admin(
            " Paul Leroy ", "paul@example.com", phone="0600000000", role="superadmin"
        )

        assert admin.admin_id == "pleroy"
        assert admin.name == "Paul Leroy"
        assert admin.role == AdminRole.SuperAdmin
        assert admin.status == AdminStatus.Active
        assert await store.get_admin(admin.id) == admin
        assert observability.event_types() == ["admin_created"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("name", "email"), [("", "a@example.com"), ("Paul Leroy", " ")])
    async def test_create_requires_name_and_email(self, directory, name, email) -> None:
        with pytest.raises(ValidationError, match="Name and email are required"):
            await directory.create_admin(name, email)

    @pytest.mark.asyncio
    async def test_create_invalid_role(self, directory, store) -> None:
        with pytest.raises(ValidationError, match="Invalid role"):
            await directory.create_admin("Paul Leroy", "paul@example.com", role="owner")

        assert await store.list_admins() == []

    @pytest.mark.asyncio
    async def test_list_admins(self, directory, org) -> None:
        admins = await directory.list_admins()

        assert {admin.admin_id for admin in admins} == {"mdupont", "root", "nobody"}

    @pytest.mark.asyncio
    async def test_update_access(self, directory, store, org) -> None:
        updated = await directory.update_admin_access(org.manager.id, status="inactive")

        assert updated.status == AdminStatus.Inactive
        assert updated.role == AdminRole.IncidentManager
        assert await store.get_admin(org.manager.id) == updated

    @pytest.mark.asyncio
    async def test_update_access_invalid_status(self, directory, org) -> None:
        with pytest.raises(ValidationError, match="Invalid status"):
            await directory.update_admin_access(org.manager.id, status="suspended")

    @pytest.mark.asyncio
    async def test_update_unknown_admin(self, directory) -> None:
        with pytest.raises(NotFoundError, match="Administrator not found"):
            await directory.update_admin_access(new_document_id(), role="superadmin")

    @pytest.mark.asyncio
    async def test_update_contact(self, directory, org) -> None:
        updated = await directory.update_admin_contact(org.manager.id, phone="0611111111")

        assert updated.phone == "0611111111"
        assert updated.email == "marie@example.com"

    @pytest.mark.asyncio
    async def test_update_contact_empty_email(self, directory, org) -> None:
        with pytest.raises(ValidationError, match="email cannot be empty"):
            await directory.update_admin_contact(org.manager.id, email="  ")
