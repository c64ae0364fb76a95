"""Tests for reference data seeding."""

from pathlib import Path

import pytest
import yaml

from assetdesk.domain.models.admin import AdminRole
from assetdesk.infrastructure.config.file_loader import ConfigurationError
from assetdesk.infrastructure.config.seed import apply_seed, seed_from_file

DEPARTMENT_ID = "65f000000000000000000001"
ADMIN_ID = "65f0000000000000000000a1"


def _seed() -> dict:
    return {
        "departments": [{"id": DEPARTMENT_ID, "department_id": "DEP-FIN", "name": "Finance"}],
        "rooms": [
            {
                "room_number": "101",
                "floor_number": 1,
                "building_name": "HQ",
                "department_id": DEPARTMENT_ID,
            }
        ],
        "admins": [
            {
                "id": ADMIN_ID,
                "admin_id": "mdupont",
                "name": "Marie Dupont",
                "email": "marie@example.com",
                "departments": [DEPARTMENT_ID],
            },
            {
                "admin_id": "root",
                "name": "Root",
                "email": "root@example.com",
                "role": "superadmin",
            },
        ],
        "asset_types": [{"name": "Laptop", "description": "Portable computer"}],
    }


class TestApplySeed:
    """Tests for apply_seed()."""

    @pytest.mark.asyncio
    async def test_apply_seed(self, store) -> None:
        counts = await apply_seed(store, _seed())

        assert counts == {"departments": 1, "rooms": 1, "admins": 2, "asset_types": 1}
        assert (await store.get_department(DEPARTMENT_ID)).name == "Finance"
        (room,) = await store.list_rooms([DEPARTMENT_ID])
        assert room.room_number == "101"
        links = await store.list_admin_links(admin_id=ADMIN_ID)
        assert [link.department_id for link in links] == [DEPARTMENT_ID]
        roles = {admin.admin_id: admin.role for admin in await store.list_admins()}
        assert roles == {"mdupont": AdminRole.IncidentManager, "root": AdminRole.SuperAdmin}
        assert await store.find_asset_type_by_name("laptop") is not None

    @pytest.mark.asyncio
    async def test_apply_seed_is_an_upsert(self, store) -> None:
        await apply_seed(store, _seed())
        seed = _seed()
        seed["departments"][0]["name"] = "Finance & Accounting"

        await apply_seed(store, {"departments": seed["departments"]})

        departments = await store.list_departments()
        assert [d.name for d in departments] == ["Finance & Accounting"]

    @pytest.mark.asyncio
    async def test_invalid_entry(self, store) -> None:
        with pytest.raises(ConfigurationError, match="Invalid seed entry"):
            await apply_seed(store, {"rooms": [{"room_number": "101"}]})


@pytest.mark.asyncio
async def test_seed_from_file(store, tmp_path: Path) -> None:
    config_file = tmp_path / "assetdesk.yaml"
    config_file.write_text(yaml.dump({"settings": {"store_backend": "memory"}, "seed": _seed()}))

    counts = await seed_from_file(store, config_file)

    assert counts["admins"] == 2
    assert len(await store.list_departments()) == 1
