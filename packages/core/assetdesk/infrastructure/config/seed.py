"""Load reference data (departments, rooms, admins, asset types) into a store."""

from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.domain.models.admin import Admin, AdminDepartment
from assetdesk.domain.models.asset import AssetType
from assetdesk.domain.models.location import Department, Room
from assetdesk.infrastructure.config.file_loader import (
    ConfigurationError,
    ConfigurationFileLoader,
)
from assetdesk.infrastructure.utils.validation import new_document_id

logger = structlog.get_logger(__name__)


def _with_id(entry: dict[str, Any]) -> dict[str, Any]:
    return {**entry, "id": entry.get("id") or new_document_id()}


async def apply_seed(store: DocumentStore, seed: dict[str, list[dict[str, Any]]]) -> dict[str, int]:
    """Upsert seed entries into the store.

    Entries without an `id` get a generated one. Admin entries may list
    the department ids they manage under `departments`.

    Returns:
        Number of entries written per section.

    Raises:
        ConfigurationError: If an entry does not validate.
    """
    counts = {section: 0 for section in ("departments", "rooms", "admins", "asset_types")}
    try:
        for entry in seed.get("departments", []):
            await store.save_department(Department.model_validate(_with_id(entry)))
            counts["departments"] += 1
        for entry in seed.get("rooms", []):
            await store.save_room(Room.model_validate(_with_id(entry)))
            counts["rooms"] += 1
        for entry in seed.get("admins", []):
            data = _with_id(entry)
            department_ids = data.pop("departments", None) or []
            admin = Admin.model_validate(data)
            await store.save_admin(admin)
            for department_id in department_ids:
                await store.link_admin_department(
                    AdminDepartment(admin_id=admin.id, department_id=department_id)
                )
            counts["admins"] += 1
        for entry in seed.get("asset_types", []):
            await store.save_asset_type(AssetType.model_validate(_with_id(entry)))
            counts["asset_types"] += 1
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid seed entry: {e}", field="seed") from e

    logger.info("seed_data_loaded", **counts)
    return counts


async def seed_from_file(store: DocumentStore, path: str | Path) -> dict[str, int]:
    """Load the `seed` section of a configuration file into the store."""
    loader = ConfigurationFileLoader(path)
    return await apply_seed(store, loader.parse_seed(loader.load()))
