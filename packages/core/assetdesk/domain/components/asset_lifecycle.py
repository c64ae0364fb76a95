"""AssetLifecycleManager component for asset creation and history-tracked updates."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from assetdesk.domain.interfaces.document_store import DocumentStore, DuplicateDocumentError
from assetdesk.domain.interfaces.observability_manager import ObservabilityManager
from assetdesk.domain.models.asset import Asset, AssetState, format_asset_id
from assetdesk.domain.models.asset_history import (
    AssetMaintenance,
    AssetMovement,
    AssetStateHistory,
    MaintenanceType,
)
from assetdesk.domain.models.system_error import NotFoundError, ValidationError
from assetdesk.infrastructure.utils.validation import (
    generate_reference,
    new_document_id,
    normalize_datetime,
    require_fields,
    validate_object_id,
)

REQUIRED_ASSET_FIELDS = ("type", "model_number", "lifespan", "maintenance_frequency", "state")
ASSET_ID_ATTEMPTS = 5


def _parse_state(value: Any) -> AssetState:
    try:
        return AssetState(value)
    except ValueError as e:
        raise ValidationError("Invalid asset state", field="state") from e


def _first_error_message(error: PydanticValidationError) -> tuple[str, str | None]:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    return first.get("msg", "Invalid value"), field


class AssetLifecycleManager:
    """Creates assets and applies state, maintenance and movement updates.

    Every update appends an immutable history record before the live asset
    is changed. Single-asset updates are not transactional: concurrent
    updates to the same asset resolve as last write wins.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        observability_manager: ObservabilityManager,
    ) -> None:
        """Initialize AssetLifecycleManager.

        Args:
            document_store: DocumentStore implementation for persistence.
            observability_manager: ObservabilityManager for events and logging.
        """
        self._document_store = document_store
        self._observability = observability_manager

    async def create_asset(self, payload: Mapping[str, Any]) -> Asset:
        """Create an asset from a creation payload.

        The asset id is sequential (AST-0001, AST-0002...) and derived from
        the current asset count. If a concurrent creation took that id, the
        following ids are tried in turn. When `changed_by` is present, an
        AssetStateHistory entry from `in_stock` to the initial state is
        written together with the asset.

        Args:
            payload: Mapping with `type`, `model_number`, `lifespan`,
                `maintenance_frequency`, `state` and optionally `office_id`,
                `criticality`, `date_in_production`, `changed_by`, `notes`.

        Returns:
            The created Asset.

        Raises:
            ValidationError: If a required field is missing or a value is invalid,
                or no free asset id was found.
            DocumentStoreError: If the store write fails.
        """
        require_fields(payload, REQUIRED_ASSET_FIELDS)
        state = _parse_state(payload["state"])
        type_id = validate_object_id(payload["type"], field="type")
        office_id = payload.get("office_id") or None
        if office_id is not None:
            validate_object_id(office_id, field="office_id")
        changed_by = payload.get("changed_by") or None
        if changed_by is not None:
            validate_object_id(changed_by, field="changed_by")

        sequence = await self._document_store.count_assets() + 1
        try:
            asset = Asset(
                id=new_document_id(),
                asset_id=format_asset_id(sequence),
                type_id=type_id,
                model_number=str(payload["model_number"]),
                lifespan=payload["lifespan"],
                maintenance_frequency=payload["maintenance_frequency"],
                criticality=payload.get("criticality") or None,
                state=state,
                date_in_production=payload.get("date_in_production") or None,
                office_id=office_id,
            )
        except PydanticValidationError as e:
            message, field = _first_error_message(e)
            raise ValidationError(message, field=field) from e

        history = None
        if changed_by is not None:
            history = AssetStateHistory(
                id=new_document_id(),
                history_id=generate_reference("HIS"),
                asset_id=asset.id,
                previous_state=AssetState.InStock,
                new_state=state,
                changed_by=changed_by,
                notes=payload.get("notes") or f"Asset created with state {state.value}",
            )

        asset = await self._insert_with_free_id(asset, history, sequence)
        await self._emit(
            "asset_created",
            {"asset_id": asset.asset_id, "state": asset.state.value, "changed_by": changed_by},
        )
        return asset

    async def _insert_with_free_id(
        self, asset: Asset, history: AssetStateHistory | None, sequence: int
    ) -> Asset:
        for offset in range(ASSET_ID_ATTEMPTS):
            candidate = asset.model_copy(update={"asset_id": format_asset_id(sequence + offset)})
            try:
                await self._document_store.create_asset(candidate, history)
                return candidate
            except DuplicateDocumentError:
                await self._observability.log(
                    level="WARNING",
                    message=f"Asset id {candidate.asset_id} already taken",
                    context={"asset_id": candidate.asset_id, "attempt": offset + 1},
                )
        raise ValidationError(
            "Could not allocate a unique asset id, please retry", field="asset_id"
        )

    async def _require_asset(self, asset_id: str) -> Asset:
        validate_object_id(asset_id, field="asset_id")
        asset = await self._document_store.get_asset(asset_id)
        if asset is None:
            raise NotFoundError("Asset not found", details={"asset_id": asset_id})
        return asset

    async def change_state(
        self,
        asset_id: str,
        new_state: AssetState | str,
        changed_by: str,
        notes: str | None = None,
    ) -> AssetStateHistory:
        """Record a state change and apply it to the asset.

        Raises:
            ValidationError: If the state or an id is invalid.
            NotFoundError: If the asset does not exist.
        """
        state = _parse_state(new_state)
        validate_object_id(changed_by, field="changed_by")
        asset = await self._require_asset(asset_id)

        history = AssetStateHistory(
            id=new_document_id(),
            history_id=generate_reference("ST"),
            asset_id=asset.id,
            previous_state=asset.state,
            new_state=state,
            changed_by=changed_by,
            notes=notes,
        )
        await self._document_store.save_state_history(history)
        await self._document_store.save_asset(asset.model_copy(update={"state": state}))

        await self._emit(
            "asset_state_changed",
            {
                "asset_id": asset.asset_id,
                "previous_state": history.previous_state.value,
                "new_state": state.value,
                "changed_by": changed_by,
            },
        )
        return history

    async def record_maintenance(
        self,
        asset_id: str,
        performed_by: str,
        maintenance_type: MaintenanceType | str,
        notes: str | None = None,
        next_due_date: datetime | None = None,
    ) -> AssetMaintenance:
        """Append a maintenance record performed now.

        The record feeds the next routine maintenance date of in-service
        assets.

        Raises:
            ValidationError: If performed_by or the maintenance type is invalid.
            NotFoundError: If the asset does not exist.
        """
        if not performed_by:
            raise ValidationError("performed_by is required", field="performed_by")
        validate_object_id(performed_by, field="performed_by")
        try:
            kind = MaintenanceType(maintenance_type)
        except ValueError as e:
            raise ValidationError(
                "maintenance_type is required and must be one of: routine, repair, upgrade",
                field="maintenance_type",
            ) from e
        asset = await self._require_asset(asset_id)

        record = AssetMaintenance(
            id=new_document_id(),
            maintenance_id=generate_reference("MT"),
            asset_id=asset.id,
            performed_at=datetime.utcnow(),
            performed_by=performed_by,
            maintenance_type=kind,
            notes=notes,
            next_due_date=normalize_datetime(next_due_date),
        )
        await self._document_store.save_maintenance(record)

        await self._emit(
            "asset_maintenance_recorded",
            {
                "asset_id": asset.asset_id,
                "maintenance_id": record.maintenance_id,
                "maintenance_type": kind.value,
            },
        )
        return record

    async def move(
        self,
        asset_id: str,
        to_office_id: str,
        moved_by: str,
        reason: str | None = None,
    ) -> AssetMovement:
        """Record a movement from the current office and relocate the asset.

        Raises:
            ValidationError: If an id is invalid.
            NotFoundError: If the asset does not exist.
        """
        validate_object_id(to_office_id, field="to_office_id")
        validate_object_id(moved_by, field="moved_by")
        asset = await self._require_asset(asset_id)

        movement = AssetMovement(
            id=new_document_id(),
            movement_id=generate_reference("MV"),
            asset_id=asset.id,
            from_office_id=asset.office_id,
            to_office_id=to_office_id,
            moved_by=moved_by,
            reason=reason,
        )
        await self._document_store.save_movement(movement)
        await self._document_store.save_asset(
            asset.model_copy(update={"office_id": to_office_id})
        )

        await self._emit(
            "asset_moved",
            {
                "asset_id": asset.asset_id,
                "from_office_id": movement.from_office_id,
                "to_office_id": to_office_id,
            },
        )
        return movement

    async def maintenance_history(self, asset_id: str) -> list[AssetMaintenance]:
        """Maintenance records of an asset, newest first."""
        validate_object_id(asset_id, field="asset_id")
        return await self._document_store.list_maintenance(asset_id)

    async def state_history(self, asset_id: str) -> list[AssetStateHistory]:
        """State changes of an asset, newest first."""
        validate_object_id(asset_id, field="asset_id")
        return await self._document_store.list_state_history(asset_id)

    async def movement_history(self, asset_id: str) -> list[AssetMovement]:
        """Movements of an asset, newest first."""
        validate_object_id(asset_id, field="asset_id")
        return await self._document_store.list_movements(asset_id)

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
                context={"asset_id": payload.get("asset_id")},
            )
