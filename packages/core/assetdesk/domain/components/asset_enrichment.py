"""AssetEnrichmentEngine: maintenance-due computation and priority ordering.

The engine derives `nextRoutineMaintenanceDate` for every asset and orders
the listing by operational priority:

1. assets reporting issues, most critical first;
2. assets in service or under maintenance, earliest due date first;
3. idle assets (in stock, retired) in their original order;
4. assets in an unrecognized state, in their original order.

The computation is a pure function of the asset views plus the latest
maintenance date of each asset, fetched with one batched store query.
"""

import calendar
import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.domain.interfaces.observability_manager import ObservabilityManager
from assetdesk.domain.models.asset import AssetState, AssetView
from assetdesk.domain.models.maintenance_due import MaintenanceDue
from assetdesk.infrastructure.utils.validation import normalize_datetime

CRITICALITY_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}
"""Criticality rank; any other value ranks 0."""

ISSUE_STATES = frozenset({AssetState.HasIssues.value})
SCHEDULED_STATES = frozenset({AssetState.InUse.value, AssetState.UnderMaintenance.value})
IDLE_STATES = frozenset({AssetState.InStock.value, AssetState.Retired.value})


class EnrichedAsset(BaseModel):
    """An asset view paired with its maintenance-due signal."""

    asset: AssetView
    maintenance_due: MaintenanceDue

    model_config = ConfigDict(frozen=True)

    def to_response(self) -> dict[str, Any]:
        """JSON body: the view fields, `_id`, and `nextRoutineMaintenanceDate`."""
        data = self.asset.model_dump(mode="json")
        data["_id"] = data.pop("id")
        if data.get("location") is None:
            data.pop("location", None)
        data["nextRoutineMaintenanceDate"] = self.maintenance_due.to_json_value()
        return data


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month.

    >>> add_months(datetime(2024, 1, 15), 6)
    datetime.datetime(2024, 7, 15, 0, 0)
    >>> add_months(datetime(2024, 1, 31), 1)
    datetime.datetime(2024, 2, 29, 0, 0)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def parse_frequency(value: Any) -> int | None:
    """Whole months from a stored maintenance frequency, or None if unusable.

    Fractional values are truncated. Zero, negative, non-finite and
    non-numeric values are unusable.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int | float) or not math.isfinite(value):
        return None
    months = int(value)
    return months if months > 0 else None


def compute_maintenance_due(
    state: str | None,
    maintenance_frequency: Any,
    date_in_production: datetime | None,
    last_maintenance_at: datetime | None = None,
) -> MaintenanceDue:
    """Derive the maintenance-due signal of a single asset.

    - has_issues: overdue
    - in_use / under_maintenance: base + frequency months, where base is the
      latest maintenance if any, else the production date
    - anything else, or missing/malformed data: not applicable

    Never raises for malformed input.
    """
    if state in ISSUE_STATES:
        return MaintenanceDue.overdue()
    if state not in SCHEDULED_STATES:
        return MaintenanceDue.not_applicable()

    base = last_maintenance_at or date_in_production
    months = parse_frequency(maintenance_frequency)
    if not isinstance(base, datetime) or months is None:
        return MaintenanceDue.not_applicable()

    try:
        return MaintenanceDue.scheduled_at(add_months(normalize_datetime(base), months))
    except (OverflowError, ValueError):
        # Past datetime.max
        return MaintenanceDue.not_applicable()


def prioritize(items: list[EnrichedAsset]) -> list[EnrichedAsset]:
    """Order enriched assets by operational priority.

    Every sort is stable, so ties keep input order. Not-applicable due
    dates sort after scheduled ones within the in-service group.
    """
    with_issues: list[EnrichedAsset] = []
    scheduled: list[EnrichedAsset] = []
    idle: list[EnrichedAsset] = []
    unknown: list[EnrichedAsset] = []

    for item in items:
        state = item.asset.state
        if state in ISSUE_STATES:
            with_issues.append(item)
        elif state in SCHEDULED_STATES:
            scheduled.append(item)
        elif state in IDLE_STATES:
            idle.append(item)
        else:
            unknown.append(item)

    with_issues.sort(key=lambda i: CRITICALITY_RANK.get(i.asset.criticality or "", 0), reverse=True)
    scheduled.sort(key=lambda i: i.maintenance_due.sort_key())
    return with_issues + scheduled + idle + unknown


class AssetEnrichmentEngine:
    """Computes maintenance-due signals and the priority-ordered asset listing."""

    def __init__(
        self,
        document_store: DocumentStore,
        observability_manager: ObservabilityManager | None = None,
    ) -> None:
        self._document_store = document_store
        self._observability = observability_manager

    @staticmethod
    def enrich(
        views: list[AssetView],
        latest_maintenance: dict[str, datetime],
    ) -> list[EnrichedAsset]:
        """Pair each view with its maintenance-due signal, keeping input order."""
        return [
            EnrichedAsset(
                asset=view,
                maintenance_due=compute_maintenance_due(
                    view.state,
                    view.maintenance_frequency,
                    view.date_in_production,
                    latest_maintenance.get(view.id),
                ),
            )
            for view in views
        ]

    async def enrich_all(self) -> list[EnrichedAsset]:
        """All assets, enriched and in priority order.

        Raises:
            DocumentStoreError: If the store lookups fail.
        """
        views = await self._document_store.list_asset_views()
        in_service = [v.id for v in views if v.state in SCHEDULED_STATES]
        latest = await self._document_store.latest_maintenance_dates(in_service)
        ordered = prioritize(self.enrich(views, latest))

        if self._observability is not None:
            await self._observability.log(
                level="DEBUG",
                message="assets_enriched",
                context={"count": len(ordered), "with_maintenance": len(latest)},
            )
        return ordered

    async def enrich_one(self, asset_id: str) -> EnrichedAsset | None:
        """A single enriched asset, or None if it does not exist."""
        view = await self._document_store.get_asset_view(asset_id)
        if view is None:
            return None
        latest: dict[str, datetime] = {}
        if view.state in SCHEDULED_STATES:
            latest = await self._document_store.latest_maintenance_dates([view.id])
        return self.enrich([view], latest)[0]
