"""AssetOverview: fleet-level asset summary and reliability figures."""

from collections import Counter
from datetime import datetime

from pydantic import BaseModel, Field

from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.domain.models.analytics import (
    DepartmentAssetStats,
    IssueSpan,
    MetricChange,
    format_change,
)
from assetdesk.infrastructure.utils.validation import normalize_datetime

AGE_BUCKETS: tuple[tuple[str, float], ...] = (
    ("0-1y", 1),
    ("1-2y", 2),
    ("2-3y", 3),
    ("3-5y", 5),
    ("5+y", float("inf")),
)
"""Age bucket labels with their exclusive upper bound in years."""

DAYS_PER_YEAR = 365


class AssetOverviewSummary(BaseModel):
    total_assets: int = 0
    total_assets_change: MetricChange = Field(default_factory=lambda: format_change(0, 0))
    overdue_maintenance: int = 0
    overdue_maintenance_change: MetricChange = Field(
        default_factory=lambda: format_change(0, 0, inverse=True)
    )
    mean_time_between_failures_hours: float = 0.0
    mean_time_to_repair_hours: float = 0.0
    assets_by_state: dict[str, int] = Field(default_factory=dict)
    age_distribution: dict[str, int] = Field(
        default_factory=lambda: {label: 0 for label, _ in AGE_BUCKETS}
    )
    assets_by_department: list[DepartmentAssetStats] = Field(default_factory=list)


def age_bucket(date_in_production: datetime, now: datetime) -> str:
    """Label of the age bucket an asset put in production at that date falls in."""
    age = now - normalize_datetime(date_in_production)
    age_years = age.total_seconds() / 86400 / DAYS_PER_YEAR
    for label, upper in AGE_BUCKETS:
        if age_years < upper:
            return label
    return AGE_BUCKETS[-1][0]


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def mean_time_between_failures(spans: list[IssueSpan]) -> float:
    """Hours between consecutive failures, pooled over all assets.

    An asset that failed n times contributes n - 1 intervals spread over
    its first-to-last failure span. 0 when no asset failed twice.
    """
    intervals = sum(span.issue_count - 1 for span in spans)
    if intervals <= 0:
        return 0.0
    total_hours = sum(
        (span.last_issue_at - span.first_issue_at).total_seconds() / 3600 for span in spans
    )
    return total_hours / intervals


def mean_time_to_repair(repair_hours: dict[str, float]) -> float:
    """Mean over assets of their average maintenance offset to the due date."""
    if not repair_hours:
        return 0.0
    return sum(repair_hours.values()) / len(repair_hours)


class AssetOverview:
    """Computes the asset overview summary."""

    def __init__(self, document_store: DocumentStore) -> None:
        self._document_store = document_store

    async def summarize(self, now: datetime | None = None) -> AssetOverviewSummary:
        """Summary of the whole fleet.

        Maintenance is overdue when a record's `next_due_date` is in the
        past. Month-over-month changes compare against the situation at the
        start of the current month: overdue records then, and assets that
        had a state history entry by then. Assets without a production date
        are left out of the age distribution. Departments are listed by
        name, rooms without a department last.
        """
        now = normalize_datetime(now) or datetime.utcnow()
        month_start = start_of_month(now)
        store = self._document_store

        views = await store.list_asset_views()
        overdue = await store.count_overdue_maintenance(now)
        overdue_before = await store.count_overdue_maintenance(month_start)
        assets_before = await store.count_assets_with_history(month_start)

        summary = AssetOverviewSummary(
            total_assets=len(views),
            total_assets_change=format_change(len(views), assets_before),
            overdue_maintenance=overdue,
            overdue_maintenance_change=format_change(overdue, overdue_before, inverse=True),
            mean_time_between_failures_hours=mean_time_between_failures(
                await store.issue_spans()
            ),
            mean_time_to_repair_hours=mean_time_to_repair(await store.average_repair_hours()),
            assets_by_state=dict(Counter(view.state or "unknown" for view in views)),
            assets_by_department=sorted(
                await store.department_asset_stats(),
                key=lambda stats: (stats.department is None, stats.department or ""),
            ),
        )
        for view in views:
            if view.date_in_production is not None:
                summary.age_distribution[age_bucket(view.date_in_production, now)] += 1
        return summary
