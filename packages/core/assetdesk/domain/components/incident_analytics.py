"""IncidentAnalytics component: monthly incident metrics and dashboard series.

Every figure is derived from store aggregates (daily counts per severity and
resolution durations per incident type), so the MongoDB backend does the
heavy lifting in `$group` pipelines.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from assetdesk.domain.components.asset_enrichment import add_months
from assetdesk.domain.components.asset_overview import start_of_month
from assetdesk.domain.interfaces.document_store import DocumentStore, IncidentQuery
from assetdesk.domain.models.analytics import ResolutionTypeStats
from assetdesk.domain.models.incident import IncidentSeverity
from assetdesk.domain.models.system_error import ValidationError
from assetdesk.infrastructure.utils.validation import normalize_datetime

VOLUME_PERIODS = ("30d", "90d", "6m", "1y", "ytd")
"""Periods accepted by the incident volume series (default 30d)."""

WINDOW_PERIODS = ("7d", "30d", "90d", "1y")
"""Periods accepted by the other series; anything else means all time."""

HIGH_URGENCY = (IncidentSeverity.High, IncidentSeverity.Critical)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IncidentMetrics(_CamelModel):
    """Headline figures for the current calendar month against the previous one."""

    incidents_this_month: int
    incidents_last_month: int
    incidents_change_tendency: int
    incidents_change_percentile: float
    average_resolution_time: float
    average_resolution_time_previous_month: float
    resolution_time_change_tendency: float
    most_common_incident_type: str | None = None
    most_common_incident_percentage: float = 0.0
    high_urgency_incidents: int


class VolumePoint(_CamelModel):
    date: str
    incidents: int


class UrgencyPoint(_CamelModel):
    date: str
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class ResolutionTime(_CamelModel):
    incident_type: str | None
    avg_resolution_time: float
    min_resolution_time: float
    max_resolution_time: float
    count: int


class IncidentTypeShare(_CamelModel):
    incident_type: str | None
    count: int
    percentage: float


def change_percentile(current: int, previous: int) -> float:
    """Percent change between two counts, pinned to +/-100 when one side is zero."""
    if current == 0 and previous == 0:
        return 0.0
    if previous == 0:
        return 100.0
    if current == 0:
        return -100.0
    return round((current - previous) / abs(previous) * 100, 2)


def volume_start(period: str, now: datetime) -> datetime:
    """Start of an incident volume period.

    Raises:
        ValidationError: If the period is not one of VOLUME_PERIODS.
    """
    if period == "30d":
        return now - timedelta(days=30)
    if period == "90d":
        return now - timedelta(days=90)
    if period == "6m":
        return add_months(now, -6)
    if period == "1y":
        return add_months(now, -12)
    if period == "ytd":
        return datetime(now.year, 1, 1)
    raise ValidationError("Invalid period", field="period")


def window_start(period: str | None, now: datetime) -> datetime | None:
    if period == "7d":
        return now - timedelta(days=7)
    if period == "30d":
        return now - timedelta(days=30)
    if period == "90d":
        return now - timedelta(days=90)
    if period == "1y":
        return add_months(now, -12)
    return None


def average_hours(stats: list[ResolutionTypeStats]) -> float:
    """Mean resolution time over every incident type, weighted by count."""
    total = sum(s.count for s in stats)
    if total == 0:
        return 0.0
    return sum(s.average_hours * s.count for s in stats) / total


def _type_key(incident_type: str | None) -> str:
    return incident_type or ""


class IncidentAnalytics:
    """Read-only incident statistics for the dashboard."""

    def __init__(self, document_store: DocumentStore) -> None:
        self._document_store = document_store

    async def metrics(self, now: datetime | None = None) -> IncidentMetrics:
        """Incident counts, resolution times and the dominant incident type.

        The current month runs from its first day to `now`; the previous
        month is the whole calendar month before it. Resolution times are
        attributed to the month the incident was created in. The most common
        type is taken over all typed resolutions ever recorded.
        """
        now = normalize_datetime(now) or datetime.utcnow()
        month_start = start_of_month(now)
        last_month_start = add_months(month_start, -1)
        last_month_end = month_start - timedelta(microseconds=1)
        store = self._document_store

        this_month = await store.count_incidents(
            IncidentQuery(created_from=month_start, created_to=now)
        )
        last_month = await store.count_incidents(
            IncidentQuery(created_from=last_month_start, created_to=last_month_end)
        )
        high_urgency = 0
        for severity in HIGH_URGENCY:
            high_urgency += await store.count_incidents(
                IncidentQuery(severity=severity.value, created_from=month_start, created_to=now)
            )

        average_now = average_hours(await store.resolution_stats(month_start, now))
        average_before = average_hours(
            await store.resolution_stats(last_month_start, last_month_end)
        )

        typed = sorted(
            (s for s in await store.resolution_stats() if s.incident_type is not None),
            key=lambda s: (-s.count, _type_key(s.incident_type)),
        )
        typed_total = sum(s.count for s in typed)

        return IncidentMetrics(
            incidents_this_month=this_month,
            incidents_last_month=last_month,
            incidents_change_tendency=this_month - last_month,
            incidents_change_percentile=change_percentile(this_month, last_month),
            average_resolution_time=round(average_now, 2),
            average_resolution_time_previous_month=round(average_before, 2),
            resolution_time_change_tendency=round(average_now - average_before, 2),
            most_common_incident_type=typed[0].incident_type if typed else None,
            most_common_incident_percentage=(
                round(typed[0].count / typed_total * 100, 2) if typed else 0.0
            ),
            high_urgency_incidents=high_urgency,
        )

    async def incident_volume(
        self, period: str = "30d", now: datetime | None = None
    ) -> list[VolumePoint]:
        """Incidents created per day over the period, oldest day first.

        Raises:
            ValidationError: If the period is not one of VOLUME_PERIODS.
        """
        now = normalize_datetime(now) or datetime.utcnow()
        start = volume_start(period, now)
        per_day: dict[str, int] = {}
        for row in await self._document_store.daily_incident_counts(start):
            per_day[row.date] = per_day.get(row.date, 0) + row.count
        return [VolumePoint(date=day, incidents=per_day[day]) for day in sorted(per_day)]

    async def urgency_distribution(
        self, period: str | None = None, now: datetime | None = None
    ) -> list[UrgencyPoint]:
        """Incidents created per day and severity, oldest day first."""
        now = normalize_datetime(now) or datetime.utcnow()
        points: dict[str, UrgencyPoint] = {}
        for row in await self._document_store.daily_incident_counts(window_start(period, now)):
            point = points.setdefault(row.date, UrgencyPoint(date=row.date))
            if row.severity in UrgencyPoint.model_fields:
                setattr(point, row.severity, getattr(point, row.severity) + row.count)
        return [points[day] for day in sorted(points)]

    async def resolution_time(
        self, period: str | None = None, now: datetime | None = None
    ) -> list[ResolutionTime]:
        """Resolution time statistics per incident type, fastest average first.

        Only incidents created within the period count. Hours are rounded to
        two decimals.
        """
        now = normalize_datetime(now) or datetime.utcnow()
        stats = await self._document_store.resolution_stats(window_start(period, now))
        rows = [
            ResolutionTime(
                incident_type=s.incident_type,
                avg_resolution_time=round(s.average_hours, 2),
                min_resolution_time=round(s.min_hours, 2),
                max_resolution_time=round(s.max_hours, 2),
                count=s.count,
            )
            for s in stats
        ]
        rows.sort(key=lambda r: (r.avg_resolution_time, _type_key(r.incident_type)))
        return rows

    async def incident_type_percentage(
        self, period: str | None = None, now: datetime | None = None
    ) -> list[IncidentTypeShare]:
        """Share of each incident type among resolved incidents, largest first."""
        now = normalize_datetime(now) or datetime.utcnow()
        stats = await self._document_store.resolution_stats(window_start(period, now))
        total = sum(s.count for s in stats)
        shares = [
            IncidentTypeShare(
                incident_type=s.incident_type,
                count=s.count,
                percentage=round(s.count / total * 100, 2),
            )
            for s in stats
        ]
        shares.sort(key=lambda share: (-share.percentage, _type_key(share.incident_type)))
        return shares
