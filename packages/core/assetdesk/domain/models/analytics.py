"""Aggregate rows returned by the document store for overview and dashboard analytics."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class IssueSpan(BaseModel):
    """First and last time an asset entered `has_issues`, and how often it did."""

    asset_id: str
    first_issue_at: datetime
    last_issue_at: datetime
    issue_count: int

    model_config = ConfigDict(frozen=True)


class DepartmentAssetStats(BaseModel):
    """Assets placed in a department's rooms.

    `department` is None for rooms without a department.
    `average_maintenance_frequency` is None when those rooms hold no asset.
    """

    department: str | None = None
    asset_count: int = 0
    average_maintenance_frequency: float | None = None

    model_config = ConfigDict(frozen=True)


class DailySeverityCount(BaseModel):
    """Incidents created on one UTC day (`YYYY-MM-DD`) with one severity."""

    date: str
    severity: str
    count: int

    model_config = ConfigDict(frozen=True)


class ResolutionTypeStats(BaseModel):
    """Resolution durations (hours from incident creation) for one incident type."""

    incident_type: str | None = None
    count: int
    average_hours: float
    min_hours: float
    max_hours: float

    model_config = ConfigDict(frozen=True)


class MetricChange(BaseModel):
    change: str
    positive: bool


def format_change(current: float, previous: float, inverse: bool = False) -> MetricChange:
    """Relative change from `previous` to `current` as a signed percentage.

    With `inverse`, a decrease is the good direction. A zero baseline gives
    "+0.0%".

    >>> format_change(110, 100)
    MetricChange(change='+10.0%', positive=True)
    >>> format_change(110, 100, inverse=True)
    MetricChange(change='+10.0%', positive=False)
    """
    if previous == 0:
        return MetricChange(change="+0.0%", positive=True)
    diff = (current - previous) / previous * 100
    sign = "+" if diff >= 0 else ""
    return MetricChange(change=f"{sign}{diff:.1f}%", positive=diff < 0 if inverse else diff >= 0)
