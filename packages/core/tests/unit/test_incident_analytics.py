"""Tests for IncidentAnalytics."""

from datetime import datetime

import pytest

from assetdesk.domain.components.incident_analytics import (
    IncidentAnalytics,
    UrgencyPoint,
    VolumePoint,
    change_percentile,
    volume_start,
    window_start,
)
from assetdesk.domain.models.incident import IncidentSeverity, IncidentType
from assetdesk.domain.models.system_error import ValidationError

NOW = datetime(2024, 4, 10, 12, 0)


@pytest.fixture
def analytics(store) -> IncidentAnalytics:
    return IncidentAnalytics(store)


@pytest.mark.parametrize(
    ("current", "previous", "expected"),
    [(0, 0, 0.0), (3, 0, 100.0), (0, 4, -100.0), (3, 2, 50.0), (1, 3, -66.67)],
)
def test_change_percentile(current: int, previous: int, expected: float) -> None:
    assert change_percentile(current, previous) == expected


@pytest.mark.parametrize(
    ("period", "start"),
    [
        ("30d", datetime(2024, 3, 11, 12, 0)),
        ("90d", datetime(2024, 1, 11, 12, 0)),
        ("6m", datetime(2023, 10, 10, 12, 0)),
        ("1y", datetime(2023, 4, 10, 12, 0)),
        ("ytd", datetime(2024, 1, 1)),
    ],
)
def test_volume_start(period: str, start: datetime) -> None:
    assert volume_start(period, NOW) == start


def test_unknown_window_means_all_time() -> None:
    assert window_start("7d", NOW) == datetime(2024, 4, 3, 12, 0)
    assert window_start("forever", NOW) is None
    assert window_start(None, NOW) is None


class TestMetrics:
    """Tests for the monthly headline figures."""

    @pytest.mark.asyncio
    async def test_metrics(self, analytics, make_incident, resolve_incident) -> None:
        await resolve_incident(
            4, IncidentType.Hardware, created_at=datetime(2024, 4, 2), severity="high"
        )
        await make_incident(severity=IncidentSeverity.Critical, created_at=datetime(2024, 4, 5))
        await make_incident(severity=IncidentSeverity.Low, created_at=datetime(2024, 4, 8))
        await resolve_incident(10, IncidentType.Network, created_at=datetime(2024, 3, 3))
        await resolve_incident(2, IncidentType.Network, created_at=datetime(2024, 3, 31, 23))
        await make_incident(created_at=datetime(2024, 2, 29))

        metrics = await analytics.metrics(now=NOW)

        assert metrics.incidents_this_month == 3
        assert metrics.incidents_last_month == 2
        assert metrics.incidents_change_tendency == 1
        assert metrics.incidents_change_percentile == 50.0
        assert metrics.average_resolution_time == 4.0
        assert metrics.average_resolution_time_previous_month == 6.0
        assert metrics.resolution_time_change_tendency == -2.0
        assert metrics.most_common_incident_type == "network"
        assert metrics.most_common_incident_percentage == 66.67
        assert metrics.high_urgency_incidents == 2

    @pytest.mark.asyncio
    async def test_untyped_resolutions_not_most_common(self, analytics, resolve_incident) -> None:
        for _ in range(3):
            await resolve_incident(1, None, created_at=datetime(2024, 4, 1))
        await resolve_incident(1, IncidentType.Software, created_at=datetime(2024, 4, 1))

        metrics = await analytics.metrics(now=NOW)

        assert metrics.most_common_incident_type == "software"
        assert metrics.most_common_incident_percentage == 100.0

    @pytest.mark.asyncio
    async def test_empty_store(self, analytics) -> None:
        metrics = await analytics.metrics(now=NOW)

        assert metrics.incidents_this_month == 0
        assert metrics.incidents_change_percentile == 0.0
        assert metrics.average_resolution_time == 0.0
        assert metrics.most_common_incident_type is None
        assert metrics.most_common_incident_percentage == 0.0

    @pytest.mark.asyncio
    async def test_camel_case_keys(self, analytics) -> None:
        body = (await analytics.metrics(now=NOW)).model_dump(by_alias=True)

        assert "incidentsThisMonth" in body
        assert "averageResolutionTimePreviousMonth" in body
        assert "highUrgencyIncidents" in body


class TestSeries:
    """Tests for the per-day and per-type dashboard series."""

    @pytest.mark.asyncio
    async def test_incident_volume(self, analytics, make_incident) -> None:
        await make_incident(created_at=datetime(2024, 3, 11, 13))
        await make_incident(created_at=datetime(2024, 3, 11, 10))
        await make_incident(severity=IncidentSeverity.Low, created_at=datetime(2024, 4, 1, 8))
        await make_incident(severity=IncidentSeverity.High, created_at=datetime(2024, 4, 1, 9))

        points = await analytics.incident_volume("30d", now=NOW)

        assert points == [
            VolumePoint(date="2024-03-11", incidents=1),
            VolumePoint(date="2024-04-01", incidents=2),
        ]

    @pytest.mark.asyncio
    async def test_invalid_volume_period(self, analytics) -> None:
        with pytest.raises(ValidationError, match="Invalid period"):
            await analytics.incident_volume("2w", now=NOW)

    @pytest.mark.asyncio
    async def test_urgency_distribution(self, analytics, make_incident) -> None:
        await make_incident(severity=IncidentSeverity.Low, created_at=datetime(2024, 4, 1, 8))
        await make_incident(severity=IncidentSeverity.High, created_at=datetime(2024, 4, 1, 9))
        await make_incident(severity=IncidentSeverity.High, created_at=datetime(2024, 4, 1, 10))
        await make_incident(severity=IncidentSeverity.Critical, created_at=datetime(2023, 1, 1))

        recent = await analytics.urgency_distribution("30d", now=NOW)
        everything = await analytics.urgency_distribution(now=NOW)

        assert recent == [UrgencyPoint(date="2024-04-01", low=1, high=2)]
        assert [point.date for point in everything] == ["2023-01-01", "2024-04-01"]
        assert everything[0].critical == 1

    @pytest.mark.asyncio
    async def test_resolution_time_fastest_first(self, analytics, resolve_incident) -> None:
        await resolve_incident(5, IncidentType.Hardware, created_at=datetime(2024, 4, 1))
        await resolve_incident(1 / 3, IncidentType.Software, created_at=datetime(2024, 4, 2))
        await resolve_incident(9, IncidentType.Hardware, created_at=datetime(2024, 4, 3))
        await resolve_incident(30, IncidentType.Network, created_at=datetime(2023, 6, 1))

        rows = await analytics.resolution_time("30d", now=NOW)

        assert [(r.incident_type, r.count) for r in rows] == [("software", 1), ("hardware", 2)]
        assert rows[0].avg_resolution_time == 0.33
        assert (rows[1].min_resolution_time, rows[1].max_resolution_time) == (5.0, 9.0)
        assert rows[1].avg_resolution_time == 7.0
        assert len(await analytics.resolution_time(now=NOW)) == 3

    @pytest.mark.asyncio
    async def test_incident_type_percentage(self, analytics, resolve_incident) -> None:
        await resolve_incident(1, IncidentType.Hardware, created_at=datetime(2024, 4, 1))
        await resolve_incident(1, IncidentType.Hardware, created_at=datetime(2024, 4, 2))
        await resolve_incident(1, IncidentType.Network, created_at=datetime(2024, 4, 3))

        shares = await analytics.incident_type_percentage(now=NOW)

        assert [(s.incident_type, s.count, s.percentage) for s in shares] == [
            ("hardware", 2, 66.67),
            ("network", 1, 33.33),
        ]

    @pytest.mark.asyncio
    async def test_no_resolutions(self, analytics) -> None:
        assert await analytics.incident_type_percentage(now=NOW) == []
        assert await analytics.resolution_time(now=NOW) == []
