"""
Incident dashboard endpoints.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from assetdesk.domain.components.incident_analytics import IncidentAnalytics
from assetdesk_api.dependencies import get_incident_analytics

router = APIRouter()

PeriodQuery = Annotated[str | None, Query(description="7d, 30d, 90d or 1y; all time otherwise")]


@router.get("/metrics")
async def metrics(
    analytics: Annotated[IncidentAnalytics, Depends(get_incident_analytics)],
) -> dict[str, Any]:
    """
    This month's incident figures against last month's.
    """
    result = await analytics.metrics()
    return result.model_dump(by_alias=True, mode="json")


@router.get("/incidentVolume")
async def incident_volume(
    analytics: Annotated[IncidentAnalytics, Depends(get_incident_analytics)],
    period: Annotated[str, Query(description="30d, 90d, 6m, 1y or ytd")] = "30d",
) -> dict[str, Any]:
    """
    Incidents created per day.
    """
    points = await analytics.incident_volume(period)
    return {"data": [p.model_dump(by_alias=True, mode="json") for p in points]}


@router.get("/urgencyDistribution")
async def urgency_distribution(
    analytics: Annotated[IncidentAnalytics, Depends(get_incident_analytics)],
    period: PeriodQuery = None,
) -> dict[str, Any]:
    """
    Incidents created per day, split by severity.
    """
    points = await analytics.urgency_distribution(period)
    return {"data": [p.model_dump(by_alias=True, mode="json") for p in points]}


@router.get("/resolutionTime")
async def resolution_time(
    analytics: Annotated[IncidentAnalytics, Depends(get_incident_analytics)],
    period: PeriodQuery = None,
) -> list[dict[str, Any]]:
    rows = await analytics.resolution_time(period)
    return [row.model_dump(by_alias=True, mode="json") for row in rows]


@router.get("/incidentTypePercentage")
async def incident_type_percentage(
    analytics: Annotated[IncidentAnalytics, Depends(get_incident_analytics)],
    period: PeriodQuery = None,
) -> list[dict[str, Any]]:
    rows = await analytics.incident_type_percentage(period)
    return [row.model_dump(by_alias=True, mode="json") for row in rows]
