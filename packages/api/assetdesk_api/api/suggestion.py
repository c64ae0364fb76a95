"""
AI suggestion endpoints: stored proposals and fresh suggestions.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from assetdesk.domain.components.incident_triage import IncidentTriageWorkflow
from assetdesk.domain.models.suggestion import IncidentInfo
from assetdesk.domain.models.system_error import ValidationError
from assetdesk_api.dependencies import get_triage_workflow
from assetdesk_api.serialization import to_json

router = APIRouter()


class SuggestionRequest(BaseModel):
    """Either a stored incident id or an incident description to analyse."""

    id: str | None = Field(default=None, alias="_id")
    description: str | None = None
    severity: str | None = None
    department: str | None = None

    model_config = ConfigDict(populate_by_name=True)


@router.get("")
async def get_stored_proposal(
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
    incident_id: Annotated[str | None, Query(alias="_id")] = None,
) -> dict[str, Any]:
    """
    AI proposal saved when the incident was acknowledged.
    """
    if not incident_id:
        raise ValidationError("Incident _id is required", field="_id")
    proposal = await workflow.get_proposal(incident_id)
    return {
        "success": True,
        "message": "AI suggestion retrieved successfully",
        "data": to_json(proposal),
    }


@router.post("")
async def request_suggestion(
    request: Annotated[SuggestionRequest, Body(...)],
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
) -> dict[str, Any]:
    """
    Fresh AI suggestion. Falls back to a generic suggestion when the service fails.
    """
    if request.id:
        suggestion = await workflow.suggest(request.id)
    elif request.description and request.severity:
        suggestion = await workflow.suggest_for(
            IncidentInfo(
                description=request.description,
                severity=request.severity,
                department=request.department or "Unknown",
            )
        )
    else:
        raise ValidationError("Incident _id or description and severity are required")
    return {"success": True, "data": suggestion.model_dump()}
