"""
Incident triage endpoints: operator lists, acknowledgement, closure and filtering.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from assetdesk.domain.components.incident_triage import IncidentTriageWorkflow
from assetdesk.domain.models.incident import IncidentStatus, ResolutionDetails
from assetdesk.domain.models.system_error import ValidationError
from assetdesk_api.dependencies import get_triage_workflow
from assetdesk_api.serialization import to_json

router = APIRouter()


class AcknowledgeRequest(BaseModel):
    id: str | None = Field(default=None, alias="_id")

    model_config = ConfigDict(populate_by_name=True)


class ProposalPayload(ResolutionDetails):
    admin_id: str | None = None


class ProposalAcknowledgeRequest(BaseModel):
    id: str | None = Field(default=None, alias="_id")
    proposal: ProposalPayload | None = None

    model_config = ConfigDict(populate_by_name=True)


class CloseRequest(ResolutionDetails):
    incident_id: str | None = None
    status: str | None = None
    admin_id: str | None = Field(default=None, alias="adminId")

    model_config = ConfigDict(populate_by_name=True)


class FilterRequest(BaseModel):
    severity: str | None = None
    department: str | None = None
    start_date: datetime | None = Field(default=None, alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")
    admin_id: str | None = Field(default=None, alias="adminId")

    model_config = ConfigDict(populate_by_name=True)


AdminIdQuery = Annotated[str | None, Query(alias="adminId")]
CountQuery = Annotated[bool, Query(description="Return only the number of incidents")]


async def _operator_listing(
    workflow: IncidentTriageWorkflow,
    admin_id: str | None,
    status: IncidentStatus,
    count: bool,
) -> Any:
    if count:
        return {"count": await workflow.count_for_operator(admin_id, status)}
    return [to_json(i) for i in await workflow.list_for_operator(admin_id, status)]


@router.get("")
async def list_pending(
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
    admin_id: AdminIdQuery = None,
    count: CountQuery = False,
) -> Any:
    """
    Pending incidents visible to the operator, most severe first, or their count.
    """
    return await _operator_listing(workflow, admin_id, IncidentStatus.Pending, count)


@router.get("/in_progress")
async def list_in_progress(
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
    admin_id: AdminIdQuery = None,
    count: CountQuery = False,
) -> Any:
    """
    In-progress incidents visible to the operator, most severe first, or their count.
    """
    return await _operator_listing(workflow, admin_id, IncidentStatus.InProgress, count)


@router.patch("")
async def acknowledge_incident(
    request: Annotated[AcknowledgeRequest, Body(...)],
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
) -> dict[str, Any]:
    incident = await workflow.acknowledge(request.id)
    return {
        "success": True,
        "message": "Incident status updated to in progress",
        "data": {
            "incident_id": incident.incident_id,
            "status": incident.status.value,
            "updated_at": incident.updated_at.isoformat(),
        },
    }


@router.put("")
async def acknowledge_with_proposal(
    request: Annotated[ProposalAcknowledgeRequest, Body(...)],
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
) -> dict[str, Any]:
    """
    Acknowledge an incident and save the AI proposal in one atomic unit.
    """
    if not request.id or request.proposal is None:
        raise ValidationError("Incident _id and proposal data are required")
    details = ResolutionDetails.model_validate(
        request.proposal.model_dump(exclude={"admin_id"})
    )
    incident, proposal = await workflow.acknowledge_with_proposal(
        request.id, request.proposal.admin_id, details
    )
    return {
        "success": True,
        "message": "Incident updated to in progress with AI proposal",
        "data": {
            "incident_id": incident.incident_id,
            "status": incident.status.value,
            "updated_at": incident.updated_at.isoformat(),
            "proposal_id": proposal.proposal_id,
        },
    }


@router.post("")
async def close_incident(
    request: Annotated[CloseRequest, Body(...)],
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
) -> dict[str, Any]:
    """
    Close an in-progress incident as resolved (with a resolution record) or closed.
    """
    if not request.status:
        raise ValidationError("status is required", field="status")
    details = ResolutionDetails.model_validate(
        request.model_dump(include=set(ResolutionDetails.model_fields))
    )
    incident, resolution = await workflow.close(
        request.incident_id, request.status, request.admin_id, details
    )
    return {
        "success": True,
        "incident": to_json(incident),
        "resolution": to_json(resolution) if resolution else None,
    }


@router.post("/filter")
async def filter_incidents(
    request: Annotated[FilterRequest, Body(...)],
    workflow: Annotated[IncidentTriageWorkflow, Depends(get_triage_workflow)],
) -> dict[str, Any]:
    """
    In-progress incidents filtered by severity, department and creation date range.
    """
    incidents = await workflow.filter_in_progress(
        severity=request.severity,
        department_id=request.department,
        start_date=request.start_date,
        end_date=request.end_date,
        admin_id=request.admin_id,
    )
    return {"success": True, "data": [to_json(i) for i in incidents]}
