"""IncidentTriageWorkflow: incident status machine, operator visibility and AI proposals."""

from datetime import datetime, timedelta
from typing import Any

from assetdesk.domain.interfaces.document_store import DocumentStore, IncidentQuery
from assetdesk.domain.interfaces.observability_manager import ObservabilityManager
from assetdesk.domain.interfaces.suggestion_provider import SuggestionProvider
from assetdesk.domain.models.admin import AdminRole
from assetdesk.domain.models.incident import (
    AIResolutionProposal,
    Incident,
    IncidentResolution,
    IncidentStatus,
    IncidentView,
    ResolutionDetails,
)
from assetdesk.domain.models.suggestion import AISuggestion, IncidentInfo
from assetdesk.domain.models.system_error import (
    AssetDeskError,
    ErrorCategory,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from assetdesk.infrastructure.utils.validation import (
    generate_reference,
    is_valid_object_id,
    new_document_id,
    normalize_datetime,
    validate_object_id,
)

SEVERITY_RANK: dict[str, int] = {"critical": 4, "high": 3, "medium": 2, "low": 1}
"""Severity rank used to order incident lists; any other value ranks 0."""


def sort_by_severity(incidents: list[IncidentView]) -> list[IncidentView]:
    """Most severe first. Stable, so newest-first input order breaks ties."""
    return sorted(
        incidents,
        key=lambda i: SEVERITY_RANK.get(getattr(i.severity, "value", i.severity), 0),
        reverse=True,
    )


class IncidentTriageWorkflow:
    """Drives incidents through pending -> in_progress -> resolved | closed.

    Operators see only incidents located in rooms of the departments they
    are assigned to, unless they hold the elevated role, which sees every
    incident. Status changes that carry a second document (AI proposal on
    acknowledgement, resolution on closure) are written atomically by the
    DocumentStore.
    """

    _VALID_TRANSITIONS: dict[IncidentStatus, set[IncidentStatus]] = {
        IncidentStatus.Pending: {IncidentStatus.InProgress},
        IncidentStatus.InProgress: {IncidentStatus.Resolved, IncidentStatus.Closed},
        IncidentStatus.Resolved: set(),
        IncidentStatus.Closed: set(),
    }

    def __init__(
        self,
        document_store: DocumentStore,
        observability_manager: ObservabilityManager,
        suggestion_provider: SuggestionProvider | None = None,
        elevated_role: str = AdminRole.SuperAdmin.value,
    ) -> None:
        """Initialize IncidentTriageWorkflow.

        Args:
            document_store: DocumentStore implementation for persistence.
            observability_manager: ObservabilityManager for events and logging.
            suggestion_provider: Provider used by `suggest`. Optional for
                deployments without AI suggestions.
            elevated_role: Admin role that bypasses department visibility.
        """
        self._document_store = document_store
        self._observability = observability_manager
        self._suggestion_provider = suggestion_provider
        self._elevated_role = elevated_role

    def is_valid_transition(self, from_status: IncidentStatus, to_status: IncidentStatus) -> bool:
        return to_status in self._VALID_TRANSITIONS.get(from_status, set())

    async def _load_for_transition(
        self, incident_id: str, new_status: IncidentStatus
    ) -> Incident:
        validate_object_id(incident_id, field="_id")
        incident = await self._document_store.get_incident(incident_id)
        if incident is None:
            raise NotFoundError("Incident not found", details={"incident_id": incident_id})
        if not self.is_valid_transition(incident.status, new_status):
            raise InvalidStateTransitionError(
                f"Invalid status transition from {incident.status.value} to {new_status.value}",
                details={"incident_id": incident_id},
            )
        return incident

    async def _apply_transition(
        self,
        incident: Incident,
        new_status: IncidentStatus,
        now: datetime,
        proposal: AIResolutionProposal | None = None,
        resolution: IncidentResolution | None = None,
    ) -> Incident:
        updated = await self._document_store.transition_incident(
            incident.id,
            expected_status=incident.status,
            new_status=new_status,
            updated_at=now,
            proposal=proposal,
            resolution=resolution,
        )
        if updated is None:
            # Status changed between the read and the conditional update
            raise InvalidStateTransitionError(
                f"Incident is no longer {incident.status.value}",
                details={"incident_id": incident.id},
            )
        return updated

    async def acknowledge(self, incident_id: str) -> Incident:
        """Move a pending incident to in_progress.

        Raises:
            ValidationError: If the id is malformed.
            NotFoundError: If the incident does not exist.
            InvalidStateTransitionError: If the incident is not pending.
        """
        incident = await self._load_for_transition(incident_id, IncidentStatus.InProgress)
        updated = await self._apply_transition(
            incident, IncidentStatus.InProgress, datetime.utcnow()
        )
        await self._emit(
            "incident_acknowledged",
            {"incident_id": updated.incident_id, "status": updated.status.value},
        )
        return updated

    async def acknowledge_with_proposal(
        self,
        incident_id: str,
        admin_id: str,
        details: ResolutionDetails,
    ) -> tuple[Incident, AIResolutionProposal]:
        """Move a pending incident to in_progress and save the AI proposal atomically.

        If either write fails, the incident stays pending and no proposal is
        stored.
        """
        if not admin_id:
            raise ValidationError("Proposal admin_id is required", field="admin_id")
        validate_object_id(admin_id, field="admin_id")
        incident = await self._load_for_transition(incident_id, IncidentStatus.InProgress)

        now = datetime.utcnow()
        proposal = AIResolutionProposal(
            id=new_document_id(),
            proposal_id=generate_reference("PROP"),
            incident_id=incident.id,
            admin_id=admin_id,
            **details.model_dump(),
        )
        updated = await self._apply_transition(
            incident, IncidentStatus.InProgress, now, proposal=proposal
        )
        await self._emit(
            "incident_acknowledged",
            {
                "incident_id": updated.incident_id,
                "status": updated.status.value,
                "proposal_id": proposal.proposal_id,
                "admin_id": admin_id,
            },
        )
        return updated, proposal

    async def close(
        self,
        incident_id: str,
        status: IncidentStatus | str,
        admin_id: str | None = None,
        details: ResolutionDetails | None = None,
    ) -> tuple[Incident, IncidentResolution | None]:
        """Move an in-progress incident to resolved or closed.

        `resolved` writes exactly one IncidentResolution together with the
        status change; `closed` writes none.

        Raises:
            ValidationError: If the id or status is malformed, or admin_id is
                missing for a resolution.
            NotFoundError: If the incident does not exist.
            InvalidStateTransitionError: If the incident is not in progress.
        """
        try:
            new_status = IncidentStatus(status)
        except ValueError as e:
            raise ValidationError(f"Invalid incident status: {status}", field="status") from e
        if new_status not in (IncidentStatus.Resolved, IncidentStatus.Closed):
            raise ValidationError("status must be resolved or closed", field="status")

        incident = await self._load_for_transition(incident_id, new_status)

        now = datetime.utcnow()
        resolution = None
        if new_status == IncidentStatus.Resolved:
            if not admin_id:
                raise ValidationError("adminId is required to resolve an incident", field="adminId")
            validate_object_id(admin_id, field="adminId")
            resolution = IncidentResolution(
                id=new_document_id(),
                resolution_id=generate_reference("RES"),
                incident_id=incident.id,
                admin_id=admin_id,
                resolution_time=now,
                **(details or ResolutionDetails()).model_dump(),
            )

        updated = await self._apply_transition(incident, new_status, now, resolution=resolution)
        await self._emit(
            f"incident_{new_status.value}",
            {
                "incident_id": updated.incident_id,
                "status": updated.status.value,
                "admin_id": admin_id,
                "resolution_id": resolution.resolution_id if resolution else None,
            },
        )
        return updated, resolution

    async def _visible_room_ids(self, admin_id: str) -> list[str] | None:
        """Rooms the admin may see, or None for unrestricted visibility.

        Raises:
            ValidationError: If the id is missing or malformed.
            NotFoundError: If the admin does not exist.
        """
        if not admin_id:
            raise ValidationError("adminId is required", field="adminId")
        validate_object_id(admin_id, field="adminId")
        admin = await self._document_store.get_admin(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found", details={"admin_id": admin_id})
        if admin.role.value == self._elevated_role:
            return None

        links = await self._document_store.list_admin_links(admin_id=admin_id)
        department_ids = [link.department_id for link in links]
        if not department_ids:
            return []
        rooms = await self._document_store.list_rooms(department_ids)
        return [room.id for room in rooms]

    async def list_for_operator(
        self, admin_id: str, status: IncidentStatus = IncidentStatus.Pending
    ) -> list[IncidentView]:
        """Incidents in `status` visible to the admin, most severe first."""
        room_ids = await self._visible_room_ids(admin_id)
        if room_ids == []:
            return []
        incidents = await self._document_store.query_incidents(
            IncidentQuery(status=status, room_ids=room_ids)
        )
        return sort_by_severity(incidents)

    async def count_for_operator(
        self, admin_id: str, status: IncidentStatus = IncidentStatus.Pending
    ) -> int:
        """Number of incidents `list_for_operator` would return."""
        room_ids = await self._visible_room_ids(admin_id)
        if room_ids == []:
            return 0
        return await self._document_store.count_incidents(
            IncidentQuery(status=status, room_ids=room_ids)
        )

    async def filter_in_progress(
        self,
        severity: str | None = None,
        department_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        admin_id: str | None = None,
    ) -> list[IncidentView]:
        """In-progress incidents filtered by severity, department and creation date.

        The end date is inclusive: one day is added to it. A malformed
        department id is ignored. When `admin_id` is given, the operator
        visibility rule applies as well.
        """
        room_ids = await self._visible_room_ids(admin_id) if admin_id else None
        if room_ids == []:
            return []
        query = IncidentQuery(
            status=IncidentStatus.InProgress,
            room_ids=room_ids,
            severity=severity.strip() if severity and severity.strip() else None,
            department_id=department_id if is_valid_object_id(department_id) else None,
            created_from=normalize_datetime(start_date),
            created_to=normalize_datetime(end_date) + timedelta(days=1) if end_date else None,
        )
        return sort_by_severity(await self._document_store.query_incidents(query))

    async def get_proposal(self, incident_id: str) -> AIResolutionProposal:
        """Stored AI proposal for an incident.

        Raises:
            NotFoundError: If no proposal was saved for the incident.
        """
        validate_object_id(incident_id, field="_id")
        proposal = await self._document_store.get_proposal_for_incident(incident_id)
        if proposal is None:
            raise NotFoundError(
                "No AI suggestion found for this incident", details={"incident_id": incident_id}
            )
        return proposal

    async def describe(self, incident_id: str) -> IncidentInfo:
        """Suggestion-service input for a stored incident."""
        validate_object_id(incident_id, field="_id")
        incident = await self._document_store.get_incident(incident_id)
        if incident is None:
            raise NotFoundError("Incident not found", details={"incident_id": incident_id})

        department_name = "Unknown"
        room = await self._document_store.get_room(incident.room_id)
        if room is not None and room.department_id:
            department = await self._document_store.get_department(room.department_id)
            if department is not None:
                department_name = department.name
        return IncidentInfo(
            description=incident.description,
            severity=incident.severity.value,
            department=department_name,
        )

    async def suggest_for(self, info: IncidentInfo) -> AISuggestion:
        """Ask the suggestion provider about an incident description."""
        if self._suggestion_provider is None:
            raise AssetDeskError(
                "Suggestion service is not configured", category=ErrorCategory.DependencyError
            )
        return await self._suggestion_provider.suggest(info)

    async def suggest(self, incident_id: str) -> AISuggestion:
        """AI suggestion for a stored incident."""
        return await self.suggest_for(await self.describe(incident_id))

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
                context={"incident_id": payload.get("incident_id")},
            )
