"""API router for caseflow.

All case endpoints are registered here and included in main.py under the
/api/v1 prefix. Routes are thin: all business logic lives in
CaseLifecycleService. The engine reports a missing case as None; routes turn
that into NotFoundError (404).

Endpoints:
- POST/GET  /cases                                   — create / list recent cases
- GET       /cases/{id}                              — get case by ID
- GET       /cases/{id}/tasks                        — task-list progress
- PUT       /cases/{id}/details|person|clinical|location — field-group updates
- POST      /cases/{id}/submit|approve|return        — workflow actions
- POST      /cases/{id}/transitions                  — apply any workflow event
- GET       /cases/{id}/events                       — audit trail, newest first
- GET       /cases/{id}/events/{event_id}/changes    — rendered field changes
"""

import uuid
from typing import Annotated, TypeVar

from fastapi import APIRouter, Depends, Header, Query, Request

from caseflow.api.schemas import (
    CaseCreateRequest,
    CaseEventResponse,
    CaseResponse,
    CaseSummaryResponse,
    CaseUpdateResult,
    ClinicalDetailsRequest,
    DetailsUpdateRequest,
    LocationDetailsRequest,
    PersonDetailsRequest,
    ReturnRequest,
    ReviewActionRequest,
    TransitionRequest,
)
from caseflow.core.progress import CaseProgress
from caseflow.core.services import CaseLifecycleService
from caseflow.core.snapshot import ChangeRow
from caseflow.database import get_session_factory
from caseflow.errors import NotFoundError
from caseflow.observability import get_logger
from caseflow.settings import Settings

logger = get_logger(__name__)

router = APIRouter(tags=["cases"])

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def get_app_settings(request: Request) -> Settings:
    """Return the settings the running app was created with."""
    return request.app.state.settings


def get_case_service(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> CaseLifecycleService:
    """Construct CaseLifecycleService over the initialized session factory.

    Args:
        settings: Service settings.

    Returns:
        A CaseLifecycleService instance.
    """
    return CaseLifecycleService(
        session_factory=get_session_factory(),
        recent_cases_limit=settings.recent_cases_limit,
    )


def get_actor_id(
    settings: Annotated[Settings, Depends(get_app_settings)],
    x_actor_id: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve the acting user from the X-Actor-Id header.

    Identity is trusted as given; a missing or blank header falls back to
    the configured default actor.
    """
    if x_actor_id and x_actor_id.strip():
        return x_actor_id.strip()
    return settings.default_actor_id


ServiceDep = Annotated[CaseLifecycleService, Depends(get_case_service)]
ActorDep = Annotated[str, Depends(get_actor_id)]


def _found(result: T | None, case_id: uuid.UUID) -> T:
    if result is None:
        raise NotFoundError(resource="Case", resource_id=str(case_id))
    return result


# ---------------------------------------------------------------------------
# Case endpoints
# ---------------------------------------------------------------------------


@router.post("/cases", response_model=CaseResponse, status_code=201)
async def create_case(
    request: CaseCreateRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseResponse:
    """Create a new case in DRAFT.

    Args:
        request: Case creation request body.
        actor_id: Acting user.
        service: Injected CaseLifecycleService.

    Returns:
        The created case.
    """
    logger.info("POST /cases", actor_id=actor_id)
    return await service.create_case(
        title=request.title,
        description=request.description,
        created_by=actor_id,
    )


@router.get("/cases", response_model=list[CaseSummaryResponse])
async def list_cases(
    service: ServiceDep,
    limit: int | None = Query(default=None, ge=1, le=500, description="Maximum number of cases"),
) -> list[CaseSummaryResponse]:
    """List the most recently created cases, newest first."""
    return await service.list_cases(limit=limit)


@router.get("/cases/{case_id}", response_model=CaseResponse)
async def get_case(case_id: uuid.UUID, service: ServiceDep) -> CaseResponse:
    """Get a case by ID."""
    return _found(await service.get_case(case_id), case_id)


@router.get("/cases/{case_id}/tasks", response_model=CaseProgress)
async def get_case_tasks(case_id: uuid.UUID, service: ServiceDep) -> CaseProgress:
    """Get the task-list progress of a case."""
    return _found(await service.get_case_progress(case_id), case_id)


# ---------------------------------------------------------------------------
# Field-group updates
# ---------------------------------------------------------------------------


@router.put("/cases/{case_id}/details", response_model=CaseUpdateResult)
async def update_details(
    case_id: uuid.UUID,
    request: DetailsUpdateRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseUpdateResult:
    """Edit the title and description of a case.

    Args:
        case_id: The case UUID.
        request: New details.
        actor_id: Acting user.
        service: Injected CaseLifecycleService.

    Returns:
        The updated case and the id of the EDIT_DETAILS event.
    """
    result = await service.update_details(
        case_id=case_id,
        actor_id=actor_id,
        title=request.title,
        description=request.description,
        expected_version=request.expected_version,
    )
    return _found(result, case_id)


@router.put("/cases/{case_id}/person", response_model=CaseUpdateResult)
async def update_person_details(
    case_id: uuid.UUID,
    request: PersonDetailsRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseUpdateResult:
    """Edit the person section of a case."""
    result = await service.update_person_details(
        case_id=case_id,
        actor_id=actor_id,
        person_name=request.person_name,
        nhs_number=request.nhs_number,
        dob=request.dob,
        expected_version=request.expected_version,
    )
    return _found(result, case_id)


@router.put("/cases/{case_id}/clinical", response_model=CaseUpdateResult)
async def update_clinical_details(
    case_id: uuid.UUID,
    request: ClinicalDetailsRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseUpdateResult:
    """Edit the clinical section of a case."""
    result = await service.update_clinical_details(
        case_id=case_id,
        actor_id=actor_id,
        symptoms_date=request.symptoms_date,
        expected_version=request.expected_version,
    )
    return _found(result, case_id)


@router.put("/cases/{case_id}/location", response_model=CaseUpdateResult)
async def update_location_details(
    case_id: uuid.UUID,
    request: LocationDetailsRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseUpdateResult:
    """Edit the location section of a case."""
    result = await service.update_location_details(
        case_id=case_id,
        actor_id=actor_id,
        postcode=request.postcode,
        organisation=request.organisation,
        expected_version=request.expected_version,
    )
    return _found(result, case_id)


# ---------------------------------------------------------------------------
# Workflow actions
# ---------------------------------------------------------------------------


@router.post("/cases/{case_id}/submit", response_model=CaseSummaryResponse)
async def submit_case(
    case_id: uuid.UUID,
    actor_id: ActorDep,
    service: ServiceDep,
    request: ReviewActionRequest | None = None,
) -> CaseSummaryResponse:
    """Send a draft or returned case for review."""
    body = request or ReviewActionRequest()
    result = await service.submit_for_review(
        case_id=case_id,
        actor_id=actor_id,
        comment=body.comment,
        expected_version=body.expected_version,
    )
    return _found(result, case_id)


@router.post("/cases/{case_id}/approve", response_model=CaseSummaryResponse)
async def approve_case(
    case_id: uuid.UUID,
    actor_id: ActorDep,
    service: ServiceDep,
    request: ReviewActionRequest | None = None,
) -> CaseSummaryResponse:
    """Approve a case under review."""
    body = request or ReviewActionRequest()
    result = await service.approve(
        case_id=case_id,
        actor_id=actor_id,
        comment=body.comment,
        expected_version=body.expected_version,
    )
    return _found(result, case_id)


@router.post("/cases/{case_id}/return", response_model=CaseSummaryResponse)
async def return_case(
    case_id: uuid.UUID,
    request: ReturnRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseSummaryResponse:
    """Return a case under review to its author.

    A non-empty comment explaining the return is required.
    """
    result = await service.return_case(
        case_id=case_id,
        actor_id=actor_id,
        comment=request.comment,
        expected_version=request.expected_version,
    )
    return _found(result, case_id)


@router.post("/cases/{case_id}/transitions", response_model=CaseSummaryResponse)
async def apply_transition(
    case_id: uuid.UUID,
    request: TransitionRequest,
    actor_id: ActorDep,
    service: ServiceDep,
) -> CaseSummaryResponse:
    """Apply any workflow event to a case.

    Unknown event types and events not legal from the current state are
    rejected with 400.
    """
    result = await service.transition(
        case_id=case_id,
        event_type=request.event_type,
        actor_id=actor_id,
        comment=request.comment,
        expected_version=request.expected_version,
    )
    return _found(result, case_id)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


@router.get("/cases/{case_id}/events", response_model=list[CaseEventResponse])
async def list_case_events(case_id: uuid.UUID, service: ServiceDep) -> list[CaseEventResponse]:
    """List the audit events of a case, newest first.

    Returns 404 when the case itself does not exist.
    """
    _found(await service.get_case(case_id), case_id)
    return await service.list_case_events(case_id)


@router.get("/cases/{case_id}/events/{event_id}/changes", response_model=list[ChangeRow])
async def get_event_changes(
    case_id: uuid.UUID,
    event_id: int,
    service: ServiceDep,
) -> list[ChangeRow]:
    """Render the field changes recorded on one event of a case."""
    rows = await service.get_event_changes(case_id, event_id)
    if rows is None:
        raise NotFoundError(resource="Case event", resource_id=str(event_id))
    return rows
