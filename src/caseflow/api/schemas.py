"""Pydantic request and response schemas for the caseflow API.

All API inputs and outputs use Pydantic models, never raw dicts.
Schemas are grouped by resource type.

Resources:
- Case       — creation, field-group updates, workflow actions
- CaseEvent  — the immutable audit trail of a case
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from caseflow.core.snapshot import DateParts
from caseflow.core.workflow import CaseEventType

# ---------------------------------------------------------------------------
# Case request schemas
# ---------------------------------------------------------------------------


class _StrippedRequest(BaseModel):
    """Base for request bodies; surrounding whitespace is removed from every string."""

    model_config = ConfigDict(str_strip_whitespace=True)


class CaseCreateRequest(_StrippedRequest):
    """Request body for creating a case."""

    title: str = Field(description="Short case title", min_length=1, max_length=255)
    description: str | None = Field(default=None, description="Optional free-text description")


class _VersionedRequest(_StrippedRequest):
    expected_version: int | None = Field(
        default=None,
        ge=1,
        description="Reject the change with 409 unless the case is still at this version",
    )


class DetailsUpdateRequest(_VersionedRequest):
    """Request body for editing the generic details of a case."""

    title: str = Field(description="Short case title", min_length=1, max_length=255)
    description: str | None = Field(default=None, description="Free-text description; blank clears it")


class PersonDetailsRequest(_VersionedRequest):
    """Request body for the person section of the task list."""

    person_name: str = Field(description="Full name of the person", min_length=1)
    nhs_number: str = Field(description="NHS number as entered", min_length=1)
    dob: DateParts = Field(description="Date of birth, all three parts")


class ClinicalDetailsRequest(_VersionedRequest):
    """Request body for the clinical section of the task list."""

    symptoms_date: DateParts = Field(description="Date symptoms started, all three parts")


class LocationDetailsRequest(_VersionedRequest):
    """Request body for the location section of the task list."""

    postcode: str = Field(description="Postcode", min_length=1)
    organisation: str | None = Field(default=None, description="Reporting organisation; blank clears it")


class ReviewActionRequest(_VersionedRequest):
    """Optional request body for submit and approve."""

    comment: str | None = Field(default=None, description="Optional comment recorded on the event")


class ReturnRequest(_VersionedRequest):
    """Request body for returning a case to its author. A reason is mandatory."""

    comment: str = Field(description="Why the case is being returned", min_length=1)


class TransitionRequest(_VersionedRequest):
    """Request body for applying an arbitrary workflow event."""

    event_type: str = Field(description="SUBMIT_FOR_REVIEW | APPROVE | RETURN")
    comment: str | None = Field(
        default=None,
        description="Comment recorded on the event; required when event_type is RETURN",
    )

    @model_validator(mode="after")
    def _require_return_comment(self) -> "TransitionRequest":
        if self.event_type == CaseEventType.RETURN.value and not self.comment:
            raise ValueError("A comment is required when returning a case")
        return self


# ---------------------------------------------------------------------------
# Case response schemas
# ---------------------------------------------------------------------------


class CaseResponse(BaseModel):
    """Full representation of a case."""

    id: uuid.UUID = Field(description="Case UUID")
    state: str = Field(description="Workflow state: DRAFT | IN_REVIEW | RETURNED | APPROVED")
    title: str = Field(description="Case title")
    description: str | None = Field(description="Case description")
    created_by: str = Field(description="Actor that created the case")
    updated_by: str = Field(description="Actor behind the latest change")
    assigned_to: str | None = Field(description="Actor the case is assigned to")
    person_name: str | None = Field(description="Full name of the person")
    nhs_number: str | None = Field(description="NHS number")
    dob_day: int | None = Field(description="Date of birth, day")
    dob_month: int | None = Field(description="Date of birth, month")
    dob_year: int | None = Field(description="Date of birth, year")
    symptoms_day: int | None = Field(description="Symptoms start date, day")
    symptoms_month: int | None = Field(description="Symptoms start date, month")
    symptoms_year: int | None = Field(description="Symptoms start date, year")
    postcode: str | None = Field(description="Postcode")
    organisation: str | None = Field(description="Reporting organisation")
    created_at: datetime = Field(description="Creation timestamp (UTC)")
    updated_at: datetime = Field(description="Last update timestamp (UTC)")
    version: int = Field(description="Optimistic concurrency counter")


class CaseSummaryResponse(BaseModel):
    """Minimal projection of a case, used in lists and after transitions."""

    id: uuid.UUID = Field(description="Case UUID")
    state: str = Field(description="Workflow state")
    title: str = Field(description="Case title")
    created_at: datetime = Field(description="Creation timestamp (UTC)")
    updated_at: datetime = Field(description="Last update timestamp (UTC)")


class CaseUpdateResult(BaseModel):
    """Outcome of a field-group update: the updated case and the event written."""

    case: CaseResponse = Field(description="The case after the update")
    event_id: int = Field(description="Id of the audit event recorded for the update")


# ---------------------------------------------------------------------------
# CaseEvent schemas
# ---------------------------------------------------------------------------


class CaseEventResponse(BaseModel):
    """Response schema for one audit event. Read-only."""

    id: int = Field(description="Event sequence id")
    case_id: uuid.UUID = Field(description="Owning case UUID")
    event_type: str = Field(description="Event type tag")
    from_state: str | None = Field(description="State before the event, null for CREATE")
    to_state: str | None = Field(description="State after the event")
    actor_id: str = Field(description="Actor that performed the action")
    comment: str | None = Field(description="Optional comment")
    occurred_at: datetime = Field(description="When the event was written (UTC)")
    event_data: dict[str, Any] | None = Field(description="Before/after snapshots for edit events")
