"""Task-list progress for a case.

A case is filled in through three sections (person, clinical, location)
followed by a check-answers step. This module derives each section's status
from the case row alone.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class TaskStatus(str, Enum):
    """Status shown against a task-list section."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class CaseProgress(BaseModel):
    """Per-section status of a case's task list."""

    model_config = ConfigDict(frozen=True)

    person: TaskStatus
    clinical: TaskStatus
    location: TaskStatus
    check_answers: TaskStatus
    ready_to_submit: bool


def _status(complete: bool, started: bool) -> TaskStatus:
    if complete:
        return TaskStatus.COMPLETED
    if started:
        return TaskStatus.IN_PROGRESS
    return TaskStatus.NOT_STARTED


def _has_date(case: Any, group: str) -> bool:
    return bool(
        getattr(case, f"{group}_day", None)
        and getattr(case, f"{group}_month", None)
        and getattr(case, f"{group}_year", None)
    )


def case_progress(case: Any) -> CaseProgress:
    """Derive task-list progress from a case row.

    Args:
        case: A Case ORM row or any object with the same attributes.

    Returns:
        The CaseProgress. check_answers is only ever IN_PROGRESS (once the
        other three sections are complete) or NOT_STARTED, since submitting
        is what completes it.
    """
    has_dob = _has_date(case, "dob")
    has_symptoms_date = _has_date(case, "symptoms")

    person_complete = bool(case.person_name and case.nhs_number and has_dob)
    person_started = bool(case.person_name or case.nhs_number or has_dob)

    location_complete = bool(case.postcode)
    location_started = bool(case.postcode or case.organisation)

    all_complete = person_complete and has_symptoms_date and location_complete

    return CaseProgress(
        person=_status(person_complete, person_started),
        clinical=_status(has_symptoms_date, has_symptoms_date),
        location=_status(location_complete, location_started),
        check_answers=_status(False, all_complete),
        ready_to_submit=all_complete,
    )
