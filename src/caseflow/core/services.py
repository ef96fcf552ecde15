"""Case lifecycle engine.

CaseLifecycleService is the only code that mutates cases. Every mutating
operation runs in one transaction opened from the injected session factory:

    read current row -> apply change -> snapshot before/after
        -> flush updated row -> append exactly one CaseEvent -> commit

Any failure rolls the whole unit back, so a case change never exists without
its event and an event never exists without its change.

A missing case is reported by returning None, never by raising. Caller input
errors raise ValidationError / InvalidTransitionError; a lost optimistic
version race raises ConcurrentModificationError; store failures propagate as
SQLAlchemy exceptions after rollback.
"""

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from caseflow.adapters.event_log import CaseEventRepository
from caseflow.adapters.repositories import CaseRepository
from caseflow.api.schemas import (
    CaseEventResponse,
    CaseResponse,
    CaseSummaryResponse,
    CaseUpdateResult,
)
from caseflow.core.models import Case, CaseEvent
from caseflow.core.progress import CaseProgress, case_progress
from caseflow.core.snapshot import CaseSnapshot, ChangeRow, DateParts, diff_rows, take_snapshot
from caseflow.core.workflow import INITIAL_STATE, CaseEventType, resolve_transition
from caseflow.errors import ConcurrentModificationError
from caseflow.observability import get_logger

logger = get_logger(__name__)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _date_columns(group: str, parts: DateParts | None) -> dict[str, int | None]:
    if parts is None:
        return {f"{group}_day": None, f"{group}_month": None, f"{group}_year": None}
    return {f"{group}_day": parts.day, f"{group}_month": parts.month, f"{group}_year": parts.year}


def _check_version(case: Case, expected_version: int | None) -> None:
    if expected_version is not None and case.version != expected_version:
        raise ConcurrentModificationError(case_id=str(case.id), expected_version=expected_version)


class CaseLifecycleService:
    """Transactional case mutation and audit-trail reads.

    Args:
        session_factory: Factory for the case store sessions. Each operation
            opens, and always releases, its own session.
        recent_cases_limit: Default page size for list_cases().
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        recent_cases_limit: int = 50,
    ) -> None:
        """Initialize CaseLifecycleService with an injected session factory.

        Args:
            session_factory: The async_sessionmaker bound to the case store.
            recent_cases_limit: How many cases list_cases() returns by default.
        """
        self._session_factory = session_factory
        self._recent_cases_limit = recent_cases_limit

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_case(
        self,
        title: str,
        description: str | None,
        created_by: str,
    ) -> CaseResponse:
        """Create a case in DRAFT and record its CREATE event.

        The title is stored as given; validating it is the caller's job.

        Args:
            title: Case title.
            description: Optional description; blank is stored as absent.
            created_by: Actor creating the case.

        Returns:
            The created CaseResponse.
        """
        async with self._session_factory() as session:
            try:
                case = await CaseRepository(session).create(
                    title=title,
                    description=_blank_to_none(description),
                    created_by=created_by,
                )
                await CaseEventRepository(session).append(
                    case_id=case.id,
                    event_type=CaseEventType.CREATE.value,
                    from_state=None,
                    to_state=INITIAL_STATE.value,
                    actor_id=created_by,
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        logger.info("Case created", case_id=str(case.id), actor_id=created_by)
        return _case_to_response(case)

    # ------------------------------------------------------------------
    # Field-group updates
    # ------------------------------------------------------------------

    async def update_details(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        title: str,
        description: str | None,
        expected_version: int | None = None,
    ) -> CaseUpdateResult | None:
        """Edit the generic details (title and description) of a case.

        Args:
            case_id: The case UUID.
            actor_id: Actor making the change.
            title: New title.
            description: New description; blank clears it.
            expected_version: Optional version the caller last saw.

        Returns:
            The CaseUpdateResult, or None if the case does not exist.

        Raises:
            ConcurrentModificationError: If the case moved past the version read.
        """
        return await self._apply_edit(
            case_id=case_id,
            actor_id=actor_id,
            event_type=CaseEventType.EDIT_DETAILS,
            changes={"title": title, "description": _blank_to_none(description)},
            expected_version=expected_version,
        )

    async def update_person_details(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        person_name: str | None,
        nhs_number: str | None,
        dob: DateParts | None,
        expected_version: int | None = None,
    ) -> CaseUpdateResult | None:
        """Edit the person section: name, NHS number and date of birth.

        Args:
            case_id: The case UUID.
            actor_id: Actor making the change.
            person_name: Full name; blank clears it.
            nhs_number: NHS number; blank clears it.
            dob: Complete date of birth, or None to clear it.
            expected_version: Optional version the caller last saw.

        Returns:
            The CaseUpdateResult, or None if the case does not exist.
        """
        changes: dict[str, Any] = {
            "person_name": _blank_to_none(person_name),
            "nhs_number": _blank_to_none(nhs_number),
            **_date_columns("dob", dob),
        }
        return await self._apply_edit(
            case_id=case_id,
            actor_id=actor_id,
            event_type=CaseEventType.EDIT_PERSON,
            changes=changes,
            expected_version=expected_version,
        )

    async def update_clinical_details(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        symptoms_date: DateParts | None,
        expected_version: int | None = None,
    ) -> CaseUpdateResult | None:
        """Edit the clinical section: the symptoms start date.

        Returns:
            The CaseUpdateResult, or None if the case does not exist.
        """
        return await self._apply_edit(
            case_id=case_id,
            actor_id=actor_id,
            event_type=CaseEventType.EDIT_CLINICAL,
            changes=_date_columns("symptoms", symptoms_date),
            expected_version=expected_version,
        )

    async def update_location_details(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        postcode: str | None,
        organisation: str | None,
        expected_version: int | None = None,
    ) -> CaseUpdateResult | None:
        """Edit the location section: postcode and organisation.

        Returns:
            The CaseUpdateResult, or None if the case does not exist.
        """
        return await self._apply_edit(
            case_id=case_id,
            actor_id=actor_id,
            event_type=CaseEventType.EDIT_LOCATION,
            changes={
                "postcode": _blank_to_none(postcode),
                "organisation": _blank_to_none(organisation),
            },
            expected_version=expected_version,
        )

    async def _apply_edit(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        event_type: CaseEventType,
        changes: Mapping[str, Any],
        expected_version: int | None,
    ) -> CaseUpdateResult | None:
        async with self._session_factory() as session:
            try:
                cases = CaseRepository(session)
                case = await cases.get_by_id(case_id)
                if case is None:
                    await session.rollback()
                    logger.info("Case not found for update", case_id=str(case_id), event_type=event_type.value)
                    return None

                _check_version(case, expected_version)
                before = take_snapshot(case)

                for name, value in changes.items():
                    setattr(case, name, value)
                case.updated_by = actor_id
                case.updated_at = datetime.now(UTC)
                await cases.save(case)

                after = take_snapshot(case)
                event = await CaseEventRepository(session).append(
                    case_id=case.id,
                    event_type=event_type.value,
                    from_state=case.state,
                    to_state=case.state,
                    actor_id=actor_id,
                    event_data={"before": before.to_event_data(), "after": after.to_event_data()},
                )
                await session.commit()
            except StaleDataError as exc:
                await session.rollback()
                logger.warning("Concurrent case modification", case_id=str(case_id), event_type=event_type.value)
                raise ConcurrentModificationError(case_id=str(case_id), expected_version=expected_version) from exc
            except Exception:
                await session.rollback()
                raise

        logger.info(
            "Case updated",
            case_id=str(case_id),
            event_type=event_type.value,
            event_id=event.id,
            version=case.version,
        )
        return CaseUpdateResult(case=_case_to_response(case), event_id=event.id)

    # ------------------------------------------------------------------
    # Workflow transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        case_id: uuid.UUID,
        event_type: str,
        actor_id: str,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> CaseSummaryResponse | None:
        """Move a case along the workflow and record the transition event.

        Args:
            case_id: The case UUID.
            event_type: SUBMIT_FOR_REVIEW, APPROVE or RETURN.
            actor_id: Actor performing the action.
            comment: Optional comment stored on the event.
            expected_version: Optional version the caller last saw.

        Returns:
            The case summary after the transition, or None if the case does
            not exist.

        Raises:
            InvalidTransitionError: If the event type is unknown or not legal
                from the case's current state. Nothing is written.
            ConcurrentModificationError: If the case moved past the version read.
        """
        async with self._session_factory() as session:
            try:
                cases = CaseRepository(session)
                case = await cases.get_by_id(case_id)
                if case is None:
                    await session.rollback()
                    logger.info("Case not found for transition", case_id=str(case_id), event_type=event_type)
                    return None

                _check_version(case, expected_version)
                event, next_state = resolve_transition(case.state, event_type)
                from_state = case.state

                case.state = next_state.value
                case.updated_by = actor_id
                case.updated_at = datetime.now(UTC)
                await cases.save(case)

                await CaseEventRepository(session).append(
                    case_id=case.id,
                    event_type=event.value,
                    from_state=from_state,
                    to_state=next_state.value,
                    actor_id=actor_id,
                    comment=_blank_to_none(comment),
                )
                await session.commit()
            except StaleDataError as exc:
                await session.rollback()
                logger.warning("Concurrent case modification", case_id=str(case_id), event_type=event_type)
                raise ConcurrentModificationError(case_id=str(case_id), expected_version=expected_version) from exc
            except Exception:
                await session.rollback()
                raise

        logger.info(
            "Case transitioned",
            case_id=str(case_id),
            event_type=event.value,
            from_state=from_state,
            to_state=next_state.value,
        )
        return _case_to_summary(case)

    async def submit_for_review(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> CaseSummaryResponse | None:
        """Send a draft or returned case for review."""
        return await self.transition(
            case_id, CaseEventType.SUBMIT_FOR_REVIEW.value, actor_id, comment, expected_version
        )

    async def approve(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> CaseSummaryResponse | None:
        """Approve a case under review."""
        return await self.transition(case_id, CaseEventType.APPROVE.value, actor_id, comment, expected_version)

    async def return_case(
        self,
        case_id: uuid.UUID,
        actor_id: str,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> CaseSummaryResponse | None:
        """Return a case under review to its author."""
        return await self.transition(case_id, CaseEventType.RETURN.value, actor_id, comment, expected_version)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_case(self, case_id: uuid.UUID) -> CaseResponse | None:
        """Get a case by id, or None if it does not exist."""
        async with self._session_factory() as session:
            case = await CaseRepository(session).get_by_id(case_id)
        return _case_to_response(case) if case is not None else None

    async def list_cases(self, limit: int | None = None) -> list[CaseSummaryResponse]:
        """List the most recently created cases, newest first.

        Args:
            limit: Maximum number of cases; defaults to recent_cases_limit.

        Returns:
            List of CaseSummaryResponse.
        """
        async with self._session_factory() as session:
            cases = await CaseRepository(session).list_recent(limit or self._recent_cases_limit)
        return [_case_to_summary(c) for c in cases]

    async def get_case_event(self, event_id: int) -> CaseEventResponse | None:
        """Get a single audit event, or None if it does not exist."""
        async with self._session_factory() as session:
            event = await CaseEventRepository(session).get_by_id(event_id)
        return _event_to_response(event) if event is not None else None

    async def list_case_events(self, case_id: uuid.UUID) -> list[CaseEventResponse]:
        """List the audit events of a case, newest first."""
        async with self._session_factory() as session:
            events = await CaseEventRepository(session).list_for_case(case_id)
        return [_event_to_response(e) for e in events]

    async def get_event_changes(self, case_id: uuid.UUID, event_id: int) -> list[ChangeRow] | None:
        """Render the field changes recorded on one event of a case.

        Args:
            case_id: The case the event must belong to.
            event_id: The event sequence id.

        Returns:
            The change rows (empty for events without snapshots), or None when
            the case or event is missing or the event belongs to another case.
        """
        async with self._session_factory() as session:
            case = await CaseRepository(session).get_by_id(case_id)
            event = await CaseEventRepository(session).get_by_id(event_id) if case is not None else None

        if event is None or event.case_id != case_id:
            return None

        data = event.event_data or {}
        before = CaseSnapshot.from_event_data(data.get("before"))
        after = CaseSnapshot.from_event_data(data.get("after"))
        return diff_rows(before, after)

    async def get_case_progress(self, case_id: uuid.UUID) -> CaseProgress | None:
        """Task-list progress of a case, or None if it does not exist."""
        async with self._session_factory() as session:
            case = await CaseRepository(session).get_by_id(case_id)
        return case_progress(case) if case is not None else None


def _case_to_response(case: Case) -> CaseResponse:
    """Convert a Case ORM model to a response schema.

    Args:
        case: The Case ORM instance.

    Returns:
        CaseResponse Pydantic model.
    """
    return CaseResponse(
        id=case.id,
        state=case.state,
        title=case.title,
        description=case.description,
        created_by=case.created_by,
        updated_by=case.updated_by,
        assigned_to=case.assigned_to,
        person_name=case.person_name,
        nhs_number=case.nhs_number,
        dob_day=case.dob_day,
        dob_month=case.dob_month,
        dob_year=case.dob_year,
        symptoms_day=case.symptoms_day,
        symptoms_month=case.symptoms_month,
        symptoms_year=case.symptoms_year,
        postcode=case.postcode,
        organisation=case.organisation,
        created_at=case.created_at,
        updated_at=case.updated_at,
        version=case.version,
    )


def _case_to_summary(case: Case) -> CaseSummaryResponse:
    return CaseSummaryResponse(
        id=case.id,
        state=case.state,
        title=case.title,
        created_at=case.created_at,
        updated_at=case.updated_at,
    )


def _event_to_response(event: CaseEvent) -> CaseEventResponse:
    """Convert a CaseEvent ORM model to a response schema.

    Args:
        event: The CaseEvent ORM instance.

    Returns:
        CaseEventResponse Pydantic model.
    """
    return CaseEventResponse(
        id=event.id,
        case_id=event.case_id,
        event_type=event.event_type,
        from_state=event.from_state,
        to_state=event.to_state,
        actor_id=event.actor_id,
        comment=event.comment,
        occurred_at=event.occurred_at,
        event_data=event.event_data,
    )
