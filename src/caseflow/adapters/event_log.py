"""Append-only repository for the case_events audit log.

Every mutation of a case writes exactly one CaseEvent in the same
transaction as the case row. Events are permanent: this repository exposes
append() and read operations only. No update() or delete() exists, and none
may be added. A wrong event is corrected by a later event, never by editing
the row.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.core.models import CaseEvent
from caseflow.observability import get_logger

logger = get_logger(__name__)


class CaseEventRepository:
    """Append-only repository for CaseEvent rows.

    Args:
        session: The async session of the current transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize CaseEventRepository with a database session.

        Args:
            session: The SQLAlchemy async session for the case store.
        """
        self._session = session

    async def append(
        self,
        case_id: uuid.UUID,
        event_type: str,
        from_state: str | None,
        to_state: str | None,
        actor_id: str,
        comment: str | None = None,
        event_data: dict[str, Any] | None = None,
    ) -> CaseEvent:
        """Append an immutable event for a case.

        This is the ONLY write operation on the event log. occurred_at is
        stamped here and never changes afterwards.

        Args:
            case_id: The owning case.
            event_type: Event type tag.
            from_state: Workflow state before the change (None for CREATE).
            to_state: Workflow state after the change.
            actor_id: Who performed the action.
            comment: Optional free text.
            event_data: Optional {"before": ..., "after": ...} payload.

        Returns:
            The flushed CaseEvent carrying its sequence id.
        """
        event = CaseEvent(
            case_id=case_id,
            event_type=event_type,
            from_state=from_state,
            to_state=to_state,
            actor_id=actor_id,
            comment=comment,
            occurred_at=datetime.now(UTC),
            event_data=event_data,
        )
        self._session.add(event)
        await self._session.flush()

        logger.info(
            "Case event written",
            event_id=event.id,
            case_id=str(case_id),
            event_type=event_type,
            from_state=from_state,
            to_state=to_state,
        )
        return event

    async def get_by_id(self, event_id: int) -> CaseEvent | None:
        """Retrieve a single event by id.

        Args:
            event_id: The event sequence id.

        Returns:
            The CaseEvent, or None if not found.
        """
        result = await self._session.execute(select(CaseEvent).where(CaseEvent.id == event_id))
        return result.scalar_one_or_none()

    async def list_for_case(self, case_id: uuid.UUID) -> list[CaseEvent]:
        """List a case's events, newest first.

        Args:
            case_id: The owning case.

        Returns:
            Events ordered by occurred_at then id, both descending.
        """
        stmt = (
            select(CaseEvent)
            .where(CaseEvent.case_id == case_id)
            .order_by(CaseEvent.occurred_at.desc(), CaseEvent.id.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
