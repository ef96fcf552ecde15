"""SQLAlchemy repository for the cases table.

The repository works inside a session owned by the caller. It flushes but
never commits or rolls back. Transaction boundaries belong to
CaseLifecycleService.

NOTE: CaseEventRepository is intentionally in event_log.py, not here. The
event log is append-only and has its own, narrower interface.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.core.models import Case
from caseflow.core.workflow import INITIAL_STATE
from caseflow.observability import get_logger

logger = get_logger(__name__)


class CaseRepository:
    """Repository for Case rows.

    Args:
        session: The async session of the current transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize CaseRepository with a database session.

        Args:
            session: The SQLAlchemy async session for the case store.
        """
        self._session = session

    async def create(
        self,
        title: str,
        description: str | None,
        created_by: str,
    ) -> Case:
        """Insert a new case in the initial workflow state.

        Args:
            title: Case title.
            description: Optional description.
            created_by: Actor creating the case; also recorded as updated_by.

        Returns:
            The flushed Case with its generated id, timestamps and version.
        """
        now = datetime.now(UTC)
        case = Case(
            id=uuid.uuid4(),
            state=INITIAL_STATE.value,
            title=title,
            description=description,
            created_by=created_by,
            updated_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self._session.add(case)
        await self._session.flush()
        logger.debug("Case row inserted", case_id=str(case.id))
        return case

    async def get_by_id(self, case_id: uuid.UUID) -> Case | None:
        """Retrieve a case by id.

        Args:
            case_id: The case UUID.

        Returns:
            The Case, or None if no such case exists.
        """
        result = await self._session.execute(select(Case).where(Case.id == case_id))
        return result.scalar_one_or_none()

    async def list_recent(self, limit: int = 50) -> list[Case]:
        """List the most recently created cases.

        Args:
            limit: Maximum number of cases to return.

        Returns:
            Cases ordered by created_at descending.
        """
        stmt = select(Case).order_by(Case.created_at.desc(), Case.id).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, case: Case) -> Case:
        """Flush pending changes on a loaded case.

        The UPDATE is guarded by the version read with the row, so a concurrent
        writer surfaces as sqlalchemy.orm.exc.StaleDataError.

        Args:
            case: A Case loaded in this session and modified in place.

        Returns:
            The same Case, with its version bumped.
        """
        await self._session.flush()
        logger.debug("Case row updated", case_id=str(case.id), version=case.version)
        return case
