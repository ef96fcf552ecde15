"""SQLAlchemy ORM models for caseflow.

Models:
- Case       — the mutable case record moved through the approval workflow
- CaseEvent  — IMMUTABLE audit record, one per mutation of a case

Case.version is SQLAlchemy's version_id_col: every flushed UPDATE is issued
as `... WHERE id = :id AND version = :read_version` and bumps the counter.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from caseflow.core.workflow import INITIAL_STATE
from caseflow.database import Base

# BIGSERIAL on PostgreSQL; SQLite only autoincrements INTEGER primary keys
_EventId = BigInteger().with_variant(Integer(), "sqlite")
_EventData = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC timestamp on every backend.

    SQLite keeps no offset, so values are stored as UTC and read back with
    tzinfo=UTC. PostgreSQL round-trips timestamptz unchanged.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC)
        return value

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Case(Base):
    """A case tracked through DRAFT → IN_REVIEW → APPROVED / RETURNED.

    Content fields stay NULL until the matching task is completed. Date
    triples are either fully populated or fully NULL.

    Attributes:
        id: Opaque UUID, generated once.
        state: Workflow state (see core/workflow.py).
        title: Mandatory short title.
        description: Optional free text.
        created_by: Actor that created the case.
        updated_by: Actor behind the latest mutation.
        assigned_to: Optional actor the case is assigned to.
        person_name: Full name of the person the case concerns.
        nhs_number: NHS number as entered.
        dob_day / dob_month / dob_year: Date of birth triple.
        symptoms_day / symptoms_month / symptoms_year: Symptoms start triple.
        postcode: Location postcode.
        organisation: Reporting organisation.
        created_at / updated_at: UTC timestamps.
        version: Optimistic concurrency counter, starts at 1.
    """

    __tablename__ = "cases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    state: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=INITIAL_STATE.value,
        comment="Workflow state: DRAFT | IN_REVIEW | RETURNED | APPROVED",
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    updated_by: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(Text, nullable=True)

    person_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    nhs_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    dob_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dob_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dob_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    symptoms_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    symptoms_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    symptoms_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    postcode: Mapped[str | None] = mapped_column(Text, nullable=True)
    organisation: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Case {self.id} {self.state}>"


class CaseEvent(Base):
    """Immutable audit record of one change to a case.

    This table has NO UPDATE or DELETE operations. Rows are only ever written
    through CaseEventRepository.append().

    Attributes:
        id: Monotonically increasing sequence id.
        case_id: Owning case; events are removed with their case.
        event_type: What happened (see CaseEventType).
        from_state: State before the change, NULL for CREATE.
        to_state: State after the change.
        actor_id: Who performed the action.
        comment: Optional free text, e.g. the reason a case was returned.
        occurred_at: Set at insert time, never modified.
        event_data: Optional {"before": snapshot, "after": snapshot} payload.
    """

    __tablename__ = "case_events"
    __table_args__ = (Index("ix_case_events_case_id_occurred_at", "case_id", "occurred_at"),)

    id: Mapped[int] = mapped_column(_EventId, primary_key=True, autoincrement=True)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    from_state: Mapped[str | None] = mapped_column(String(30), nullable=True)
    to_state: Mapped[str | None] = mapped_column(String(30), nullable=True)
    actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow)
    event_data: Mapped[dict[str, Any] | None] = mapped_column(_EventData, nullable=True)

    def __repr__(self) -> str:
        return f"<CaseEvent {self.id} {self.event_type} case={self.case_id}>"
