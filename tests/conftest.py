"""Test fixtures for caseflow.

Provides:
- engine: An in-memory SQLite case store with the schema created
- session_factory: async_sessionmaker bound to that store
- service: A CaseLifecycleService over the in-memory store
- actor_id / reviewer_id: Fixed actor identities
- make_case_stub: Builds plain objects carrying case attributes, for the
  pure snapshot and progress functions
"""

from collections.abc import AsyncGenerator, Callable
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from caseflow.core.services import CaseLifecycleService
from caseflow.database import build_session_factory, create_schema

_CASE_ATTRIBUTES = (
    "title",
    "description",
    "person_name",
    "nhs_number",
    "dob_day",
    "dob_month",
    "dob_year",
    "symptoms_day",
    "symptoms_month",
    "symptoms_year",
    "postcode",
    "organisation",
    "updated_by",
    "assigned_to",
    "state",
)


@pytest_asyncio.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a private in-memory SQLite store for one test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.

    Yields:
        The async engine with cases and case_events created.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the in-memory store."""
    return build_session_factory(engine)


@pytest.fixture()
def service(session_factory: async_sessionmaker[AsyncSession]) -> CaseLifecycleService:
    """CaseLifecycleService wired to the in-memory store."""
    return CaseLifecycleService(session_factory=session_factory)


@pytest.fixture()
def actor_id() -> str:
    """Return a fixed author identity for consistent test assertions."""
    return "author@example.nhs.uk"


@pytest.fixture()
def reviewer_id() -> str:
    """Return a fixed reviewer identity for consistent test assertions."""
    return "reviewer@example.nhs.uk"


@pytest.fixture()
def make_case_stub() -> Callable[..., SimpleNamespace]:
    """Factory for objects that look like a Case row to the pure functions.

    Returns:
        A callable taking case attributes as keyword arguments; unspecified
        attributes are None.
    """

    def _make(**overrides: Any) -> SimpleNamespace:
        values: dict[str, Any] = dict.fromkeys(_CASE_ATTRIBUTES)
        values.update(overrides)
        return SimpleNamespace(**values)

    return _make
