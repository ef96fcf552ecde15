"""Case store connection management.

This module owns the async engine and the session factory handed to the
lifecycle engine. Nothing else creates engines or sessions.

Key exports:
- Base                  — declarative base for the ORM models
- init_database(...)    — call at startup to create the engine
- close_database()      — call at shutdown to dispose the engine
- get_session_factory() — the factory injected into CaseLifecycleService
"""

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from caseflow.observability import get_logger
from caseflow.settings import Settings

logger = get_logger(__name__)

_NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by all caseflow ORM models."""

    metadata = MetaData(naming_convention=_NAMING_CONVENTION)


# Module-level engine and session factory, set by init_database()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used for every engine operation.

    expire_on_commit is off so that ORM rows returned from a committed
    operation can still be read by the caller.

    Args:
        engine: The async engine to bind sessions to.

    Returns:
        A configured async_sessionmaker.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_database(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Initialize the case store engine and session factory.

    Must be called once at application startup (in the lifespan handler)
    before any engine operation runs.

    Args:
        settings: Service settings carrying the database URL and pool sizing.

    Returns:
        The session factory, also available via get_session_factory().
    """
    global _engine, _session_factory  # noqa: PLW0603

    engine_kwargs: dict[str, object] = {"echo": settings.db_echo, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )

    logger.info(
        "Initializing case store engine",
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    _engine = create_async_engine(settings.database_url, **engine_kwargs)
    _session_factory = build_session_factory(_engine)
    return _session_factory


async def close_database() -> None:
    """Dispose the case store engine.

    After this call no engine operation can run until init_database() is
    called again.
    """
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        logger.info("Disposing case store engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def create_schema(engine: AsyncEngine) -> None:
    """Create the cases and case_events tables if they do not exist.

    Args:
        engine: The async engine to create the tables on.
    """
    # Importing the models registers their tables on Base.metadata
    from caseflow.core import models  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


def get_engine() -> AsyncEngine:
    """Return the initialized engine.

    Raises:
        RuntimeError: If init_database() has not been called yet.
    """
    if _engine is None:
        raise RuntimeError(
            "Case store has not been initialized. "
            "Call init_database() in the application lifespan handler."
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session factory.

    Raises:
        RuntimeError: If init_database() has not been called yet.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Case store has not been initialized. "
            "Call init_database() in the application lifespan handler."
        )
    return _session_factory
