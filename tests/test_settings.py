"""Tests for settings and the case store lifecycle."""

import pytest

import caseflow.database as database_module
from caseflow.database import close_database, get_engine, get_session_factory, init_database
from caseflow.settings import Settings


class TestSettings:
    """Tests for environment-driven Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CASEFLOW_DEFAULT_ACTOR_ID", raising=False)
        settings = Settings(_env_file=None)

        assert settings.service_name == "caseflow"
        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.recent_cases_limit == 50
        assert settings.default_actor_id == "local-user"

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CASEFLOW_DATABASE_URL", "sqlite+aiosqlite:///./cases.db")
        monkeypatch.setenv("CASEFLOW_RECENT_CASES_LIMIT", "10")
        monkeypatch.setenv("CASEFLOW_LOG_FORMAT", "console")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./cases.db"
        assert settings.recent_cases_limit == 10
        assert settings.log_format == "console"


class TestDatabaseLifecycle:
    """Tests for init_database / close_database."""

    def test_session_factory_raises_if_not_initialized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(database_module, "_session_factory", None)
        monkeypatch.setattr(database_module, "_engine", None)

        with pytest.raises(RuntimeError, match="has not been initialized"):
            get_session_factory()
        with pytest.raises(RuntimeError, match="has not been initialized"):
            get_engine()

    @pytest.mark.asyncio()
    async def test_init_and_close_sqlite(self) -> None:
        """A SQLite URL initializes without pool sizing and disposes cleanly."""
        factory = init_database(Settings(_env_file=None, database_url="sqlite+aiosqlite://"))

        assert get_session_factory() is factory
        assert get_engine().dialect.name == "sqlite"

        await close_database()

        with pytest.raises(RuntimeError):
            get_session_factory()
