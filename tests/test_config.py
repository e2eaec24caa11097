"""Tests for configuration and database plumbing."""

import importlib.util
from pathlib import Path

import pytest
from pydantic import ValidationError
from sqlalchemy import inspect

MIGRATION = Path(__file__).resolve().parent.parent / "migrations" / "versions" / "001_initial_schema.py"


class TestSettings:
    """Test settings validation."""

    def test_defaults(self):
        """Defaults suit a local developer setup."""
        from findingsync.config import Settings

        settings = Settings(_env_file=None)

        assert settings.default_category == "findingsync.on_the_fly"
        assert settings.worker_concurrency >= 1
        assert settings.is_production is False

    def test_log_level_normalized(self):
        """Log levels are upper-cased."""
        from findingsync.config import Settings

        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        """Unknown log levels are rejected."""
        from findingsync.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_worker_concurrency_positive(self):
        """At least one worker is required."""
        from findingsync.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, worker_concurrency=0)

    def test_environment_override(self, monkeypatch):
        """Environment variables override defaults."""
        from findingsync.config import Settings

        monkeypatch.setenv("PERSIST_AFTER_APPLY", "false")

        assert Settings(_env_file=None).persist_after_apply is False

    def test_configure_logging(self):
        """The package logger follows the configured level."""
        import logging

        from findingsync.config import Settings, configure_logging

        configure_logging(Settings(_env_file=None, log_level="WARNING"))

        assert logging.getLogger("findingsync").level == logging.WARNING


class TestDatabase:
    """Test schema creation."""

    def test_init_db_creates_tables(self):
        """init_db creates every table."""
        from findingsync.database import create_db_engine, init_db

        engine = create_db_engine("sqlite://", echo=False)
        init_db(engine)

        assert set(inspect(engine).get_table_names()) == {"annotations", "tracked_files", "tracked_issues"}
        engine.dispose()

    def test_migration_matches_models(self):
        """The initial migration creates the same tables and columns."""
        from alembic.migration import MigrationContext
        from alembic.operations import Operations

        from findingsync.database import Base, create_db_engine

        import findingsync.models  # noqa: F401

        spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION)
        migration = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(migration)

        engine = create_db_engine("sqlite://", echo=False)
        with engine.begin() as connection:
            with Operations.context(MigrationContext.configure(connection)):
                migration.upgrade()
            inspector = inspect(connection)
            for table in Base.metadata.sorted_tables:
                columns = {column["name"] for column in inspector.get_columns(table.name)}
                assert columns == {column.name for column in table.columns}
        engine.dispose()
