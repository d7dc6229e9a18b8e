"""Unit tests for infrastructure.persistence.

Tests cover:
- SQLite engine setup (foreign keys, immediate transactions)
- session_scope() commit and rollback
- Schema creation
- UTCDateTime round trips
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect, text

from infrastructure.configuration import DatabaseSettings
from infrastructure.persistence import (
    UTCDateTime,
    create_db_engine,
    create_session_factory,
    drop_schema,
    init_schema,
    session_scope,
)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(
        DatabaseSettings(DATABASE_URL=f"sqlite:///{tmp_path / 'persistence.db'}")
    )
    yield engine
    engine.dispose()


@pytest.mark.unit
class TestCreateDbEngine:
    """Tests for create_db_engine()."""

    def test_sqlite_enables_foreign_keys(self, engine):
        """Every connection has foreign key enforcement on."""
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_memory_database_shares_one_connection(self):
        """In-memory databases keep their tables across sessions."""
        engine = create_db_engine(DatabaseSettings(DATABASE_URL="sqlite://"))
        init_schema(engine)

        assert "notifications" in inspect(engine).get_table_names()


@pytest.mark.unit
class TestSessionScope:
    """Tests for session_scope()."""

    @pytest.fixture
    def scratch(self, engine):
        with engine.begin() as conn:
            conn.execute(text("CREATE TABLE scratch (id INTEGER PRIMARY KEY)"))
        return create_session_factory(engine)

    def test_commits_on_success(self, scratch):
        with session_scope(scratch) as session:
            session.execute(text("INSERT INTO scratch (id) VALUES (1)"))

        with session_scope(scratch) as session:
            assert session.execute(text("SELECT COUNT(*) FROM scratch")).scalar() == 1

    def test_rolls_back_and_reraises(self, scratch):
        """Errors inside the block undo the transaction."""
        with pytest.raises(RuntimeError):
            with session_scope(scratch) as session:
                session.execute(text("INSERT INTO scratch (id) VALUES (1)"))
                raise RuntimeError("boom")

        with session_scope(scratch) as session:
            assert session.execute(text("SELECT COUNT(*) FROM scratch")).scalar() == 0


@pytest.mark.unit
class TestSchema:
    """Tests for init_schema() and drop_schema()."""

    def test_creates_and_drops_tables(self, engine):
        init_schema(engine)
        tables = set(inspect(engine).get_table_names())
        assert {"notifications", "notification_attachments"} <= tables

        drop_schema(engine)
        assert inspect(engine).get_table_names() == []

    def test_init_schema_is_idempotent(self, engine):
        init_schema(engine)
        init_schema(engine)


@pytest.mark.unit
class TestUTCDateTime:
    """Tests for the UTCDateTime column type."""

    def test_aware_values_are_normalized_to_utc(self):
        column_type = UTCDateTime()
        eastern = timezone(timedelta(hours=-5))

        stored = column_type.process_bind_param(
            datetime(2026, 1, 15, 7, 0, tzinfo=eastern), None
        )

        assert stored == datetime(2026, 1, 15, 12, 0)
        assert stored.tzinfo is None

    def test_loaded_values_are_tagged_utc(self):
        column_type = UTCDateTime()

        loaded = column_type.process_result_value(datetime(2026, 1, 15, 12, 0), None)

        assert loaded.tzinfo == timezone.utc

    def test_none_passes_through(self):
        column_type = UTCDateTime()

        assert column_type.process_bind_param(None, None) is None
        assert column_type.process_result_value(None, None) is None
