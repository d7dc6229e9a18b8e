"""SQLAlchemy engine and session management.

Usage:
    from infrastructure.persistence import (
        create_db_engine,
        create_session_factory,
        init_schema,
        session_scope,
    )

    engine = create_db_engine(settings.database)
    init_schema(engine)
    session_factory = create_session_factory(engine)

    with session_scope(session_factory) as session:
        session.add(row)
"""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator

import structlog
from sqlalchemy import event
from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from infrastructure.configuration import DatabaseSettings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Declarative base for all notification tables."""


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _install_sqlite_listeners(engine: Engine) -> None:
    """Make every SQLite transaction take the database write lock up front.

    SQLite has no row-level locks and ignores FOR UPDATE, so `BEGIN
    IMMEDIATE` is what keeps two claimers from reading the same actionable
    rows. Foreign keys are off by default in SQLite and are enabled for the
    attachment cascade.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Let SQLAlchemy emit BEGIN instead of the pysqlite driver
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(settings: "DatabaseSettings") -> Engine:
    """Create the engine for the notification store.

    Args:
        settings: DatabaseSettings with the URL and pool options

    Returns:
        Configured SQLAlchemy Engine
    """
    if settings.is_sqlite:
        kwargs: dict[str, Any] = {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        if _is_memory_url(settings.url):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(settings.url, echo=settings.echo, **kwargs)
        _install_sqlite_listeners(engine)
    else:
        engine = create_engine(
            settings.url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            pool_pre_ping=True,
        )

    logger.info(
        "database_engine_created",
        dialect=engine.dialect.name,
        echo=settings.echo,
    )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine.

    Sessions do not expire objects on commit so snapshots can be built from
    rows after the transaction has ended.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Run a block inside one transaction.

    Commits when the block exits normally, rolls back and re-raises on error.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema(engine: Engine) -> None:
    """Create all notification tables that do not exist yet."""
    # Table modules register themselves on Base.metadata when imported
    from infrastructure.notifications import tables  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("database_schema_initialized", tables=sorted(Base.metadata.tables))


def drop_schema(engine: Engine) -> None:
    """Drop all notification tables."""
    from infrastructure.notifications import tables  # noqa: F401

    Base.metadata.drop_all(engine)
