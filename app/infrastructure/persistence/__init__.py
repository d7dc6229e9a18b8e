"""Persistence layer for notification records.

Provides the SQLAlchemy engine, session handling and the declarative base
shared by the notification tables.
"""

from infrastructure.persistence.database import (
    Base,
    create_db_engine,
    create_session_factory,
    drop_schema,
    init_schema,
    session_scope,
)
from infrastructure.persistence.column_types import UTCDateTime, utc_now

__all__ = [
    "Base",
    "UTCDateTime",
    "create_db_engine",
    "create_session_factory",
    "drop_schema",
    "init_schema",
    "session_scope",
    "utc_now",
]
