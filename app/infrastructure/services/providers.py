"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from infrastructure.configuration import Settings
from infrastructure.persistence import create_db_engine, create_session_factory


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Usage:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_db_engine() -> Engine:
    """
    Get application-scoped SQLAlchemy engine singleton.

    The engine owns the connection pool, so one per process is shared by the
    submission facade, the queue scheduler and broker consumers.

    Returns:
        Engine: Cached engine configured from settings.database.
    """
    settings = get_settings()
    return create_db_engine(settings.database)


@lru_cache
def get_session_factory() -> sessionmaker:
    """
    Get application-scoped session factory singleton.

    Returns:
        sessionmaker: Cached session factory bound to get_db_engine().
    """
    return create_session_factory(get_db_engine())
