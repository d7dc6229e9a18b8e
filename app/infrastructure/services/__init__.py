"""
Application-scoped service providers.
"""

from infrastructure.services.providers import (
    get_settings,
    get_db_engine,
    get_session_factory,
)

__all__ = [
    "get_settings",
    "get_db_engine",
    "get_session_factory",
]
