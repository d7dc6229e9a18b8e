"""Relational store settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DatabaseSettings(InfrastructureSettings):
    """Database connection configuration for the notification record store.

    Environment Variables:
        DATABASE_URL: SQLAlchemy URL (default: sqlite:///./notifications.db)
        DATABASE_ECHO: Log emitted SQL statements (default: False)
        DATABASE_POOL_SIZE: Connection pool size for server databases (default: 5)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        engine = create_db_engine(settings.database)
        ```
    """

    url: str = Field(
        default="sqlite:///./notifications.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL for the notification store",
    )
    echo: bool = Field(
        default=False,
        alias="DATABASE_ECHO",
        description="Echo SQL statements to the log",
    )
    pool_size: int = Field(
        default=5,
        alias="DATABASE_POOL_SIZE",
        description="Connection pool size (ignored for SQLite)",
    )

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured URL targets SQLite."""
        return self.url.startswith("sqlite")
