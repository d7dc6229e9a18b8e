"""Notification pipeline configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import AwsSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    DatabaseSettings,
    QueueSettings,
    TransportSettings,
)


class Settings(BaseSettings):
    """Notification pipeline configuration settings - main aggregator.

    Aggregates all concern-specific settings into a single configuration object:

    - **Integrations**: External services (AWS SQS for the broker relay)
    - **Infrastructure**: Database, queue scheduler and delivery transport

    Environment Variables:
        PREFIX: Environment prefix for multi-tenant deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.transport.mode == "queue":
            config = settings.queue.to_config()

        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    aws: AwsSettings

    # Infrastructure settings
    database: DatabaseSettings
    queue: QueueSettings
    transport: TransportSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "aws": AwsSettings,
            # Infrastructure
            "database": DatabaseSettings,
            "queue": QueueSettings,
            "transport": TransportSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
