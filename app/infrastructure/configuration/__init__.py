"""Infrastructure configuration module - public API.

Centralized configuration for the notification pipeline using Pydantic
BaseSettings with one sub-settings class per concern.

Exports:
    Settings: Main settings class
    DatabaseSettings, QueueSettings, TransportSettings, AwsSettings

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    database_url = settings.database.url
    batch_size = settings.queue.batch_size
    mode = settings.transport.mode
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure import (
    DatabaseSettings,
    QueueSettings,
    TransportSettings,
)
from infrastructure.configuration.integrations import AwsSettings

__all__ = [
    "Settings",
    "DatabaseSettings",
    "QueueSettings",
    "TransportSettings",
    "AwsSettings",
]
