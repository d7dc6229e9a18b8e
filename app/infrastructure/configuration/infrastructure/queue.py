"""Notification queue scheduler settings."""

from pydantic import Field

from infrastructure.notifications.config import QueueConfig
from infrastructure.configuration.base import InfrastructureSettings


class QueueSettings(InfrastructureSettings):
    """Queue polling, retry and recovery configuration.

    Environment Variables:
        NOTIFICATION_POLL_INTERVAL_SECONDS: Seconds between scheduler ticks (default: 10)
        NOTIFICATION_BATCH_SIZE: Records claimed per tick (default: 10)
        NOTIFICATION_MAX_RETRIES: Failed attempts before FAILED (default: 3)
        NOTIFICATION_RETRY_DELAY_SECONDS: Delay before a RETRYING record is reclaimed (default: 60)
        NOTIFICATION_RETRY_BACKOFF: 'fixed' or 'exponential' (default: fixed)
        NOTIFICATION_MAX_RETRY_DELAY_SECONDS: Cap for exponential backoff (default: 3600)
        NOTIFICATION_STALE_AFTER_SECONDS: Age at which a PROCESSING record is recovered (default: 300)
        NOTIFICATION_DEDUP_ENABLED: Suppress identical recent notifications (default: True)
        NOTIFICATION_DEDUP_WINDOW_SECONDS: Duplicate detection window (default: 3600)
        NOTIFICATION_WORKER_CONCURRENCY: Records dispatched in parallel per tick (default: 1)

    Backoff:
        fixed: every retry waits retry_delay_seconds
        exponential: min(retry_delay * 2 ^ (retry_count - 1), max_retry_delay)

    Example:
        ```python
        from infrastructure.services import get_settings

        config = get_settings().queue.to_config()
        scheduler = QueueScheduler(store, processor, config)
        ```
    """

    poll_interval_seconds: float = Field(
        default=10,
        alias="NOTIFICATION_POLL_INTERVAL_SECONDS",
        description="Seconds between scheduler ticks",
    )
    batch_size: int = Field(
        default=10,
        alias="NOTIFICATION_BATCH_SIZE",
        description="Maximum records claimed per tick",
    )
    max_retries: int = Field(
        default=3,
        alias="NOTIFICATION_MAX_RETRIES",
        description="Failed attempts allowed before a record becomes FAILED",
    )
    retry_delay_seconds: float = Field(
        default=60,
        alias="NOTIFICATION_RETRY_DELAY_SECONDS",
        description="Delay before a RETRYING record becomes actionable again",
    )
    retry_backoff: str = Field(
        default="fixed",
        alias="NOTIFICATION_RETRY_BACKOFF",
        description="Backoff policy: 'fixed' or 'exponential'",
    )
    max_retry_delay_seconds: float = Field(
        default=3600,
        alias="NOTIFICATION_MAX_RETRY_DELAY_SECONDS",
        description="Upper bound for exponential backoff delays",
    )
    stale_after_seconds: float = Field(
        default=300,
        alias="NOTIFICATION_STALE_AFTER_SECONDS",
        description="PROCESSING records older than this are reset to PENDING",
    )
    dedup_enabled: bool = Field(
        default=True,
        alias="NOTIFICATION_DEDUP_ENABLED",
        description="Suppress notifications identical to a recently sent one",
    )
    dedup_window_seconds: float = Field(
        default=3600,
        alias="NOTIFICATION_DEDUP_WINDOW_SECONDS",
        description="Window in which identical notifications count as duplicates",
    )
    concurrency: int = Field(
        default=1,
        alias="NOTIFICATION_WORKER_CONCURRENCY",
        description="Worker threads used to dispatch a claimed batch",
    )

    def to_config(self) -> QueueConfig:
        """Build the validated runtime configuration.

        Returns:
            QueueConfig populated from these settings

        Raises:
            ValueError: If any value is out of range
        """
        return QueueConfig(
            poll_interval_seconds=self.poll_interval_seconds,
            batch_size=self.batch_size,
            max_retries=self.max_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            retry_backoff=self.retry_backoff,
            max_retry_delay_seconds=self.max_retry_delay_seconds,
            stale_after_seconds=self.stale_after_seconds,
            dedup_enabled=self.dedup_enabled,
            dedup_window_seconds=self.dedup_window_seconds,
            concurrency=self.concurrency,
        )
