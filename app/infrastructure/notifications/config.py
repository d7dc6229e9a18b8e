"""Queue scheduler configuration.

Runtime configuration for claiming, retrying, recovering and deduplicating
notification records. Built from QueueSettings (environment) or directly in
tests.
"""

from dataclasses import dataclass
from datetime import timedelta

BACKOFF_POLICIES = ("fixed", "exponential")


@dataclass
class QueueConfig:
    """Configuration for queue scheduler behavior.

    Attributes:
        poll_interval_seconds: Seconds between scheduler ticks
        batch_size: Maximum records claimed per tick
        max_retries: Failed attempts before a record becomes FAILED
        retry_delay_seconds: Delay before a RETRYING record is actionable again
        retry_backoff: 'fixed' or 'exponential'
        max_retry_delay_seconds: Cap for exponential backoff
        stale_after_seconds: Age at which a PROCESSING record is recovered
        dedup_enabled: Suppress notifications identical to a recent one
        dedup_window_seconds: Window for duplicate detection
        concurrency: Worker threads used to dispatch one batch

    Example:
        config = QueueConfig(max_retries=3, retry_delay_seconds=0)
    """

    poll_interval_seconds: float = 10
    batch_size: int = 10
    max_retries: int = 3
    retry_delay_seconds: float = 60
    retry_backoff: str = "fixed"
    max_retry_delay_seconds: float = 3600  # 1 hour
    stale_after_seconds: float = 300  # 5 minutes
    dedup_enabled: bool = True
    dedup_window_seconds: float = 3600  # 1 hour
    concurrency: int = 1

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be greater than 0")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must not be negative")
        if self.retry_backoff not in BACKOFF_POLICIES:
            raise ValueError(
                f"retry_backoff must be one of {', '.join(BACKOFF_POLICIES)}"
            )
        if self.max_retry_delay_seconds < self.retry_delay_seconds:
            raise ValueError("max_retry_delay_seconds must be >= retry_delay_seconds")
        if self.stale_after_seconds <= 0:
            raise ValueError("stale_after_seconds must be greater than 0")
        if self.dedup_window_seconds <= 0:
            raise ValueError("dedup_window_seconds must be greater than 0")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    @property
    def stale_after(self) -> timedelta:
        return timedelta(seconds=self.stale_after_seconds)

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(seconds=self.dedup_window_seconds)

    def retry_delay_for(self, retry_count: int) -> timedelta:
        """Delay before the next attempt after `retry_count` failures.

        Args:
            retry_count: Failed attempts so far (1 after the first failure)

        Returns:
            Fixed delay, or base * 2^(retry_count - 1) capped at
            max_retry_delay_seconds for exponential backoff
        """
        if self.retry_backoff == "fixed":
            return timedelta(seconds=self.retry_delay_seconds)
        exponent = max(retry_count - 1, 0)
        delay = min(
            self.retry_delay_seconds * (2**exponent), self.max_retry_delay_seconds
        )
        return timedelta(seconds=delay)
