"""Inline transport.

Dispatches on a background thread pool right after submission. The
background task acts as a one-shot scheduler for its record: claim,
process, and retry after the backoff delay while the record is RETRYING.
"""

import time
from concurrent.futures import Future
from typing import Optional

import structlog

from infrastructure.logging import clear_delivery_context
from infrastructure.notifications.config import QueueConfig
from infrastructure.notifications.executor import ManagedExecutor
from infrastructure.notifications.models import (
    DeliveryOutcome,
    NotificationRecord,
    NotificationStatus,
)
from infrastructure.notifications.processor import RecordProcessor
from infrastructure.notifications.store import NotificationStore
from infrastructure.notifications.transports.base import DeliveryMode, Transport

logger = structlog.get_logger()


class InlineTransport(Transport):
    """Thread pool backed transport.

    Attributes:
        processor: RecordProcessor shared with the queue scheduler
        store: NotificationStore used to claim persisted records
        config: QueueConfig (retry delay and backoff)

    Example:
        transport = InlineTransport(processor, store, pool_size=4)
        outcome = transport.dispatch(record).result(timeout=30)
    """

    def __init__(
        self,
        processor: RecordProcessor,
        store: Optional[NotificationStore] = None,
        pool_size: int = 4,
        config: Optional[QueueConfig] = None,
    ):
        self.processor = processor
        self.store = store
        self.config = config or processor.config
        self._pool = ManagedExecutor(max_workers=pool_size, name="inline-dispatch")

    @property
    def mode(self) -> DeliveryMode:
        return DeliveryMode.INLINE

    def dispatch(self, record: NotificationRecord) -> "Future[DeliveryOutcome]":
        logger.debug("inline_dispatch_submitted", notification_id=record.id)
        return self._pool.submit(self._deliver, record)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def _deliver(self, record: NotificationRecord) -> DeliveryOutcome:
        store = self.store
        try:
            if record.id is None or store is None:
                return self.processor.process(record)
            return self._deliver_persisted(store, record.id)
        except Exception as e:
            logger.error(
                "inline_dispatch_failed",
                notification_id=record.id,
                error=str(e),
                exc_info=True,
            )
            raise
        finally:
            # Pool threads are reused
            clear_delivery_context()

    def _deliver_persisted(
        self, store: NotificationStore, notification_id: int
    ) -> DeliveryOutcome:
        while True:
            claimed = store.claim(notification_id)
            if claimed is None:
                # Claimed elsewhere or already terminal
                current = store.get(notification_id)
                logger.info(
                    "inline_dispatch_not_claimable",
                    notification_id=notification_id,
                    status=current.status.value,
                )
                return DeliveryOutcome.from_record(current)

            outcome = self.processor.process(claimed)
            if outcome.status != NotificationStatus.RETRYING:
                return outcome

            delay = self.config.retry_delay_for(outcome.retry_count).total_seconds()
            logger.info(
                "inline_retry_waiting",
                notification_id=notification_id,
                retry_count=outcome.retry_count,
                delay_seconds=delay,
            )
            time.sleep(delay)
