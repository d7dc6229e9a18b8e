"""Per-record delivery processing.

RecordProcessor is the body of work for one claimed record, shared by the
queue scheduler and the inline transport:

1. Duplicate check against recently SENT records (fails open)
2. Route through the channel router
3. Record the outcome with mark_terminal()
"""

from typing import Optional

import structlog

from infrastructure.logging import bind_delivery_context
from infrastructure.notifications.config import QueueConfig
from infrastructure.notifications.models import (
    DeliveryOutcome,
    NotificationRecord,
    NotificationStatus,
)
from infrastructure.notifications.router import ChannelRouter
from infrastructure.notifications.store import NotificationStore

logger = structlog.get_logger()


class RecordProcessor:
    """Processes one claimed notification record.

    Attributes:
        store: NotificationStore holding the record
        router: ChannelRouter performing the delivery
        config: QueueConfig (dedup toggle and window)
    """

    def __init__(
        self,
        store: NotificationStore,
        router: ChannelRouter,
        config: Optional[QueueConfig] = None,
    ):
        self.store = store
        self.router = router
        self.config = config or QueueConfig()

    def process(self, record: NotificationRecord) -> DeliveryOutcome:
        """Deliver a claimed (PROCESSING) record and persist the outcome.

        Records without an id were never persisted; they are routed and the
        outcome is returned without touching the store.

        Args:
            record: Claimed record

        Returns:
            DeliveryOutcome reflecting the record after this attempt
        """
        with bind_delivery_context(
            notification_id=record.id, channel=record.channel.value
        ):
            if record.id is not None and self.config.dedup_enabled:
                original = self._find_duplicate(record)
                if original is not None:
                    updated = self.store.mark_duplicate(record.id, original.id)
                    return DeliveryOutcome.from_record(updated, duplicate=True)

            logger.info(
                "notification_dispatching",
                attempt=record.retry_count + 1,
                recipient_count=len(record.to),
            )
            result = self.router.route(record)
            data = result.data or {}

            if record.id is None:
                return DeliveryOutcome(
                    status=NotificationStatus.SENT
                    if result.is_success
                    else NotificationStatus.FAILED,
                    provider=data.get("provider"),
                    message_id=data.get("message_id"),
                    error=None if result.is_success else result.message,
                )

            if result.is_success:
                updated = self.store.mark_terminal(
                    record.id,
                    True,
                    provider=data.get("provider"),
                    message_id=data.get("message_id"),
                    cost=data.get("cost"),
                )
            else:
                updated = self.store.mark_terminal(
                    record.id,
                    False,
                    provider=data.get("provider"),
                    error=result.message,
                    retryable=result.is_retryable,
                )
            return DeliveryOutcome.from_record(updated)

    def _find_duplicate(self, record: NotificationRecord) -> Optional[NotificationRecord]:
        """Most recent SENT record with the same content, if any.

        A failing lookup is logged and treated as "no duplicate" so a store
        hiccup delays nothing.
        """
        try:
            matches = self.store.find_recent_matches(
                record.to,
                record.subject,
                record.body,
                window=self.config.dedup_window,
                template_name=record.template_name,
                template_variables=record.template_variables,
                exclude_id=record.id,
            )
        except Exception as e:
            logger.warning("duplicate_check_failed", error=str(e))
            return None
        return matches[0] if matches else None
