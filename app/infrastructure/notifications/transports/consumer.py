"""Broker relay consumer.

Runs where the broker delivers relay messages. Each message names a
persisted notification; the consumer claims it through the store and
processes it with the same RecordProcessor the queue scheduler uses, so
status updates, retries and duplicate suppression behave identically.

Messages are acknowledged once the record needs nothing more from this
message. A record left RETRYING keeps its message unacknowledged so the
broker redelivers it after the visibility timeout.
"""

from enum import Enum
from typing import Dict

import structlog
from pydantic import ValidationError

from infrastructure.clients.aws import SQSClient
from infrastructure.notifications.errors import NotificationNotFoundError
from infrastructure.notifications.models import NotificationStatus
from infrastructure.notifications.processor import RecordProcessor
from infrastructure.notifications.store import NotificationStore
from infrastructure.notifications.transports.messages import BrokerMessage

logger = structlog.get_logger()


class RelayDisposition(Enum):
    """What to do with a relay message after handling it."""

    ACK = "ack"
    REDELIVER = "redeliver"


def handle_relay_message(
    body: str,
    store: NotificationStore,
    processor: RecordProcessor,
) -> RelayDisposition:
    """Process one relay message.

    Args:
        body: Raw message body (BrokerMessage JSON)
        store: NotificationStore holding the record
        processor: RecordProcessor delivering the record

    Returns:
        ACK when the message can be deleted, REDELIVER otherwise
    """
    try:
        message = BrokerMessage.model_validate_json(body)
    except ValidationError as e:
        # Malformed messages never become valid
        logger.error("relay_message_invalid", error=str(e))
        return RelayDisposition.ACK

    notification_id = message.notification_id
    record = store.claim(notification_id)
    if record is None:
        try:
            current = store.get(notification_id)
        except NotificationNotFoundError:
            logger.warning("relay_message_unknown_notification", notification_id=notification_id)
            return RelayDisposition.ACK

        if current.status in (NotificationStatus.SENT, NotificationStatus.FAILED):
            logger.info(
                "relay_message_already_terminal",
                notification_id=notification_id,
                status=current.status.value,
            )
            return RelayDisposition.ACK

        logger.info(
            "relay_message_not_claimable",
            notification_id=notification_id,
            status=current.status.value,
        )
        return RelayDisposition.REDELIVER

    outcome = processor.process(record)
    if outcome.status == NotificationStatus.RETRYING:
        return RelayDisposition.REDELIVER
    return RelayDisposition.ACK


class SqsRelayConsumer:
    """Long-polls an SQS queue and handles relay messages.

    Example:
        consumer = SqsRelayConsumer(SQSClient(), queue_url, store, processor)
        while running:
            consumer.poll_once()
    """

    def __init__(
        self,
        sqs: SQSClient,
        queue_url: str,
        store: NotificationStore,
        processor: RecordProcessor,
        wait_time_seconds: int = 10,
        max_messages: int = 10,
    ):
        self.sqs = sqs
        self.queue_url = queue_url
        self.store = store
        self.processor = processor
        self.wait_time_seconds = wait_time_seconds
        self.max_messages = max_messages
        self.log = logger.bind(component="sqs_relay_consumer", queue_url=queue_url)

    def poll_once(self) -> Dict[str, int]:
        """Receive and handle one batch of messages.

        Returns:
            Dictionary with counts: received, acked, redelivered, errors
        """
        stats = {"received": 0, "acked": 0, "redelivered": 0, "errors": 0}
        result = self.sqs.receive_messages(
            self.queue_url,
            max_number_of_messages=self.max_messages,
            wait_time_seconds=self.wait_time_seconds,
        )
        if not result.is_success:
            self.log.error("relay_receive_failed", error=result.message)
            stats["errors"] += 1
            return stats

        for sqs_message in result.data or []:
            stats["received"] += 1
            try:
                disposition = handle_relay_message(
                    sqs_message.get("Body", ""), self.store, self.processor
                )
            except Exception as e:
                # Left on the queue for redelivery
                self.log.error(
                    "relay_message_processing_exception",
                    message_id=sqs_message.get("MessageId"),
                    error=str(e),
                    exc_info=True,
                )
                stats["errors"] += 1
                continue

            if disposition == RelayDisposition.REDELIVER:
                stats["redelivered"] += 1
                continue

            deleted = self.sqs.delete_message(
                self.queue_url, sqs_message["ReceiptHandle"]
            )
            if deleted.is_success:
                stats["acked"] += 1
            else:
                self.log.warning(
                    "relay_message_delete_failed",
                    message_id=sqs_message.get("MessageId"),
                    error=deleted.message,
                )
                stats["errors"] += 1

        return stats
