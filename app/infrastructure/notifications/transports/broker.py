"""Broker relay transport.

Publishes persisted records to a message broker. Delivery happens in a
separate consumer (see transports.consumer) that claims the record by id and
reports back through the store's update contract.
"""

from concurrent.futures import Future
from typing import Mapping, Optional, Protocol

import structlog

from infrastructure.clients.aws import SQSClient
from infrastructure.notifications.models import DeliveryOutcome, NotificationRecord
from infrastructure.notifications.transports.base import (
    DeliveryMode,
    Transport,
    completed_future,
    failed_future,
)
from infrastructure.notifications.transports.messages import BrokerMessage
from infrastructure.operations import OperationResult

logger = structlog.get_logger()

BROKER_PROVIDER = "broker"


class BrokerPublishError(Exception):
    """Broker refused or failed to accept a message."""

    def __init__(self, result: OperationResult):
        self.result = result
        super().__init__(result.message)


class BrokerPublisher(Protocol):
    """Publishes relay messages."""

    def publish(self, message: BrokerMessage) -> OperationResult:
        """Publish a message.

        Returns:
            OperationResult with {"message_id": ...} on success
        """
        ...


class SqsBrokerPublisher:
    """Publishes relay messages to SQS.

    Each channel may have its own queue; channels without one use the
    default queue. FIFO queues (URL ending in .fifo) get the channel as
    message group and the notification id as deduplication id.

    Example:
        publisher = SqsBrokerPublisher(
            SQSClient(region="ca-central-1"),
            default_queue_url=settings.aws.BROKER_QUEUE_URL,
            channel_queue_urls=settings.aws.CHANNEL_QUEUE_MAP,
        )
    """

    def __init__(
        self,
        sqs: SQSClient,
        default_queue_url: str,
        channel_queue_urls: Optional[Mapping[str, str]] = None,
    ):
        self.sqs = sqs
        self.default_queue_url = default_queue_url
        self.channel_queue_urls = dict(channel_queue_urls or {})

    def queue_url_for(self, channel: str) -> str:
        return self.channel_queue_urls.get(channel, self.default_queue_url)

    def publish(self, message: BrokerMessage) -> OperationResult:
        channel = message.channel.value
        queue_url = self.queue_url_for(channel)
        if not queue_url:
            return OperationResult.permanent_error(
                f"No broker queue configured for channel {channel}",
                error_code="QUEUE_NOT_CONFIGURED",
            )

        fifo = queue_url.endswith(".fifo")
        return self.sqs.send_message(
            queue_url,
            message.to_json(),
            message_group_id=channel if fifo else None,
            deduplication_id=f"notification-{message.notification_id}" if fifo else None,
            attributes={"channel": channel},
        )


class BrokerRelayTransport(Transport):
    """Transport that publishes to a broker instead of delivering.

    The returned future is already resolved: with a PENDING DeliveryOutcome
    carrying the broker message id, or with BrokerPublishError.
    """

    def __init__(self, publisher: BrokerPublisher):
        self.publisher = publisher

    @property
    def mode(self) -> DeliveryMode:
        return DeliveryMode.BROKER

    def dispatch(self, record: NotificationRecord) -> "Future[DeliveryOutcome]":
        message = BrokerMessage.from_record(record)
        result = self.publisher.publish(message)

        if not result.is_success:
            logger.error(
                "broker_publish_failed",
                notification_id=record.id,
                channel=record.channel.value,
                error=result.message,
                error_code=result.error_code,
            )
            return failed_future(BrokerPublishError(result))

        broker_message_id = (result.data or {}).get("message_id")
        logger.info(
            "notification_relayed",
            notification_id=record.id,
            channel=record.channel.value,
            broker_message_id=broker_message_id,
        )
        return completed_future(
            DeliveryOutcome(
                notification_id=record.id,
                status=record.status,
                provider=BROKER_PROVIDER,
                message_id=broker_message_id,
                retry_count=record.retry_count,
            )
        )
