"""Delivery transports: inline thread pool and broker relay."""

from infrastructure.notifications.transports.base import (
    DeliveryMode,
    Transport,
    completed_future,
    failed_future,
)
from infrastructure.notifications.transports.broker import (
    BrokerPublishError,
    BrokerPublisher,
    BrokerRelayTransport,
    SqsBrokerPublisher,
)
from infrastructure.notifications.transports.consumer import (
    RelayDisposition,
    SqsRelayConsumer,
    handle_relay_message,
)
from infrastructure.notifications.transports.inline import InlineTransport
from infrastructure.notifications.transports.messages import BrokerMessage

__all__ = [
    "BrokerMessage",
    "BrokerPublishError",
    "BrokerPublisher",
    "BrokerRelayTransport",
    "DeliveryMode",
    "InlineTransport",
    "RelayDisposition",
    "SqsBrokerPublisher",
    "SqsRelayConsumer",
    "Transport",
    "completed_future",
    "failed_future",
    "handle_relay_message",
]
