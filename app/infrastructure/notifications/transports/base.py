"""Transport abstraction.

A transport takes a persisted (or, inline without persistence, transient)
record and returns a Future resolving to its DeliveryOutcome. The facade
only talks to this interface.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import Any

from infrastructure.notifications.models import DeliveryOutcome, NotificationRecord


class DeliveryMode(Enum):
    """How submitted notifications are delivered. One mode per deployment."""

    QUEUE = "queue"
    INLINE = "inline"
    BROKER = "broker"


class Transport(ABC):
    """Asynchronous dispatch capability."""

    @property
    @abstractmethod
    def mode(self) -> DeliveryMode:
        pass

    @abstractmethod
    def dispatch(self, record: NotificationRecord) -> "Future[DeliveryOutcome]":
        """Hand a record off for delivery.

        Args:
            record: Record to deliver

        Returns:
            Future resolving to the DeliveryOutcome
        """
        pass

    def shutdown(self, wait: bool = True) -> None:
        """Release background resources."""


def completed_future(value: Any) -> Future:
    """Future already resolved with `value`."""
    future: Future = Future()
    future.set_result(value)
    return future


def failed_future(exc: BaseException) -> Future:
    """Future already resolved with exception `exc`."""
    future: Future = Future()
    future.set_exception(exc)
    return future
