"""Notification status state machine.

    PENDING ──> PROCESSING ──> SENT
       ^            │ │
       └────────────┘ ├──────> RETRYING ──> PROCESSING
    (stale recovery)  └──────> FAILED

SENT and FAILED are terminal.
"""

from typing import Any, Dict, FrozenSet

from infrastructure.notifications.errors import InvalidStatusTransitionError
from infrastructure.notifications.models import NotificationStatus

ALLOWED_TRANSITIONS: Dict[NotificationStatus, FrozenSet[NotificationStatus]] = {
    NotificationStatus.PENDING: frozenset({NotificationStatus.PROCESSING}),
    NotificationStatus.PROCESSING: frozenset(
        {
            NotificationStatus.SENT,
            NotificationStatus.RETRYING,
            NotificationStatus.FAILED,
            NotificationStatus.PENDING,
        }
    ),
    NotificationStatus.RETRYING: frozenset({NotificationStatus.PROCESSING}),
    NotificationStatus.SENT: frozenset(),
    NotificationStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({NotificationStatus.SENT, NotificationStatus.FAILED})


def can_transition(current: NotificationStatus, target: NotificationStatus) -> bool:
    """Check whether current -> target is an edge of the state machine."""
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(
    current: NotificationStatus,
    target: NotificationStatus,
    notification_id: Any = None,
) -> None:
    """Raise InvalidStatusTransitionError unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(notification_id, current, target)


def is_terminal(status: NotificationStatus) -> bool:
    return status in TERMINAL_STATUSES
