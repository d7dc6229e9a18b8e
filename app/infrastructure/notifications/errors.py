"""Notification pipeline exceptions.

Validation errors are raised (or returned) before anything is persisted.
Dispatch errors are raised by channel senders and collaborators and are
classified into retryable or terminal outcomes by the queue scheduler.
"""

from typing import Any, List, Optional


class NotificationError(Exception):
    """Base class for notification pipeline errors."""


class NotificationValidationError(NotificationError):
    """Request rejected before persistence.

    Attributes:
        errors: Human-readable validation messages
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid notification request")


class TemplateNotFoundError(NotificationError):
    """Template is missing or inactive."""

    def __init__(self, template_name: str, channel: Optional[str] = None):
        self.template_name = template_name
        self.channel = channel
        message = f"Template not found: {template_name}"
        if channel:
            message = f"{message} (channel: {channel})"
        super().__init__(message)


class TransientDispatchError(NotificationError):
    """Provider or network failure that may succeed on a later attempt."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(message)


class ConfigurationError(NotificationError):
    """Missing credentials or misconfigured provider; never retried."""


class AttachmentStorageError(NotificationError):
    """Attachment could not be uploaded, downloaded or deleted."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    """No record exists with the given id."""

    def __init__(self, notification_id: Any):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class InvalidStatusTransitionError(NotificationError):
    """Requested status change is not an edge of the state machine."""

    def __init__(self, notification_id: Any, current: Any, target: Any):
        self.notification_id = notification_id
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid status transition for notification {notification_id}: "
            f"{getattr(current, 'name', current)} -> {getattr(target, 'name', target)}"
        )
