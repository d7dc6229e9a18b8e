"""Durable notification delivery pipeline.

Accepts notification requests, persists them as records, and delivers them
through per-channel senders with retries, stale-record recovery and
duplicate suppression.

Usage:
    from infrastructure.notifications import ChannelType, NotificationRequest
    from infrastructure.notifications.factory import create_notification_pipeline

    pipeline = create_notification_pipeline(senders={...}, settings=settings)
    result = pipeline.service.submit(
        NotificationRequest(
            channel=ChannelType.SMS,
            to=["+15555550123"],
            body="Your code is 123456",
        )
    )

Only models, errors and state helpers are exported here. Services, stores
and transports are imported from their modules.
"""

# Models
from infrastructure.notifications.models import (
    Attachment,
    AttachmentRef,
    AttachmentUpload,
    ChannelType,
    DeliveryOutcome,
    NotificationRecord,
    NotificationRequest,
    NotificationStatus,
    SendResult,
    SubmissionResult,
    SubmissionStatus,
)

# Errors
from infrastructure.notifications.errors import (
    AttachmentStorageError,
    ConfigurationError,
    InvalidStatusTransitionError,
    NotificationError,
    NotificationNotFoundError,
    NotificationValidationError,
    TemplateNotFoundError,
    TransientDispatchError,
)

# State machine
from infrastructure.notifications.state import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    is_terminal,
)

__all__ = [
    # Models
    "Attachment",
    "AttachmentRef",
    "AttachmentUpload",
    "ChannelType",
    "DeliveryOutcome",
    "NotificationRecord",
    "NotificationRequest",
    "NotificationStatus",
    "SendResult",
    "SubmissionResult",
    "SubmissionStatus",
    # Errors
    "AttachmentStorageError",
    "ConfigurationError",
    "InvalidStatusTransitionError",
    "NotificationError",
    "NotificationNotFoundError",
    "NotificationValidationError",
    "TemplateNotFoundError",
    "TransientDispatchError",
    # State machine
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "can_transition",
    "is_terminal",
]
