"""Notification pipeline core models.

Pydantic models describe what callers submit and what channel senders
return. NotificationRecord is the detached snapshot of a persisted row that
the store hands to the scheduler and transports.
"""

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ChannelType(Enum):
    """Delivery channels. The set is closed; every channel needs a sender."""

    EMAIL = "email"
    SMS = "sms"
    CHAT = "chat"


class NotificationStatus(Enum):
    """Notification record status.

    See infrastructure.notifications.state for the allowed transitions.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    RETRYING = "retrying"


class SubmissionStatus(Enum):
    """Synchronous outcome of NotificationService.submit().

    ACCEPTED: persisted (and dispatched or published, depending on mode)
    REJECTED: validation failed, nothing persisted
    ERROR: valid request that could not be persisted or handed off
    """

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERROR = "error"


class AttachmentRef(BaseModel):
    """Reference to an attachment already held by the attachment store.

    Attributes:
        file_name: Original file name
        content_type: MIME type
        size: Size in bytes (optional)
        storage_provider: Name of the store holding the content
        storage_path: Opaque path understood by the attachment store
        is_inline: Embed in the message body instead of attaching
        content_id: Reference id used by inline attachments
    """

    file_name: str
    content_type: str = "application/octet-stream"
    size: Optional[int] = None
    storage_provider: str = "default"
    storage_path: str
    is_inline: bool = False
    content_id: Optional[str] = None


class AttachmentUpload(BaseModel):
    """Attachment content supplied with a request, uploaded at submission."""

    file_name: str
    content_type: str = "application/octet-stream"
    content: bytes
    is_inline: bool = False
    content_id: Optional[str] = None


class Attachment(BaseModel):
    """Attachment content downloaded for a delivery attempt."""

    file_name: str
    content_type: str
    content: bytes
    is_inline: bool = False
    content_id: Optional[str] = None


class NotificationRequest(BaseModel):
    """A notification submitted by a client application.

    Structural checks happen here. Business rules (non-empty recipients,
    payload source, template resolution) are checked by NotificationService
    so they come back as a rejected SubmissionResult.

    Attributes:
        channel: Delivery channel
        to: Primary recipients (email addresses, phone numbers or chat ids)
        cc: Secondary recipients (email only)
        bcc: Blind-copy recipients (email only)
        subject: Subject line (required for email)
        body: Literal body; when absent the template is rendered at dispatch
        template_name: Template reference
        template_variables: Variables for the template
        from_address: Override of the default sending identity
        attachments: References to stored attachments
        uploads: Attachment content to upload at submission

    Example:
        request = NotificationRequest(
            channel=ChannelType.EMAIL,
            to=["user@example.com"],
            subject="Welcome",
            template_name="welcome",
            template_variables={"name": "Jo"},
        )
    """

    channel: ChannelType
    to: List[str] = Field(default_factory=list)
    cc: List[str] = Field(default_factory=list)
    bcc: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None
    template_name: Optional[str] = None
    template_variables: Dict[str, Any] = Field(default_factory=dict)
    from_address: Optional[str] = None
    attachments: List[AttachmentRef] = Field(default_factory=list)
    uploads: List[AttachmentUpload] = Field(default_factory=list)

    @field_validator("to", "cc", "bcc")
    @classmethod
    def strip_recipients(cls, v: List[str]) -> List[str]:
        """Trim whitespace and drop empty entries."""
        return [r.strip() for r in v if r and r.strip()]

    @field_validator("template_name", "from_address")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def has_payload(self) -> bool:
        """True if a literal body or a template reference is present."""
        return bool(self.body and self.body.strip()) or bool(self.template_name)


class SendResult(BaseModel):
    """Result returned by a ChannelSender.

    Attributes:
        success: Provider accepted the message
        message_id: Provider-assigned message id
        error: Provider error text on failure
        retryable: False when a later attempt cannot succeed
        provider: Provider name override (defaults to the sender's provider)
        cost: Provider-reported cost, if any
    """

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = True
    provider: Optional[str] = None
    cost: Optional[Decimal] = None

    @classmethod
    def ok(cls, message_id: str, **kwargs: Any) -> "SendResult":
        return cls(success=True, message_id=message_id, **kwargs)

    @classmethod
    def failed(cls, error: str, retryable: bool = True, **kwargs: Any) -> "SendResult":
        return cls(success=False, error=error, retryable=retryable, **kwargs)


@dataclass
class NotificationRecord:
    """Detached snapshot of a persisted notification.

    Attributes mirror the `notifications` table. `id` is None only for
    records routed without persistence (inline mode with persistence off).
    """

    channel: ChannelType
    to: List[str]
    status: NotificationStatus = NotificationStatus.PENDING
    id: Optional[int] = None
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None
    template_name: Optional[str] = None
    template_variables: Dict[str, Any] = field(default_factory=dict)
    from_address: Optional[str] = None
    provider: Optional[str] = None
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    cost: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    next_attempt_at: Optional[datetime] = None
    attachments: List[AttachmentRef] = field(default_factory=list)

    @classmethod
    def from_request(
        cls,
        request: NotificationRequest,
        status: NotificationStatus = NotificationStatus.PENDING,
    ) -> "NotificationRecord":
        """Build an unpersisted record from a request."""
        return cls(
            channel=request.channel,
            to=list(request.to),
            cc=list(request.cc),
            bcc=list(request.bcc),
            subject=request.subject,
            body=request.body,
            template_name=request.template_name,
            template_variables=dict(request.template_variables),
            from_address=request.from_address,
            status=status,
            attachments=list(request.attachments),
        )


class DeliveryOutcome(BaseModel):
    """Eventual outcome of a submission or a delivery attempt.

    Attributes:
        notification_id: Record id (None when not persisted)
        status: Record status after the attempt (PENDING for acknowledgements)
        provider: Provider used, or the mode name for acknowledgements
        message_id: Provider message id, sentinel id or broker message id
        error: Error text for failed attempts
        retry_count: Failed attempts so far
        duplicate: True when delivery was suppressed as a duplicate
    """

    notification_id: Optional[int] = None
    status: NotificationStatus
    provider: Optional[str] = None
    message_id: Optional[str] = None
    error: Optional[str] = None
    retry_count: int = 0
    duplicate: bool = False

    @property
    def is_success(self) -> bool:
        return self.status == NotificationStatus.SENT

    @property
    def is_terminal(self) -> bool:
        return self.status in (NotificationStatus.SENT, NotificationStatus.FAILED)

    @classmethod
    def from_record(cls, record: NotificationRecord, duplicate: bool = False):
        return cls(
            notification_id=record.id,
            status=record.status,
            provider=record.provider,
            message_id=record.message_id,
            error=record.error_message,
            retry_count=record.retry_count,
            duplicate=duplicate,
        )


@dataclass
class SubmissionResult:
    """Result of NotificationService.submit().

    Separates synchronous rejection (nothing persisted, `errors` set) from
    the asynchronous delivery outcome, available through `outcome`.

    Attributes:
        status: ACCEPTED, REJECTED or ERROR
        notification_id: Persisted record id, if any
        message_id: Acknowledgement id (QUEUED-1, INLINE-1, RELAYED-1)
        provider: Mode name, or 'template-validation' for template rejections
        errors: Validation or hand-off error messages
        outcome: Future resolving to the DeliveryOutcome
    """

    status: SubmissionStatus
    notification_id: Optional[int] = None
    message_id: Optional[str] = None
    provider: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    outcome: Optional["Future[DeliveryOutcome]"] = None

    @property
    def is_accepted(self) -> bool:
        return self.status == SubmissionStatus.ACCEPTED

    @classmethod
    def accepted(
        cls,
        notification_id: Optional[int],
        message_id: str,
        provider: str,
        outcome: "Future[DeliveryOutcome]",
    ) -> "SubmissionResult":
        return cls(
            status=SubmissionStatus.ACCEPTED,
            notification_id=notification_id,
            message_id=message_id,
            provider=provider,
            outcome=outcome,
        )

    @classmethod
    def rejected(
        cls, errors: List[str], provider: Optional[str] = None
    ) -> "SubmissionResult":
        return cls(status=SubmissionStatus.REJECTED, errors=errors, provider=provider)

    @classmethod
    def error(
        cls, message: str, notification_id: Optional[int] = None
    ) -> "SubmissionResult":
        return cls(
            status=SubmissionStatus.ERROR,
            notification_id=notification_id,
            errors=[message],
        )
