"""SQLAlchemy tables for notification records and their attachments."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrastructure.notifications.models import (
    AttachmentRef,
    ChannelType,
    NotificationRecord,
    NotificationStatus,
)
from infrastructure.persistence import Base, UTCDateTime, utc_now


class NotificationRow(Base):
    """One row per notification."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel: Mapped[ChannelType] = mapped_column(
        Enum(ChannelType, native_enum=False, length=16), nullable=False
    )

    # Recipients
    to_recipients: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    cc_recipients: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    bcc_recipients: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list
    )

    # Payload
    subject: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    template_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    template_variables: Mapped[Dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    from_address: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    content_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)

    # Delivery state
    status: Mapped[NotificationStatus] = mapped_column(
        Enum(NotificationStatus, native_enum=False, length=16),
        nullable=False,
        default=NotificationStatus.PENDING,
    )
    provider: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    message_id: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 6), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    next_attempt_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )

    attachments: Mapped[List["AttachmentRow"]] = relationship(
        back_populates="notification",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AttachmentRow.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_notifications_status_created", "status", "created_at"),
        Index("ix_notifications_fingerprint_sent", "content_fingerprint", "sent_at"),
    )

    def to_record(self) -> NotificationRecord:
        """Build a detached snapshot of this row."""
        return NotificationRecord(
            id=self.id,
            channel=self.channel,
            to=list(self.to_recipients or []),
            cc=list(self.cc_recipients or []),
            bcc=list(self.bcc_recipients or []),
            subject=self.subject,
            body=self.body,
            template_name=self.template_name,
            template_variables=dict(self.template_variables or {}),
            from_address=self.from_address,
            status=self.status,
            provider=self.provider,
            message_id=self.message_id,
            error_message=self.error_message,
            retry_count=self.retry_count,
            cost=self.cost,
            created_at=self.created_at,
            updated_at=self.updated_at,
            sent_at=self.sent_at,
            next_attempt_at=self.next_attempt_at,
            attachments=[a.to_ref() for a in self.attachments],
        )


class AttachmentRow(Base):
    """Attachment metadata owned by a notification."""

    __tablename__ = "notification_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notification_id: Mapped[int] = mapped_column(
        ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    storage_provider: Mapped[str] = mapped_column(String(50), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    is_inline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    content_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )

    notification: Mapped[NotificationRow] = relationship(back_populates="attachments")

    def to_ref(self) -> AttachmentRef:
        return AttachmentRef(
            file_name=self.file_name,
            content_type=self.content_type,
            size=self.size,
            storage_provider=self.storage_provider,
            storage_path=self.storage_path,
            is_inline=self.is_inline,
            content_id=self.content_id,
        )

    @classmethod
    def from_ref(cls, ref: AttachmentRef) -> "AttachmentRow":
        return cls(
            file_name=ref.file_name,
            content_type=ref.content_type,
            size=ref.size,
            storage_provider=ref.storage_provider,
            storage_path=ref.storage_path,
            is_inline=ref.is_inline,
            content_id=ref.content_id,
        )
