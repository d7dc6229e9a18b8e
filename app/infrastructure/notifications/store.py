"""Notification record store.

The store is the only shared resource between scheduler instances. Every
read-modify-write (claim, terminal update) runs in one short transaction
that locks the affected rows, so two workers never hold the same record and
no lock is held while a channel sender is talking to its provider.

Backends:
    - SqlNotificationStore: SQLAlchemy. PostgreSQL/MySQL use
      SELECT ... FOR UPDATE SKIP LOCKED; SQLite serializes transactions
      with BEGIN IMMEDIATE (see infrastructure.persistence.database).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Protocol, Sequence

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from infrastructure.notifications.config import QueueConfig
from infrastructure.notifications.errors import NotificationNotFoundError
from infrastructure.notifications.fingerprint import content_fingerprint
from infrastructure.notifications.models import (
    AttachmentRef,
    NotificationRecord,
    NotificationRequest,
    NotificationStatus,
)
from infrastructure.notifications.state import ensure_transition
from infrastructure.notifications.tables import AttachmentRow, NotificationRow
from infrastructure.persistence import session_scope, utc_now

logger = structlog.get_logger()

DUPLICATE_MESSAGE_ID = "DUPLICATE-SKIPPED"
DUPLICATE_PROVIDER = "dedup"


@dataclass
class ClaimedBatch:
    """Records claimed by one claim_batch() call.

    Attributes:
        records: Claimed records, now PROCESSING, oldest created first
        recovered_ids: Stale PROCESSING records reset to PENDING in this claim
    """

    records: List[NotificationRecord] = field(default_factory=list)
    recovered_ids: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


class NotificationStore(Protocol):
    """Protocol for notification record storage backends."""

    def create(
        self,
        request: NotificationRequest,
        attachments: Optional[Sequence[AttachmentRef]] = None,
    ) -> int:
        """Insert a PENDING record and return its id."""
        ...

    def get(self, notification_id: int) -> NotificationRecord:
        """Load a record. Raises NotificationNotFoundError."""
        ...

    def claim_batch(self, limit: int) -> ClaimedBatch:
        """Recover stale records and claim up to `limit` actionable records."""
        ...

    def claim(self, notification_id: int) -> Optional[NotificationRecord]:
        """Claim one PENDING or due RETRYING record, None if not claimable."""
        ...

    def mark_terminal(
        self,
        notification_id: int,
        success: bool,
        provider: Optional[str] = None,
        message_id: Optional[str] = None,
        error: Optional[str] = None,
        retryable: bool = True,
        cost: Optional[Decimal] = None,
    ) -> NotificationRecord:
        """Record the outcome of a delivery attempt."""
        ...

    def mark_duplicate(
        self, notification_id: int, duplicate_of: int
    ) -> NotificationRecord:
        """Mark a claimed record SENT without dispatching it."""
        ...

    def find_recent_matches(
        self,
        recipients: Sequence[str],
        subject: Optional[str],
        body: Optional[str],
        window: Optional[timedelta] = None,
        template_name: Optional[str] = None,
        template_variables: Optional[dict] = None,
        exclude_id: Optional[int] = None,
    ) -> List[NotificationRecord]:
        """SENT records with the same content sent within the window."""
        ...

    def list_attachments(self, notification_id: int) -> List[AttachmentRef]:
        ...

    def delete(self, notification_id: int) -> bool:
        ...

    def count_by_status(self) -> Dict[NotificationStatus, int]:
        ...


class SqlNotificationStore:
    """SQLAlchemy-backed notification store.

    Attributes:
        config: QueueConfig supplying max_retries, backoff, staleness and
            dedup window
        clock: Callable returning the current aware UTC datetime

    Example:
        store = SqlNotificationStore(create_session_factory(engine), QueueConfig())
        notification_id = store.create(request)
        batch = store.claim_batch(limit=10)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        config: Optional[QueueConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self.config = config or QueueConfig()
        self.clock = clock or utc_now
        self.log = logger.bind(component="notification_store")

    def create(
        self,
        request: NotificationRequest,
        attachments: Optional[Sequence[AttachmentRef]] = None,
    ) -> int:
        """Insert a PENDING record.

        Args:
            request: Validated request
            attachments: Attachment references to store; defaults to
                request.attachments

        Returns:
            The new record id
        """
        now = self.clock()
        refs = list(attachments) if attachments is not None else request.attachments
        row = NotificationRow(
            channel=request.channel,
            to_recipients=list(request.to),
            cc_recipients=list(request.cc),
            bcc_recipients=list(request.bcc),
            subject=request.subject,
            body=request.body,
            template_name=request.template_name,
            template_variables=dict(request.template_variables),
            from_address=request.from_address,
            content_fingerprint=content_fingerprint(
                request.to,
                request.subject,
                request.body,
                request.template_name,
                request.template_variables,
            ),
            status=NotificationStatus.PENDING,
            retry_count=0,
            created_at=now,
            updated_at=now,
        )
        row.attachments = [AttachmentRow.from_ref(ref) for ref in refs]

        with session_scope(self._session_factory) as session:
            session.add(row)
            session.flush()
            notification_id = row.id

        self.log.info(
            "notification_created",
            notification_id=notification_id,
            channel=request.channel.value,
            recipient_count=len(request.to),
            attachment_count=len(refs),
        )
        return notification_id

    def get(self, notification_id: int) -> NotificationRecord:
        with session_scope(self._session_factory) as session:
            return self._load(session, notification_id).to_record()

    def claim_batch(self, limit: int) -> ClaimedBatch:
        """Claim up to `limit` actionable records in one locked transaction.

        Stale PROCESSING records (updated_at older than stale_after) are
        first reset to PENDING. Then PENDING records and RETRYING records
        whose backoff has elapsed are moved to PROCESSING, oldest created
        first. Rows locked by a concurrent claimer are skipped.

        Args:
            limit: Maximum records to claim

        Returns:
            ClaimedBatch with the claimed records and recovered ids
        """
        now = self.clock()
        stale_cutoff = now - self.config.stale_after
        batch = ClaimedBatch()

        with session_scope(self._session_factory) as session:
            stale_rows = session.scalars(
                select(NotificationRow)
                .where(
                    NotificationRow.status == NotificationStatus.PROCESSING,
                    NotificationRow.updated_at <= stale_cutoff,
                )
                .order_by(NotificationRow.created_at.asc(), NotificationRow.id.asc())
                .limit(limit)
                .with_for_update(skip_locked=True)
            ).all()

            for row in stale_rows:
                stale_since = row.updated_at
                self._transition(row, NotificationStatus.PENDING, now)
                batch.recovered_ids.append(row.id)
                self.log.warning(
                    "stale_notification_recovered",
                    notification_id=row.id,
                    stale_since=stale_since.isoformat(),
                    retry_count=row.retry_count,
                )
            session.flush()

            rows = session.scalars(
                select(NotificationRow)
                .where(
                    or_(
                        NotificationRow.status == NotificationStatus.PENDING,
                        and_(
                            NotificationRow.status == NotificationStatus.RETRYING,
                            or_(
                                NotificationRow.next_attempt_at.is_(None),
                                NotificationRow.next_attempt_at <= now,
                            ),
                        ),
                    )
                )
                .order_by(NotificationRow.created_at.asc(), NotificationRow.id.asc())
                .limit(limit)
                .with_for_update(skip_locked=True)
            ).all()

            for row in rows:
                self._transition(row, NotificationStatus.PROCESSING, now)
            batch.records = [row.to_record() for row in rows]

        if batch.records or batch.recovered_ids:
            self.log.info(
                "notifications_claimed",
                claimed=len(batch.records),
                recovered=len(batch.recovered_ids),
                notification_ids=[r.id for r in batch.records],
            )
        return batch

    def claim(self, notification_id: int) -> Optional[NotificationRecord]:
        """Claim one record by id.

        PENDING and due RETRYING records are claimable. A PROCESSING record
        older than stale_after is recovered to PENDING and claimed in the same
        transaction. The inline path and the broker consumer run without a
        queue scheduler and rely on this for crash recovery.

        Returns:
            The claimed record, or None if it is not claimable
        """
        now = self.clock()
        stale_cutoff = now - self.config.stale_after
        with session_scope(self._session_factory) as session:
            row = session.scalars(
                select(NotificationRow)
                .where(
                    NotificationRow.id == notification_id,
                    or_(
                        NotificationRow.status == NotificationStatus.PENDING,
                        and_(
                            NotificationRow.status == NotificationStatus.RETRYING,
                            or_(
                                NotificationRow.next_attempt_at.is_(None),
                                NotificationRow.next_attempt_at <= now,
                            ),
                        ),
                        and_(
                            NotificationRow.status == NotificationStatus.PROCESSING,
                            NotificationRow.updated_at <= stale_cutoff,
                        ),
                    ),
                )
                .with_for_update(skip_locked=True)
            ).one_or_none()
            if row is None:
                self.log.debug("notification_not_claimable", notification_id=notification_id)
                return None
            if row.status == NotificationStatus.PROCESSING:
                stale_since = row.updated_at
                self._transition(row, NotificationStatus.PENDING, now)
                self.log.warning(
                    "stale_notification_recovered",
                    notification_id=row.id,
                    stale_since=stale_since.isoformat(),
                    retry_count=row.retry_count,
                )
            self._transition(row, NotificationStatus.PROCESSING, now)
            return row.to_record()

    def mark_terminal(
        self,
        notification_id: int,
        success: bool,
        provider: Optional[str] = None,
        message_id: Optional[str] = None,
        error: Optional[str] = None,
        retryable: bool = True,
        cost: Optional[Decimal] = None,
    ) -> NotificationRecord:
        """Record the outcome of a delivery attempt on a PROCESSING record.

        Success sets SENT and sent_at. Failure increments retry_count and
        sets RETRYING while retries remain, FAILED once retry_count reaches
        max_retries or immediately when `retryable` is False.

        Raises:
            NotificationNotFoundError: Unknown id
            InvalidStatusTransitionError: Record is not PROCESSING
        """
        now = self.clock()
        with session_scope(self._session_factory) as session:
            row = self._load(session, notification_id, for_update=True)

            if success:
                self._transition(row, NotificationStatus.SENT, now)
                row.sent_at = now
                row.provider = provider
                row.message_id = message_id
                row.error_message = None
                row.next_attempt_at = None
                row.cost = cost
            else:
                retries_remain = row.retry_count + 1 < self.config.max_retries
                if retryable and retries_remain:
                    self._transition(row, NotificationStatus.RETRYING, now)
                    row.next_attempt_at = now + self.config.retry_delay_for(
                        row.retry_count + 1
                    )
                else:
                    self._transition(row, NotificationStatus.FAILED, now)
                    row.next_attempt_at = None
                row.retry_count += 1
                row.provider = provider or row.provider
                row.error_message = error

            record = row.to_record()

        if record.status == NotificationStatus.SENT:
            self.log.info(
                "notification_sent",
                notification_id=notification_id,
                provider=provider,
                message_id=message_id,
                retry_count=record.retry_count,
            )
        elif record.status == NotificationStatus.RETRYING:
            self.log.info(
                "notification_retry_scheduled",
                notification_id=notification_id,
                retry_count=record.retry_count,
                max_retries=self.config.max_retries,
                next_attempt_at=record.next_attempt_at.isoformat()
                if record.next_attempt_at
                else None,
                error=error,
            )
        else:
            self.log.warning(
                "notification_failed",
                notification_id=notification_id,
                retry_count=record.retry_count,
                retryable=retryable,
                error=error,
            )
        return record

    def mark_duplicate(
        self, notification_id: int, duplicate_of: int
    ) -> NotificationRecord:
        """Mark a claimed record SENT with the duplicate sentinel id."""
        now = self.clock()
        with session_scope(self._session_factory) as session:
            row = self._load(session, notification_id, for_update=True)
            self._transition(row, NotificationStatus.SENT, now)
            row.sent_at = now
            row.provider = DUPLICATE_PROVIDER
            row.message_id = DUPLICATE_MESSAGE_ID
            row.error_message = (
                f"Duplicate of notification {duplicate_of} - skipped to prevent "
                "duplicate delivery"
            )
            row.next_attempt_at = None
            record = row.to_record()

        self.log.info(
            "notification_duplicate_suppressed",
            notification_id=notification_id,
            duplicate_of=duplicate_of,
        )
        return record

    def find_recent_matches(
        self,
        recipients: Sequence[str],
        subject: Optional[str],
        body: Optional[str],
        window: Optional[timedelta] = None,
        template_name: Optional[str] = None,
        template_variables: Optional[dict] = None,
        exclude_id: Optional[int] = None,
    ) -> List[NotificationRecord]:
        """Find SENT records with identical content within the window.

        Args:
            recipients: Primary recipients (order does not matter)
            subject: Subject line
            body: Body text
            window: Look-back window; defaults to config.dedup_window
            template_name: Template reference, compared when body is empty
            template_variables: Template variables, compared when body is empty
            exclude_id: Record to leave out (the one being checked)

        Returns:
            Matching records, most recently sent first
        """
        if window is None:
            window = self.config.dedup_window
        cutoff = self.clock() - window
        fingerprint = content_fingerprint(
            recipients, subject, body, template_name, template_variables
        )
        wanted = sorted(recipients)

        with session_scope(self._session_factory) as session:
            query = select(NotificationRow).where(
                NotificationRow.content_fingerprint == fingerprint,
                NotificationRow.status == NotificationStatus.SENT,
                NotificationRow.sent_at >= cutoff,
            )
            if exclude_id is not None:
                query = query.where(NotificationRow.id != exclude_id)
            rows = session.scalars(
                query.order_by(NotificationRow.sent_at.desc())
            ).all()

            # Fingerprints are truncated hashes; confirm on full content
            return [
                row.to_record()
                for row in rows
                if sorted(row.to_recipients) == wanted
                and row.subject == subject
                and row.body == body
                and (
                    body
                    or (
                        row.template_name == template_name
                        and (row.template_variables or {}) == (template_variables or {})
                    )
                )
            ]

    def list_attachments(self, notification_id: int) -> List[AttachmentRef]:
        with session_scope(self._session_factory) as session:
            row = self._load(session, notification_id)
            return [a.to_ref() for a in row.attachments]

    def delete(self, notification_id: int) -> bool:
        """Delete a record and its attachment metadata.

        Returns:
            True if a record was deleted
        """
        with session_scope(self._session_factory) as session:
            row = session.get(NotificationRow, notification_id)
            if row is None:
                return False
            session.delete(row)

        self.log.info("notification_deleted", notification_id=notification_id)
        return True

    def count_by_status(self) -> Dict[NotificationStatus, int]:
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(NotificationRow.status, func.count(NotificationRow.id)).group_by(
                    NotificationRow.status
                )
            ).all()
        counts = {status: 0 for status in NotificationStatus}
        counts.update({status: count for status, count in rows})
        return counts

    def _load(
        self, session: Session, notification_id: int, for_update: bool = False
    ) -> NotificationRow:
        row = session.get(NotificationRow, notification_id, with_for_update=for_update)
        if row is None:
            raise NotificationNotFoundError(notification_id)
        return row

    @staticmethod
    def _transition(
        row: NotificationRow, target: NotificationStatus, now: datetime
    ) -> None:
        ensure_transition(row.status, target, row.id)
        row.status = target
        row.updated_at = now


def create_notification_store(
    config: QueueConfig,
    session_factory: sessionmaker,
    backend: str = "sql",
    clock: Optional[Callable[[], datetime]] = None,
) -> NotificationStore:
    """Factory to create the notification store for a backend.

    Args:
        config: Queue configuration (retry policy, staleness, dedup window)
        session_factory: SQLAlchemy session factory for the sql backend
        backend: Storage backend name
        clock: Optional clock override

    Returns:
        NotificationStore implementation

    Raises:
        ValueError: If an unknown backend is specified

    Examples:
        >>> store = create_notification_store(config, create_session_factory(engine))
    """
    if backend == "sql":
        logger.info("creating_sql_notification_store")
        return SqlNotificationStore(session_factory, config, clock=clock)

    raise ValueError(f"Unknown notification store backend: {backend}. Supported: sql")
