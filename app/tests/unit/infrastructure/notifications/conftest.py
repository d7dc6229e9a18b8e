"""Test fixtures for notification pipeline tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from infrastructure.configuration import DatabaseSettings
from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.config import QueueConfig
from infrastructure.notifications.errors import (
    AttachmentStorageError,
    TemplateNotFoundError,
)
from infrastructure.notifications.models import (
    Attachment,
    ChannelType,
    NotificationRequest,
    SendResult,
)
from infrastructure.notifications.processor import RecordProcessor
from infrastructure.notifications.router import ChannelRouter
from infrastructure.notifications.store import SqlNotificationStore
from infrastructure.persistence import (
    create_db_engine,
    create_session_factory,
    init_schema,
)


class MutableClock:
    """Clock returning a fixed aware UTC time until advanced."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class ScriptedSender(ChannelSender):
    """Channel sender replaying a script of results.

    Each send() consumes the next script entry: a SendResult is returned, an
    exception is raised. Once the script is exhausted the last entry repeats.
    """

    def __init__(
        self,
        channel: ChannelType = ChannelType.EMAIL,
        script: Optional[Sequence[Union[SendResult, Exception]]] = None,
        provider_name: str = "fake-provider",
    ):
        self._channel = channel
        self._provider_name = provider_name
        self.script: List[Union[SendResult, Exception]] = list(
            script or [SendResult.ok("provider-msg-1")]
        )
        self.calls: List[Dict[str, Any]] = []

    @property
    def channel(self) -> ChannelType:
        return self._channel

    @property
    def provider_name(self) -> str:
        return self._provider_name

    def send(
        self,
        recipients,
        subject,
        body,
        from_address=None,
        cc=None,
        bcc=None,
        attachments=None,
    ) -> SendResult:
        self.calls.append(
            {
                "recipients": recipients,
                "subject": subject,
                "body": body,
                "from_address": from_address,
                "cc": cc,
                "bcc": bcc,
                "attachments": list(attachments or []),
            }
        )
        index = min(len(self.calls) - 1, len(self.script) - 1)
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        return step

    @property
    def call_count(self) -> int:
        return len(self.calls)


class FakeTemplateResolver:
    """In-memory template resolver using str.format."""

    def __init__(self, templates: Optional[Dict[str, str]] = None):
        self.templates = templates or {"welcome": "Hello {name}!"}
        self.calls: List[str] = []

    def resolve(self, name, variables, channel=None) -> str:
        self.calls.append(name)
        if name not in self.templates:
            raise TemplateNotFoundError(name, channel)
        return self.templates[name].format(**variables)


class FakeAttachmentStore:
    """In-memory attachment store; paths listed in `broken` fail."""

    provider_name = "memory"

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.broken: set = set()
        self.fail_uploads = False

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise AttachmentStorageError("upload refused", path)
        self.objects[path] = content
        return path

    def download(self, path: str) -> bytes:
        if path in self.broken or path not in self.objects:
            raise AttachmentStorageError("object unavailable", path)
        return self.objects[path]

    def delete(self, path: str) -> None:
        self.objects.pop(path, None)


@pytest.fixture
def clock():
    """Mutable clock shared by the store under test."""
    return MutableClock()


@pytest.fixture
def db_engine(tmp_path):
    """SQLite file database with the notification schema.

    A file database (not :memory:) so concurrent claim tests get separate
    connections serialized by BEGIN IMMEDIATE.
    """
    settings = DatabaseSettings(DATABASE_URL=f"sqlite:///{tmp_path / 'notifications.db'}")
    engine = create_db_engine(settings)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def queue_config_factory():
    """Factory for QueueConfig with test-friendly defaults.

    Example:
        config = queue_config_factory(max_retries=2)
    """

    def _factory(**overrides: Any) -> QueueConfig:
        values: Dict[str, Any] = {
            "poll_interval_seconds": 1,
            "batch_size": 10,
            "max_retries": 3,
            "retry_delay_seconds": 0,
            "stale_after_seconds": 300,
            "dedup_enabled": True,
            "dedup_window_seconds": 3600,
        }
        values.update(overrides)
        return QueueConfig(**values)

    return _factory


@pytest.fixture
def queue_config(queue_config_factory):
    return queue_config_factory()


@pytest.fixture
def store_factory(session_factory, clock):
    """Factory for SqlNotificationStore sharing the test database and clock."""

    def _factory(config: Optional[QueueConfig] = None) -> SqlNotificationStore:
        return SqlNotificationStore(session_factory, config or QueueConfig(), clock=clock)

    return _factory


@pytest.fixture
def store(store_factory, queue_config):
    return store_factory(queue_config)


@pytest.fixture
def request_factory():
    """Factory for NotificationRequest instances.

    Example:
        request = request_factory(to=["a@example.com", "b@example.com"])
        sms = request_factory(channel=ChannelType.SMS, subject=None)
    """

    def _factory(
        channel: ChannelType = ChannelType.EMAIL,
        to: Optional[List[str]] = None,
        subject: Optional[str] = "Test subject",
        body: Optional[str] = "Test body",
        **kwargs: Any,
    ) -> NotificationRequest:
        return NotificationRequest(
            channel=channel,
            to=to if to is not None else ["user@example.com"],
            subject=subject,
            body=body,
            **kwargs,
        )

    return _factory


@pytest.fixture
def sender_factory():
    """Factory for ScriptedSender instances.

    Example:
        flaky = sender_factory(script=[SendResult.failed("boom"), SendResult.ok("m-1")])
    """

    def _factory(
        channel: ChannelType = ChannelType.EMAIL,
        script: Optional[Sequence[Union[SendResult, Exception]]] = None,
        provider_name: str = "fake-provider",
    ) -> ScriptedSender:
        return ScriptedSender(channel=channel, script=script, provider_name=provider_name)

    return _factory


@pytest.fixture
def email_sender(sender_factory):
    return sender_factory()


@pytest.fixture
def template_resolver():
    return FakeTemplateResolver()


@pytest.fixture
def attachment_store():
    return FakeAttachmentStore()


@pytest.fixture
def router(email_sender, template_resolver, attachment_store):
    return ChannelRouter(
        senders={ChannelType.EMAIL: email_sender},
        template_resolver=template_resolver,
        attachment_store=attachment_store,
    )


@pytest.fixture
def processor(store, router, queue_config):
    return RecordProcessor(store, router, queue_config)


@pytest.fixture
def force_status(session_factory):
    """Write a status and updated_at directly, bypassing the state machine.

    Example:
        force_status(notification_id, NotificationStatus.PROCESSING, updated_at=old)
    """
    from infrastructure.notifications.tables import NotificationRow
    from infrastructure.persistence import session_scope

    def _force(notification_id: int, status, updated_at: Optional[datetime] = None, **fields):
        with session_scope(session_factory) as session:
            row = session.get(NotificationRow, notification_id)
            row.status = status
            if updated_at is not None:
                row.updated_at = updated_at
            for name, value in fields.items():
                setattr(row, name, value)

    return _force
