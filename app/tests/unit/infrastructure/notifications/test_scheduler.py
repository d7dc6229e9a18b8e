"""Unit tests for QueueScheduler.

Tests cover:
- Delivery, retry and failure across ticks
- Duplicate suppression within a batch
- Stale record recovery
- Per-record failure isolation
- Bounded worker pool
"""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from infrastructure.notifications.errors import ConfigurationError
from infrastructure.notifications.models import (
    ChannelType,
    NotificationStatus,
    SendResult,
)
from infrastructure.notifications.processor import RecordProcessor
from infrastructure.notifications.router import ChannelRouter
from infrastructure.notifications.scheduler import QueueScheduler
from infrastructure.notifications.store import DUPLICATE_MESSAGE_ID


@pytest.fixture
def scheduler_factory(store_factory, queue_config_factory):
    """Factory wiring store, router, processor and scheduler around one sender.

    Example:
        scheduler, store = scheduler_factory(sender, max_retries=2)
    """
    created = []

    def _factory(sender, **config_overrides):
        config = queue_config_factory(**config_overrides)
        store = store_factory(config)
        processor = RecordProcessor(
            store, ChannelRouter({sender.channel: sender}), config
        )
        scheduler = QueueScheduler(store, processor, config, worker_id="test-worker")
        created.append(scheduler)
        return scheduler, store

    yield _factory

    for scheduler in created:
        scheduler.shutdown()


@pytest.mark.unit
class TestTick:
    """Tests for tick() statistics and delivery."""

    def test_empty_queue(self, scheduler_factory, email_sender):
        """A tick on an empty queue does nothing."""
        scheduler, _ = scheduler_factory(email_sender)

        stats = scheduler.tick()

        assert stats["claimed"] == 0
        assert email_sender.call_count == 0

    def test_delivers_pending_record(self, scheduler_factory, email_sender, request_factory):
        """One tick with a succeeding sender marks the record SENT."""
        scheduler, store = scheduler_factory(email_sender)
        notification_id = store.create(request_factory())

        stats = scheduler.tick()

        assert stats["claimed"] == 1
        assert stats["sent"] == 1
        assert store.get(notification_id).status == NotificationStatus.SENT

    def test_batch_size_limits_each_tick(
        self, scheduler_factory, email_sender, request_factory
    ):
        """Only batch_size records are processed per tick."""
        scheduler, store = scheduler_factory(email_sender, batch_size=2)
        for i in range(5):
            store.create(request_factory(subject=f"s{i}"))

        assert scheduler.tick()["sent"] == 2
        assert scheduler.tick()["sent"] == 2
        assert scheduler.tick()["sent"] == 1

    def test_fails_then_succeeds(self, scheduler_factory, sender_factory, request_factory):
        """Two failures then success ends SENT with retry_count 2."""
        sender = sender_factory(
            script=[
                SendResult.failed("provider timeout"),
                SendResult.failed("provider timeout"),
                SendResult.ok("msg-3"),
            ]
        )
        scheduler, store = scheduler_factory(
            sender, max_retries=3, retry_delay_seconds=0
        )
        notification_id = store.create(request_factory())

        stats = [scheduler.tick() for _ in range(3)]

        record = store.get(notification_id)
        assert record.status == NotificationStatus.SENT
        assert record.retry_count == 2
        assert record.message_id == "msg-3"
        assert [s["retried"] for s in stats] == [1, 1, 0]
        assert sender.call_count == 3

    def test_always_failing_ends_failed(
        self, scheduler_factory, sender_factory, request_factory, clock
    ):
        """Exhausted retries end FAILED and the record never returns to PENDING."""
        sender = sender_factory(script=[SendResult.failed("provider down")])
        scheduler, store = scheduler_factory(sender, max_retries=2, retry_delay_seconds=0)
        notification_id = store.create(request_factory())

        scheduler.tick()
        scheduler.tick()
        record = store.get(notification_id)
        assert record.status == NotificationStatus.FAILED
        assert record.retry_count == 2

        # Well past the staleness threshold, nothing changes
        clock.advance(10_000)
        stats = scheduler.tick()
        record = store.get(notification_id)
        assert stats["claimed"] == 0
        assert stats["recovered"] == 0
        assert record.status == NotificationStatus.FAILED
        assert sender.call_count == 2

    def test_configuration_error_fails_immediately(
        self, scheduler_factory, sender_factory, request_factory
    ):
        """A ConfigurationError is never retried."""
        sender = sender_factory(script=[ConfigurationError("missing API key")])
        scheduler, store = scheduler_factory(sender, max_retries=5)
        notification_id = store.create(request_factory())

        stats = scheduler.tick()

        record = store.get(notification_id)
        assert stats["failed"] == 1
        assert record.status == NotificationStatus.FAILED
        assert record.retry_count <= 5
        assert "missing API key" in record.error_message
        assert sender.call_count == 1

    def test_retry_delay_defers_next_attempt(
        self, scheduler_factory, sender_factory, request_factory, clock
    ):
        """RETRYING records wait for retry_delay before the next attempt."""
        sender = sender_factory(
            script=[SendResult.failed("timeout"), SendResult.ok("msg-2")]
        )
        scheduler, store = scheduler_factory(sender, retry_delay_seconds=60)
        notification_id = store.create(request_factory())

        scheduler.tick()
        assert scheduler.tick()["claimed"] == 0

        clock.advance(60)
        scheduler.tick()

        assert store.get(notification_id).status == NotificationStatus.SENT


@pytest.mark.unit
class TestDuplicates:
    """Tests for duplicate suppression across submissions."""

    def test_identical_submissions_send_once(
        self, scheduler_factory, email_sender, request_factory
    ):
        """The second identical record resolves SENT with the sentinel id."""
        scheduler, store = scheduler_factory(email_sender)
        first = store.create(request_factory(to=["a@example.com", "b@example.com"]))
        second = store.create(request_factory(to=["b@example.com", "a@example.com"]))

        stats = scheduler.tick()

        assert stats["sent"] == 1
        assert stats["duplicates"] == 1
        assert store.get(first).message_id == "provider-msg-1"
        duplicate = store.get(second)
        assert duplicate.status == NotificationStatus.SENT
        assert duplicate.message_id == DUPLICATE_MESSAGE_ID
        assert email_sender.call_count == 1

    def test_submission_after_window_is_sent(
        self, scheduler_factory, email_sender, request_factory, clock
    ):
        """Outside the dedup window identical content is delivered again."""
        scheduler, store = scheduler_factory(email_sender, dedup_window_seconds=60)
        store.create(request_factory())
        scheduler.tick()

        clock.advance(61)
        store.create(request_factory())
        stats = scheduler.tick()

        assert stats["sent"] == 1
        assert email_sender.call_count == 2


@pytest.mark.unit
class TestStaleRecovery:
    """Tests for crash recovery through the scheduler."""

    def test_forced_stale_record_is_recovered_and_sent(
        self, scheduler_factory, email_sender, request_factory, force_status, clock
    ):
        """A record stuck in PROCESSING is reset to PENDING and delivered."""
        scheduler, store = scheduler_factory(email_sender, stale_after_seconds=300)
        notification_id = store.create(request_factory())
        force_status(
            notification_id,
            NotificationStatus.PROCESSING,
            updated_at=clock.now - timedelta(seconds=301),
        )

        stats = scheduler.tick()

        assert stats["recovered"] == 1
        assert stats["sent"] == 1
        assert store.get(notification_id).status == NotificationStatus.SENT

        # Recovery happened once
        assert scheduler.tick()["recovered"] == 0

    def test_recent_processing_record_is_left_alone(
        self, scheduler_factory, email_sender, request_factory, force_status, clock
    ):
        """A PROCESSING record within the threshold belongs to a live worker."""
        scheduler, store = scheduler_factory(email_sender, stale_after_seconds=300)
        notification_id = store.create(request_factory())
        force_status(
            notification_id,
            NotificationStatus.PROCESSING,
            updated_at=clock.now - timedelta(seconds=10),
        )

        stats = scheduler.tick()

        assert stats["recovered"] == 0
        assert store.get(notification_id).status == NotificationStatus.PROCESSING
        assert email_sender.call_count == 0


@pytest.mark.unit
class TestIsolation:
    """Tests for per-record failure isolation."""

    def test_exception_in_one_record_does_not_stop_batch(
        self, store, queue_config, request_factory, router
    ):
        """A processor exception fails one record; the rest are delivered."""
        ids = [store.create(request_factory(subject=f"s{i}")) for i in range(3)]
        real = RecordProcessor(store, router, queue_config)
        processor = MagicMock()

        def process(record):
            if record.id == ids[1]:
                raise RuntimeError("corrupt record")
            return real.process(record)

        processor.process.side_effect = process
        scheduler = QueueScheduler(store, processor, queue_config)

        stats = scheduler.tick()

        assert stats["errors"] == 1
        assert stats["sent"] == 2
        assert store.get(ids[0]).status == NotificationStatus.SENT
        assert store.get(ids[2]).status == NotificationStatus.SENT
        broken = store.get(ids[1])
        assert broken.status == NotificationStatus.RETRYING
        assert "corrupt record" in broken.error_message

    def test_claim_failure_is_reported(self, queue_config):
        """A failing claim is counted as an error instead of raising."""
        store = MagicMock()
        store.claim_batch.side_effect = RuntimeError("database unavailable")
        scheduler = QueueScheduler(store, MagicMock(), queue_config)

        stats = scheduler.tick()

        assert stats["errors"] == 1
        assert stats["claimed"] == 0

    def test_unrecordable_failure_is_left_for_recovery(self, queue_config):
        """If even the failure cannot be recorded, the tick still completes."""
        store = MagicMock()
        record = MagicMock(id=1)
        store.claim_batch.return_value = MagicMock(records=[record], recovered_ids=[])
        store.mark_terminal.side_effect = RuntimeError("database unavailable")
        processor = MagicMock()
        processor.process.side_effect = RuntimeError("boom")
        scheduler = QueueScheduler(store, processor, queue_config)

        stats = scheduler.tick()

        assert stats["errors"] == 1
        assert stats["failed"] == 0


@pytest.mark.unit
class TestConcurrency:
    """Tests for the bounded worker pool."""

    def test_pool_processes_whole_batch(
        self, scheduler_factory, sender_factory, request_factory
    ):
        """With concurrency > 1 every record in the batch is delivered."""
        sender = sender_factory()
        scheduler, store = scheduler_factory(sender, concurrency=4, dedup_enabled=False)
        ids = [store.create(request_factory(subject=f"s{i}")) for i in range(8)]

        stats = scheduler.tick()

        assert stats["sent"] == 8
        assert all(store.get(i).status == NotificationStatus.SENT for i in ids)

    def test_pool_still_suppresses_duplicates(
        self, scheduler_factory, sender_factory, request_factory
    ):
        """Identical records in one batch are delivered once even in parallel."""
        sender = sender_factory()
        scheduler, store = scheduler_factory(sender, concurrency=4)
        first = store.create(request_factory())
        second = store.create(request_factory())
        other = store.create(request_factory(subject="Different subject"))

        stats = scheduler.tick()

        assert sender.call_count == 2
        assert stats["duplicates"] == 1
        assert store.get(first).message_id != DUPLICATE_MESSAGE_ID
        assert store.get(second).message_id == DUPLICATE_MESSAGE_ID
        assert store.get(other).status == NotificationStatus.SENT

    def test_pool_never_exceeds_concurrency(
        self, store, queue_config_factory, request_factory
    ):
        """No more than `concurrency` records are in flight at once."""
        config = queue_config_factory(concurrency=2, dedup_enabled=False)
        lock = threading.Lock()
        in_flight = {"now": 0, "max": 0}
        processor = MagicMock()

        def process(record):
            with lock:
                in_flight["now"] += 1
                in_flight["max"] = max(in_flight["max"], in_flight["now"])
            threading.Event().wait(0.05)
            with lock:
                in_flight["now"] -= 1
            return MagicMock(duplicate=False, status=NotificationStatus.SENT)

        processor.process.side_effect = process
        for i in range(6):
            store.create(request_factory(subject=f"s{i}"))
        scheduler = QueueScheduler(store, processor, config)

        try:
            stats = scheduler.tick()
        finally:
            scheduler.shutdown()

        assert stats["sent"] == 6
        assert in_flight["max"] <= 2
