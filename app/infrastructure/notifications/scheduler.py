"""Queue scheduler.

Each tick claims a batch of actionable records from the store and drives
every record through the RecordProcessor. Records are isolated from each
other: an exception while processing one record is logged, recorded as a
failed attempt where possible, and never stops the rest of the batch.

Several scheduler processes may run against the same store. Exclusivity
comes from the store's locked claim, so the scheduler itself holds no locks.
"""

from typing import Dict, List, Optional, Tuple

import structlog

from infrastructure.notifications.config import QueueConfig
from infrastructure.notifications.executor import ManagedExecutor
from infrastructure.notifications.fingerprint import content_fingerprint
from infrastructure.notifications.models import (
    DeliveryOutcome,
    NotificationRecord,
    NotificationStatus,
)
from infrastructure.notifications.processor import RecordProcessor
from infrastructure.notifications.store import NotificationStore

logger = structlog.get_logger()


def _group_by_content(
    records: List[NotificationRecord],
) -> List[List[NotificationRecord]]:
    """Group records with identical content, keeping claim order in each group."""
    groups: Dict[str, List[NotificationRecord]] = {}
    for record in records:
        key = content_fingerprint(
            record.to,
            record.subject,
            record.body,
            record.template_name,
            record.template_variables,
        )
        groups.setdefault(key, []).append(record)
    return list(groups.values())


def _empty_stats() -> Dict[str, int]:
    return {
        "claimed": 0,
        "recovered": 0,
        "sent": 0,
        "duplicates": 0,
        "retried": 0,
        "failed": 0,
        "errors": 0,
    }


class QueueScheduler:
    """Polling scheduler for the durable queue mode.

    Attributes:
        store: NotificationStore to claim from
        processor: RecordProcessor handling each claimed record
        config: QueueConfig controlling batch size and concurrency
        worker_id: Identifier for this scheduler instance (logs only)

    Example:
        scheduler = QueueScheduler(store, processor, config, worker_id="worker-1")
        stats = scheduler.tick()
    """

    def __init__(
        self,
        store: NotificationStore,
        processor: RecordProcessor,
        config: Optional[QueueConfig] = None,
        worker_id: str = "queue-scheduler-1",
    ) -> None:
        self.store = store
        self.processor = processor
        self.config = config or QueueConfig()
        self.worker_id = worker_id
        self.log = logger.bind(component="queue_scheduler", worker_id=worker_id)
        self._pool: Optional[ManagedExecutor] = None
        if self.config.concurrency > 1:
            self._pool = ManagedExecutor(
                max_workers=self.config.concurrency,
                name=f"{worker_id}-pool",
            )

    def tick(self) -> Dict[str, int]:
        """Claim and process one batch.

        Safe to call repeatedly and from several processes at once.

        Returns:
            Dictionary with processing statistics:
                - claimed: Records claimed in this tick
                - recovered: Stale PROCESSING records reset to PENDING
                - sent: Records delivered
                - duplicates: Records suppressed as duplicates
                - retried: Records scheduled for another attempt
                - failed: Records that reached FAILED
                - errors: Records whose processing raised
        """
        stats = _empty_stats()

        try:
            batch = self.store.claim_batch(self.config.batch_size)
        except Exception as e:
            self.log.error("queue_claim_failed", error=str(e), exc_info=True)
            stats["errors"] += 1
            return stats

        stats["recovered"] = len(batch.recovered_ids)
        stats["claimed"] = len(batch.records)

        if not batch.records:
            self.log.debug("queue_batch_no_records", recovered=stats["recovered"])
            return stats

        self.log.info("queue_batch_start", record_count=len(batch.records))

        for outcome, errored in self._run(batch.records):
            if errored:
                stats["errors"] += 1
            if outcome is None:
                continue
            if outcome.duplicate:
                stats["duplicates"] += 1
            elif outcome.status == NotificationStatus.SENT:
                stats["sent"] += 1
            elif outcome.status == NotificationStatus.RETRYING:
                stats["retried"] += 1
            elif outcome.status == NotificationStatus.FAILED:
                stats["failed"] += 1

        self.log.info("queue_batch_complete", **stats)
        return stats

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool, if one was created."""
        if self._pool is not None:
            self._pool.shutdown(wait=wait)

    def _run(
        self, records: List[NotificationRecord]
    ) -> List[Tuple[Optional[DeliveryOutcome], bool]]:
        if self._pool is None or len(records) == 1:
            return [self._process_isolated(record) for record in records]
        # Records with identical content run in claim order on one task
        futures = [
            self._pool.submit(self._process_group, group)
            for group in _group_by_content(records)
        ]
        results: List[Tuple[Optional[DeliveryOutcome], bool]] = []
        for future in futures:
            results.extend(future.result())
        return results

    def _process_group(
        self, records: List[NotificationRecord]
    ) -> List[Tuple[Optional[DeliveryOutcome], bool]]:
        return [self._process_isolated(record) for record in records]

    def _process_isolated(
        self, record: NotificationRecord
    ) -> Tuple[Optional[DeliveryOutcome], bool]:
        """Process one record without letting its failure escape.

        Returns:
            (outcome, errored). outcome is None when not even the failed
            attempt could be recorded; stale recovery picks the record up.
        """
        try:
            return self.processor.process(record), False
        except Exception as e:
            error = f"Processing error: {e}"
            self.log.error(
                "notification_processing_exception",
                notification_id=record.id,
                error=str(e),
                exc_info=True,
            )

        try:
            updated = self.store.mark_terminal(
                record.id,  # type: ignore
                False,
                error=error,
            )
            return DeliveryOutcome.from_record(updated), True
        except Exception as mark_error:
            self.log.error(
                "notification_failure_not_recorded",
                notification_id=record.id,
                error=str(mark_error),
            )
            return None, True
