"""Lazily created, shut-down-aware thread pool.

Shared by the queue scheduler (bounded per-batch concurrency) and the
inline transport (background dispatch).
"""

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger()


class ExecutorShutdownError(RuntimeError):
    """Work was submitted after shutdown()."""


class ManagedExecutor:
    """ThreadPoolExecutor wrapper with lazy creation and idempotent shutdown.

    Attributes:
        max_workers: Maximum number of worker threads
        name: Thread name prefix, also used in log events
    """

    def __init__(self, max_workers: int, name: str):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.name = name
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = Lock()
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def _get_or_create(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._shutdown:
                raise ExecutorShutdownError(f"Executor '{self.name}' is shut down")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix=self.name
                )
                logger.debug(
                    "created_executor", name=self.name, max_workers=self.max_workers
                )
            return self._executor

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Submit work to the pool.

        Raises:
            ExecutorShutdownError: The executor has been shut down
        """
        return self._get_or_create().submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the pool and refuse further submissions.

        Idempotent and safe to call multiple times.
        """
        with self._lock:
            self._shutdown = True
            if self._executor is None:
                return
            try:
                self._executor.shutdown(wait=wait)
                logger.debug("executor_shut_down", name=self.name, wait=wait)
            finally:
                self._executor = None
