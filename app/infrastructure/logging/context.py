"""Delivery context binding for structured logging.

Binds notification-scoped context (notification id, channel, correlation id)
to every log entry emitted while a submission or a single record is being
processed, including entries from collaborators such as channel senders.

Usage:
    from infrastructure.logging import bind_delivery_context

    with bind_delivery_context(notification_id=42, channel="email"):
        logger.info("notification_dispatching")
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_delivery_context(
    notification_id: Optional[Any] = None,
    channel: Optional[str] = None,
    correlation_id: Optional[str] = None,
    worker_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind delivery-scoped context to all logs within the context manager.

    Args:
        notification_id: Identifier of the record being handled (if known yet).
        channel: Channel name (email, sms, chat).
        correlation_id: Tracing identifier. Auto-generated if not provided.
        worker_id: Identifier of the scheduler or transport worker.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation ID bound for the block.

    Example:
        with bind_delivery_context(notification_id=record.id, channel="sms") as cid:
            processor.process(record)
    """
    context: dict[str, Any] = {}
    context["correlation_id"] = correlation_id or str(uuid.uuid4())

    if notification_id is not None:
        context["notification_id"] = notification_id

    if channel is not None:
        context["channel"] = channel

    if worker_id is not None:
        context["worker_id"] = worker_id

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def clear_delivery_context() -> None:
    """Clear all delivery-scoped context from the logging context.

    Worker threads are reused by thread pools, so pooled tasks call this
    before returning to prevent context leaking into the next task.
    """
    structlog.contextvars.clear_contextvars()
