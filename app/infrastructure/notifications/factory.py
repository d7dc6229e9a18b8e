"""Factory for assembling the notification pipeline from settings."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Mapping, Optional

import structlog
from sqlalchemy.engine import Engine

from infrastructure.clients.aws import SQSClient
from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.collaborators import AttachmentStore, TemplateResolver
from infrastructure.notifications.config import QueueConfig
from infrastructure.notifications.models import ChannelType
from infrastructure.notifications.processor import RecordProcessor
from infrastructure.notifications.router import ChannelRouter
from infrastructure.notifications.scheduler import QueueScheduler
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.store import (
    NotificationStore,
    create_notification_store,
)
from infrastructure.notifications.transports import (
    BrokerPublisher,
    BrokerRelayTransport,
    DeliveryMode,
    InlineTransport,
    SqsBrokerPublisher,
    Transport,
)
from infrastructure.persistence import (
    create_db_engine,
    create_session_factory,
    init_schema,
)
from infrastructure.services.providers import get_db_engine, get_settings

if TYPE_CHECKING:
    from datetime import datetime

    from infrastructure.configuration import Settings

logger = structlog.get_logger()


@dataclass
class NotificationPipeline:
    """Wired pipeline components.

    Attributes:
        service: Submission facade
        store: Record store shared by every component
        processor: Per-record delivery logic
        router: Channel sender registry
        scheduler: Queue scheduler (queue mode only)
        transport: Inline or broker transport (None in queue mode)
    """

    service: NotificationService
    store: NotificationStore
    processor: RecordProcessor
    router: ChannelRouter
    config: QueueConfig
    scheduler: Optional[QueueScheduler] = None
    transport: Optional[Transport] = None

    def shutdown(self, wait: bool = True) -> None:
        self.service.shutdown(wait=wait)
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=wait)


def create_broker_publisher(settings: "Settings") -> SqsBrokerPublisher:
    """Build the SQS publisher from AWS settings."""
    aws = settings.aws
    return SqsBrokerPublisher(
        SQSClient(region=aws.AWS_REGION, endpoint_url=aws.ENDPOINT_URL),
        default_queue_url=aws.BROKER_QUEUE_URL,
        channel_queue_urls=aws.CHANNEL_QUEUE_MAP,
    )


def create_notification_pipeline(
    senders: Mapping[ChannelType, ChannelSender],
    settings: Optional["Settings"] = None,
    template_resolver: Optional[TemplateResolver] = None,
    attachment_store: Optional[AttachmentStore] = None,
    broker_publisher: Optional[BrokerPublisher] = None,
    engine: Optional[Engine] = None,
    clock: Optional[Callable[[], "datetime"]] = None,
) -> NotificationPipeline:
    """Wire store, router, processor, transport and service for the configured mode.

    Args:
        senders: Sender per channel
        settings: Application settings. When omitted, settings and the
            engine come from the process-wide providers
        template_resolver: Optional template resolver
        attachment_store: Optional attachment store
        broker_publisher: Publisher override for broker mode (defaults to SQS)
        engine: Engine override (defaults to one built from settings.database)
        clock: Clock override for the store

    Returns:
        NotificationPipeline with all components

    Raises:
        ValueError: If the delivery mode is unknown

    Examples:
        >>> pipeline = create_notification_pipeline(senders)
        >>> pipeline.service.submit(request)
        >>> pipeline.scheduler.tick()  # queue mode
    """
    if settings is None:
        settings = get_settings()
        engine = engine or get_db_engine()

    try:
        mode = DeliveryMode(settings.transport.mode)
    except ValueError:
        raise ValueError(
            f"Unknown delivery mode: {settings.transport.mode}. "
            "Supported: queue, inline, broker"
        ) from None

    config = settings.queue.to_config()
    if engine is None:
        engine = create_db_engine(settings.database)
    init_schema(engine)

    store = create_notification_store(
        config, create_session_factory(engine), clock=clock
    )
    router = ChannelRouter(senders, template_resolver, attachment_store)
    processor = RecordProcessor(store, router, config)

    scheduler: Optional[QueueScheduler] = None
    transport: Optional[Transport] = None

    if mode == DeliveryMode.QUEUE:
        scheduler = QueueScheduler(store, processor, config)
    elif mode == DeliveryMode.INLINE:
        transport = InlineTransport(
            processor,
            store=store,
            pool_size=settings.transport.inline_pool_size,
            config=config,
        )
    else:
        transport = BrokerRelayTransport(
            broker_publisher or create_broker_publisher(settings)
        )

    service = NotificationService(
        store,
        mode,
        transport=transport,
        template_resolver=template_resolver,
        attachment_store=attachment_store,
        inline_persist=settings.transport.inline_persist,
    )

    logger.info(
        "notification_pipeline_created",
        mode=mode.value,
        channels=[channel.value for channel in senders],
        batch_size=config.batch_size,
        max_retries=config.max_retries,
    )
    return NotificationPipeline(
        service=service,
        store=store,
        processor=processor,
        router=router,
        config=config,
        scheduler=scheduler,
        transport=transport,
    )
