"""Channel router.

Routes a claimed notification record to the sender registered for its
channel and turns whatever happens into an OperationResult:

- SUCCESS: data holds provider, message_id and cost
- TRANSIENT_ERROR: the scheduler schedules a retry
- PERMANENT_ERROR: the record fails immediately

Usage Example:
    router = ChannelRouter(
        senders={ChannelType.EMAIL: ses_sender, ChannelType.SMS: sms_sender},
        template_resolver=resolver,
        attachment_store=attachment_store,
    )

    result = router.route(record)
    if result.is_success:
        store.mark_terminal(record.id, True, **result.data)
"""

from typing import Dict, List, Mapping, Optional

import structlog

from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.collaborators import AttachmentStore, TemplateResolver
from infrastructure.notifications.errors import ConfigurationError
from infrastructure.notifications.models import (
    Attachment,
    ChannelType,
    NotificationRecord,
)
from infrastructure.operations import OperationResult, classify_dispatch_error

logger = structlog.get_logger()


class ChannelRouter:
    """Per-channel delivery through an explicit sender registry.

    Attributes:
        senders: Dict mapping ChannelType to its ChannelSender
        template_resolver: Renders template-based records without a body
        attachment_store: Source of attachment content

    Example:
        router = ChannelRouter(senders={ChannelType.CHAT: chat_sender})
        result = router.route(record)
    """

    def __init__(
        self,
        senders: Mapping[ChannelType, ChannelSender],
        template_resolver: Optional[TemplateResolver] = None,
        attachment_store: Optional[AttachmentStore] = None,
    ):
        """Initialize the router.

        Args:
            senders: Sender per channel. Each sender must declare the channel
                it is registered under.
            template_resolver: Optional template resolver
            attachment_store: Optional attachment store

        Raises:
            ValueError: A sender is registered under another channel
        """
        for channel, sender in senders.items():
            if sender.channel != channel:
                raise ValueError(
                    f"Sender '{sender.provider_name}' handles {sender.channel.value}, "
                    f"cannot be registered for {channel.value}"
                )

        self.senders: Dict[ChannelType, ChannelSender] = dict(senders)
        self.template_resolver = template_resolver
        self.attachment_store = attachment_store

        logger.info(
            "initialized_channel_router",
            channels=[c.value for c in self.senders],
            templates_enabled=template_resolver is not None,
            attachments_enabled=attachment_store is not None,
        )

    def route(self, record: NotificationRecord) -> OperationResult:
        """Deliver one record through its channel sender.

        Never raises: sender and collaborator exceptions are classified.

        Args:
            record: Claimed record (or an unpersisted record in inline mode)

        Returns:
            OperationResult describing the attempt
        """
        sender = self.senders.get(record.channel)
        if sender is None:
            logger.error(
                "channel_sender_missing",
                notification_id=record.id,
                channel=record.channel.value,
            )
            return OperationResult.permanent_error(
                f"No sender registered for channel {record.channel.value}",
                error_code="CHANNEL_NOT_CONFIGURED",
            )

        provider = sender.provider_name
        try:
            body = self._render_body(record)
            attachments = self._load_attachments(record)

            logger.debug(
                "channel_send_start",
                notification_id=record.id,
                channel=record.channel.value,
                provider=provider,
                attachment_count=len(attachments),
            )
            result = sender.send(
                recipients=list(record.to),
                subject=record.subject,
                body=body,
                from_address=record.from_address,
                cc=list(record.cc) or None,
                bcc=list(record.bcc) or None,
                attachments=attachments or None,
            )
        except Exception as e:
            outcome = classify_dispatch_error(e)
            outcome.data = {"provider": provider}
            logger.error(
                "channel_send_exception",
                notification_id=record.id,
                channel=record.channel.value,
                provider=provider,
                error=str(e),
                error_code=outcome.error_code,
                retryable=outcome.is_retryable,
                exc_info=True,
            )
            return outcome

        provider = result.provider or provider
        if result.success:
            return OperationResult.success(
                data={
                    "provider": provider,
                    "message_id": result.message_id,
                    "cost": result.cost,
                },
                message="sent",
            )

        error = result.error or "Provider rejected the notification"
        logger.warning(
            "channel_send_failed",
            notification_id=record.id,
            channel=record.channel.value,
            provider=provider,
            error=error,
            retryable=result.retryable,
        )
        if result.retryable:
            return OperationResult.transient_error(
                error, error_code="SEND_FAILED", data={"provider": provider}
            )
        return OperationResult.permanent_error(
            error, error_code="SEND_REJECTED", data={"provider": provider}
        )

    def health_check(self) -> Dict[ChannelType, OperationResult]:
        """Run health checks for every registered sender."""
        results = {}
        for channel, sender in self.senders.items():
            try:
                results[channel] = sender.health_check()
            except Exception as e:
                results[channel] = classify_dispatch_error(e)
        return results

    def _render_body(self, record: NotificationRecord) -> str:
        if record.body:
            return record.body
        if not record.template_name:
            raise ConfigurationError(
                f"Notification {record.id} has neither a body nor a template"
            )
        if self.template_resolver is None:
            raise ConfigurationError("No template resolver configured")
        return self.template_resolver.resolve(
            record.template_name,
            dict(record.template_variables),
            channel=record.channel.value,
        )

    def _load_attachments(self, record: NotificationRecord) -> List[Attachment]:
        """Download attachments, skipping any that fail."""
        if not record.attachments:
            return []
        if self.attachment_store is None:
            logger.warning(
                "attachments_skipped_no_store",
                notification_id=record.id,
                attachment_count=len(record.attachments),
            )
            return []

        loaded = []
        for ref in record.attachments:
            try:
                content = self.attachment_store.download(ref.storage_path)
            except Exception as e:
                logger.warning(
                    "attachment_download_skipped",
                    notification_id=record.id,
                    file_name=ref.file_name,
                    storage_path=ref.storage_path,
                    error=str(e),
                )
                continue
            loaded.append(
                Attachment(
                    file_name=ref.file_name,
                    content_type=ref.content_type,
                    content=content,
                    is_inline=ref.is_inline,
                    content_id=ref.content_id,
                )
            )
        return loaded
