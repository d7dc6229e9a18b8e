"""Notification service: the single entry point for submissions.

submit() validates a request synchronously, persists it, and hands it to
the configured delivery mode:

- queue: persist PENDING and acknowledge; the queue scheduler delivers
- inline: persist (optionally) and dispatch on a background thread pool
- broker: persist and publish to the message broker

Usage:
    service = NotificationService(store, DeliveryMode.QUEUE)

    result = service.submit(
        NotificationRequest(
            channel=ChannelType.EMAIL,
            to=["user@example.com"],
            subject="Welcome",
            body="Hello!",
        )
    )
    if result.is_accepted:
        logger.info("queued", message_id=result.message_id)
    else:
        logger.warning("rejected", errors=result.errors)
"""

import mimetypes
import uuid
from typing import Any, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from infrastructure.logging import bind_delivery_context
from infrastructure.notifications.collaborators import AttachmentStore, TemplateResolver
from infrastructure.notifications.errors import (
    NotificationValidationError,
    TemplateNotFoundError,
)
from infrastructure.notifications.models import (
    AttachmentRef,
    ChannelType,
    DeliveryOutcome,
    NotificationRecord,
    NotificationRequest,
    NotificationStatus,
    SubmissionResult,
)
from infrastructure.notifications.store import NotificationStore
from infrastructure.notifications.transports.base import (
    DeliveryMode,
    Transport,
    completed_future,
)

logger = structlog.get_logger()

TEMPLATE_VALIDATION_PROVIDER = "template-validation"
FORM_DATA_CONTENT_TYPE = "multipart/form-data"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

ACK_PREFIXES = {
    DeliveryMode.QUEUE: "QUEUED",
    DeliveryMode.INLINE: "INLINE",
    DeliveryMode.BROKER: "RELAYED",
}


def resolve_content_type(file_name: str, content_type: Optional[str]) -> str:
    """Replace missing or form-upload content types with a guess from the extension.

    Browsers submit `multipart/form-data` as the part type for some uploads;
    mail providers reject it as an attachment type.
    """
    if content_type and not content_type.lower().startswith(FORM_DATA_CONTENT_TYPE):
        return content_type
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or DEFAULT_CONTENT_TYPE


class NotificationService:
    """Validates, persists and hands off notifications.

    Attributes:
        store: NotificationStore receiving new records
        mode: DeliveryMode governing the whole deployment
        transport: Transport for inline and broker modes
        template_resolver: Used to verify template references up front
        attachment_store: Receives uploaded attachment content
        inline_persist: Persist records in inline mode
    """

    def __init__(
        self,
        store: NotificationStore,
        mode: DeliveryMode = DeliveryMode.QUEUE,
        transport: Optional[Transport] = None,
        template_resolver: Optional[TemplateResolver] = None,
        attachment_store: Optional[AttachmentStore] = None,
        inline_persist: bool = True,
    ):
        """Initialize the service.

        Raises:
            ValueError: Inline or broker mode without a matching transport
        """
        if mode != DeliveryMode.QUEUE:
            if transport is None:
                raise ValueError(f"Delivery mode '{mode.value}' requires a transport")
            if transport.mode != mode:
                raise ValueError(
                    f"Transport handles '{transport.mode.value}', "
                    f"service is configured for '{mode.value}'"
                )

        self.store = store
        self.mode = mode
        self.transport = transport
        self.template_resolver = template_resolver
        self.attachment_store = attachment_store
        self.inline_persist = inline_persist or mode != DeliveryMode.INLINE

        logger.info(
            "initialized_notification_service",
            mode=mode.value,
            inline_persist=self.inline_persist,
            templates_enabled=template_resolver is not None,
        )

    def submit(
        self, request: Union[NotificationRequest, Mapping[str, Any]]
    ) -> SubmissionResult:
        """Submit a notification.

        Validation failures are returned as REJECTED before anything is
        stored. Storage or broker failures are returned as ERROR.

        Args:
            request: NotificationRequest, or a mapping parsed into one

        Returns:
            SubmissionResult whose `outcome` future resolves to the
            DeliveryOutcome (immediately for queue and broker modes)
        """
        with bind_delivery_context(delivery_mode=self.mode.value):
            if not isinstance(request, NotificationRequest):
                try:
                    request = NotificationRequest.model_validate(request)
                except ValidationError as e:
                    errors = [
                        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ]
                    logger.warning("notification_rejected", errors=errors)
                    return SubmissionResult.rejected(errors)

            try:
                self.ensure_valid(request)
            except NotificationValidationError as e:
                logger.warning(
                    "notification_rejected",
                    channel=request.channel.value,
                    errors=e.errors,
                )
                return SubmissionResult.rejected(e.errors)

            template_error = self._check_template(request)
            if template_error:
                logger.warning(
                    "notification_rejected",
                    channel=request.channel.value,
                    template_name=request.template_name,
                    errors=[template_error],
                )
                return SubmissionResult.rejected(
                    [template_error], provider=TEMPLATE_VALIDATION_PROVIDER
                )

            attachments = self._prepare_attachments(request)

            notification_id: Optional[int] = None
            if self.inline_persist:
                try:
                    notification_id = self.store.create(request, attachments=attachments)
                except Exception as e:
                    logger.error(
                        "notification_persist_failed",
                        channel=request.channel.value,
                        error=str(e),
                        exc_info=True,
                    )
                    return SubmissionResult.error(f"Failed to store notification: {e}")

            return self._hand_off(request, notification_id, attachments)

    def validate(self, request: NotificationRequest) -> List[str]:
        """Check business rules that do not need collaborators.

        Returns:
            Validation messages, empty when the request is valid
        """
        errors = []
        if not request.to:
            errors.append("At least one recipient is required")
        if not request.has_payload:
            errors.append("Either body or template_name is required")
        if request.channel == ChannelType.EMAIL and not (
            request.subject and request.subject.strip()
        ):
            errors.append("Subject is required for email notifications")
        if request.channel != ChannelType.EMAIL and (request.cc or request.bcc):
            errors.append("cc and bcc are only supported for email notifications")
        return errors

    def ensure_valid(self, request: NotificationRequest) -> None:
        """Raise if validate() reports any problem.

        Raises:
            NotificationValidationError: With every validation message
        """
        errors = self.validate(request)
        if errors:
            raise NotificationValidationError(errors)

    def get(self, notification_id: int) -> NotificationRecord:
        """Current state of a submitted notification."""
        return self.store.get(notification_id)

    def shutdown(self, wait: bool = True) -> None:
        if self.transport is not None:
            self.transport.shutdown(wait=wait)

    def _hand_off(
        self,
        request: NotificationRequest,
        notification_id: Optional[int],
        attachments: List[AttachmentRef],
    ) -> SubmissionResult:
        ack_id = f"{ACK_PREFIXES[self.mode]}-{notification_id or uuid.uuid4().hex[:12]}"

        transport = self.transport
        if self.mode == DeliveryMode.QUEUE or transport is None:
            logger.info("notification_queued", notification_id=notification_id)
            outcome = DeliveryOutcome(
                notification_id=notification_id,
                status=NotificationStatus.PENDING,
                provider=self.mode.value,
                message_id=ack_id,
            )
            return SubmissionResult.accepted(
                notification_id, ack_id, self.mode.value, completed_future(outcome)
            )

        if notification_id is not None:
            record = self.store.get(notification_id)
        else:
            record = NotificationRecord.from_request(
                request, status=NotificationStatus.PROCESSING
            )
            record.attachments = attachments

        future = transport.dispatch(record)

        if self.mode == DeliveryMode.BROKER and future.done() and future.exception():
            error = future.exception()
            # Nothing will ever consume this record
            if notification_id is not None:
                self._discard_uploads(request, attachments)
                self.store.delete(notification_id)
            return SubmissionResult.error(f"Failed to relay notification: {error}")

        logger.info(
            "notification_handed_off",
            notification_id=notification_id,
            mode=self.mode.value,
        )
        return SubmissionResult.accepted(notification_id, ack_id, self.mode.value, future)

    def _check_template(self, request: NotificationRequest) -> Optional[str]:
        """Resolve the template once so unknown templates fail before persistence."""
        if not request.template_name:
            return None
        if self.template_resolver is None:
            return "Template resolution is not configured"
        try:
            self.template_resolver.resolve(
                request.template_name,
                dict(request.template_variables),
                channel=request.channel.value,
            )
        except TemplateNotFoundError as e:
            return str(e)
        except Exception as e:
            return f"Template '{request.template_name}' could not be rendered: {e}"
        return None

    def _prepare_attachments(self, request: NotificationRequest) -> List[AttachmentRef]:
        """Normalize attachment references and upload inline content.

        A failed upload is logged and the attachment dropped.
        """
        refs = [
            ref.model_copy(
                update={
                    "content_type": resolve_content_type(
                        ref.file_name, ref.content_type
                    )
                }
            )
            for ref in request.attachments
        ]

        if request.uploads and self.attachment_store is None:
            logger.warning(
                "attachment_uploads_skipped_no_store", upload_count=len(request.uploads)
            )
            return refs

        for upload in request.uploads:
            content_type = resolve_content_type(upload.file_name, upload.content_type)
            path = f"notifications/{uuid.uuid4().hex}/{upload.file_name}"
            try:
                stored_path = self.attachment_store.upload(  # type: ignore[union-attr]
                    path, upload.content, content_type
                )
            except Exception as e:
                logger.warning(
                    "attachment_upload_skipped",
                    file_name=upload.file_name,
                    error=str(e),
                )
                continue
            refs.append(
                AttachmentRef(
                    file_name=upload.file_name,
                    content_type=content_type,
                    size=len(upload.content),
                    storage_provider=self.attachment_store.provider_name,  # type: ignore[union-attr]
                    storage_path=stored_path or path,
                    is_inline=upload.is_inline,
                    content_id=upload.content_id,
                )
            )
        return refs

    def _discard_uploads(
        self, request: NotificationRequest, attachments: List[AttachmentRef]
    ) -> None:
        """Delete content uploaded for a submission that will never be delivered.

        Pre-stored attachment references belong to the caller and are kept.
        """
        if self.attachment_store is None:
            return
        caller_paths = {ref.storage_path for ref in request.attachments}
        for ref in attachments:
            if ref.storage_path in caller_paths:
                continue
            try:
                self.attachment_store.delete(ref.storage_path)
            except Exception as e:
                logger.warning(
                    "attachment_cleanup_failed",
                    storage_path=ref.storage_path,
                    error=str(e),
                )
