"""Channel sender abstract base class.

Every concrete sender (an email provider, an SMS gateway, a chat API)
implements this interface and is registered for exactly one ChannelType.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from infrastructure.notifications.models import Attachment, ChannelType, SendResult
from infrastructure.operations import OperationResult


class ChannelSender(ABC):
    """Abstract base class for channel senders.

    Senders report provider rejections through SendResult. Exceptions are
    allowed too: ConfigurationError is terminal, TransientDispatchError and
    anything else is retried by the queue scheduler.

    Example Implementation:
        class SesEmailSender(ChannelSender):

            @property
            def channel(self) -> ChannelType:
                return ChannelType.EMAIL

            @property
            def provider_name(self) -> str:
                return "ses"

            def send(self, recipients, subject, body, from_address=None, **kwargs):
                response = self._client.send_email(...)
                return SendResult.ok(response["MessageId"])
    """

    @property
    @abstractmethod
    def channel(self) -> ChannelType:
        """Channel this sender delivers on."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier stored on the record (e.g. 'ses', 'twilio')."""
        pass

    @abstractmethod
    def send(
        self,
        recipients: List[str],
        subject: Optional[str],
        body: str,
        from_address: Optional[str] = None,
        cc: Optional[List[str]] = None,
        bcc: Optional[List[str]] = None,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> SendResult:
        """Deliver one message to all recipients.

        Args:
            recipients: Primary recipients
            subject: Subject line (ignored by channels without one)
            body: Rendered body
            from_address: Sending identity override
            cc: Secondary recipients (email only)
            bcc: Blind-copy recipients (email only)
            attachments: Downloaded attachments

        Returns:
            SendResult with the provider message id or the error
        """
        pass

    def health_check(self) -> OperationResult:
        """Check provider connectivity and credentials.

        Returns:
            OperationResult.success() unless overridden
        """
        return OperationResult.success(message=f"{self.provider_name} sender ready")
