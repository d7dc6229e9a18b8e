"""AWS integration settings."""

from typing import Dict, Optional

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class AwsSettings(IntegrationSettings):
    """AWS configuration used by the SQS broker relay.

    Environment Variables:
        AWS_REGION: AWS region for services (default: ca-central-1)
        AWS_ENDPOINT_URL: Optional endpoint override (e.g. LocalStack)
        NOTIFICATION_BROKER_QUEUE_URL: Default SQS queue for relayed notifications
        NOTIFICATION_BROKER_EMAIL_QUEUE_URL: Queue override for email notifications
        NOTIFICATION_BROKER_SMS_QUEUE_URL: Queue override for SMS notifications
        NOTIFICATION_BROKER_CHAT_QUEUE_URL: Queue override for chat notifications

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        queue_url = settings.aws.queue_url_for("email")
        ```
    """

    AWS_REGION: str = Field(default="ca-central-1", alias="AWS_REGION")
    ENDPOINT_URL: Optional[str] = Field(default=None, alias="AWS_ENDPOINT_URL")
    BROKER_QUEUE_URL: str = Field(default="", alias="NOTIFICATION_BROKER_QUEUE_URL")
    BROKER_EMAIL_QUEUE_URL: str = Field(
        default="", alias="NOTIFICATION_BROKER_EMAIL_QUEUE_URL"
    )
    BROKER_SMS_QUEUE_URL: str = Field(
        default="", alias="NOTIFICATION_BROKER_SMS_QUEUE_URL"
    )
    BROKER_CHAT_QUEUE_URL: str = Field(
        default="", alias="NOTIFICATION_BROKER_CHAT_QUEUE_URL"
    )

    THROTTLING_ERRS: list[str] = [
        "Throttling",
        "ThrottlingException",
        "RequestThrottled",
    ]

    @property
    def CHANNEL_QUEUE_MAP(self) -> Dict[str, str]:
        """Mapping of channel names to their configured queue URLs.

        Returns:
            Dict of channel name to queue URL, without unset entries
        """
        overrides = {
            "email": self.BROKER_EMAIL_QUEUE_URL,
            "sms": self.BROKER_SMS_QUEUE_URL,
            "chat": self.BROKER_CHAT_QUEUE_URL,
        }
        return {channel: url for channel, url in overrides.items() if url}

    def queue_url_for(self, channel: str) -> str:
        """Resolve the queue URL for a channel, falling back to the default queue."""
        return self.CHANNEL_QUEUE_MAP.get(channel, self.BROKER_QUEUE_URL)
