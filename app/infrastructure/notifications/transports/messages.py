"""Broker wire format for relayed notifications."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from infrastructure.notifications.models import (
    AttachmentRef,
    ChannelType,
    NotificationRecord,
)


class BrokerMessage(BaseModel):
    """Notification published to the message broker.

    Serialized with camelCase keys (`notificationId`, `templateVariables`,
    ...). Parsing accepts both camelCase and field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    notification_id: int
    channel: ChannelType
    to: List[str]
    cc: List[str] = Field(default_factory=list)
    bcc: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None
    template_name: Optional[str] = None
    template_variables: Dict[str, Any] = Field(default_factory=dict)
    from_address: Optional[str] = None
    attachments: List[AttachmentRef] = Field(default_factory=list)
    retry_count: int = 0

    @classmethod
    def from_record(cls, record: NotificationRecord) -> "BrokerMessage":
        if record.id is None:
            raise ValueError("Only persisted notifications can be relayed")
        return cls(
            notification_id=record.id,
            channel=record.channel,
            to=record.to,
            cc=record.cc,
            bcc=record.bcc,
            subject=record.subject,
            body=record.body,
            template_name=record.template_name,
            template_variables=record.template_variables,
            from_address=record.from_address,
            attachments=record.attachments,
            retry_count=record.retry_count,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
