"""SQS client for the notification broker relay.

All methods return OperationResult for consistent error handling.
"""

from threading import Lock
from typing import Any, Dict, List, Optional

import structlog
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

from infrastructure.clients.aws.client import get_boto3_client
from infrastructure.operations import OperationResult, classify_aws_error

logger = structlog.get_logger()


class SQSClient:
    """Client for SQS operations.

    Args:
        region: AWS region
        endpoint_url: Optional endpoint override (LocalStack, VPC endpoint)
        client: Pre-built boto3 SQS client (tests inject a stub here)
    """

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Optional[BaseClient] = None,
    ) -> None:
        self._region = region
        self._endpoint_url = endpoint_url
        self._client = client
        self._client_lock = Lock()
        self._logger = logger.bind(component="sqs_client")

    @property
    def client(self) -> BaseClient:
        with self._client_lock:
            if self._client is None:
                client_config = {}
                if self._endpoint_url:
                    client_config["endpoint_url"] = self._endpoint_url
                self._client = get_boto3_client(
                    "sqs",
                    session_config={"region_name": self._region}
                    if self._region
                    else None,
                    client_config=client_config,
                )
            return self._client

    def send_message(
        self,
        queue_url: str,
        message_body: str,
        message_group_id: Optional[str] = None,
        deduplication_id: Optional[str] = None,
        attributes: Optional[Dict[str, str]] = None,
    ) -> OperationResult:
        """Send a message to an SQS queue.

        Args:
            queue_url: URL of the queue
            message_body: Message body (JSON)
            message_group_id: Message group (FIFO queues only)
            deduplication_id: Deduplication id (FIFO queues only)
            attributes: String message attributes

        Returns:
            OperationResult with {"message_id": ...} on success
        """
        kwargs: Dict[str, Any] = {"QueueUrl": queue_url, "MessageBody": message_body}
        if message_group_id:
            kwargs["MessageGroupId"] = message_group_id
        if deduplication_id:
            kwargs["MessageDeduplicationId"] = deduplication_id
        if attributes:
            kwargs["MessageAttributes"] = {
                key: {"DataType": "String", "StringValue": value}
                for key, value in attributes.items()
            }

        try:
            response = self.client.send_message(**kwargs)
        except (ClientError, BotoCoreError) as e:
            result = classify_aws_error(e)
            self._logger.error(
                "sqs_send_message_failed",
                queue_url=queue_url,
                error=str(e),
                error_code=result.error_code,
            )
            return result

        return OperationResult.success(
            data={"message_id": response.get("MessageId")},
            message="sqs.send_message succeeded",
        )

    def receive_messages(
        self,
        queue_url: str,
        max_number_of_messages: int = 10,
        wait_time_seconds: int = 10,
    ) -> OperationResult:
        """Receive up to `max_number_of_messages` messages.

        Returns:
            OperationResult with a list of SQS message dicts
        """
        try:
            response = self.client.receive_message(
                QueueUrl=queue_url,
                MaxNumberOfMessages=max_number_of_messages,
                WaitTimeSeconds=wait_time_seconds,
                MessageAttributeNames=["All"],
            )
        except (ClientError, BotoCoreError) as e:
            return classify_aws_error(e)
        messages: List[Dict[str, Any]] = response.get("Messages", [])
        return OperationResult.success(data=messages)

    def delete_message(self, queue_url: str, receipt_handle: str) -> OperationResult:
        try:
            self.client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)
        except (ClientError, BotoCoreError) as e:
            return classify_aws_error(e)
        return OperationResult.success()
