"""Infrastructure AWS clients public API.

    from infrastructure.clients.aws import SQSClient

    sqs = SQSClient(region="ca-central-1")
    result = sqs.send_message(queue_url, body)
    if result.is_success:
        message_id = result.data["message_id"]
"""

from infrastructure.clients.aws.client import get_boto3_client
from infrastructure.clients.aws.sqs import SQSClient

__all__ = ["SQSClient", "get_boto3_client"]
