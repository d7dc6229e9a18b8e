"""Fixtures for AWS client tests."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError


@pytest.fixture
def client_error_factory():
    """Factory for botocore ClientError instances.

    Example:
        error = client_error_factory("ThrottlingException", "SendMessage")
    """

    def _factory(code: str, operation: str = "SendMessage") -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": code}}, operation)

    return _factory


@pytest.fixture
def sqs_stub():
    """MagicMock standing in for a boto3 SQS client."""
    stub = MagicMock()
    stub.send_message.return_value = {"MessageId": "msg-123"}
    stub.receive_message.return_value = {"Messages": []}
    return stub
