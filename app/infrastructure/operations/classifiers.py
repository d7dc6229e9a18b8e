"""Error classifiers for delivery exceptions.

Converts exceptions raised by channel senders and the AWS SDK into
OperationResult objects so retry decisions live in one place.

Key Functions:
- classify_dispatch_error(): channel sender exceptions -> OperationResult
- classify_aws_error(): AWS SDK errors -> OperationResult

Usage:
    try:
        result = sender.send(recipients, subject, body)
    except Exception as exc:
        return classify_dispatch_error(exc)
"""

from botocore.exceptions import BotoCoreError, ClientError

from infrastructure.notifications.errors import (
    ConfigurationError,
    TemplateNotFoundError,
    TransientDispatchError,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def classify_dispatch_error(exc: Exception) -> OperationResult:
    """Classify an exception raised while dispatching a notification.

    Mapping:
    - ConfigurationError: PERMANENT_ERROR (credentials or provider setup)
    - TemplateNotFoundError: PERMANENT_ERROR (template removed after submit)
    - TransientDispatchError: TRANSIENT_ERROR
    - ConnectionError / TimeoutError: TRANSIENT_ERROR
    - AWS SDK errors: see classify_aws_error()
    - Anything else: TRANSIENT_ERROR (attempt again until retries run out)

    Args:
        exc: Exception raised by a channel sender or a collaborator

    Returns:
        OperationResult with the error status and message
    """
    if isinstance(exc, ConfigurationError):
        return OperationResult.permanent_error(
            f"Provider misconfigured: {exc}",
            error_code="CONFIGURATION_ERROR",
        )

    if isinstance(exc, TemplateNotFoundError):
        return OperationResult.permanent_error(
            str(exc),
            error_code="TEMPLATE_NOT_FOUND",
        )

    if isinstance(exc, TransientDispatchError):
        return OperationResult.transient_error(
            str(exc),
            error_code="DISPATCH_ERROR",
            retry_after=exc.retry_after,
        )

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return OperationResult.transient_error(
            f"Connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    if isinstance(exc, (ClientError, BotoCoreError)):
        return classify_aws_error(exc)

    return OperationResult.transient_error(
        f"Unexpected error: {type(exc).__name__}: {exc}",
        error_code="UNEXPECTED_ERROR",
    )


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Follows the AWS SDK convention of treating unknown errors as transient.

    Error Code Mapping:
    - Throttling codes: TRANSIENT_ERROR with retry_after
    - AccessDenied codes: PERMANENT_ERROR
    - Non-existent queue / resource: NOT_FOUND
    - Validation codes: PERMANENT_ERROR
    - Other: TRANSIENT_ERROR

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        OperationResult with appropriate status, message and error_code
    """
    if not isinstance(exc, ClientError):
        # BotoCoreError covers endpoint and connection failures
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error_code = "Unknown"
    if hasattr(exc, "response") and exc.response:
        error_info = exc.response.get("Error", {})
        error_code = error_info.get("Code", "Unknown")

    if error_code in ("Throttling", "ThrottlingException", "RequestThrottled"):
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=60,
        )

    if error_code in ("AccessDenied", "AccessDeniedException"):
        return OperationResult.permanent_error(
            "AWS API access denied",
            error_code="FORBIDDEN",
        )

    if error_code in (
        "AWS.SimpleQueueService.NonExistentQueue",
        "QueueDoesNotExist",
        "ResourceNotFoundException",
    ):
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"AWS resource not found: {error_code}",
            error_code="NOT_FOUND",
        )

    if error_code in (
        "ValidationException",
        "InvalidParameterValue",
        "InvalidMessageContents",
    ):
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}",
            error_code="INVALID_REQUEST",
        )

    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )
