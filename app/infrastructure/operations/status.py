"""Operation status enumeration.

Status codes for operation results. The queue scheduler uses them to decide
whether a failed delivery attempt is retried or terminal.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, provider outage)
        PERMANENT_ERROR: Non-retryable error (misconfiguration, bad input)
        NOT_FOUND: Referenced resource does not exist
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    NOT_FOUND = "not_found"
