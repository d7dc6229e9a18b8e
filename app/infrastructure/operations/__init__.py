"""Operation result types and status enums.

Standardized result types shared by the delivery pipeline, including status
enums, the result dataclass, and error classifiers for sender and AWS SDK
exceptions.
"""

from infrastructure.operations.classifiers import (
    classify_aws_error,
    classify_dispatch_error,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_aws_error",
    "classify_dispatch_error",
]
