"""Error classification and handling.

Re-exports all public symbols.
"""

from deepsource_mcp.core.errors.codes import DEFAULT_RETRYABLE_CATEGORIES, ErrorCategory
from deepsource_mcp.core.errors.exceptions import (
    ConfigurationError,
    DeepSourceMCPError,
    DuplicateToolError,
    GraphQLResponseError,
    ResponseFormatError,
    ToolValidationError,
)
from deepsource_mcp.core.errors.models import ClassifiedError, RetryAttemptRecord
from deepsource_mcp.core.errors.classifier import (
    ErrorClassifier,
    classify_error,
    parse_retry_after,
)

__all__ = [
    "DEFAULT_RETRYABLE_CATEGORIES",
    "ClassifiedError",
    "ConfigurationError",
    "DeepSourceMCPError",
    "DuplicateToolError",
    "ErrorCategory",
    "ErrorClassifier",
    "GraphQLResponseError",
    "ResponseFormatError",
    "RetryAttemptRecord",
    "ToolValidationError",
    "classify_error",
    "parse_retry_after",
]
