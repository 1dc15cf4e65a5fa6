"""Core infrastructure: logging, errors and configuration."""

from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory, ErrorClassifier

__all__ = [
    "ClassifiedError",
    "ErrorCategory",
    "ErrorClassifier",
]
