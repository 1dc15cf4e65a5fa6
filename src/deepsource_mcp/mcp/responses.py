"""MCP tool response builders.

Every tool call answers with the same shape::

    {"content": [{"type": "text", "text": "<json>"}], "isError": bool, ...}

Successful calls also carry the data as ``structuredContent``. Error text is
a JSON object with ``error``, ``category``, ``code`` and ``details``.
"""

from __future__ import annotations

import json
from typing import Any

from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory

ApiResponse = dict[str, Any]

VALIDATION_ERROR_CODE = "VALIDATION_ERROR"
UNKNOWN_TOOL_CODE = "UNKNOWN_TOOL"
OUTPUT_VALIDATION_CODE = "OUTPUT_VALIDATION_ERROR"


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def make_success_response(data: dict[str, Any]) -> ApiResponse:
    return {
        "content": [{"type": "text", "text": _dumps(data)}],
        "isError": False,
        "structuredContent": data,
    }


def make_error_response(
    message: str,
    category: ErrorCategory | str = ErrorCategory.OTHER,
    code: str | None = None,
    details: Any = None,
) -> ApiResponse:
    """Create a standardized MCP error response."""
    payload = {
        "error": message,
        "category": ErrorCategory(category).value,
        "code": code,
        "details": details,
    }
    return {
        "content": [{"type": "text", "text": _dumps(payload)}],
        "isError": True,
    }


def error_response_from(error: ClassifiedError) -> ApiResponse:
    """Error response for a classified failure; metadata goes into ``details``."""
    return make_error_response(
        error.message,
        error.category,
        error.code,
        dict(error.metadata) or None,
    )


__all__ = [
    "ApiResponse",
    "OUTPUT_VALIDATION_CODE",
    "UNKNOWN_TOOL_CODE",
    "VALIDATION_ERROR_CODE",
    "error_response_from",
    "make_error_response",
    "make_success_response",
]
