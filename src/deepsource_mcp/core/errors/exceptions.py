"""Exception hierarchy for the DeepSource MCP server."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class DeepSourceMCPError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(DeepSourceMCPError):
    """Configuration is missing or invalid."""


class DuplicateToolError(DeepSourceMCPError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class ToolValidationError(DeepSourceMCPError):
    """Tool input failed schema validation.

    Attributes:
        tool_name: Name of the tool whose input was rejected.
        errors: Validation errors as reported by pydantic.
    """

    def __init__(self, tool_name: str, errors: Sequence[dict[str, Any]]) -> None:
        self.tool_name = tool_name
        self.errors = list(errors)
        summary = "; ".join(_format_error(e) for e in self.errors) or "invalid input"
        super().__init__(f"Invalid input for tool '{tool_name}': {summary}")


def _format_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


class GraphQLResponseError(DeepSourceMCPError):
    """The GraphQL response carried a non-empty ``errors`` list."""

    def __init__(self, errors: Sequence[dict[str, Any]]) -> None:
        self.errors = list(errors)
        messages = ", ".join(str(e.get("message", "unknown error")) for e in self.errors)
        super().__init__(f"GraphQL Errors: {messages}")

    @property
    def code(self) -> str | None:
        """``extensions.code`` of the first error, if present."""
        if not self.errors:
            return None
        extensions = self.errors[0].get("extensions") or {}
        code = extensions.get("code") if isinstance(extensions, dict) else None
        return str(code) if code is not None else None


class ResponseFormatError(DeepSourceMCPError):
    """The response body was not the JSON shape we expect."""


__all__ = [
    "ConfigurationError",
    "DeepSourceMCPError",
    "DuplicateToolError",
    "GraphQLResponseError",
    "ResponseFormatError",
    "ToolValidationError",
]
