"""Tool registry: name -> (input schema, handler, output schema).

The registry is the only place tool calls are validated and dispatched.
``dispatch`` always returns an MCP response dict; failures become
``isError`` responses and are never raised to the transport, with the sole
exception of ``asyncio.CancelledError``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from deepsource_mcp.core.errors import (
    ClassifiedError,
    DuplicateToolError,
    ErrorCategory,
    ErrorClassifier,
    ToolValidationError,
)
from deepsource_mcp.core.logging import DeepSourceLogger, RequestContext, get_logger, with_context
from deepsource_mcp.mcp.responses import (
    OUTPUT_VALIDATION_CODE,
    UNKNOWN_TOOL_CODE,
    VALIDATION_ERROR_CODE,
    ApiResponse,
    error_response_from,
    make_error_response,
    make_success_response,
)

ToolHandler = Callable[[Any], Awaitable[Mapping[str, Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    """A named, schema-validated operation.

    Attributes:
        name: Tool name as exposed over MCP.
        description: Human-readable description for the agent.
        input_model: Pydantic model the raw arguments are validated against.
        output_model: Pydantic model the handler's result must satisfy.
        handler: Coroutine taking the validated input model.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    handler: ToolHandler

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)

    @property
    def output_schema(self) -> dict[str, Any]:
        return self.output_model.model_json_schema(by_alias=True)

    @property
    def required_inputs(self) -> list[str]:
        return list(self.input_schema.get("required", []))

    def to_mcp(self) -> dict[str, Any]:
        """Tool listing entry in MCP wire format."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "outputSchema": self.output_schema,
        }


class ToolRegistry:
    """Holds tool definitions in registration order and dispatches calls."""

    def __init__(
        self,
        classifier: ErrorClassifier | None = None,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._classifier = classifier or ErrorClassifier()
        self._logger = logger or get_logger("registry")

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def register_tool(self, definition: ToolDefinition) -> None:
        """Register a tool.

        Raises:
            DuplicateToolError: If a tool with the same name already exists.
        """
        if definition.name in self._tools:
            raise DuplicateToolError(definition.name)
        self._tools[definition.name] = definition
        self._logger.debug("tool_registered", tool=definition.name)

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def validate_input(self, name: str, raw: Mapping[str, Any] | None) -> BaseModel:
        """Validate raw arguments against the tool's input model.

        Raises:
            KeyError: If the tool is not registered.
            ToolValidationError: If the arguments do not match the schema.
        """
        definition = self._tools[name]
        try:
            return definition.input_model.model_validate(dict(raw or {}))
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False)
            raise ToolValidationError(name, errors) from exc

    async def dispatch(self, name: str, raw_input: Mapping[str, Any] | None = None) -> ApiResponse:
        """Validate, run and wrap one tool call."""
        context = RequestContext(tool_name=name)
        with with_context(context):
            return await self._dispatch(name, raw_input)

    async def _dispatch(self, name: str, raw_input: Mapping[str, Any] | None) -> ApiResponse:
        logger = self._logger.bind(tool=name)
        definition = self._tools.get(name)
        if definition is None:
            logger.warning("tool_unknown")
            return make_error_response(
                f"Unknown tool: {name}",
                ErrorCategory.NOT_FOUND,
                UNKNOWN_TOOL_CODE,
                {"available_tools": list(self._tools)},
            )

        try:
            params = self.validate_input(name, raw_input)
        except ToolValidationError as exc:
            logger.info("tool_input_invalid", errors=len(exc.errors))
            return make_error_response(
                str(exc),
                ErrorCategory.CLIENT,
                VALIDATION_ERROR_CODE,
                _jsonable_errors(exc.errors),
            )

        logger.info("tool_started")
        try:
            result = await definition.handler(params)
        except asyncio.CancelledError:
            logger.info("tool_cancelled")
            raise
        except Exception as exc:
            error = self._classifier.classify(exc)
            logger.error(
                "tool_failed",
                category=error.category.value,
                code=error.code,
                error=error.message,
                error_type=type(exc).__name__,
            )
            return error_response_from(error)

        if not isinstance(result, Mapping):
            logger.error("tool_output_invalid", result_type=type(result).__name__)
            return make_error_response(
                f"Tool '{name}' returned {type(result).__name__} instead of an object",
                ErrorCategory.FORMAT,
                OUTPUT_VALIDATION_CODE,
                {"result_type": type(result).__name__},
            )

        data = dict(result)
        try:
            definition.output_model.model_validate(data)
        except ValidationError as exc:
            logger.error("tool_output_invalid", errors=exc.error_count())
            return make_error_response(
                f"Tool '{name}' produced output that does not match its schema",
                ErrorCategory.FORMAT,
                OUTPUT_VALIDATION_CODE,
                _jsonable_errors(exc.errors(include_url=False, include_context=False)),
            )

        logger.info("tool_completed")
        return make_success_response(data)


def _jsonable_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep the JSON-safe parts of pydantic error dicts."""
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": str(error.get("msg", "")),
            "type": str(error.get("type", "")),
        }
        for error in errors
    ]


__all__ = ["ToolDefinition", "ToolHandler", "ToolRegistry"]
