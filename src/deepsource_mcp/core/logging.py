"""Structured logging infrastructure for the DeepSource MCP server.

Provides structured logging using structlog with request correlation
(request_id, tool_name, endpoint) and component names. Output always goes
to stderr or a file, because stdout carries the MCP stdio protocol.

Example usage:
    from deepsource_mcp.core.logging import get_logger, configure_logging

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("client")

    # Log with auto-context
    logger.info("projects_fetched", count=5)

    # Derive a logger for a collaborator and inject it
    executor_logger = logger.child("executor")

    # Use request context for automatic correlation
    from deepsource_mcp.core.logging import RequestContext, with_context

    ctx = RequestContext(tool_name="project_issues")
    with with_context(ctx):
        logger.info("tool_started")  # Automatically includes request_id, tool_name
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Sensitive field patterns that should never be logged
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "api-key",
    "token",
    "secret",
    "password",
    "credential",
    "bearer",
    "authorization",
})

REDACTED = "[REDACTED]"


@dataclass(frozen=True)
class RequestContext:
    """Immutable context for correlating log entries across one tool call.

    Attributes:
        request_id: Unique identifier of the tool invocation.
        tool_name: Name of the MCP tool being executed.
        endpoint: Logical API endpoint (used by the retry machinery).
    """

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    tool_name: str | None = None
    endpoint: str | None = None

    def with_endpoint(self, endpoint: str) -> RequestContext:
        """Return a copy of this context bound to ``endpoint``."""
        return replace(self, endpoint=endpoint)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging, skipping None values."""
        result: dict[str, Any] = {"request_id": self.request_id}
        if self.tool_name is not None:
            result["tool_name"] = self.tool_name
        if self.endpoint is not None:
            result["endpoint"] = self.endpoint
        return result


# Task-local so concurrent tool calls keep separate correlation ids
_current_context: ContextVar[RequestContext | None] = ContextVar(
    "deepsource_mcp_context", default=None
)


def get_current_context() -> RequestContext | None:
    """Get the current RequestContext if set."""
    return _current_context.get()


@contextmanager
def with_context(ctx: RequestContext) -> Iterator[RequestContext]:
    """Set ``ctx`` as the current RequestContext for the duration of a block.

    All log calls within the block include the context fields when the
    context processor is active.

    Args:
        ctx: The RequestContext to use for the block.

    Yields:
        The RequestContext that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    """Return ``[REDACTED]`` for sensitive keys, otherwise the value itself."""
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return REDACTED
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, one level deep."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {
                k: _sanitize_value(str(k), v) for k, v in value.items()
            }
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds RequestContext fields to log entries.

    Explicitly bound fields take precedence over context fields.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            if key not in event_dict:
                event_dict[key] = value
    return event_dict


class DeepSourceLogger:
    """Component logger wrapper around structlog.

    The logger is bound to a component name and can carry additional context.
    Instances are cheap and immutable: ``bind``, ``unbind`` and ``child``
    return new loggers, which makes them safe to inject into collaborators.

    The underlying structlog logger is fetched lazily on every call so that
    loggers created at import time still honour ``configure_logging()``.
    """

    def __init__(
        self,
        component: str,
        **initial_context: Any,
    ) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    @property
    def component(self) -> str:
        """Component name this logger is bound to."""
        return self._component

    @property
    def context(self) -> dict[str, Any]:
        """Copy of the bound context."""
        return dict(self._context)

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def _derive(self, component: str, context: dict[str, Any]) -> DeepSourceLogger:
        new_logger = DeepSourceLogger.__new__(DeepSourceLogger)
        new_logger._component = component
        new_logger._context = context
        return new_logger

    def bind(self, **context: Any) -> DeepSourceLogger:
        """Create a new logger with additional bound context."""
        return self._derive(self._component, {**self._context, **context})

    def unbind(self, *keys: str) -> DeepSourceLogger:
        """Create a new logger with the given keys removed from the context."""
        return self._derive(
            self._component,
            {k: v for k, v in self._context.items() if k not in keys},
        )

    def child(self, component: str) -> DeepSourceLogger:
        """Create a logger for a sub-component, keeping the bound context.

        The component becomes ``<parent>.<component>``.
        """
        name = f"{self._component}.{component}"
        return self._derive(name, {**self._context, "component": name})

    def debug(self, event: str, **kw: Any) -> None:
        """Log a debug event."""
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        """Log an info event."""
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        """Log a warning event."""
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        """Log an error event."""
        self._get_logger().error(event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        """Log a critical event."""
        self._get_logger().critical(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an exception with traceback.

        Should be called from within an exception handler.
        """
        self._get_logger().exception(event, **kw)


def _build_processors(
    renderer: Processor,
    include_timestamps: bool,
    include_context: bool,
) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,  # Filter before processing
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
    ]

    if include_context:
        processors.append(_add_context)

    if include_timestamps:
        processors.append(_add_timestamp)

    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])

    return processors


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console"] = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
    include_context: bool = True,
) -> None:
    """Configure structured logging.

    Call once at startup, before the MCP transport starts. Console output goes
    to stderr. When ``file_path`` is given, entries are also written to a
    rotating log file.

    Args:
        level: Minimum log level to capture.
        format: "json" for structured lines, "console" for human-readable output.
        file_path: Optional path of a log file.
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to include ISO8601 timestamps.
        include_context: Whether to include RequestContext fields.
    """
    log_level = getattr(logging, level)

    handlers: list[logging.Handler] = []

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(log_level)
    handlers.append(stderr_handler)

    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    # httpx logs every request at INFO; keep it out of the protocol session
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    renderer: Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # cache_logger_on_first_use=False keeps import-time loggers in sync
    # with configuration applied later
    structlog.configure(
        processors=_build_processors(renderer, include_timestamps, include_context),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> DeepSourceLogger:
    """Get a logger for a component.

    Args:
        component: The component name (e.g., "client", "executor", "registry").
        **initial_context: Additional context to bind.

    Returns:
        A DeepSourceLogger bound to the component.
    """
    return DeepSourceLogger(component, **initial_context)


__all__ = [
    "DeepSourceLogger",
    "REDACTED",
    "RequestContext",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
