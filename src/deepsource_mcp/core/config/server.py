"""Server-level configuration and environment loading."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from deepsource_mcp import __version__
from deepsource_mcp.core.errors import ConfigurationError

from .client import CircuitBreakerConfig, ClientConfig, RetryConfig

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class LogConfig(BaseModel):
    """Configuration for structured logging.

    Logs always go to stderr; ``file_path`` adds a rotating log file.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level to capture",
    )
    format: Literal["json", "console"] = Field(
        default="console",
        description="Output format: json for structured, console for human-readable",
    )
    file_path: Path | None = Field(default=None, description="Optional log file")
    max_file_size_mb: int = Field(
        default=10,
        gt=0,
        le=1000,
        description="Maximum log file size before rotation (MB)",
    )
    backup_count: int = Field(
        default=3,
        ge=0,
        le=100,
        description="Number of rotated log files to keep",
    )
    include_timestamps: bool = Field(default=True, description="Include ISO8601 UTC timestamps")
    include_context: bool = Field(
        default=True,
        description="Include request context (request_id, tool_name) in log entries",
    )


class ServerConfig(BaseModel):
    """Top-level configuration for the MCP server."""

    name: str = Field(default="deepsource-mcp", description="Server name reported to clients")
    version: str = Field(default=__version__, description="Server version reported to clients")
    client: ClientConfig = Field(default_factory=ClientConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @model_validator(mode="after")
    def _check_name(self) -> ServerConfig:
        if not self.name.strip():
            raise ValueError("name must not be empty")
        return self

    def require_api_key(self) -> str:
        """Return the API key, raising ConfigurationError when it is missing."""
        key = self.client.api_key.get_secret_value() if self.client.api_key else ""
        if not key.strip():
            raise ConfigurationError(
                "DEEPSOURCE_API_KEY environment variable is required"
            )
        return key

    def masked(self) -> dict[str, Any]:
        """Dump the configuration for display with the API key masked."""
        data = self.model_dump(mode="json")
        key = self.client.api_key.get_secret_value() if self.client.api_key else ""
        data["client"]["api_key"] = _mask(key)
        return data


def _mask(key: str) -> str | None:
    if not key:
        return None
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _parse_ms(name: str, raw: str) -> float:
    return _parse_int(name, raw) / 1000.0


# (env var, section, field, parser)
_ENV_FIELDS: list[tuple[str, str, str, Callable[[str, str], Any]]] = [
    ("DEEPSOURCE_API_KEY", "client", "api_key", lambda _n, v: v),
    ("DEEPSOURCE_API_URL", "client", "api_url", lambda _n, v: v.strip()),
    ("DEEPSOURCE_TIMEOUT_MS", "client", "timeout_seconds", _parse_ms),
    ("RETRY_ENABLED", "retry", "enabled", _parse_bool),
    ("RETRY_MAX_ATTEMPTS", "retry", "max_attempts", _parse_int),
    ("RETRY_BASE_DELAY_MS", "retry", "base_delay_seconds", _parse_ms),
    ("RETRY_MAX_DELAY_MS", "retry", "max_delay_seconds", _parse_ms),
    ("RETRY_BUDGET_PER_MINUTE", "retry", "budget_per_minute", _parse_int),
    ("RETRY_JITTER", "retry", "jitter", _parse_bool),
    ("CIRCUIT_BREAKER_THRESHOLD", "circuit_breaker", "failure_threshold", _parse_int),
    ("CIRCUIT_BREAKER_TIMEOUT_MS", "circuit_breaker", "recovery_timeout_seconds", _parse_ms),
    ("LOG_LEVEL", "logging", "level", lambda _n, v: v.strip().upper()),
    ("LOG_FORMAT", "logging", "format", lambda _n, v: v.strip().lower()),
    ("LOG_FILE", "logging", "file_path", lambda _n, v: Path(v.strip())),
]


def load_config(env: Mapping[str, str] | None = None) -> ServerConfig:
    """Build a ServerConfig from environment variables.

    Unset or empty variables keep their defaults. The API key is not required
    here; call ``ServerConfig.require_api_key()`` before serving.

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.

    Raises:
        ConfigurationError: If a variable cannot be parsed or fails validation.
    """
    source = os.environ if env is None else env
    sections: dict[str, dict[str, Any]] = {}

    for var, section, field_name, parser in _ENV_FIELDS:
        raw = source.get(var)
        if raw is None or raw == "":
            continue
        sections.setdefault(section, {})[field_name] = parser(var, raw)

    try:
        return ServerConfig.model_validate(sections)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
