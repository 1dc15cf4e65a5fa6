"""Configuration models for the DeepSource MCP server.

All models are re-exported from this ``__init__`` so callers can use
``from deepsource_mcp.core.config import ...``.
"""

# Client, retry and circuit breaker configuration
from deepsource_mcp.core.config.client import (
    CircuitBreakerConfig,
    ClientConfig,
    EnhancedClientConfig,
    RetryConfig,
)

# Server configuration and environment loading
from deepsource_mcp.core.config.server import (
    LogConfig,
    ServerConfig,
    load_config,
)

__all__ = [
    "CircuitBreakerConfig",
    "ClientConfig",
    "EnhancedClientConfig",
    "LogConfig",
    "RetryConfig",
    "ServerConfig",
    "load_config",
]
