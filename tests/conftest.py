"""Pytest fixtures for DeepSource MCP tests."""

import logging
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock

import pytest
import structlog

from deepsource_mcp.client import DeepSourceClient
from deepsource_mcp.core.config import EnhancedClientConfig


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset structlog and root handlers around each test."""
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def no_jitter_config() -> EnhancedClientConfig:
    """Retry config with deterministic delays."""
    return EnhancedClientConfig(
        max_attempts=3,
        base_delay_seconds=1.0,
        max_delay_seconds=30.0,
        jitter=False,
    )


@pytest.fixture
def executor() -> AsyncMock:
    """RequestExecutor double; set ``side_effect`` or ``return_value`` per test."""
    return AsyncMock()


@pytest.fixture
def client(executor: AsyncMock) -> DeepSourceClient:
    """DeepSourceClient wired to the executor double."""
    transport = AsyncMock()
    return DeepSourceClient(transport, executor)


@pytest.fixture
def viewer_response() -> dict[str, Any]:
    """Projects listing with one activated repository."""
    return {
        "viewer": {
            "email": "dev@example.com",
            "accounts": {
                "edges": [
                    {
                        "node": {
                            "login": "acme",
                            "repositories": {
                                "edges": [
                                    {
                                        "node": {
                                            "id": "UmVwb3NpdG9yeTox",
                                            "name": "widgets",
                                            "defaultBranch": "main",
                                            "dsn": "dsn-widgets",
                                            "isPrivate": False,
                                            "isActivated": True,
                                            "vcsProvider": "GITHUB",
                                        }
                                    },
                                    {
                                        "node": {
                                            "id": "UmVwb3NpdG9yeToy",
                                            "name": "no-dsn",
                                            "dsn": None,
                                        }
                                    },
                                ]
                            },
                        }
                    }
                ]
            },
        }
    }
