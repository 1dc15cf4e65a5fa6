"""Tests for deepsource_mcp.core.config."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from deepsource_mcp.core.config import (
    CircuitBreakerConfig,
    ClientConfig,
    EnhancedClientConfig,
    LogConfig,
    RetryConfig,
    ServerConfig,
    load_config,
)
from deepsource_mcp.core.errors import ConfigurationError, ErrorCategory


class TestRetryConfig:
    def test_defaults(self):
        config = RetryConfig()
        assert config.enabled is True
        assert config.max_attempts == 3
        assert config.base_delay_seconds == 1.0
        assert config.max_delay_seconds == 30.0
        assert config.jitter is True
        assert config.budget_per_minute == 10
        assert config.retryable_categories == frozenset({
            ErrorCategory.NETWORK,
            ErrorCategory.SERVER,
            ErrorCategory.TIMEOUT,
            ErrorCategory.RATE_LIMIT,
        })

    def test_max_attempts_bounds(self):
        RetryConfig(max_attempts=0)
        RetryConfig(max_attempts=10)
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=11)
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=-1)

    def test_base_delay_bounds(self):
        with pytest.raises(ValidationError):
            RetryConfig(base_delay_seconds=0.05)
        with pytest.raises(ValidationError):
            RetryConfig(base_delay_seconds=61, max_delay_seconds=120)

    def test_base_must_not_exceed_max(self):
        with pytest.raises(ValidationError, match="must not exceed"):
            RetryConfig(base_delay_seconds=10, max_delay_seconds=5)

    def test_to_client_config_is_frozen(self):
        client_config = RetryConfig(max_attempts=5, jitter=False).to_client_config()
        assert isinstance(client_config, EnhancedClientConfig)
        assert client_config.max_attempts == 5
        assert client_config.jitter is False
        with pytest.raises(ValidationError):
            client_config.max_attempts = 1  # type: ignore[misc]


class TestCircuitBreakerConfig:
    def test_defaults(self):
        config = CircuitBreakerConfig()
        assert config.enabled is True
        assert config.failure_threshold == 5
        assert config.failure_window_seconds == 60.0
        assert config.recovery_timeout_seconds == 30.0
        assert config.success_threshold == 3

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValidationError):
            CircuitBreakerConfig(failure_threshold=0)


class TestServerConfig:
    def test_defaults(self):
        config = ServerConfig()
        assert config.name == "deepsource-mcp"
        assert config.client.api_url == "https://api.deepsource.io/graphql/"
        assert config.client.timeout_seconds == 30.0
        assert config.logging.level == "INFO"

    def test_require_api_key_missing(self):
        with pytest.raises(ConfigurationError, match="DEEPSOURCE_API_KEY"):
            ServerConfig().require_api_key()

    def test_require_api_key_blank(self):
        config = ServerConfig(client=ClientConfig(api_key="   "))
        with pytest.raises(ConfigurationError):
            config.require_api_key()

    def test_require_api_key_present(self):
        config = ServerConfig(client=ClientConfig(api_key="ds-key"))
        assert config.require_api_key() == "ds-key"

    def test_api_key_hidden_in_repr(self):
        config = ServerConfig(client=ClientConfig(api_key="ds-very-secret-key"))
        assert "ds-very-secret-key" not in repr(config)

    def test_masked(self):
        masked = ServerConfig(client=ClientConfig(api_key="abcdefghijkl")).masked()
        assert masked["client"]["api_key"] == "abcd...ijkl"

        assert ServerConfig(client=ClientConfig(api_key="short")).masked()["client"]["api_key"] == "****"
        assert ServerConfig().masked()["client"]["api_key"] is None

    def test_log_config_rejects_unknown_level(self):
        with pytest.raises(ValidationError):
            LogConfig(level="TRACE")  # type: ignore[arg-type]


class TestLoadConfig:
    def test_empty_environment_gives_defaults(self):
        config = load_config({})
        assert config == ServerConfig()

    def test_reads_all_variables(self):
        config = load_config({
            "DEEPSOURCE_API_KEY": "ds-key",
            "DEEPSOURCE_API_URL": "https://example.test/graphql/",
            "DEEPSOURCE_TIMEOUT_MS": "5000",
            "RETRY_ENABLED": "false",
            "RETRY_MAX_ATTEMPTS": "5",
            "RETRY_BASE_DELAY_MS": "500",
            "RETRY_MAX_DELAY_MS": "10000",
            "RETRY_BUDGET_PER_MINUTE": "20",
            "RETRY_JITTER": "no",
            "CIRCUIT_BREAKER_THRESHOLD": "7",
            "CIRCUIT_BREAKER_TIMEOUT_MS": "45000",
            "LOG_LEVEL": "debug",
            "LOG_FORMAT": "JSON",
            "LOG_FILE": "/tmp/deepsource-mcp.log",
        })

        assert config.require_api_key() == "ds-key"
        assert config.client.api_url == "https://example.test/graphql/"
        assert config.client.timeout_seconds == 5.0
        assert config.retry.enabled is False
        assert config.retry.max_attempts == 5
        assert config.retry.base_delay_seconds == 0.5
        assert config.retry.max_delay_seconds == 10.0
        assert config.retry.budget_per_minute == 20
        assert config.retry.jitter is False
        assert config.circuit_breaker.failure_threshold == 7
        assert config.circuit_breaker.recovery_timeout_seconds == 45.0
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "json"
        assert config.logging.file_path == Path("/tmp/deepsource-mcp.log")

    def test_empty_values_are_ignored(self):
        assert load_config({"RETRY_MAX_ATTEMPTS": ""}).retry.max_attempts == 3

    def test_unparseable_integer(self):
        with pytest.raises(ConfigurationError, match="RETRY_MAX_ATTEMPTS"):
            load_config({"RETRY_MAX_ATTEMPTS": "three"})

    def test_unparseable_boolean(self):
        with pytest.raises(ConfigurationError, match="RETRY_JITTER"):
            load_config({"RETRY_JITTER": "maybe"})

    def test_out_of_range_wraps_validation_error(self):
        with pytest.raises(ConfigurationError, match="Invalid configuration") as exc_info:
            load_config({"RETRY_MAX_ATTEMPTS": "50"})
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_missing_api_key_is_allowed_until_serving(self):
        config = load_config({"LOG_LEVEL": "WARNING"})
        assert config.client.api_key is None
