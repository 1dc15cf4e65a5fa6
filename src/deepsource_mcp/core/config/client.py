"""API client, retry and circuit breaker configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from deepsource_mcp.core.constants import (
    DEFAULT_API_URL,
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_CIRCUIT_FAILURE_THRESHOLD,
    DEFAULT_CIRCUIT_FAILURE_WINDOW_SECONDS,
    DEFAULT_CIRCUIT_HALF_OPEN_MAX_CALLS,
    DEFAULT_CIRCUIT_RECOVERY_TIMEOUT_SECONDS,
    DEFAULT_CIRCUIT_SUCCESS_THRESHOLD,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_RETRY_BUDGET_PER_MINUTE,
    DEFAULT_TIMEOUT_SECONDS,
    MAX_ATTEMPTS_LIMIT,
    MAX_BASE_DELAY_SECONDS,
    MAX_DELAY_LIMIT_SECONDS,
    MIN_BASE_DELAY_SECONDS,
)
from deepsource_mcp.core.errors import DEFAULT_RETRYABLE_CATEGORIES, ErrorCategory


class EnhancedClientConfig(BaseModel):
    """Immutable retry parameters consumed by the retry policy.

    Built once per client from ``RetryConfig.to_client_config()`` or derived
    per endpoint by ``policy_for_endpoint``.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=0)
    base_delay_seconds: float = Field(default=DEFAULT_BASE_DELAY_SECONDS, gt=0)
    max_delay_seconds: float = Field(default=DEFAULT_MAX_DELAY_SECONDS, gt=0)
    jitter: bool = True
    retryable_categories: frozenset[ErrorCategory] = DEFAULT_RETRYABLE_CATEGORIES
    respect_retry_after: bool = True


class RetryConfig(BaseModel):
    """Configuration for retrying failed API requests."""

    enabled: bool = Field(default=True, description="Wrap the client in the retrying executor")
    max_attempts: int = Field(
        default=DEFAULT_MAX_ATTEMPTS,
        ge=0,
        le=MAX_ATTEMPTS_LIMIT,
        description="Total attempts per request, including the first",
    )
    base_delay_seconds: float = Field(
        default=DEFAULT_BASE_DELAY_SECONDS,
        ge=MIN_BASE_DELAY_SECONDS,
        le=MAX_BASE_DELAY_SECONDS,
        description="Initial backoff delay",
    )
    max_delay_seconds: float = Field(
        default=DEFAULT_MAX_DELAY_SECONDS,
        gt=0,
        le=MAX_DELAY_LIMIT_SECONDS,
        description="Upper bound for any single backoff delay",
    )
    jitter: bool = Field(default=True, description="Apply full jitter to backoff delays")
    retryable_categories: frozenset[ErrorCategory] = Field(
        default=DEFAULT_RETRYABLE_CATEGORIES,
        description="Error categories that may be retried",
    )
    respect_retry_after: bool = Field(
        default=True,
        description="Use the server's Retry-After hint instead of computed backoff",
    )
    budget_per_minute: int = Field(
        default=DEFAULT_RETRY_BUDGET_PER_MINUTE,
        ge=0,
        description="Retries allowed per endpoint per minute",
    )

    @model_validator(mode="after")
    def _validate_delay_range(self) -> RetryConfig:
        if self.base_delay_seconds > self.max_delay_seconds:
            raise ValueError(
                f"base_delay_seconds ({self.base_delay_seconds}) must not exceed "
                f"max_delay_seconds ({self.max_delay_seconds})"
            )
        return self

    def to_client_config(self) -> EnhancedClientConfig:
        """Freeze the retry parameters for the executor."""
        return EnhancedClientConfig(
            max_attempts=self.max_attempts,
            base_delay_seconds=self.base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds,
            jitter=self.jitter,
            retryable_categories=self.retryable_categories,
            respect_retry_after=self.respect_retry_after,
        )


class CircuitBreakerConfig(BaseModel):
    """Configuration for the per-endpoint circuit breaker.

    State transitions:
    - CLOSED (normal): requests flow through, failures inside the window are counted
    - OPEN (blocking): requests fail fast once failure_threshold is reached
    - HALF_OPEN (testing): a limited number of probes test recovery
    """

    enabled: bool = Field(default=True, description="Enable the circuit breaker")
    failure_threshold: int = Field(
        default=DEFAULT_CIRCUIT_FAILURE_THRESHOLD,
        ge=1,
        le=100,
        description="Failures inside the window before opening the circuit",
    )
    failure_window_seconds: float = Field(
        default=DEFAULT_CIRCUIT_FAILURE_WINDOW_SECONDS,
        gt=0,
        description="Sliding window for counting failures",
    )
    recovery_timeout_seconds: float = Field(
        default=DEFAULT_CIRCUIT_RECOVERY_TIMEOUT_SECONDS,
        gt=0,
        le=3600,
        description="Seconds in OPEN state before probing recovery",
    )
    success_threshold: int = Field(
        default=DEFAULT_CIRCUIT_SUCCESS_THRESHOLD,
        ge=1,
        description="Successful probes needed to close the circuit",
    )
    half_open_max_calls: int = Field(
        default=DEFAULT_CIRCUIT_HALF_OPEN_MAX_CALLS,
        ge=1,
        description="Maximum probes admitted while HALF_OPEN",
    )


class ClientConfig(BaseModel):
    """DeepSource API connection settings."""

    api_key: SecretStr | None = Field(default=None, description="DeepSource personal access token")
    api_url: str = Field(default=DEFAULT_API_URL, description="GraphQL endpoint URL")
    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        le=600,
        description="HTTP request timeout",
    )
