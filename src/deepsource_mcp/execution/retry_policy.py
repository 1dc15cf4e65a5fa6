"""Retry decisions, backoff computation and endpoint policies.

All functions here are pure: they look only at their arguments (plus an
injectable random source) so the retrying executor stays deterministic
under test.
"""

from __future__ import annotations

import random
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from deepsource_mcp.core.config import EnhancedClientConfig
from deepsource_mcp.core.errors import (
    ClassifiedError,
    ErrorCategory,
    parse_retry_after,
)


def should_retry(
    category: ErrorCategory,
    attempt: int,
    config: EnhancedClientConfig,
) -> bool:
    """Decide whether a failed attempt may be retried.

    Args:
        category: Category of the failure.
        attempt: 1-based number of the attempt that just failed.
        config: Retry parameters.
    """
    if attempt >= config.max_attempts:
        return False
    return category in config.retryable_categories


def compute_delay(
    attempt: int,
    config: EnhancedClientConfig,
    *,
    rng: Callable[[], float] = random.random,
) -> float:
    """Exponential backoff delay in seconds after ``attempt``.

    ``min(base * 2**(attempt - 1), max_delay)``; with jitter enabled the
    result is drawn uniformly from ``[0, delay]`` (full jitter).
    """
    exponent = max(attempt - 1, 0)
    delay = min(config.base_delay_seconds * (2 ** exponent), config.max_delay_seconds)
    if config.jitter:
        delay = rng() * delay
    return delay


def resolve_delay(
    attempt: int,
    error: ClassifiedError,
    config: EnhancedClientConfig,
    *,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay before the next attempt, honouring a server Retry-After hint."""
    if config.respect_retry_after:
        retry_after = error.metadata.get("retry_after_seconds")
        if isinstance(retry_after, (int, float)) and retry_after >= 0:
            return min(float(retry_after), config.max_delay_seconds)
    return compute_delay(attempt, config, rng=rng)


# =============================================================================
# Endpoint policies
# =============================================================================


class EndpointPolicy(str, Enum):
    """How hard to retry a given endpoint."""

    AGGRESSIVE = "aggressive"
    """Cheap read-only listing; retry generously."""

    STANDARD = "standard"
    """Use the configured retry parameters."""

    CAUTIOUS = "cautious"
    """State-changing or expensive; retry sparingly."""


ENDPOINT_POLICIES: dict[str, EndpointPolicy] = {
    "projects": EndpointPolicy.AGGRESSIVE,
    "update_metric_threshold": EndpointPolicy.CAUTIOUS,
    "update_metric_setting": EndpointPolicy.CAUTIOUS,
}


def policy_name_for_endpoint(endpoint: str | None) -> EndpointPolicy:
    if endpoint is None:
        return EndpointPolicy.STANDARD
    return ENDPOINT_POLICIES.get(endpoint, EndpointPolicy.STANDARD)


def policy_for_endpoint(
    endpoint: str | None,
    base_config: EnhancedClientConfig,
) -> EnhancedClientConfig:
    """Effective retry parameters for ``endpoint``.

    Jitter and Retry-After handling always follow ``base_config``.
    """
    policy = policy_name_for_endpoint(endpoint)

    if policy is EndpointPolicy.AGGRESSIVE:
        return base_config.model_copy(update={
            "max_attempts": 5,
            "base_delay_seconds": 1.0,
            "max_delay_seconds": 30.0,
            "retryable_categories": frozenset({
                ErrorCategory.NETWORK,
                ErrorCategory.SERVER,
                ErrorCategory.TIMEOUT,
                ErrorCategory.RATE_LIMIT,
            }),
        })

    if policy is EndpointPolicy.CAUTIOUS:
        return base_config.model_copy(update={
            "max_attempts": 1,
            "base_delay_seconds": 2.0,
            "max_delay_seconds": 10.0,
            "retryable_categories": frozenset({
                ErrorCategory.RATE_LIMIT,
                ErrorCategory.TIMEOUT,
            }),
        })

    return base_config


# =============================================================================
# Idempotency
# =============================================================================


class OperationType(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class GraphQLOperation:
    """Shape of a GraphQL document, as far as retries care."""

    type: OperationType
    name: str | None
    endpoint: str | None
    """First selected field, e.g. ``viewer`` or ``updateMetricThreshold``."""


_COMMENT_RE = re.compile(r"#[^\n]*")
_OPERATION_RE = re.compile(
    r"^\s*(query|mutation|subscription)\b\s*([_A-Za-z][_0-9A-Za-z]*)?",
    re.IGNORECASE,
)
_FIRST_FIELD_RE = re.compile(r"\{\s*(?:[_A-Za-z][_0-9A-Za-z]*\s*:\s*)?([_A-Za-z][_0-9A-Za-z]*)")


def detect_operation(query: str) -> GraphQLOperation:
    """Parse the operation type, name and first field of a GraphQL document.

    Anonymous documents (``{ viewer { ... } }``) are queries.
    """
    text = _COMMENT_RE.sub("", query)
    match = _OPERATION_RE.match(text)
    if match:
        op_type = OperationType(match.group(1).lower())
        name = match.group(2)
    else:
        op_type = OperationType.QUERY
        name = None

    field_match = _FIRST_FIELD_RE.search(text)
    endpoint = field_match.group(1) if field_match else None
    return GraphQLOperation(type=op_type, name=name, endpoint=endpoint)


def is_idempotent(operation: GraphQLOperation) -> bool:
    """Only queries are safe to repeat."""
    return operation.type is OperationType.QUERY


__all__ = [
    "ENDPOINT_POLICIES",
    "EndpointPolicy",
    "GraphQLOperation",
    "OperationType",
    "compute_delay",
    "detect_operation",
    "is_idempotent",
    "parse_retry_after",
    "policy_for_endpoint",
    "policy_name_for_endpoint",
    "resolve_delay",
    "should_retry",
]
