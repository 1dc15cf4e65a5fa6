"""Request executors: how a GraphQL document reaches the transport.

Domain clients depend only on the ``RequestExecutor`` protocol. Two
implementations exist:

- ``DirectExecutor``: one attempt, failures classified and raised.
- ``RetryingExecutor``: backoff retries guarded by endpoint policies,
  idempotency, per-endpoint circuit breakers and retry budgets.

Both always end a request with either the GraphQL ``data`` mapping or a
single ClassifiedError. ``asyncio.CancelledError`` is the one exception and
is always re-raised untouched.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from deepsource_mcp.core.config import EnhancedClientConfig
from deepsource_mcp.core.constants import TRUNCATE_QUERY_PREVIEW_CHARS
from deepsource_mcp.core.errors import (
    ClassifiedError,
    ErrorCategory,
    ErrorClassifier,
    RetryAttemptRecord,
)
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger
from deepsource_mcp.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)
from deepsource_mcp.execution.retry_budget import RetryBudgetManager
from deepsource_mcp.execution.retry_policy import (
    detect_operation,
    is_idempotent,
    policy_for_endpoint,
    resolve_delay,
    should_retry,
)

# Failures that say something about upstream health; anything else means
# the server answered and counts as a success for the breaker.
_BREAKER_FAILURE_CATEGORIES = frozenset({
    ErrorCategory.NETWORK,
    ErrorCategory.SERVER,
    ErrorCategory.TIMEOUT,
    ErrorCategory.RATE_LIMIT,
})


class GraphQLPoster(Protocol):
    """Anything that can POST a GraphQL document and return ``data``."""

    async def post(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]: ...


class RequestExecutor(Protocol):
    """Executes a GraphQL document and returns its ``data`` mapping.

    Raises:
        ClassifiedError: On any failure.
    """

    async def execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        endpoint: str | None = None,
    ) -> dict[str, Any]: ...


def _preview(query: str) -> str:
    compact = " ".join(query.split())
    if len(compact) <= TRUNCATE_QUERY_PREVIEW_CHARS:
        return compact
    return compact[:TRUNCATE_QUERY_PREVIEW_CHARS] + "..."


class DirectExecutor:
    """Single-attempt executor."""

    def __init__(
        self,
        transport: GraphQLPoster,
        classifier: ErrorClassifier | None = None,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        self._transport = transport
        self._classifier = classifier or ErrorClassifier()
        self._logger = logger or get_logger("executor")

    async def execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        endpoint: str | None = None,
    ) -> dict[str, Any]:
        name = endpoint or detect_operation(query).endpoint or "graphql"
        self._logger.debug("request_started", endpoint=name, query=_preview(query))

        try:
            return await self._transport.post(query, variables)
        except asyncio.CancelledError:
            self._logger.info("request_cancelled", endpoint=name, attempt=1)
            raise
        except Exception as exc:
            error = self._classifier.classify(exc).with_metadata(attempts=1, endpoint=name)
            self._logger.warning(
                "request_failed",
                endpoint=name,
                category=error.category.value,
                code=error.code,
                error=error.message,
            )
            raise error from exc


class RetryingExecutor:
    """Executor that retries transient failures with exponential backoff.

    Each ``execute`` call keeps its own attempt counter and attempt records;
    concurrent calls share only the read-only config and the breaker/budget
    registries.
    """

    def __init__(
        self,
        transport: GraphQLPoster,
        classifier: ErrorClassifier | None = None,
        config: EnhancedClientConfig | None = None,
        logger: DeepSourceLogger | None = None,
        *,
        breakers: CircuitBreakerRegistry | None = None,
        budget: RetryBudgetManager | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
        endpoint_policies: bool = True,
    ) -> None:
        self._transport = transport
        self._classifier = classifier or ErrorClassifier()
        self._config = config or EnhancedClientConfig()
        self._logger = logger or get_logger("executor")
        self._breakers = breakers
        self._budget = budget
        self._sleep = sleep
        self._rng = rng
        self._endpoint_policies = endpoint_policies

    @property
    def config(self) -> EnhancedClientConfig:
        return self._config

    @property
    def breakers(self) -> CircuitBreakerRegistry | None:
        return self._breakers

    @property
    def budget(self) -> RetryBudgetManager | None:
        return self._budget

    async def execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        endpoint: str | None = None,
    ) -> dict[str, Any]:
        operation = detect_operation(query)
        name = endpoint or operation.endpoint or "graphql"
        config = (
            policy_for_endpoint(name, self._config) if self._endpoint_policies else self._config
        )
        idempotent = is_idempotent(operation)
        breaker = self._breakers.get(name) if self._breakers is not None else None
        logger = self._logger.bind(endpoint=name)

        records: list[RetryAttemptRecord] = []
        attempt = 0

        logger.debug(
            "request_started",
            operation=operation.type.value,
            max_attempts=config.max_attempts,
            query=_preview(query),
        )

        while True:
            attempt += 1

            if breaker is not None and not breaker.can_execute():
                logger.warning("request_rejected_circuit_open", attempt=attempt)
                raise ClassifiedError(
                    ErrorCategory.SERVER,
                    f"Circuit breaker is open for endpoint '{name}'",
                    metadata={
                        "endpoint": name,
                        "attempts": attempt - 1,
                        "retry_after_seconds": breaker.time_until_retry(),
                    },
                    code="CIRCUIT_OPEN",
                )

            try:
                data = await self._transport.post(query, variables)
            except asyncio.CancelledError:
                logger.info("request_cancelled", attempt=attempt, phase="request")
                raise
            except Exception as exc:
                cause: BaseException = exc
                error = self._classifier.classify(exc)
            else:
                if breaker is not None:
                    breaker.record_success()
                if records:
                    logger.info(
                        "request_recovered",
                        attempts=attempt,
                        retries=[record.to_dict() for record in records],
                    )
                return data

            if breaker is not None:
                if error.category in _BREAKER_FAILURE_CATEGORIES:
                    breaker.record_failure()
                else:
                    breaker.record_success()

            stop_reason = self._stop_reason(error, attempt, config, idempotent, name, breaker)
            if stop_reason is not None:
                records.append(RetryAttemptRecord(attempt, 0.0, error.category))
                logger.warning(
                    "request_failed",
                    attempts=attempt,
                    category=error.category.value,
                    code=error.code,
                    reason=stop_reason,
                    error=error.message,
                    history=[record.to_dict() for record in records],
                )
                raise error.with_metadata(attempts=attempt, endpoint=name) from cause

            delay = resolve_delay(attempt, error, config, rng=self._rng)
            records.append(RetryAttemptRecord(attempt, delay, error.category))
            logger.info(
                "request_retrying",
                attempt=attempt,
                max_attempts=config.max_attempts,
                category=error.category.value,
                delay_seconds=round(delay, 3),
            )

            try:
                await self._sleep(delay)
            except asyncio.CancelledError:
                logger.info("request_cancelled", attempt=attempt, phase="backoff")
                raise

    def _stop_reason(
        self,
        error: ClassifiedError,
        attempt: int,
        config: EnhancedClientConfig,
        idempotent: bool,
        endpoint: str,
        breaker: CircuitBreaker | None,
    ) -> str | None:
        """Why the request must not be retried, or None if it may be."""
        if not should_retry(error.category, attempt, config):
            if attempt >= config.max_attempts:
                return "max_attempts_reached"
            return "not_retryable"
        if not idempotent:
            return "non_idempotent_operation"
        if breaker is not None and breaker.get_state() is CircuitState.OPEN:
            return "circuit_open"
        if self._budget is not None and not self._budget.consume(endpoint):
            return "retry_budget_exhausted"
        return None


__all__ = [
    "DirectExecutor",
    "GraphQLPoster",
    "RequestExecutor",
    "RetryingExecutor",
]
