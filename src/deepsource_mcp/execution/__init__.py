"""Request execution: retry policy, circuit breakers, retry budgets and executors."""

from deepsource_mcp.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerStats,
    CircuitState,
)
from deepsource_mcp.execution.executor import (
    DirectExecutor,
    GraphQLPoster,
    RequestExecutor,
    RetryingExecutor,
)
from deepsource_mcp.execution.retry_budget import BudgetStats, RetryBudget, RetryBudgetManager
from deepsource_mcp.execution.retry_policy import (
    EndpointPolicy,
    GraphQLOperation,
    OperationType,
    compute_delay,
    detect_operation,
    is_idempotent,
    policy_for_endpoint,
    resolve_delay,
    should_retry,
)

__all__ = [
    "BudgetStats",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerStats",
    "CircuitState",
    "DirectExecutor",
    "EndpointPolicy",
    "GraphQLOperation",
    "GraphQLPoster",
    "OperationType",
    "RequestExecutor",
    "RetryBudget",
    "RetryBudgetManager",
    "RetryingExecutor",
    "compute_delay",
    "detect_operation",
    "is_idempotent",
    "policy_for_endpoint",
    "resolve_delay",
    "should_retry",
]
