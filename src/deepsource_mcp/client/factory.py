"""DeepSourceClient facade and executor wiring.

``DeepSourceClient`` owns exactly one transport and one executor and shares
them with every domain client, so circuit breakers and retry budgets see the
whole server's traffic.
"""

from __future__ import annotations

from typing import Any

import httpx

from deepsource_mcp.client.issues import IssuesClient
from deepsource_mcp.client.metrics import MetricsClient
from deepsource_mcp.client.projects import ProjectsClient
from deepsource_mcp.client.runs import RunsClient
from deepsource_mcp.client.security import SecurityClient
from deepsource_mcp.client.transport import GraphQLTransport
from deepsource_mcp.core.config import ServerConfig
from deepsource_mcp.core.errors import ErrorClassifier
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger
from deepsource_mcp.execution import (
    CircuitBreakerRegistry,
    DirectExecutor,
    RequestExecutor,
    RetryBudgetManager,
    RetryingExecutor,
)


def build_executor(
    transport: GraphQLTransport,
    config: ServerConfig,
    logger: DeepSourceLogger | None = None,
) -> RequestExecutor:
    """RetryingExecutor when retries are enabled, DirectExecutor otherwise."""
    log = logger or get_logger("executor")
    classifier = ErrorClassifier()

    if not config.retry.enabled:
        log.info("executor_selected", kind="direct")
        return DirectExecutor(transport, classifier, log)

    breakers = (
        CircuitBreakerRegistry(config.circuit_breaker, logger=log.child("circuit_breaker"))
        if config.circuit_breaker.enabled
        else None
    )
    budget = RetryBudgetManager(
        config.retry.budget_per_minute,
        logger=log.child("retry_budget"),
    )
    log.info(
        "executor_selected",
        kind="retrying",
        max_attempts=config.retry.max_attempts,
        circuit_breaker=breakers is not None,
        budget_per_minute=config.retry.budget_per_minute,
    )
    return RetryingExecutor(
        transport,
        classifier,
        config.retry.to_client_config(),
        log,
        breakers=breakers,
        budget=budget,
    )


class DeepSourceClient:
    """Entry point to the DeepSource API, grouped by domain.

    Attributes:
        projects: Project listing and lookup.
        issues: Project issues.
        runs: Analysis runs and their issues.
        metrics: Quality metrics, thresholds and history.
        security: Compliance reports and dependency vulnerabilities.
    """

    def __init__(
        self,
        transport: GraphQLTransport,
        executor: RequestExecutor,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        self._transport = transport
        self._executor = executor
        self._logger = logger or get_logger("client")

        self.projects = ProjectsClient(executor, self._logger.child("projects"))
        self.issues = IssuesClient(executor, self._logger.child("issues"))
        self.runs = RunsClient(executor, self._logger.child("runs"))
        self.metrics = MetricsClient(executor, self._logger.child("metrics"))
        self.security = SecurityClient(executor, self._logger.child("security"))

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        logger: DeepSourceLogger | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> DeepSourceClient:
        """Build the transport and executor described by ``config``.

        Raises:
            ConfigurationError: If no API key is configured.
        """
        log = logger or get_logger("client")
        transport = GraphQLTransport.from_config(
            config.client,
            http_transport=http_transport,
            logger=log.child("transport"),
        )
        executor = build_executor(transport, config, log.child("executor"))
        return cls(transport, executor, log)

    @property
    def transport(self) -> GraphQLTransport:
        return self._transport

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    def health(self) -> dict[str, Any]:
        """Circuit breaker and retry budget statistics, when retrying.

        Reported by ``deepsource-mcp health``.
        """
        if not isinstance(self._executor, RetryingExecutor):
            return {"executor": "direct"}
        breakers = self._executor.breakers
        budget = self._executor.budget
        return {
            "executor": "retrying",
            "circuit_breakers": breakers.all_stats() if breakers is not None else {},
            "retry_budgets": budget.all_stats() if budget is not None else {},
        }

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> DeepSourceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["DeepSourceClient", "build_executor"]
