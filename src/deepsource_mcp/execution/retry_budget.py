"""Sliding-window retry budgets.

A retry budget caps how many retries may be spent in a time window, so a
burst of failures cannot turn into a retry storm. The manager enforces a
per-endpoint budget and a global budget across all endpoints; a retry is
allowed only when both have room.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any

from deepsource_mcp.core.constants import (
    DEFAULT_RETRY_BUDGET_PER_MINUTE,
    GLOBAL_BUDGET_MULTIPLIER,
    RETRY_BUDGET_WINDOW_SECONDS,
)
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger


@dataclass
class BudgetStats:
    """Snapshot of a retry budget."""

    max_retries: int
    window_seconds: float
    used: int
    remaining: int
    total_consumed: int
    total_rejected: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RetryBudget:
    """Allows at most ``max_retries`` retries within a sliding ``window``."""

    def __init__(
        self,
        max_retries: int = DEFAULT_RETRY_BUDGET_PER_MINUTE,
        window: float = RETRY_BUDGET_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if window <= 0:
            raise ValueError("window must be positive")

        self._max_retries = max_retries
        self._window = window
        self._clock = clock
        self._timestamps: deque[float] = deque()
        self._total_consumed = 0
        self._total_rejected = 0
        self._lock = Lock()

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def can_retry(self) -> bool:
        """Whether a retry could be consumed right now."""
        with self._lock:
            self._prune(self._clock())
            return len(self._timestamps) < self._max_retries

    def consume(self) -> bool:
        """Consume one retry. Returns False (and consumes nothing) when exhausted."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._timestamps) >= self._max_retries:
                self._total_rejected += 1
                return False
            self._timestamps.append(now)
            self._total_consumed += 1
            return True

    def release(self) -> None:
        """Give back the most recently consumed retry."""
        with self._lock:
            if self._timestamps:
                self._timestamps.pop()
                self._total_consumed -= 1

    def remaining(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return self._max_retries - len(self._timestamps)

    def stats(self) -> BudgetStats:
        with self._lock:
            self._prune(self._clock())
            used = len(self._timestamps)
            return BudgetStats(
                max_retries=self._max_retries,
                window_seconds=self._window,
                used=used,
                remaining=self._max_retries - used,
                total_consumed=self._total_consumed,
                total_rejected=self._total_rejected,
            )

    def reset(self) -> None:
        with self._lock:
            self._timestamps.clear()


class RetryBudgetManager:
    """Per-endpoint budgets plus a global budget of ``GLOBAL_BUDGET_MULTIPLIER``x."""

    def __init__(
        self,
        default_max_retries: int = DEFAULT_RETRY_BUDGET_PER_MINUTE,
        window: float = RETRY_BUDGET_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        self._default_max_retries = default_max_retries
        self._window = window
        self._clock = clock
        self._logger = logger or get_logger("retry_budget")
        self._global = RetryBudget(
            default_max_retries * GLOBAL_BUDGET_MULTIPLIER, window, clock
        )
        self._budgets: dict[str, RetryBudget] = {}
        self._lock = Lock()

    @property
    def global_budget(self) -> RetryBudget:
        return self._global

    def get(self, endpoint: str) -> RetryBudget:
        """Return the budget for ``endpoint``, creating it on first use."""
        with self._lock:
            budget = self._budgets.get(endpoint)
            if budget is None:
                budget = RetryBudget(self._default_max_retries, self._window, self._clock)
                self._budgets[endpoint] = budget
            return budget

    def can_retry(self, endpoint: str) -> bool:
        return self._global.can_retry() and self.get(endpoint).can_retry()

    def consume(self, endpoint: str) -> bool:
        """Consume one retry from both the global and the endpoint budget.

        Nothing is consumed unless both budgets accept.
        """
        if not self._global.consume():
            self._logger.warning(
                "retry_budget.exhausted",
                scope="global",
                endpoint=endpoint,
            )
            return False

        if not self.get(endpoint).consume():
            self._global.release()
            self._logger.warning(
                "retry_budget.exhausted",
                scope="endpoint",
                endpoint=endpoint,
            )
            return False

        return True

    def all_stats(self) -> dict[str, Any]:
        with self._lock:
            budgets = list(self._budgets.items())
        return {
            "global": self._global.stats().to_dict(),
            "endpoints": {name: budget.stats().to_dict() for name, budget in budgets},
        }

    def reset_all(self) -> None:
        self._global.reset()
        with self._lock:
            budgets = list(self._budgets.values())
        for budget in budgets:
            budget.reset()


__all__ = ["BudgetStats", "RetryBudget", "RetryBudgetManager"]
