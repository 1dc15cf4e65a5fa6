"""Tests for deepsource_mcp.execution.retry_budget."""

import pytest

from deepsource_mcp.execution import RetryBudget, RetryBudgetManager


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestRetryBudget:
    def test_consume_until_exhausted(self, clock):
        budget = RetryBudget(max_retries=2, window=60.0, clock=clock)

        assert budget.consume()
        assert budget.consume()
        assert not budget.consume()
        assert budget.remaining() == 0
        assert budget.stats().total_rejected == 1

    def test_window_slides(self, clock):
        budget = RetryBudget(max_retries=1, window=60.0, clock=clock)
        assert budget.consume()
        assert not budget.can_retry()

        clock.now = 60.0
        assert budget.can_retry()
        assert budget.consume()

    def test_zero_budget_never_allows(self, clock):
        budget = RetryBudget(max_retries=0, clock=clock)
        assert not budget.can_retry()
        assert not budget.consume()

    def test_release(self, clock):
        budget = RetryBudget(max_retries=1, clock=clock)
        budget.consume()
        budget.release()
        assert budget.remaining() == 1
        assert budget.stats().total_consumed == 0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            RetryBudget(max_retries=-1)
        with pytest.raises(ValueError):
            RetryBudget(window=0)

    def test_stats(self, clock):
        budget = RetryBudget(max_retries=3, window=60.0, clock=clock)
        budget.consume()
        assert budget.stats().to_dict() == {
            "max_retries": 3,
            "window_seconds": 60.0,
            "used": 1,
            "remaining": 2,
            "total_consumed": 1,
            "total_rejected": 0,
        }


class TestRetryBudgetManager:
    def test_per_endpoint_budgets(self, clock):
        manager = RetryBudgetManager(default_max_retries=1, clock=clock)

        assert manager.consume("runs")
        assert not manager.consume("runs")
        assert manager.consume("projects")

    def test_global_budget_is_three_times_endpoint(self, clock):
        manager = RetryBudgetManager(default_max_retries=1, clock=clock)
        assert manager.global_budget.max_retries == 3

        for endpoint in ("a", "b", "c"):
            assert manager.consume(endpoint)
        assert not manager.consume("d")

    def test_rejected_endpoint_releases_global(self, clock):
        manager = RetryBudgetManager(default_max_retries=1, clock=clock)
        manager.consume("runs")
        manager.consume("runs")

        assert manager.global_budget.remaining() == 2

    def test_can_retry(self, clock):
        manager = RetryBudgetManager(default_max_retries=1, clock=clock)
        assert manager.can_retry("runs")
        manager.consume("runs")
        assert not manager.can_retry("runs")

    def test_all_stats_and_reset(self, clock):
        manager = RetryBudgetManager(default_max_retries=2, clock=clock)
        manager.consume("runs")

        stats = manager.all_stats()
        assert stats["global"]["used"] == 1
        assert stats["endpoints"]["runs"]["remaining"] == 1

        manager.reset_all()
        assert manager.get("runs").remaining() == 2
        assert manager.global_budget.remaining() == 6
