"""Tests for deepsource_mcp.execution.circuit_breaker module."""

import pytest

from deepsource_mcp.core.config import CircuitBreakerConfig
from deepsource_mcp.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerStats,
    CircuitState,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker(
        name="runs",
        failure_threshold=3,
        failure_window=60.0,
        recovery_timeout=30.0,
        success_threshold=2,
        half_open_max_calls=2,
        clock=clock,
    )


class TestCircuitState:
    """Tests for CircuitState enum."""

    def test_states_exist(self):
        assert CircuitState.CLOSED == "closed"
        assert CircuitState.OPEN == "open"
        assert CircuitState.HALF_OPEN == "half_open"


class TestCircuitBreakerInitialization:
    def test_default_values(self):
        cb = CircuitBreaker()
        assert cb.name == "default"
        assert cb.get_state() == CircuitState.CLOSED
        assert cb.stats == CircuitBreakerStats()

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"failure_threshold": 0}, "failure_threshold must be at least 1"),
            ({"failure_window": 0}, "failure_window must be positive"),
            ({"recovery_timeout": -1.0}, "recovery_timeout must be positive"),
            ({"success_threshold": 0}, "success_threshold must be at least 1"),
            ({"half_open_max_calls": 0}, "half_open_max_calls must be at least 1"),
        ],
    )
    def test_invalid_arguments(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            CircuitBreaker(**kwargs)

    def test_from_config(self, clock):
        config = CircuitBreakerConfig(failure_threshold=7, recovery_timeout_seconds=12)
        cb = CircuitBreaker.from_config("projects", config, clock=clock)
        assert cb.name == "projects"
        assert "0/7" in repr(cb)

    def test_repr(self, breaker):
        result = repr(breaker)
        assert "runs" in result
        assert "closed" in result
        assert "0/3" in result


class TestCircuitBreakerClosedState:
    def test_can_execute_when_closed(self, breaker):
        assert breaker.can_execute()

    def test_opens_at_threshold(self, breaker):
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.get_state() == CircuitState.CLOSED

        breaker.record_failure()
        assert breaker.get_state() == CircuitState.OPEN
        assert not breaker.can_execute()
        assert breaker.stats.times_opened == 1
        assert breaker.stats.rejected_calls == 1

    def test_failures_outside_window_expire(self, breaker, clock):
        breaker.record_failure()
        breaker.record_failure()
        clock.advance(61)
        breaker.record_failure()

        assert breaker.get_state() == CircuitState.CLOSED
        assert breaker.stats.failures_in_window == 1

    def test_success_does_not_clear_window(self, breaker):
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.get_state() == CircuitState.OPEN


class TestCircuitBreakerRecovery:
    def _open(self, breaker: CircuitBreaker) -> None:
        for _ in range(3):
            breaker.record_failure()

    def test_time_until_retry(self, breaker, clock):
        assert breaker.time_until_retry() is None
        self._open(breaker)
        clock.advance(10)
        assert breaker.time_until_retry() == pytest.approx(20.0)

    def test_half_open_after_recovery_timeout(self, breaker, clock):
        self._open(breaker)
        clock.advance(30)
        assert breaker.get_state() == CircuitState.HALF_OPEN

    def test_half_open_limits_probes(self, breaker, clock):
        self._open(breaker)
        clock.advance(30)

        assert breaker.can_execute()
        assert breaker.can_execute()
        assert not breaker.can_execute()

    def test_half_open_closes_after_successes(self, breaker, clock):
        self._open(breaker)
        clock.advance(30)
        breaker.can_execute()
        breaker.record_success()
        assert breaker.get_state() == CircuitState.HALF_OPEN
        breaker.record_success()

        assert breaker.get_state() == CircuitState.CLOSED
        assert breaker.stats.times_closed == 1
        assert breaker.stats.failures_in_window == 0

    def test_half_open_failure_reopens(self, breaker, clock):
        self._open(breaker)
        clock.advance(30)
        breaker.can_execute()
        breaker.record_failure()

        assert breaker.get_state() == CircuitState.OPEN
        assert breaker.stats.times_opened == 2

    def test_reset(self, breaker):
        self._open(breaker)
        breaker.reset()
        assert breaker.get_state() == CircuitState.CLOSED
        assert breaker.can_execute()
        assert breaker.stats.total_failures == 3


class TestCircuitBreakerStats:
    def test_to_dict(self, breaker):
        breaker.record_success()
        breaker.record_failure()
        result = breaker.get_stats().to_dict()

        assert result["state"] == "closed"
        assert result["total_successes"] == 1
        assert result["total_failures"] == 1
        assert result["failures_in_window"] == 1
        assert result["last_failure_at"] == 1000.0


class TestCircuitBreakerRegistry:
    def test_creates_one_breaker_per_endpoint(self, clock):
        registry = CircuitBreakerRegistry(CircuitBreakerConfig(), clock=clock)
        runs = registry.get("runs")

        assert registry.get("runs") is runs
        assert registry.get("projects") is not runs
        assert set(registry.all_stats()) == {"runs", "projects"}

    def test_breakers_are_independent(self, clock):
        registry = CircuitBreakerRegistry(CircuitBreakerConfig(failure_threshold=1), clock=clock)
        registry.get("runs").record_failure()

        assert registry.get("runs").get_state() == CircuitState.OPEN
        assert registry.get("projects").get_state() == CircuitState.CLOSED

    def test_reset_all(self, clock):
        registry = CircuitBreakerRegistry(CircuitBreakerConfig(failure_threshold=1), clock=clock)
        registry.get("runs").record_failure()
        registry.reset_all()
        assert registry.get("runs").get_state() == CircuitState.CLOSED
