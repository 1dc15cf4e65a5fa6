"""Circuit breaker pattern for DeepSource API endpoints.

Temporarily blocks calls to an endpoint after repeated failures so a
struggling upstream is not hammered by retries.

The circuit breaker has three states:
- CLOSED: Normal operation, requests flow through
- OPEN: Blocking requests after too many failures
- HALF_OPEN: Admitting a limited number of probes to test recovery

State transitions:
- CLOSED -> OPEN: When failure_threshold failures fall inside failure_window
- OPEN -> HALF_OPEN: After recovery_timeout has elapsed (checked lazily)
- HALF_OPEN -> CLOSED: After success_threshold successful probes
- HALF_OPEN -> OPEN: On any failure in half-open state

Example usage:
    from deepsource_mcp.execution.circuit_breaker import CircuitBreakerRegistry

    breakers = CircuitBreakerRegistry(config.circuit_breaker)
    breaker = breakers.get("projects")

    if breaker.can_execute():
        try:
            data = await transport.post(query, variables)
            breaker.record_success()
        except httpx.HTTPError:
            breaker.record_failure()
            raise
    else:
        wait_time = breaker.time_until_retry()
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import Enum
from threading import Lock
from typing import Any

from deepsource_mcp.core.config import CircuitBreakerConfig
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger


class CircuitState(str, Enum):
    """State of the circuit breaker."""

    CLOSED = "closed"
    """Normal operation - requests are allowed and failures are tracked."""

    OPEN = "open"
    """Blocking calls - requests are rejected, waiting for recovery timeout."""

    HALF_OPEN = "half_open"
    """Testing recovery - a bounded number of probes are allowed."""


@dataclass
class CircuitBreakerStats:
    """Statistics for circuit breaker monitoring."""

    state: str = CircuitState.CLOSED.value
    """State at the time the snapshot was taken."""

    total_successes: int = 0
    """Total number of successful operations recorded."""

    total_failures: int = 0
    """Total number of failed operations recorded."""

    failures_in_window: int = 0
    """Failures currently inside the sliding failure window."""

    times_opened: int = 0
    """Number of times the circuit has transitioned to OPEN state."""

    times_half_opened: int = 0
    """Number of times the circuit has transitioned to HALF_OPEN state."""

    times_closed: int = 0
    """Number of times the circuit has transitioned to CLOSED from another state."""

    rejected_calls: int = 0
    """Calls refused while OPEN or with the half-open probe quota spent."""

    last_failure_at: float | None = None
    """Clock reading of the most recent failure."""

    last_state_change_at: float | None = None
    """Clock reading of the most recent state transition."""

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for logging/serialization."""
        return asdict(self)


class CircuitBreaker:
    """Circuit breaker for one endpoint.

    Thread-safe: all state modifications are protected by a lock. The lock
    is never held across an ``await``.
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 5,
        failure_window: float = 60.0,
        recovery_timeout: float = 30.0,
        success_threshold: int = 3,
        half_open_max_calls: int = 5,
        clock: Callable[[], float] = time.monotonic,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            name: Name for this circuit breaker (usually the endpoint).
            failure_threshold: Failures inside ``failure_window`` that open the circuit.
            failure_window: Sliding window in seconds for counting failures.
            recovery_timeout: Seconds to stay OPEN before probing recovery.
            success_threshold: Successful probes that close a HALF_OPEN circuit.
            half_open_max_calls: Probes admitted while HALF_OPEN.
            clock: Monotonic time source, injectable for tests.
            logger: Logger to report state changes to.
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if failure_window <= 0:
            raise ValueError("failure_window must be positive")
        if recovery_timeout <= 0:
            raise ValueError("recovery_timeout must be positive")
        if success_threshold < 1:
            raise ValueError("success_threshold must be at least 1")
        if half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

        self._name = name
        self._failure_threshold = failure_threshold
        self._failure_window = failure_window
        self._recovery_timeout = recovery_timeout
        self._success_threshold = success_threshold
        self._half_open_max_calls = half_open_max_calls
        self._clock = clock
        self._logger = logger or get_logger("circuit_breaker")

        # State (protected by lock)
        self._state = CircuitState.CLOSED
        self._failures: deque[float] = deque()
        self._opened_at: float | None = None
        self._half_open_calls = 0
        self._half_open_successes = 0
        self._stats = CircuitBreakerStats()

        self._lock = Lock()

    @classmethod
    def from_config(
        cls,
        name: str,
        config: CircuitBreakerConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: DeepSourceLogger | None = None,
    ) -> CircuitBreaker:
        return cls(
            name=name,
            failure_threshold=config.failure_threshold,
            failure_window=config.failure_window_seconds,
            recovery_timeout=config.recovery_timeout_seconds,
            success_threshold=config.success_threshold,
            half_open_max_calls=config.half_open_max_calls,
            clock=clock,
            logger=logger,
        )

    @property
    def name(self) -> str:
        """Name of this circuit breaker."""
        return self._name

    @property
    def stats(self) -> CircuitBreakerStats:
        """Snapshot of the current statistics."""
        return self.get_stats()

    def get_state(self) -> CircuitState:
        """Get the current circuit state, applying OPEN -> HALF_OPEN if due."""
        with self._lock:
            self._maybe_transition_to_half_open()
            return self._state

    def _prune_failures(self, now: float) -> None:
        cutoff = now - self._failure_window
        while self._failures and self._failures[0] <= cutoff:
            self._failures.popleft()

    def _maybe_transition_to_half_open(self) -> None:
        """Must be called while holding the lock."""
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return

        elapsed = self._clock() - self._opened_at
        if elapsed >= self._recovery_timeout:
            self._set_state(CircuitState.HALF_OPEN, reason="recovery_timeout_elapsed")

    def _set_state(self, new_state: CircuitState, *, reason: str) -> None:
        """Must be called while holding the lock."""
        old_state = self._state
        if old_state == new_state:
            return

        now = self._clock()
        self._state = new_state
        self._stats.last_state_change_at = now

        if new_state == CircuitState.OPEN:
            self._stats.times_opened += 1
            self._opened_at = now
        elif new_state == CircuitState.HALF_OPEN:
            self._stats.times_half_opened += 1
            self._half_open_calls = 0
            self._half_open_successes = 0
        elif new_state == CircuitState.CLOSED:
            self._stats.times_closed += 1
            self._failures.clear()
            self._opened_at = None

        self._logger.info(
            "circuit_breaker.state_changed",
            name=self._name,
            from_state=old_state.value,
            to_state=new_state.value,
            reason=reason,
        )

    def can_execute(self) -> bool:
        """Check whether a request may be sent now.

        In HALF_OPEN state each allowed call consumes one probe slot.
        """
        with self._lock:
            self._maybe_transition_to_half_open()

            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls < self._half_open_max_calls:
                    self._half_open_calls += 1
                    return True

            self._stats.rejected_calls += 1
            return False

    def record_success(self) -> None:
        """Record a successful operation."""
        with self._lock:
            self._stats.total_successes += 1

            if self._state == CircuitState.HALF_OPEN:
                self._half_open_successes += 1
                if self._half_open_successes >= self._success_threshold:
                    self._set_state(CircuitState.CLOSED, reason="recovery_confirmed")

    def record_failure(self) -> None:
        """Record a failed operation."""
        with self._lock:
            now = self._clock()
            self._stats.total_failures += 1
            self._stats.last_failure_at = now

            if self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.OPEN, reason="recovery_test_failed")
                return

            if self._state == CircuitState.OPEN:
                return

            self._failures.append(now)
            self._prune_failures(now)
            if len(self._failures) >= self._failure_threshold:
                self._set_state(CircuitState.OPEN, reason="failure_threshold_exceeded")
            else:
                self._logger.debug(
                    "circuit_breaker.failure_recorded",
                    name=self._name,
                    failures_in_window=len(self._failures),
                    failure_threshold=self._failure_threshold,
                )

    def time_until_retry(self) -> float | None:
        """Seconds until the circuit may half-open, or None if it is not OPEN."""
        with self._lock:
            if self._state != CircuitState.OPEN or self._opened_at is None:
                return None
            remaining = self._recovery_timeout - (self._clock() - self._opened_at)
            return max(0.0, remaining)

    def get_stats(self) -> CircuitBreakerStats:
        """Return a copy of the current statistics."""
        with self._lock:
            self._prune_failures(self._clock())
            snapshot = CircuitBreakerStats(**asdict(self._stats))
            snapshot.state = self._state.value
            snapshot.failures_in_window = len(self._failures)
            return snapshot

    def reset(self) -> None:
        """Reset to CLOSED and forget failures. Lifetime statistics are kept."""
        with self._lock:
            old_state = self._state
            self._state = CircuitState.CLOSED
            self._failures.clear()
            self._opened_at = None
            self._half_open_calls = 0
            self._half_open_successes = 0

            if old_state != CircuitState.CLOSED:
                self._stats.times_closed += 1
                self._stats.last_state_change_at = self._clock()
                self._logger.info(
                    "circuit_breaker.reset",
                    name=self._name,
                    from_state=old_state.value,
                )

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self._name!r}, state={self._state.value}, "
            f"failures={len(self._failures)}/{self._failure_threshold})"
        )


class CircuitBreakerRegistry:
    """Lazily creates one CircuitBreaker per endpoint from shared config."""

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._logger = logger or get_logger("circuit_breaker")
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = Lock()

    def get(self, endpoint: str) -> CircuitBreaker:
        """Return the breaker for ``endpoint``, creating it on first use."""
        with self._lock:
            breaker = self._breakers.get(endpoint)
            if breaker is None:
                breaker = CircuitBreaker.from_config(
                    endpoint,
                    self._config,
                    clock=self._clock,
                    logger=self._logger,
                )
                self._breakers[endpoint] = breaker
            return breaker

    def all_stats(self) -> dict[str, dict[str, Any]]:
        """Statistics for every breaker created so far, keyed by endpoint."""
        with self._lock:
            breakers = list(self._breakers.items())
        return {name: breaker.get_stats().to_dict() for name, breaker in breakers}

    def reset_all(self) -> None:
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.reset()


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerStats",
    "CircuitState",
]
