"""Circuit breaker guarding the completion provider."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from classification_proxy.monitoring.metrics import circuit_breaker_state

logger = structlog.get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


_GAUGE_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""

    failure_threshold: int = 3
    reset_timeout: float = 60.0


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    CLOSED counts consecutive failures and opens at the threshold. OPEN
    rejects every call until the reset timeout elapses, then moves to
    HALF_OPEN, which admits a single probe: success closes the circuit,
    failure reopens it. A probe that never reports back is abandoned after
    another reset timeout so the breaker cannot wedge in HALF_OPEN.
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._probe_started_at: Optional[float] = None
        circuit_breaker_state.set(_GAUGE_VALUES[self._state])

    @property
    def state(self) -> CircuitState:
        """Current circuit state (may transition from OPEN to HALF_OPEN)."""
        if self._state == CircuitState.OPEN and self._is_timeout_expired(self._opened_at):
            self._transition(CircuitState.HALF_OPEN)
            self._probe_started_at = None
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def allow_request(self) -> bool:
        """Whether an outbound call may proceed now. Claims the probe in HALF_OPEN."""
        state = self.state
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.OPEN:
            return False

        if self._probe_started_at is not None and not self._is_timeout_expired(self._probe_started_at):
            return False
        self._probe_started_at = self._clock()
        logger.info("Circuit breaker admitting probe call")
        return True

    def record_success(self) -> None:
        """Record a successful call."""
        self._failure_count = 0
        self._probe_started_at = None
        if self._state != CircuitState.CLOSED:
            self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Record a failed call."""
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN:
            self._open()
        elif self._state == CircuitState.CLOSED and self._failure_count >= self._config.failure_threshold:
            self._open()

    def reset(self) -> None:
        """Force the circuit closed and clear the failure count."""
        self._failure_count = 0
        self._opened_at = None
        self._probe_started_at = None
        self._transition(CircuitState.CLOSED)

    def stats(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "failures": self._failure_count,
            "failure_threshold": self._config.failure_threshold,
            "reset_timeout_seconds": self._config.reset_timeout,
        }

    def _open(self) -> None:
        self._opened_at = self._clock()
        self._probe_started_at = None
        self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state != self._state:
            logger.warning(
                "Circuit breaker state change",
                from_state=self._state.value,
                to_state=new_state.value,
                failures=self._failure_count,
            )
        self._state = new_state
        circuit_breaker_state.set(_GAUGE_VALUES[new_state])

    def _is_timeout_expired(self, since: Optional[float]) -> bool:
        if since is None:
            return False
        return (self._clock() - since) >= self._config.reset_timeout
