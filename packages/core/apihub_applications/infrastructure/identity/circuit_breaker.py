"""Async circuit breaker guarding calls to one remote dependency."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """States of a circuit breaker."""

    Closed = "closed"
    """Calls flow through; counted failures accumulate."""

    Open = "open"
    """Calls fail fast until the reset timeout passes."""

    HalfOpen = "half_open"
    """A limited number of probe calls decide whether to close or reopen."""


class CircuitOpenError(Exception):
    """Raised instead of making a call while the breaker is open."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Circuit breaker {name} is open")


class CircuitTimeoutError(Exception):
    """Raised when a guarded call exceeds the breaker's call timeout."""

    def __init__(self, name: str, timeout: float) -> None:
        self.name = name
        self.timeout = timeout
        super().__init__(f"Call guarded by circuit breaker {name} timed out after {timeout}s")


def _always(error: BaseException) -> bool:
    return True


class CircuitBreaker:
    """Circuit breaker with a rolling failure window and half-open probes.

    Usage:
        ```python
        breaker = CircuitBreaker("idms-production", failure_threshold=5)
        scopes = await breaker.call(lambda: connector.fetch_client_scopes(env, client_id))
        ```

    Only exceptions for which `is_failure` returns True count towards opening
    the breaker; any other outcome resets the consecutive-failure run.
    Timeouts always count.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        rolling_window_seconds: float = 60.0,
        reset_timeout_seconds: float = 30.0,
        call_timeout_seconds: float = 15.0,
        half_open_max_calls: int = 1,
        is_failure: Callable[[BaseException], bool] = _always,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.rolling_window_seconds = rolling_window_seconds
        self.reset_timeout_seconds = reset_timeout_seconds
        self.call_timeout_seconds = call_timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._is_failure = is_failure
        self._clock = clock

        self._state = CircuitState.Closed
        self._failures = 0
        self._first_failure_at: float | None = None
        self._opened_at: float | None = None
        self._half_open_in_flight = 0

    @property
    def state(self) -> CircuitState:
        """Current state; an open breaker turns half-open once the reset timeout passes."""
        if (
            self._state == CircuitState.Open
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self.reset_timeout_seconds
        ):
            self._transition(CircuitState.HalfOpen)
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failures

    def _transition(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return
        old_state = self._state
        self._state = new_state
        if new_state == CircuitState.Open:
            self._opened_at = self._clock()
        else:
            self._opened_at = None
        if new_state != CircuitState.HalfOpen:
            self._half_open_in_flight = 0
        if new_state == CircuitState.Closed:
            self._failures = 0
            self._first_failure_at = None
        logger.warning(
            "circuit_breaker_state_changed",
            breaker=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
        )

    def allow_request(self) -> bool:
        state = self.state
        if state == CircuitState.Closed:
            return True
        if state == CircuitState.HalfOpen:
            return self._half_open_in_flight < self.half_open_max_calls
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HalfOpen:
            self._transition(CircuitState.Closed)
        self._failures = 0
        self._first_failure_at = None

    def record_failure(self) -> None:
        if self._state == CircuitState.HalfOpen:
            self._transition(CircuitState.Open)
            return

        now = self._clock()
        if (
            self._first_failure_at is None
            or now - self._first_failure_at > self.rolling_window_seconds
        ):
            self._failures = 0
            self._first_failure_at = now
        self._failures += 1

        if self._failures >= self.failure_threshold:
            self._transition(CircuitState.Open)

    async def call(
        self,
        func: Callable[[], Awaitable[T]],
        is_failure: Callable[[BaseException], bool] | None = None,
    ) -> T:
        """Run `func` under the breaker.

        Args:
            func: Zero-argument coroutine factory making the call.
            is_failure: Overrides the breaker's own predicate for this call.

        Raises:
            CircuitOpenError: If the breaker refuses the call.
            CircuitTimeoutError: If the call exceeds the call timeout.
            Exception: Whatever `func` raises.
        """
        if not self.allow_request():
            raise CircuitOpenError(self.name)

        probing = self._state == CircuitState.HalfOpen
        if probing:
            self._half_open_in_flight += 1
        try:
            result = await asyncio.wait_for(func(), timeout=self.call_timeout_seconds)
        except asyncio.TimeoutError as e:
            self.record_failure()
            raise CircuitTimeoutError(self.name, self.call_timeout_seconds) from e
        except Exception as e:
            if (is_failure or self._is_failure)(e):
                self.record_failure()
            else:
                self.record_success()
            raise
        finally:
            if probing and self._half_open_in_flight > 0:
                self._half_open_in_flight -= 1

        self.record_success()
        return result


class CircuitBreakerRegistry:
    """One circuit breaker per environment, created on first use.

    Construct once at startup and share it so every connector guarding the
    same environment sees the same breaker state.
    """

    def __init__(
        self,
        prefix: str = "idms",
        failure_threshold: int = 5,
        rolling_window_seconds: float = 60.0,
        reset_timeout_seconds: float = 30.0,
        call_timeout_seconds: float = 15.0,
        half_open_max_calls: int = 1,
        is_failure: Callable[[BaseException], bool] = _always,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._prefix = prefix
        self._options = {
            "failure_threshold": failure_threshold,
            "rolling_window_seconds": rolling_window_seconds,
            "reset_timeout_seconds": reset_timeout_seconds,
            "call_timeout_seconds": call_timeout_seconds,
            "half_open_max_calls": half_open_max_calls,
            "is_failure": is_failure,
            "clock": clock,
        }
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, environment_id: str) -> CircuitBreaker:
        breaker = self._breakers.get(environment_id)
        if breaker is None:
            breaker = CircuitBreaker(f"{self._prefix}-{environment_id}", **self._options)  # type: ignore[arg-type]
            self._breakers[environment_id] = breaker
        return breaker

    def states(self) -> dict[str, CircuitState]:
        return {environment_id: b.state for environment_id, b in self._breakers.items()}
