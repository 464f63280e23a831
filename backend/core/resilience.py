"""Retry and circuit breaking around upstream calls.

One :class:`ResilientClient` (and therefore one :class:`CircuitBreaker`) exists
per upstream endpoint category.  Every transport attempt passes through the
breaker, so ``failure_threshold`` consecutive failed attempts open it, and an
open breaker also stops the retry loop of a call already in progress.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential
from tenacity.stop import stop_base

from .errors import TransportError, UpstreamUnavailable, WeatherApiError

if TYPE_CHECKING:  # pragma: no cover
    from .health import HealthRegistry

T = TypeVar("T")

Fallback = Callable[[Optional[BaseException]], Any]


class BreakerStatus(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class BreakerState:
    state: BreakerStatus = BreakerStatus.CLOSED
    consecutive_failures: int = 0
    opened_at: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "opened_at": self.opened_at,
        }


@dataclass
class BreakerConfig:
    failure_threshold: int = 5
    open_seconds: float = 30.0


@dataclass
class RetryConfig:
    max_attempts: int = 3
    wait_seconds: float = 0.5
    backoff_multiplier: float = 2.0


def unavailable_fallback(exc: Optional[BaseException]) -> Any:
    raise UpstreamUnavailable("Upstream service is currently unavailable. Please try again later.") from exc


class CircuitBreaker:
    """CLOSED -> OPEN -> HALF_OPEN state machine guarding one endpoint."""

    def __init__(
        self,
        name: str,
        config: Optional[BreakerConfig] = None,
        time_func: Callable[[], float] = time.monotonic,
        listener: Optional[Callable[[str, BreakerState], None]] = None,
    ) -> None:
        self.name = name
        self.config = config or BreakerConfig()
        self._time_func = time_func
        self._listener = listener
        self._lock = threading.Lock()
        self._state = BreakerState()
        self._trial_in_flight = False
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def state(self) -> BreakerStatus:
        return self.snapshot().state

    def snapshot(self) -> BreakerState:
        with self._lock:
            return self._state

    def execute(self, call: Callable[[], T], fallback: Fallback = unavailable_fallback) -> T:
        if not self.try_acquire():
            return fallback(None)
        try:
            result = call()
        except WeatherApiError:
            self.release()
            raise
        except Exception as exc:  # noqa: BLE001 - every fault counts against the breaker
            self.on_failure()
            return fallback(exc)
        self.on_success()
        return result

    # Permission / outcome primitives ------------------------------------
    def try_acquire(self) -> bool:
        """Return whether a call may reach the upstream right now."""
        with self._lock:
            current = self._state
            if current.state is BreakerStatus.CLOSED:
                return True
            if current.state is BreakerStatus.OPEN:
                elapsed = self._time_func() - (current.opened_at or 0.0)
                if elapsed < self.config.open_seconds:
                    return False
                self._transition(BreakerState(BreakerStatus.HALF_OPEN, current.consecutive_failures, current.opened_at))
                self._trial_in_flight = True
                return True
            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
            return True

    def release(self) -> None:
        """Give back a permission without recording an outcome."""
        with self._lock:
            self._trial_in_flight = False

    def on_success(self) -> None:
        with self._lock:
            current = self._state
            if current.state is BreakerStatus.OPEN:
                # Late result from a call admitted before the breaker opened.
                return
            self._trial_in_flight = False
            if current.state is BreakerStatus.HALF_OPEN:
                self._transition(BreakerState(BreakerStatus.CLOSED, 0, None))
            elif current.consecutive_failures:
                self._state = BreakerState(BreakerStatus.CLOSED, 0, None)

    def on_failure(self) -> None:
        with self._lock:
            current = self._state
            failures = current.consecutive_failures + 1
            if current.state is BreakerStatus.HALF_OPEN:
                self._trial_in_flight = False
                self._transition(BreakerState(BreakerStatus.OPEN, failures, self._time_func()))
            elif current.state is BreakerStatus.CLOSED and failures >= self.config.failure_threshold:
                self._transition(BreakerState(BreakerStatus.OPEN, failures, self._time_func()))
            else:
                self._state = BreakerState(current.state, failures, current.opened_at)

    def _transition(self, new_state: BreakerState) -> None:
        previous = self._state.state
        self._state = new_state
        if previous is not new_state.state:
            self._log.warning(
                "Circuit breaker %s transitioned %s -> %s (failures=%s)",
                self.name,
                previous.value,
                new_state.state.value,
                new_state.consecutive_failures,
            )
        if self._listener is not None:
            self._listener(self.name, new_state)


class CallNotPermitted(Exception):
    """The breaker refused an attempt; never retried."""


class stop_when_cancelled(stop_base):
    """Stop retrying once the caller is known to be gone."""

    def __init__(self, cancelled: Optional[Callable[[], bool]], log: logging.Logger, name: str) -> None:
        self.cancelled = cancelled
        self.log = log
        self.name = name

    def __call__(self, retry_state: RetryCallState) -> bool:
        if self.cancelled is None or not self.cancelled():
            return False
        self.log.info("%s: caller gone, not retrying", self.name)
        return True


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and exc.transient


class ResilientClient:
    """Run upstream calls with retries behind a circuit breaker.

    Transient :class:`TransportError` failures are retried up to
    ``RetryConfig.max_attempts`` attempts; non-transient ones are not.  When
    the breaker refuses a call or the attempts run out, ``fallback`` decides
    the result; the default raises :class:`UpstreamUnavailable`.
    """

    def __init__(
        self,
        name: str,
        breaker: Optional[CircuitBreaker] = None,
        retry_config: Optional[RetryConfig] = None,
        sleep_func: Callable[[float], None] = time.sleep,
        health: Optional["HealthRegistry"] = None,
    ) -> None:
        self.name = name
        self.breaker = breaker or CircuitBreaker(name)
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep_func
        self._health = health
        self._log = logging.getLogger(self.__class__.__name__)

    def execute(
        self,
        call: Callable[[], T],
        fallback: Fallback = unavailable_fallback,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(max(self.retry_config.max_attempts, 1))
            | stop_when_cancelled(cancelled, self._log, self.name),
            wait=wait_exponential(
                multiplier=self.retry_config.wait_seconds,
                exp_base=self.retry_config.backoff_multiplier,
            ),
            retry=retry_if_exception(_is_transient),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return retrying(self._attempt, call)
        except WeatherApiError:
            raise
        except CallNotPermitted:
            self._log.warning("%s: circuit breaker is open, short-circuiting", self.name)
            return fallback(None)
        except TransportError as exc:
            self._log.error("%s: fallback activated: %s", self.name, exc)
            return fallback(exc)
        except Exception as exc:  # noqa: BLE001 - unexpected transport bugs are faults too
            self._log.error("%s: unexpected upstream failure", self.name, exc_info=exc)
            return fallback(exc)

    def _attempt(self, call: Callable[[], T]) -> T:
        if not self.breaker.try_acquire():
            raise CallNotPermitted(self.name)
        try:
            result = call()
        except WeatherApiError:
            self.breaker.release()
            raise
        except Exception as exc:
            self._record_failure(exc)
            raise
        self.breaker.on_success()
        return result

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self._log.warning(
            "%s: attempt %s/%s failed: %s",
            self.name,
            retry_state.attempt_number,
            self.retry_config.max_attempts,
            retry_state.outcome.exception(),
        )

    def _record_failure(self, exc: BaseException) -> None:
        self.breaker.on_failure()
        if self._health is not None:
            self._health.record_upstream_error(self.name)


__all__ = [
    "BreakerConfig",
    "BreakerState",
    "BreakerStatus",
    "CallNotPermitted",
    "CircuitBreaker",
    "ResilientClient",
    "RetryConfig",
    "unavailable_fallback",
]
