"""Backoff-retry executor turning handler calls into Outcome records.

Usage:
    executor = BackoffRetryExecutor(max_attempts=3, base_delay=1.0)
    outcome = await executor.run(capability, request)

Delay before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)``. Retryable
failures and timeouts consume attempts; fatal failures stop immediately.
Nothing but ``asyncio.CancelledError`` escapes ``run``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import tenacity

from agent_dispatch.agent.handlers import invoke_handler
from agent_dispatch.agent.registry import Capability
from agent_dispatch.config import DispatchConfig
from agent_dispatch.errors import CapabilityError, RetryableError
from agent_dispatch.obs.metrics import Timer, estimate_size
from agent_dispatch.types import Outcome, OutcomeStatus, Request

logger = logging.getLogger(__name__)

_RETRYABLE = (RetryableError, asyncio.TimeoutError, TimeoutError)

SleepFunc = Callable[[float], Awaitable[Any]]


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)) and not str(exc):
        return "timed out"
    message = str(exc)
    if isinstance(exc, CapabilityError):
        return message or exc.__class__.__name__
    return f"{exc.__class__.__name__}: {message}" if message else exc.__class__.__name__


class BackoffRetryExecutor:
    """Runs one capability handler with bounded retries and exponential delay.

    Args:
        max_attempts: Default attempt budget (>= 1).
        base_delay: Default delay in seconds before the second attempt.
        timeout_seconds: Default per-attempt timeout.
        sleep: Awaitable sleep used between attempts; tests inject a recorder.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        timeout_seconds: float = 30.0,
        sleep: SleepFunc | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.timeout_seconds = timeout_seconds
        self._sleep: SleepFunc = sleep or asyncio.sleep

    @classmethod
    def from_config(
        cls, config: DispatchConfig, *, sleep: SleepFunc | None = None
    ) -> "BackoffRetryExecutor":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            timeout_seconds=config.timeout_seconds,
            sleep=sleep,
        )

    async def run(
        self,
        capability: Capability,
        request: Request,
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        timeout: float | None = None,
    ) -> Outcome:
        attempts_budget = max_attempts if max_attempts is not None else self.max_attempts
        delay = base_delay if base_delay is not None else self.base_delay
        if timeout is None:
            timeout = request.timeout_seconds or self.timeout_seconds

        retryer = tenacity.AsyncRetrying(
            sleep=self._sleep,
            stop=tenacity.stop_after_attempt(attempts_budget),
            wait=tenacity.wait_exponential(multiplier=delay, min=delay),
            retry=tenacity.retry_if_exception_type(_RETRYABLE),
            before_sleep=self._log_retry(capability, request),
            reraise=False,
        )

        attempts = 0
        text = ""
        with Timer() as timer:
            try:
                async for attempt in retryer:
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        text = await asyncio.wait_for(
                            invoke_handler(capability.handler, request), timeout
                        )
            except tenacity.RetryError as exc:
                error = _describe(exc.last_attempt.exception())
                logger.error(
                    "Capability %s gave up after %d attempts for request %s: %s",
                    capability.name,
                    attempts,
                    request.correlation_id,
                    error,
                )
                return self._outcome(
                    capability, OutcomeStatus.RETRY_EXHAUSTED, attempts, timer, error=error
                )
            except CapabilityError as exc:
                error = _describe(exc)
                logger.error(
                    "Capability %s failed fatally for request %s: %s",
                    capability.name,
                    request.correlation_id,
                    error,
                )
                return self._outcome(
                    capability, OutcomeStatus.FATAL, attempts, timer, error=error
                )
            except Exception as exc:
                logger.exception(
                    "Capability %s raised unexpectedly for request %s",
                    capability.name,
                    request.correlation_id,
                )
                return self._outcome(
                    capability, OutcomeStatus.FATAL, attempts, timer, error=_describe(exc)
                )

        return self._outcome(capability, OutcomeStatus.SUCCESS, attempts, timer, text=text)

    @staticmethod
    def _outcome(
        capability: Capability,
        status: OutcomeStatus,
        attempts: int,
        timer: Timer,
        *,
        text: str = "",
        error: str | None = None,
    ) -> Outcome:
        return Outcome(
            capability=capability.name,
            status=status,
            text=text,
            error=error,
            attempts=attempts,
            duration_ms=timer.current_ms(),
            size=estimate_size(text),
        )

    @staticmethod
    def _log_retry(
        capability: Capability, request: Request
    ) -> Callable[[tenacity.RetryCallState], None]:
        def _before_sleep(retry_state: tenacity.RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "Capability %s attempt %d failed for request %s: %s; retrying in %.2fs",
                capability.name,
                retry_state.attempt_number,
                request.correlation_id,
                _describe(exc),
                wait,
            )

        return _before_sleep
