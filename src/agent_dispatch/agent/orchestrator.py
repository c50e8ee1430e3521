"""Orchestrator composing router, executor, metrics and history."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from enum import Enum
from typing import Any

from agent_dispatch.agent.executor import BackoffRetryExecutor, SleepFunc
from agent_dispatch.agent.registry import Capability, CapabilityRegistry
from agent_dispatch.agent.router import RequestRouter
from agent_dispatch.config import DispatchConfig, DispatchMode
from agent_dispatch.memory.history import HistoryBuffer
from agent_dispatch.obs.metrics import MetricsCollector, Timer, estimate_size
from agent_dispatch.types import DispatchResponse, Outcome, OutcomeStatus, Request, Role

logger = logging.getLogger(__name__)

NO_CAPABILITY_SENTINEL = "<none>"
NO_MATCH_MESSAGE = "No capability matched this request."
ALL_FAILED_MESSAGE = "All capabilities failed to handle this request."
CANCELLED_MESSAGE = "The request was cancelled before any capability completed."


class OrchestratorState(str, Enum):
    IDLE = "idle"
    ROUTING = "routing"
    DISPATCHING = "dispatching"
    AGGREGATING = "aggregating"


class Orchestrator:
    """Single request-handling entry point for one conversation session.

    The orchestrator exclusively owns its history buffer and metrics
    collector; only the registry is shared. ``handle`` never raises for
    capability failures: they come back as Outcome data inside the response.

    Each request reaches the capabilities carrying the earlier turns and
    the session's ``session_data`` dict, where stateful tools keep their state.

    Args:
        registry: Shared, read-only capability registry.
        config: Retry, history and dispatch policy.
        router: Optional router override (defaults to keyword/trigger router).
        executor: Optional executor override.
        sleep: Sleep used by the default executor between attempts.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        config: DispatchConfig | None = None,
        *,
        router: RequestRouter | None = None,
        executor: BackoffRetryExecutor | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        self.config = config or DispatchConfig()
        self.registry = registry
        self.router = router or RequestRouter(registry)
        self.executor = executor or BackoffRetryExecutor.from_config(self.config, sleep=sleep)
        self.history = HistoryBuffer(self.config.history_budget)
        self.metrics = MetricsCollector()
        self.session_data: dict[str, Any] = {}
        self._state = OrchestratorState.IDLE
        self._cancel_event = asyncio.Event()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> OrchestratorState:
        return self._state

    def cancel(self) -> None:
        """Abort the in-flight request at its next suspension point."""
        self._cancel_event.set()

    async def handle(self, request: Request | str) -> DispatchResponse:
        if isinstance(request, str):
            request = Request(text=request)

        async with self._lock:
            self._cancel_event.clear()
            request = replace(
                request,
                history=self.history.snapshot(),
                session_data=self.session_data,
            )
            try:
                return await self._handle(request)
            finally:
                self._state = OrchestratorState.IDLE

    async def _handle(self, request: Request) -> DispatchResponse:
        with Timer() as timer:
            self._state = OrchestratorState.ROUTING
            selected = await self.router.aselect(request)

            if selected:
                self._state = OrchestratorState.DISPATCHING
                outcomes = await self._dispatch(request, selected)
            else:
                outcomes = [self._no_match_outcome()]

            self._state = OrchestratorState.AGGREGATING
            text = self.aggregate(outcomes)
            for outcome in outcomes:
                if outcome.status is not OutcomeStatus.NO_MATCH:
                    self.metrics.record(outcome)
            self.history.add(Role.USER, request.text)
            self.history.add(Role.ASSISTANT, text)

        logger.info(
            "Request %s handled by %d capability(ies) in %.0fms: %s",
            request.correlation_id,
            len(selected),
            timer.elapsed_ms,
            ", ".join(f"{o.capability}={o.status.value}" for o in outcomes),
        )
        return DispatchResponse(
            correlation_id=request.correlation_id,
            text=text,
            outcomes=tuple(outcomes),
            latency_ms=timer.elapsed_ms,
        )

    async def _dispatch(
        self, request: Request, selected: tuple[Capability, ...]
    ) -> list[Outcome]:
        tasks: list[asyncio.Task[Outcome]] = []
        try:
            if self.config.dispatch_mode is DispatchMode.PARALLEL:
                tasks = [
                    asyncio.create_task(self.executor.run(capability, request))
                    for capability in selected
                ]
                await self._join(tasks)
            else:
                for capability in selected:
                    if self._cancel_event.is_set():
                        break
                    task = asyncio.create_task(self.executor.run(capability, request))
                    tasks.append(task)
                    await self._join([task])
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        outcomes: list[Outcome] = []
        for index, capability in enumerate(selected):
            task = tasks[index] if index < len(tasks) else None
            outcomes.append(self._collect(capability, task))
        return outcomes

    async def _join(self, tasks: list[asyncio.Task[Outcome]]) -> None:
        """Wait for ``tasks``; on cancellation, cancel the ones still running."""
        cancel_waiter = asyncio.create_task(self._cancel_event.wait())
        pending: set[asyncio.Future[object]] = set(tasks)
        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {cancel_waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                pending -= done
                if cancel_waiter in done:
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    return
        finally:
            cancel_waiter.cancel()

    @staticmethod
    def _collect(capability: Capability, task: asyncio.Task[Outcome] | None) -> Outcome:
        if task is None or task.cancelled():
            return Outcome(capability=capability.name, status=OutcomeStatus.CANCELLED)
        exc = task.exception()
        if exc is not None:
            logger.error("Executor for %s raised: %r", capability.name, exc)
            return Outcome(
                capability=capability.name,
                status=OutcomeStatus.FATAL,
                error=str(exc) or exc.__class__.__name__,
            )
        return task.result()

    def _no_match_outcome(self) -> Outcome:
        text = NO_MATCH_MESSAGE
        names = self.registry.names()
        if names:
            text = f"{text} Try asking about: {', '.join(names)}."
        return Outcome(
            capability=NO_CAPABILITY_SENTINEL,
            status=OutcomeStatus.NO_MATCH,
            text=text,
            size=estimate_size(text),
        )

    @staticmethod
    def aggregate(outcomes: list[Outcome]) -> str:
        """Fold outcomes into one response, in router selection order."""
        if len(outcomes) == 1 and outcomes[0].status is OutcomeStatus.NO_MATCH:
            return outcomes[0].text

        lines = [_format_outcome(outcome) for outcome in outcomes]
        if any(outcome.success for outcome in outcomes):
            return "\n".join(lines)
        if all(outcome.cancelled for outcome in outcomes):
            return "\n".join([CANCELLED_MESSAGE, *lines])
        return "\n".join([ALL_FAILED_MESSAGE, *lines])


def _format_outcome(outcome: Outcome) -> str:
    if outcome.success:
        return f"{outcome.capability}: {outcome.text}"
    if outcome.cancelled:
        return f"{outcome.capability}: cancelled"
    return f"{outcome.capability}: failed ({outcome.status.value}): {outcome.error}"
