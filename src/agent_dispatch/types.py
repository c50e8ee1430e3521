"""Shared domain models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class OutcomeStatus(str, Enum):
    """Terminal state of one capability invocation."""

    SUCCESS = "success"
    RETRY_EXHAUSTED = "retry_exhausted"
    FATAL = "fatal"
    CANCELLED = "cancelled"
    NO_MATCH = "no_match"


@dataclass(frozen=True, slots=True)
class Request:
    """A single user-originated unit of work.

    ``history`` holds the session's earlier turns, oldest first, and
    ``session_data`` is the session's mutable scratch space shared by
    stateful tools. The orchestrator fills both before dispatch.
    """

    text: str
    correlation_id: str = field(default_factory=_new_correlation_id)
    created_at: datetime = field(default_factory=_utcnow)
    timeout_seconds: float | None = None
    history: tuple[Turn, ...] = ()
    session_data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def preview(self, limit: int = 50) -> str:
        if len(self.text) <= limit:
            return self.text
        return self.text[:limit] + "..."


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of one capability invocation, always produced and never raised."""

    capability: str
    status: OutcomeStatus
    text: str = ""
    error: str | None = None
    attempts: int = 0
    duration_ms: float = 0.0
    size: int = 0
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def cancelled(self) -> bool:
        return self.status is OutcomeStatus.CANCELLED


@dataclass(frozen=True, slots=True)
class Turn:
    """One logged exchange in conversation history."""

    role: Role
    text: str
    size: int


@dataclass(frozen=True, slots=True)
class MetricSample:
    """Projection of an Outcome into the metrics log."""

    timestamp: datetime
    capability: str
    status: OutcomeStatus
    duration_ms: float
    size: int

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass(frozen=True, slots=True)
class DispatchResponse:
    """Aggregated answer returned by the orchestrator for one request."""

    correlation_id: str
    text: str
    outcomes: tuple[Outcome, ...]
    latency_ms: float

    @property
    def matched(self) -> bool:
        return not any(o.status is OutcomeStatus.NO_MATCH for o in self.outcomes)
