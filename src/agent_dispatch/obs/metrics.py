"""Timing, size estimation, and per-session metrics aggregation."""

from __future__ import annotations

import math
import time

from agent_dispatch.types import MetricSample, Outcome, OutcomeStatus

CHARS_PER_SIZE_UNIT = 4


def estimate_size(text: str) -> int:
    """Approximate token count: one size-unit per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_SIZE_UNIT)


class MetricsCollector:
    """Append-only log of outcome samples for one session.

    Samples live until an explicit ``reset()``; nothing is evicted implicitly.
    """

    def __init__(self) -> None:
        self._samples: list[MetricSample] = []

    def record(self, outcome: Outcome) -> MetricSample:
        sample = MetricSample(
            timestamp=outcome.timestamp,
            capability=outcome.capability,
            status=outcome.status,
            duration_ms=outcome.duration_ms,
            size=outcome.size,
        )
        self._samples.append(sample)
        return sample

    def samples(self) -> tuple[MetricSample, ...]:
        return tuple(self._samples)

    def reset(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    def summary(self) -> dict[str, float | int]:
        """Aggregate recorded samples for display or export."""
        samples = list(self._samples)
        count = len(samples)
        if count == 0:
            return {
                "count": 0,
                "success_count": 0,
                "failure_count": 0,
                "cancelled_count": 0,
                "success_rate": 0.0,
                "mean_duration_ms": 0.0,
                "p95_duration_ms": 0.0,
                "total_size": 0,
            }

        success_count = sum(1 for sample in samples if sample.success)
        cancelled_count = sum(
            1 for sample in samples if sample.status is OutcomeStatus.CANCELLED
        )
        durations = sorted(sample.duration_ms for sample in samples)
        p95_index = max(0, int((len(durations) * 0.95) - 1))

        return {
            "count": count,
            "success_count": success_count,
            "failure_count": count - success_count - cancelled_count,
            "cancelled_count": cancelled_count,
            "success_rate": success_count / count,
            "mean_duration_ms": sum(durations) / count,
            "p95_duration_ms": durations[p95_index],
            "total_size": sum(sample.size for sample in samples),
        }

    def format_summary(self) -> str:
        summary = self.summary()
        if summary["count"] == 0:
            return "No metrics available"
        return (
            f"Total Requests: {summary['count']}\n"
            f"Successful: {summary['success_count']} ({100.0 * summary['success_rate']:.1f}%)\n"
            f"Avg Duration: {summary['mean_duration_ms']:.0f}ms\n"
            f"Total Tokens: {summary['total_size']}"
        )


class Timer:
    """Simple context timer used around dispatch."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0

    def current_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000.0
