from agent_dispatch.obs.metrics import MetricsCollector, Timer
from agent_dispatch.types import Outcome, OutcomeStatus


def _outcome(status: OutcomeStatus, duration_ms: float, size: int = 0) -> Outcome:
    return Outcome(capability="travel", status=status, duration_ms=duration_ms, size=size)


def test_empty_summary_is_all_zero() -> None:
    summary = MetricsCollector().summary()

    assert summary["count"] == 0
    assert summary["success_rate"] == 0.0
    assert summary["mean_duration_ms"] == 0.0
    assert summary["total_size"] == 0


def test_summary_aggregates_recorded_outcomes() -> None:
    metrics = MetricsCollector()
    metrics.record(_outcome(OutcomeStatus.SUCCESS, 100.0, size=10))
    metrics.record(_outcome(OutcomeStatus.SUCCESS, 300.0, size=5))
    metrics.record(_outcome(OutcomeStatus.RETRY_EXHAUSTED, 200.0))
    metrics.record(_outcome(OutcomeStatus.CANCELLED, 0.0))

    summary = metrics.summary()

    assert summary["count"] == 4
    assert summary["success_count"] == 2
    assert summary["failure_count"] == 1
    assert summary["cancelled_count"] == 1
    assert summary["success_rate"] == summary["success_count"] / summary["count"]
    assert summary["mean_duration_ms"] == 150.0
    assert summary["total_size"] == 15


def test_count_tracks_record_calls_since_reset() -> None:
    metrics = MetricsCollector()
    for _ in range(3):
        metrics.record(_outcome(OutcomeStatus.SUCCESS, 1.0))

    metrics.reset()
    metrics.record(_outcome(OutcomeStatus.FATAL, 1.0))

    assert metrics.summary()["count"] == 1
    assert metrics.summary()["success_rate"] == 0.0
    assert len(metrics.samples()) == 1


def test_format_summary_reports_success_percentage() -> None:
    metrics = MetricsCollector()
    assert metrics.format_summary() == "No metrics available"

    metrics.record(_outcome(OutcomeStatus.SUCCESS, 10.0, size=3))
    metrics.record(_outcome(OutcomeStatus.FATAL, 30.0))

    text = metrics.format_summary()
    assert "Total Requests: 2" in text
    assert "Successful: 1 (50.0%)" in text
    assert "Total Tokens: 3" in text


def test_timer_measures_elapsed_time() -> None:
    with Timer() as timer:
        sum(range(1000))

    assert timer.elapsed_ms >= 0.0
