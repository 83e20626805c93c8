"""Metric and run result dataclasses for reviewload."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reviewload.http_client import RequestMetric

if TYPE_CHECKING:
    from reviewload.fixtures import FixtureSet

__all__ = [
    "CheckSummary",
    "MetricsSummary",
    "OutcomeRecord",
    "ProgressSnapshot",
    "RateSummary",
    "RequestMetric",
    "RunResult",
    "ThresholdResult",
    "TrendSummary",
]


@dataclass(frozen=True)
class OutcomeRecord:
    """Classified result of one workflow invocation.

    Folded into the registry as soon as it is produced and then discarded.

    Attributes:
        workflow_name: Which workflow produced the record.
        duration_ms: Wall-clock duration of the invocation in milliseconds.
        success: Whether the invocation counts as a success.
        real_error: Whether the invocation counts as a real error.
        status_code: HTTP status of the deciding response (0 on transport error).
    """

    workflow_name: str
    duration_ms: float
    success: bool
    real_error: bool
    status_code: int = 0


@dataclass
class TrendSummary:
    """Distribution summary of a duration metric, in milliseconds."""

    name: str
    count: int = 0
    avg: float = 0.0
    min: float = 0.0
    med: float = 0.0
    max: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    p999: float = 0.0


@dataclass
class RateSummary:
    """Summary of a boolean rate metric.

    Attributes:
        name: Metric name.
        passes: Number of ``True`` samples.
        fails: Number of ``False`` samples.
        rate: ``passes / (passes + fails)``, 0.0 when empty.
    """

    name: str
    passes: int = 0
    fails: int = 0
    rate: float = 0.0

    @property
    def count(self) -> int:
        return self.passes + self.fails


@dataclass
class CheckSummary:
    """Pass/fail counts of a single named check."""

    name: str
    passes: int = 0
    fails: int = 0


@dataclass
class MetricsSummary:
    """Point-in-time copy of every metric in the registry."""

    trends: dict[str, TrendSummary] = field(default_factory=dict)
    rates: dict[str, RateSummary] = field(default_factory=dict)
    checks: dict[str, CheckSummary] = field(default_factory=dict)


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of evaluating one threshold.

    Attributes:
        metric: Metric the threshold is bound to.
        expression: The original expression, e.g. ``p(95)<300``.
        actual: Aggregate value the expression was evaluated against.
        passed: Whether the expression held.
    """

    metric: str
    expression: str
    actual: float
    passed: bool


@dataclass
class ProgressSnapshot:
    """Per-tick view of the load phase, used for live display.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since the load phase started.
        target_callers: Scheduled concurrency for this tick.
        active_callers: Virtual callers actually running.
        iterations: Completed caller iterations so far.
        workflow_calls: Outcome records folded into the registry so far.
        real_errors: Real errors recorded so far.
    """

    timestamp: float
    elapsed_seconds: float
    target_callers: int
    active_callers: int
    iterations: int = 0
    workflow_calls: int = 0
    real_errors: int = 0


@dataclass
class RunResult:
    """Complete result of a load test run.

    Attributes:
        run_id: Identifier used to name this run's fixtures.
        base_url: Service the run targeted.
        start_time: Monotonic time when the run started.
        end_time: Monotonic time when the run completed.
        duration_seconds: Total wall-clock duration of the run.
        pattern_description: Human-readable description of the stages.
        fixtures: Provisioned fixtures, None if setup failed before that.
        snapshots: Per-tick progress of the load phase.
        summary: Final metric values.
        thresholds: Evaluated thresholds.
        setup_error: Why setup failed, None if it did not.
    """

    run_id: str
    base_url: str
    start_time: float
    end_time: float
    duration_seconds: float
    pattern_description: str
    fixtures: FixtureSet | None = None
    snapshots: list[ProgressSnapshot] = field(default_factory=list)
    summary: MetricsSummary = field(default_factory=MetricsSummary)
    thresholds: list[ThresholdResult] = field(default_factory=list)
    setup_error: str | None = None

    @property
    def setup_failed(self) -> bool:
        return self.setup_error is not None

    @property
    def passed(self) -> bool:
        """True when setup succeeded and every threshold held."""
        return not self.setup_failed and all(t.passed for t in self.thresholds)
