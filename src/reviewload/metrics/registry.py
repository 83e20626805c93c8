"""Process-wide metric registry shared by every virtual caller.

The registry is the single owner of mutable metric state.  Callers never get
a reference to a distribution or counter; they submit immutable records
(``OutcomeRecord``, ``RequestMetric``, check results) and read back copies
through :meth:`MetricRegistry.summary`.  Every mutation happens under one
``threading.Lock`` so an outcome updates its duration trend, its success
rate and the real-error rate together or not at all.
"""

from __future__ import annotations

import re
import threading
from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError
from reviewload.metrics.histogram import DurationHistogram
from reviewload.metrics.models import (
    CheckSummary,
    MetricsSummary,
    RateSummary,
    TrendSummary,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from reviewload.metrics.models import OutcomeRecord, RequestMetric

DEACTIVATE_TEAM = "deactivate_team"
REASSIGN_REVIEWER = "reassign_reviewer"

HTTP_REQ_DURATION = "http_req_duration"
HTTP_REQ_FAILED = "http_req_failed"
REAL_ERRORS = "real_errors"
CHECKS = "checks"

# workflow name -> (duration trend, success rate)
WORKFLOW_METRICS: dict[str, tuple[str, str]] = {
    DEACTIVATE_TEAM: ("deactivate_team_duration_ms", "deactivate_team_success"),
    REASSIGN_REVIEWER: ("reassign_reviewer_duration_ms", "reassign_reviewer_success"),
}

_PERCENTILE = re.compile(r"p\((\d+(?:\.\d+)?)\)")


class Trend:
    """Duration distribution backed by an HDR histogram."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._histogram = DurationHistogram()

    @property
    def count(self) -> int:
        return self._histogram.count

    def add(self, value_ms: float) -> None:
        self._histogram.record(value_ms)

    def aggregate(self, method: str) -> float:
        """Return ``avg``, ``min``, ``med``, ``max``, ``count`` or ``p(N)``.

        Raises:
            ConfigError: If *method* is not a trend aggregate.
        """
        if method == "avg":
            return self._histogram.mean
        if method == "min":
            return self._histogram.min
        if method == "max":
            return self._histogram.max
        if method == "med":
            return self._histogram.percentile(50.0)
        if method == "count":
            return float(self.count)
        match = _PERCENTILE.fullmatch(method)
        if match:
            return self._histogram.percentile(float(match.group(1)))
        msg = f"Trend {self.name!r} has no aggregate {method!r}"
        raise ConfigError(msg)

    def summary(self) -> TrendSummary:
        h = self._histogram
        return TrendSummary(
            name=self.name,
            count=self.count,
            avg=h.mean,
            min=h.min,
            med=h.percentile(50.0),
            max=h.max,
            p90=h.percentile(90.0),
            p95=h.percentile(95.0),
            p99=h.percentile(99.0),
            p999=h.percentile(99.9),
        )


class Rate:
    """Fraction of ``True`` samples among all boolean samples."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.passes = 0
        self.fails = 0

    @property
    def count(self) -> int:
        return self.passes + self.fails

    @property
    def rate(self) -> float:
        total = self.count
        return self.passes / total if total else 0.0

    def add(self, value: bool) -> None:
        if value:
            self.passes += 1
        else:
            self.fails += 1

    def aggregate(self, method: str) -> float:
        if method == "rate":
            return self.rate
        if method == "count":
            return float(self.count)
        msg = f"Rate {self.name!r} has no aggregate {method!r}"
        raise ConfigError(msg)

    def summary(self) -> RateSummary:
        return RateSummary(name=self.name, passes=self.passes, fails=self.fails, rate=self.rate)


class MetricRegistry:
    """Thread-safe collection of trends, rates and checks for one run.

    Built-in metrics:

    - one duration trend and one success rate per workflow
      (see ``WORKFLOW_METRICS``)
    - ``real_errors``: rate of outcomes classified as real errors
    - ``http_req_duration`` / ``http_req_failed``: every instrumented request
    - ``checks``: rate of passed checks across all check names

    Args:
        workflows: Mapping of workflow name to its
            ``(duration_trend, success_rate)`` metric names.
        http_failure_exclusions: Request names never counted in
            ``http_req_failed`` because non-2xx answers are expected there.
    """

    def __init__(
        self,
        workflows: Mapping[str, tuple[str, str]] | None = None,
        *,
        http_failure_exclusions: Iterable[str] = ("ReassignReviewer",),
    ) -> None:
        self._lock = threading.Lock()
        self._workflows = dict(workflows or WORKFLOW_METRICS)
        self._http_failure_exclusions = frozenset(http_failure_exclusions)
        self._trends: dict[str, Trend] = {}
        self._rates: dict[str, Rate] = {}
        self._checks: dict[str, list[int]] = {}

        for duration_name, success_name in self._workflows.values():
            self._trends[duration_name] = Trend(duration_name)
            self._rates[success_name] = Rate(success_name)
        self._trends[HTTP_REQ_DURATION] = Trend(HTTP_REQ_DURATION)
        self._rates[HTTP_REQ_FAILED] = Rate(HTTP_REQ_FAILED)
        self._rates[REAL_ERRORS] = Rate(REAL_ERRORS)
        self._rates[CHECKS] = Rate(CHECKS)

    @property
    def metric_names(self) -> frozenset[str]:
        """Names of every metric a threshold can be bound to."""
        return frozenset(self._trends) | frozenset(self._rates)

    def record_outcome(self, record: OutcomeRecord) -> None:
        """Fold one workflow outcome into its trend, its rate and ``real_errors``.

        Raises:
            KeyError: If the workflow is not registered.
        """
        duration_name, success_name = self._workflows[record.workflow_name]
        with self._lock:
            self._trends[duration_name].add(record.duration_ms)
            self._rates[success_name].add(record.success)
            self._rates[REAL_ERRORS].add(record.real_error)

    def record_request(self, metric: RequestMetric) -> None:
        """Fold one HTTP request into the ``http_req_*`` metrics.

        Usable directly as ``HttpClient.metric_callback``.
        """
        with self._lock:
            self._trends[HTTP_REQ_DURATION].add(metric.latency_ms)
            if metric.name not in self._http_failure_exclusions:
                self._rates[HTTP_REQ_FAILED].add(metric.failed)

    def check(self, name: str, passed: bool) -> bool:
        """Record the result of a named check and return *passed*."""
        with self._lock:
            counts = self._checks.setdefault(name, [0, 0])
            counts[0 if passed else 1] += 1
            self._rates[CHECKS].add(passed)
        return passed

    def rate_counts(self, metric: str) -> tuple[int, int]:
        """Return ``(passes, fails)`` of the rate *metric*."""
        with self._lock:
            rate = self._rates[metric]
            return rate.passes, rate.fails

    def aggregate(self, metric: str, method: str) -> float:
        """Return the current value of *method* over *metric*.

        Raises:
            ConfigError: If the metric is unknown or does not support *method*.
        """
        with self._lock:
            if metric in self._trends:
                return self._trends[metric].aggregate(method)
            if metric in self._rates:
                return self._rates[metric].aggregate(method)
        msg = f"Unknown metric: {metric!r}"
        raise ConfigError(msg)

    def sample_count(self, metric: str) -> int:
        """Return the number of samples recorded for *metric*."""
        with self._lock:
            if metric in self._trends:
                return self._trends[metric].count
            if metric in self._rates:
                return self._rates[metric].count
        msg = f"Unknown metric: {metric!r}"
        raise ConfigError(msg)

    def summary(self) -> MetricsSummary:
        """Return a copy of every metric's current state."""
        with self._lock:
            return MetricsSummary(
                trends={name: t.summary() for name, t in self._trends.items()},
                rates={name: r.summary() for name, r in self._rates.items()},
                checks={
                    name: CheckSummary(name=name, passes=c[0], fails=c[1])
                    for name, c in self._checks.items()
                },
            )
