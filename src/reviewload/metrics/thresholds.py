"""Pass/fail thresholds over registry metrics.

Expressions follow the k6 form ``<aggregate><op><number>``, for example
``p(95)<300``, ``p(99.9)<300``, ``avg<=150`` or ``rate<0.001``.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError
from reviewload._internal.logging import get_logger
from reviewload.metrics.models import ThresholdResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from reviewload.metrics.registry import MetricRegistry

logger = get_logger("metrics.thresholds")

_EXPRESSION = re.compile(
    r"^\s*(?P<aggregate>avg|min|max|med|count|rate|p\(\d+(?:\.\d+)?\))"
    r"\s*(?P<op><=|>=|==|!=|<|>)\s*"
    r"(?P<limit>-?\d+(?:\.\d+)?)\s*$"
)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class Threshold:
    """A single pass/fail criterion bound to a metric.

    Attributes:
        metric: Registry metric name.
        expression: Original expression text.
        aggregate: Aggregate to compute (``avg``, ``p(95)``, ``rate``, ...).
        op: Comparison operator.
        limit: Right-hand side of the comparison.
    """

    metric: str
    expression: str
    aggregate: str
    op: str
    limit: float

    @classmethod
    def parse(cls, metric: str, expression: str) -> Threshold:
        """Parse *expression* for *metric*.

        Raises:
            ConfigError: If the expression is malformed.
        """
        match = _EXPRESSION.match(expression)
        if match is None:
            msg = f"Invalid threshold expression for {metric!r}: {expression!r}"
            raise ConfigError(msg)
        return cls(
            metric=metric,
            expression=expression.replace(" ", ""),
            aggregate=match.group("aggregate"),
            op=match.group("op"),
            limit=float(match.group("limit")),
        )

    @classmethod
    def from_spec(cls, spec: str) -> Threshold:
        """Parse a CLI spec of the form ``metric=expression``.

        Raises:
            ConfigError: If the spec is malformed.
        """
        metric, sep, expression = spec.partition("=")
        if not sep or not metric.strip():
            msg = f"Threshold must look like 'metric=expression', got: {spec!r}"
            raise ConfigError(msg)
        return cls.parse(metric.strip(), expression)

    def holds_for(self, value: float) -> bool:
        return _OPERATORS[self.op](value, self.limit)


def _defaults() -> tuple[Threshold, ...]:
    pairs = [
        ("http_req_duration", "p(95)<300"),
        ("http_req_duration", "p(99.9)<300"),
        ("http_req_failed", "rate<0.001"),
        ("real_errors", "rate<0.001"),
        ("deactivate_team_duration_ms", "p(95)<300"),
        ("deactivate_team_duration_ms", "p(99.9)<300"),
        ("reassign_reviewer_duration_ms", "p(95)<300"),
        ("reassign_reviewer_duration_ms", "p(99.9)<300"),
    ]
    return tuple(Threshold.parse(metric, expr) for metric, expr in pairs)


DEFAULT_THRESHOLDS: tuple[Threshold, ...] = _defaults()


def merge_thresholds(
    base: Iterable[Threshold],
    overrides: Iterable[Threshold],
) -> list[Threshold]:
    """Replace every threshold of *base* whose metric appears in *overrides*."""
    overrides = list(overrides)
    overridden = {t.metric for t in overrides}
    return [t for t in base if t.metric not in overridden] + overrides


def validate_thresholds(thresholds: Iterable[Threshold], registry: MetricRegistry) -> None:
    """Check that every threshold targets a known metric with a valid aggregate.

    Raises:
        ConfigError: On the first invalid threshold.
    """
    known = registry.metric_names
    for threshold in thresholds:
        if threshold.metric not in known:
            msg = (
                f"Threshold {threshold.expression!r} targets unknown metric "
                f"{threshold.metric!r}; known: {', '.join(sorted(known))}"
            )
            raise ConfigError(msg)
        registry.aggregate(threshold.metric, threshold.aggregate)


def evaluate_thresholds(
    thresholds: Iterable[Threshold],
    registry: MetricRegistry,
) -> list[ThresholdResult]:
    """Evaluate every threshold against the registry's current values.

    A metric with no samples aggregates to 0.

    Returns:
        One ThresholdResult per threshold, in input order.
    """
    results: list[ThresholdResult] = []
    for threshold in thresholds:
        actual = registry.aggregate(threshold.metric, threshold.aggregate)
        passed = threshold.holds_for(actual)
        if not passed:
            logger.warning(
                "Threshold crossed: %s %s (actual=%.4f)",
                threshold.metric,
                threshold.expression,
                actual,
            )
        results.append(
            ThresholdResult(
                metric=threshold.metric,
                expression=threshold.expression,
                actual=actual,
                passed=passed,
            )
        )
    return results
