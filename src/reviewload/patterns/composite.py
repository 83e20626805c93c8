"""Composite pattern: run several patterns back to back."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError
from reviewload.patterns.base import _EPSILON, LoadPattern, _validate_positive

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class CompositePattern(LoadPattern):
    """Play ``(pattern, duration)`` phases one after another.

    Elapsed time keeps counting across phases.  Every phase ends with a tick
    on its own boundary, even when its duration is not a multiple of the
    tick interval.  The opening tick of every later phase shares that offset
    and is dropped.

    Args:
        phases: Non-empty sequence of ``(LoadPattern, duration_seconds)``.

    Raises:
        ConfigError: If *phases* is empty or a duration is not positive.

    Example::

        pattern = CompositePattern(
            [
                (RampPattern(start=0, end=5, ramp_duration=30.0), 30.0),
                (ConstantPattern(target=5), 120.0),
            ]
        )
    """

    def __init__(self, phases: Sequence[tuple[LoadPattern, float]]) -> None:
        if not phases:
            msg = "phases must contain at least one (pattern, duration) entry"
            raise ConfigError(msg)
        for i, (_pattern, duration) in enumerate(phases):
            _validate_positive(duration, f"phases[{i}] duration")
        self._phases = tuple(phases)

    @property
    def phases(self) -> tuple[tuple[LoadPattern, float], ...]:
        return self._phases

    @property
    def total_duration(self) -> float:
        return sum(duration for _, duration in self._phases)

    def iter_concurrency(
        self,
        duration_seconds: float,  # noqa: ARG002
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target)`` over every phase in order.

        *duration_seconds* is ignored; the phase durations add up to the
        length of the pattern.
        """
        _validate_positive(tick_interval, "tick_interval")
        offset = 0.0
        for index, (pattern, duration) in enumerate(self._phases):
            ticks = pattern.iter_concurrency(duration, tick_interval)
            if index > 0:
                next(ticks, None)
            last = None
            for local_elapsed, target in ticks:
                last = local_elapsed
                yield (offset + local_elapsed, target)
            if last is None or last < duration - _EPSILON:
                # Off-grid phase: the end target still has to be scheduled.
                *_, (_, closing) = pattern.iter_concurrency(duration, duration)
                yield (offset + duration, closing)
            offset += duration

    def describe(self) -> str:
        lines = [f"Composite: {len(self._phases)} phases, {self.total_duration:g}s total"]
        lines.extend(
            f"  {i}. {pattern.describe()} for {duration:g}s"
            for i, (pattern, duration) in enumerate(self._phases, start=1)
        )
        return "\n".join(lines)
