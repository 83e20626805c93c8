"""Ramp pattern: linear interpolation between two concurrency levels."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError
from reviewload.patterns.base import (
    LoadPattern,
    _iter_ticks,
    _validate_non_negative,
    _validate_positive,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


class RampPattern(LoadPattern):
    """Linearly move concurrency from *start* to *end*.

    During ``0 .. ramp_duration`` the target changes linearly (rounded to the
    nearest caller).  Afterwards it holds at *end* for the remainder of
    *duration_seconds*.  Every yielded value lies between *start* and *end*
    inclusive.

    Args:
        start: Initial number of virtual callers.  Must be >= 0.
        end: Final number of virtual callers.  Must be >= 0.
        ramp_duration: Seconds over which the ramp occurs.  Must be > 0.

    Raises:
        ConfigError: If any argument is out of range, or *start* equals *end*.

    Example::

        pattern = RampPattern(start=5, end=10, ramp_duration=30.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=30.0))
        assert ticks[0][1] == 5
        assert ticks[-1][1] == 10
    """

    def __init__(self, start: int, end: int, ramp_duration: float) -> None:
        _validate_non_negative(start, "start")
        _validate_non_negative(end, "end")
        _validate_positive(ramp_duration, "ramp_duration")
        if start == end:
            msg = "start and end must differ; use ConstantPattern for a hold"
            raise ConfigError(msg)
        self._start = start
        self._end = end
        self._ramp_duration = ramp_duration

    def target_at(self, elapsed: float) -> int:
        """Return the target concurrency *elapsed* seconds into the ramp."""
        if elapsed >= self._ramp_duration:
            return self._end
        fraction = max(elapsed, 0.0) / self._ramp_duration
        value = round(self._start + (self._end - self._start) * fraction)
        low, high = sorted((self._start, self._end))
        return min(max(value, low), high)

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target)`` with linear interpolation.

        Args:
            duration_seconds: Total duration to generate ticks for.
            tick_interval: Seconds between ticks.

        Yields:
            ``(elapsed_seconds, target)`` tuples.
        """
        for elapsed in _iter_ticks(duration_seconds, tick_interval):
            yield (elapsed, self.target_at(elapsed))

    def describe(self) -> str:
        return f"Ramp: {self._start} -> {self._end} callers over {self._ramp_duration}s"
