"""Constant pattern: hold a fixed number of virtual callers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reviewload.patterns.base import LoadPattern, _iter_ticks, _validate_non_negative

if TYPE_CHECKING:
    from collections.abc import Iterator


class ConstantPattern(LoadPattern):
    """Hold *target* virtual callers for the entire duration.

    A target of zero is allowed so a stage can idle the load at nothing.

    Args:
        target: Number of concurrent virtual callers.  Must be >= 0.

    Raises:
        ConfigError: If *target* is negative.
    """

    def __init__(self, target: int) -> None:
        _validate_non_negative(target, "target")
        self._target = target

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target)`` at every tick."""
        for elapsed in _iter_ticks(duration_seconds, tick_interval):
            yield (elapsed, self._target)

    def describe(self) -> str:
        return f"Hold: {self._target} callers"
