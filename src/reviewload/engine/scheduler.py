"""Ramp controller: turns a concurrency pattern into per-tick scale commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from reviewload.patterns.base import LoadPattern


class ScaleDirection(Enum):
    UP = auto()
    DOWN = auto()
    HOLD = auto()


@dataclass(frozen=True)
class ScaleCommand:
    """Target caller count for one tick.

    Attributes:
        elapsed_seconds: Offset from the start of the load phase.
        target_concurrency: Virtual callers that should be active.
        direction: Change relative to the previous tick.
        delta: Callers to spawn (UP) or retire (DOWN); 0 on HOLD.
    """

    elapsed_seconds: float
    target_concurrency: int
    direction: ScaleDirection
    delta: int

    @classmethod
    def between(cls, elapsed: float, previous: int, target: int) -> ScaleCommand:
        """Build the command that moves *previous* callers to *target*."""
        if target > previous:
            direction = ScaleDirection.UP
        elif target < previous:
            direction = ScaleDirection.DOWN
        else:
            direction = ScaleDirection.HOLD
        return cls(elapsed, target, direction, abs(target - previous))


class Scheduler:
    """Walks a pattern tick by tick and emits one ScaleCommand per tick.

    The load phase starts with no callers, so the first command scales up
    from zero.  Ticks that share an offset (stage boundaries) are emitted in
    pattern order.

    Args:
        pattern: Concurrency pattern to follow.
        duration_seconds: Length handed to the pattern.
        tick_interval: Seconds between ticks.
    """

    def __init__(
        self,
        pattern: LoadPattern,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> None:
        self._pattern = pattern
        self._duration_seconds = duration_seconds
        self._tick_interval = tick_interval

    def iter_commands(self) -> Iterator[ScaleCommand]:
        current = 0
        for elapsed, target in self._pattern.iter_concurrency(
            self._duration_seconds, self._tick_interval
        ):
            yield ScaleCommand.between(elapsed, current, target)
            current = target

    @property
    def total_ticks(self) -> int:
        """Number of commands :meth:`iter_commands` will yield."""
        ticks = self._pattern.iter_concurrency(self._duration_seconds, self._tick_interval)
        return sum(1 for _ in ticks)
