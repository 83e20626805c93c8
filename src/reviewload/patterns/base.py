"""Abstract base class for concurrency patterns."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator

# Absorbs float drift when the last tick lands exactly on the duration.
_EPSILON = 1e-9


class LoadPattern(ABC):
    """Abstract base for concurrency patterns.

    A pattern defines how the target number of concurrent virtual callers
    changes over time.  Concrete subclasses implement
    :meth:`iter_concurrency` to yield ``(elapsed_seconds, target)`` tuples at
    a configurable tick interval.

    Example::

        pattern = RampPattern(start=0, end=10, ramp_duration=30.0)
        for elapsed, callers in pattern.iter_concurrency(duration_seconds=30.0):
            print(f"t={elapsed:.1f}s -> {callers} callers")
    """

    @abstractmethod
    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed_seconds, target)`` at each tick.

        Args:
            duration_seconds: Total duration to generate ticks for.
            tick_interval: Seconds between each yielded tick.  Defaults to 1.0.

        Yields:
            A tuple of ``(elapsed_seconds, target)`` where *target* is the
            number of virtual callers that should be active at that moment.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description for logs and reports."""


def _iter_ticks(duration_seconds: float, tick_interval: float) -> Iterator[float]:
    """Yield tick offsets ``0, tick, 2*tick, ...`` up to *duration_seconds*.

    Offsets are computed from the tick index so long runs do not accumulate
    float error.
    """
    _validate_positive(duration_seconds, "duration_seconds")
    _validate_positive(tick_interval, "tick_interval")
    index = 0
    while index * tick_interval <= duration_seconds + _EPSILON:
        yield index * tick_interval
        index += 1


def _validate_positive(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is not strictly positive."""
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigError(msg)


def _validate_non_negative(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is negative."""
    if value < 0:
        msg = f"{name} must be non-negative, got {value}"
        raise ConfigError(msg)
