"""Staged pattern: k6-style ``{duration, target}`` stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from reviewload._internal.config import parse_duration
from reviewload._internal.errors import ConfigError
from reviewload.patterns.base import (
    LoadPattern,
    _validate_non_negative,
    _validate_positive,
)
from reviewload.patterns.composite import CompositePattern
from reviewload.patterns.constant import ConstantPattern
from reviewload.patterns.ramp import RampPattern

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


@dataclass(frozen=True)
class Stage:
    """One stage of a load profile.

    Attributes:
        duration_seconds: How long the stage lasts.
        target: Concurrency reached at the end of the stage.
    """

    duration_seconds: float
    target: int

    def __post_init__(self) -> None:
        _validate_positive(self.duration_seconds, "stage duration")
        _validate_non_negative(self.target, "stage target")

    @classmethod
    def parse(cls, text: str) -> Stage:
        """Parse a ``<duration>:<target>`` spec such as ``30s:5`` or ``2m:10``.

        Raises:
            ConfigError: If the spec is malformed.
        """
        duration_text, sep, target_text = text.partition(":")
        if not sep:
            msg = f"Stage must look like '<duration>:<target>', got: {text!r}"
            raise ConfigError(msg)
        try:
            target = int(target_text)
        except ValueError:
            msg = f"Stage target must be an integer, got: {target_text!r}"
            raise ConfigError(msg) from None
        return cls(duration_seconds=parse_duration(duration_text), target=target)


DEFAULT_STAGES: tuple[Stage, ...] = (
    Stage(30.0, 5),
    Stage(120.0, 5),
    Stage(30.0, 10),
    Stage(60.0, 5),
    Stage(30.0, 0),
)


class StagedPattern(LoadPattern):
    """Ramp linearly from one stage target to the next.

    Concurrency starts at zero.  Each stage moves the target linearly from
    the previous stage's target to its own over the stage's duration (a stage
    whose target equals the previous one simply holds).  A closing tick at
    the total duration always carries the final stage's target, so a profile
    that ends at zero always ends with a scale-down to zero.

    Within a stage the target never exceeds
    ``max(previous_target, stage.target)``.

    Args:
        stages: Non-empty sequence of stages.

    Raises:
        ConfigError: If *stages* is empty.

    Example::

        pattern = StagedPattern([Stage(30.0, 5), Stage(120.0, 5), Stage(30.0, 0)])
    """

    def __init__(self, stages: Sequence[Stage]) -> None:
        if not stages:
            msg = "at least one stage is required"
            raise ConfigError(msg)
        self._stages = tuple(stages)
        phases: list[tuple[LoadPattern, float]] = []
        previous = 0
        for stage in self._stages:
            phase: LoadPattern
            if stage.target == previous:
                phase = ConstantPattern(stage.target)
            else:
                phase = RampPattern(previous, stage.target, stage.duration_seconds)
            phases.append((phase, stage.duration_seconds))
            previous = stage.target
        self._composite = CompositePattern(phases)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    @property
    def total_duration(self) -> float:
        """Total duration of all stages in seconds."""
        return self._composite.total_duration

    @property
    def peak(self) -> int:
        """Highest target of any stage."""
        return max(stage.target for stage in self._stages)

    def iter_concurrency(
        self,
        duration_seconds: float | None = None,  # noqa: ARG002
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target)`` for the whole stage sequence.

        *duration_seconds* is ignored; the stage durations define the length.
        """
        total = self.total_duration
        last: tuple[float, int] | None = None
        for elapsed, target in self._composite.iter_concurrency(total, tick_interval):
            last = (elapsed, target)
            yield last
        final_target = self._stages[-1].target
        if last is None or last[1] != final_target or last[0] < total - 1e-9:
            yield (total, final_target)

    def describe(self) -> str:
        parts = [f"{stage.duration_seconds:g}s->{stage.target}" for stage in self._stages]
        return f"Stages: {', '.join(parts)} ({self.total_duration:g}s total)"
