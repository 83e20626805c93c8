"""Tests for concurrency patterns."""

from __future__ import annotations

import pytest

from reviewload._internal.errors import ConfigError
from reviewload.patterns import (
    DEFAULT_STAGES,
    CompositePattern,
    ConstantPattern,
    LoadPattern,
    RampPattern,
    Stage,
    StagedPattern,
)

# =========================================================================
# ConstantPattern
# =========================================================================


class TestConstantPattern:
    def test_yields_constant_value(self) -> None:
        ticks = list(ConstantPattern(7).iter_concurrency(duration_seconds=5.0))
        assert [target for _, target in ticks] == [7] * 6

    def test_zero_target_allowed(self) -> None:
        ticks = list(ConstantPattern(0).iter_concurrency(duration_seconds=2.0))
        assert all(target == 0 for _, target in ticks)

    def test_negative_target_rejected(self) -> None:
        with pytest.raises(ConfigError):
            ConstantPattern(-1)

    def test_fractional_tick_reaches_duration(self) -> None:
        ticks = list(ConstantPattern(1).iter_concurrency(duration_seconds=1.0, tick_interval=0.1))
        assert len(ticks) == 11
        assert ticks[-1][0] == pytest.approx(1.0)

    def test_is_load_pattern(self) -> None:
        assert isinstance(ConstantPattern(1), LoadPattern)


# =========================================================================
# RampPattern
# =========================================================================


class TestRampPattern:
    def test_ramp_up_endpoints(self) -> None:
        ticks = list(RampPattern(0, 10, 10.0).iter_concurrency(duration_seconds=10.0))
        assert ticks[0][1] == 0
        assert ticks[5][1] == 5
        assert ticks[-1][1] == 10

    def test_holds_after_ramp(self) -> None:
        ticks = list(RampPattern(0, 4, 2.0).iter_concurrency(duration_seconds=5.0))
        assert [target for _, target in ticks[2:]] == [4, 4, 4, 4]

    def test_ramp_down_is_monotonic(self) -> None:
        targets = [t for _, t in RampPattern(10, 5, 10.0).iter_concurrency(10.0)]
        assert targets == sorted(targets, reverse=True)
        assert targets[0] == 10
        assert targets[-1] == 5

    def test_values_stay_between_endpoints(self) -> None:
        for _, target in RampPattern(3, 9, 7.0).iter_concurrency(7.0, tick_interval=0.3):
            assert 3 <= target <= 9

    def test_equal_endpoints_rejected(self) -> None:
        with pytest.raises(ConfigError, match="ConstantPattern"):
            RampPattern(5, 5, 10.0)

    def test_non_positive_duration_rejected(self) -> None:
        with pytest.raises(ConfigError):
            RampPattern(0, 5, 0.0)

    def test_describe(self) -> None:
        assert "0 -> 10" in RampPattern(0, 10, 30.0).describe()


# =========================================================================
# CompositePattern
# =========================================================================


class TestCompositePattern:
    def test_elapsed_is_continuous(self) -> None:
        pattern = CompositePattern([(ConstantPattern(1), 2.0), (ConstantPattern(2), 2.0)])
        ticks = list(pattern.iter_concurrency(duration_seconds=4.0))
        elapsed = [t for t, _ in ticks]
        assert elapsed == sorted(elapsed)
        assert elapsed[-1] == pytest.approx(4.0)
        assert ticks[-1][1] == 2

    def test_boundary_offset_not_repeated(self) -> None:
        pattern = CompositePattern([(RampPattern(0, 2, 2.0), 2.0), (ConstantPattern(2), 2.0)])
        elapsed = [t for t, _ in pattern.iter_concurrency(duration_seconds=4.0)]
        assert elapsed == [0.0, 1.0, 2.0, 3.0, 4.0]

    def test_off_grid_phase_closes_on_its_boundary(self) -> None:
        pattern = CompositePattern([(RampPattern(0, 3, 1.5), 1.5), (ConstantPattern(3), 1.0)])
        ticks = list(pattern.iter_concurrency(duration_seconds=2.5))
        assert ticks == [(0.0, 0), (1.0, 2), (1.5, 3), (2.5, 3)]

    def test_total_duration(self) -> None:
        pattern = CompositePattern([(ConstantPattern(1), 2.0), (RampPattern(1, 3, 3.0), 3.0)])
        assert pattern.total_duration == 5.0

    def test_empty_rejected(self) -> None:
        with pytest.raises(ConfigError):
            CompositePattern([])

    def test_bad_duration_rejected(self) -> None:
        with pytest.raises(ConfigError):
            CompositePattern([(ConstantPattern(1), 0.0)])


# =========================================================================
# Stage / StagedPattern
# =========================================================================


class TestStage:
    def test_parse(self) -> None:
        assert Stage.parse("30s:5") == Stage(30.0, 5)
        assert Stage.parse("2m:10") == Stage(120.0, 10)

    @pytest.mark.parametrize("spec", ["30s", "30s:x", "nope:5", "30s:-1", "0s:3"])
    def test_parse_invalid(self, spec: str) -> None:
        with pytest.raises(ConfigError):
            Stage.parse(spec)

    def test_default_profile(self) -> None:
        assert [(s.duration_seconds, s.target) for s in DEFAULT_STAGES] == [
            (30.0, 5),
            (120.0, 5),
            (30.0, 10),
            (60.0, 5),
            (30.0, 0),
        ]


class TestStagedPattern:
    def test_starts_at_zero_and_ends_at_final_target(self) -> None:
        pattern = StagedPattern([Stage(4.0, 4), Stage(4.0, 0)])
        ticks = list(pattern.iter_concurrency())
        assert ticks[0] == (0.0, 0)
        assert ticks[-1][1] == 0
        assert ticks[-1][0] == pytest.approx(8.0)

    def test_hold_stage(self) -> None:
        pattern = StagedPattern([Stage(2.0, 3), Stage(3.0, 3)])
        ticks = list(pattern.iter_concurrency())
        hold = [target for elapsed, target in ticks if elapsed >= 2.0]
        assert hold and all(target == 3 for target in hold)

    def test_target_never_exceeds_stage_bound(self) -> None:
        stages = list(DEFAULT_STAGES)
        pattern = StagedPattern(stages)
        bounds = []
        start = 0.0
        previous = 0
        for stage in stages:
            bounds.append((start, start + stage.duration_seconds, max(previous, stage.target)))
            start += stage.duration_seconds
            previous = stage.target
        for elapsed, target in pattern.iter_concurrency(tick_interval=0.5):
            for low, high, bound in bounds:
                if low < elapsed < high:
                    assert target <= bound
            assert target <= pattern.peak

    def test_closing_tick_when_duration_not_on_grid(self) -> None:
        pattern = StagedPattern([Stage(1.0, 2), Stage(1.25, 0)])
        ticks = list(pattern.iter_concurrency(tick_interval=0.5))
        elapsed, target = ticks[-1]
        assert elapsed == pytest.approx(2.25)
        assert target == 0
        assert ticks[-2][0] < elapsed

    def test_off_grid_stage_peak_is_scheduled(self) -> None:
        pattern = StagedPattern([Stage(1.5, 4), Stage(1.5, 0)])
        ticks = list(pattern.iter_concurrency(tick_interval=1.0))
        assert (1.5, 4) in ticks
        assert max(target for _, target in ticks) == 4
        assert [t for t, _ in ticks] == pytest.approx([0.0, 1.0, 1.5, 2.5, 3.0])
        assert [target for _, target in ticks] == [0, 3, 4, 1, 0]

    def test_elapsed_monotonic(self) -> None:
        ticks = list(StagedPattern(DEFAULT_STAGES).iter_concurrency())
        elapsed = [t for t, _ in ticks]
        assert elapsed == sorted(elapsed)

    def test_total_duration_and_peak(self) -> None:
        pattern = StagedPattern(DEFAULT_STAGES)
        assert pattern.total_duration == 270.0
        assert pattern.peak == 10

    def test_empty_rejected(self) -> None:
        with pytest.raises(ConfigError):
            StagedPattern([])

    def test_describe(self) -> None:
        desc = StagedPattern([Stage(30.0, 5), Stage(30.0, 0)]).describe()
        assert "30s->5" in desc
        assert "60s total" in desc
