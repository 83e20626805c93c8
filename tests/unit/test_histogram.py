"""Tests for the duration histogram."""

from __future__ import annotations

import pytest

from reviewload.metrics.histogram import DurationHistogram


class TestDurationHistogram:
    def test_empty_reads_zero(self):
        h = DurationHistogram()
        assert h.count == 0
        assert h.percentile(95.0) == 0.0
        assert h.min == 0.0
        assert h.max == 0.0
        assert h.mean == 0.0

    def test_reads_in_ms(self):
        h = DurationHistogram()
        for value in range(1, 101):
            h.record(float(value))
        assert h.count == 100
        assert h.percentile(50.0) == pytest.approx(50.0, rel=0.01)
        assert h.percentile(95.0) == pytest.approx(95.0, rel=0.01)
        assert h.min == pytest.approx(1.0, rel=0.01)
        assert h.max == pytest.approx(100.0, rel=0.01)
        assert h.mean == pytest.approx(50.5, rel=0.01)

    def test_sub_millisecond_precision(self):
        h = DurationHistogram()
        h.record(0.25)
        assert h.max == pytest.approx(0.25, rel=0.01)

    def test_values_above_range_are_clamped(self):
        h = DurationHistogram()
        h.record(120_000.0)
        assert h.count == 1
        assert h.max == pytest.approx(60_000.0, rel=0.01)

    def test_zero_is_recorded_at_floor(self):
        h = DurationHistogram()
        h.record(0.0)
        assert h.count == 1
        assert h.max < 0.01
