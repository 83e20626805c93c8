"""Millisecond duration histogram backed by ``hdrh``.

``hdrh`` stores integers, so durations are kept as whole microseconds and
converted back to milliseconds on read.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

_US_PER_MS = 1000.0

# 1us .. 60s, three significant digits
_LOWEST_US = 1
_HIGHEST_US = 60_000_000
_SIGNIFICANT_DIGITS = 3


class DurationHistogram:
    """Distribution of durations in milliseconds.

    A sample outside ``[lowest_us, highest_us]`` is clamped into the range
    rather than dropped, so a request that timed out after the ceiling is
    still counted, at the ceiling.  Every read returns 0.0 while empty.
    """

    def __init__(
        self,
        lowest_us: int = _LOWEST_US,
        highest_us: int = _HIGHEST_US,
        significant_digits: int = _SIGNIFICANT_DIGITS,
    ) -> None:
        self.lowest_us = lowest_us
        self.highest_us = highest_us
        self._hdr: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            lowest_us, highest_us, significant_digits
        )

    @property
    def count(self) -> int:
        return int(self._hdr.total_count)

    def record(self, duration_ms: float) -> None:
        value_us = int(duration_ms * _US_PER_MS)
        self._hdr.record_value(min(max(value_us, self.lowest_us), self.highest_us))

    def percentile(self, p: float) -> float:
        """Duration at percentile *p* (0-100)."""
        if not self.count:
            return 0.0
        return self._hdr.get_value_at_percentile(p) / _US_PER_MS

    @property
    def min(self) -> float:
        return self._hdr.get_min_value() / _US_PER_MS if self.count else 0.0

    @property
    def max(self) -> float:
        return self._hdr.get_max_value() / _US_PER_MS if self.count else 0.0

    @property
    def mean(self) -> float:
        return self._hdr.get_mean_value() / _US_PER_MS if self.count else 0.0
