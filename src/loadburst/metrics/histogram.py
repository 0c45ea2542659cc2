"""HDR histogram for response-time percentiles.

Wraps ``hdrh.histogram.HdrHistogram`` so callers work in milliseconds
while the histogram stores integer microseconds.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

# Range: 1 microsecond to 10 minutes (in microseconds)
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 600_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Latency histogram used for p50/p95/p99 reporting.

    Values outside the trackable range are clamped, so percentiles are
    approximate at the extremes. Exact minimum and maximum are tracked by
    ``RunStatistics``, not here.
    """

    def __init__(
        self,
        lowest_us: int = _LOWEST_TRACKABLE_US,
        highest_us: int = _HIGHEST_TRACKABLE_US,
        significant_digits: int = _SIGNIFICANT_DIGITS,
    ) -> None:
        self.lowest_us = lowest_us
        self.highest_us = highest_us
        self._histogram: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            lowest_us, highest_us, significant_digits
        )

    @property
    def total_count(self) -> int:
        """Number of recorded samples."""
        return int(self._histogram.total_count)

    def record(self, latency_ms: float) -> None:
        """Record one latency sample given in milliseconds."""
        value_us = int(latency_ms * 1000)
        value_us = max(self.lowest_us, min(value_us, self.highest_us))
        self._histogram.record_value(value_us)

    def percentile(self, percentile: float) -> float:
        """Return the latency in milliseconds at ``percentile`` (0-100).

        Returns 0.0 when nothing has been recorded.
        """
        if self.total_count == 0:
            return 0.0
        return float(self._histogram.get_value_at_percentile(percentile)) / 1000.0

    def percentiles(self, *wanted: float) -> tuple[float, ...]:
        """Return several percentiles at once, in the order requested."""
        return tuple(self.percentile(p) for p in wanted)

    def reset(self) -> None:
        """Clear all recorded samples."""
        self._histogram.reset()
