"""Periodic progress sampling of the run statistics."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

from loadburst._internal.logging import get_logger
from loadburst.metrics.models import ProgressSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadburst.metrics.collector import RunStatistics
    from loadburst.metrics.store import MetricStore

logger = get_logger("engine.progress")


class ProgressReporter:
    """Samples ``RunStatistics`` on a fixed period, independent of batches.

    Each tick builds a ``ProgressSnapshot``, appends it to the store and
    passes it to ``on_progress``. The reporter never mutates the statistics.

    Attributes:
        interval: Seconds between ticks.
    """

    def __init__(
        self,
        stats: RunStatistics,
        start_time: float,
        *,
        interval: float = 1.0,
        on_progress: Callable[[ProgressSnapshot], None] | None = None,
        store: MetricStore | None = None,
    ) -> None:
        """Initialize the reporter.

        Args:
            stats: Statistics to sample.
            start_time: Monotonic start of the measured phase.
            interval: Seconds between ticks.
            on_progress: Optional callback invoked with each snapshot.
            store: Optional store the snapshots are appended to.
        """
        self.interval = interval
        self._stats = stats
        self._start_time = start_time
        self._on_progress = on_progress
        self._store = store
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """True while the background task is alive."""
        return self._task is not None and not self._task.done()

    def sample(self, now: float | None = None) -> ProgressSnapshot:
        """Compute derived rates from the current statistics.

        Args:
            now: Monotonic time to compute elapsed time against.

        Returns:
            The progress snapshot. Rates are 0.0 while nothing is recorded.
        """
        current = now if now is not None else time.monotonic()
        elapsed = max(current - self._start_time, 0.0)
        snapshot = self._stats.snapshot()
        rps = snapshot.total_requests / elapsed if elapsed > 0 else 0.0
        return ProgressSnapshot(
            elapsed_seconds=elapsed,
            total_requests=snapshot.total_requests,
            requests_per_second=rps,
            average_response_time_ms=snapshot.average_response_time_ms,
            success_count=snapshot.success_count,
            failure_count=snapshot.failure_count,
        )

    def start(self) -> None:
        """Start ticking in a background task on the running loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop(), name="loadburst-progress")

    async def stop(self) -> None:
        """Stop ticking and wait for the background task to exit."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def tick(self) -> ProgressSnapshot:
        """Take one sample, store it and hand it to the callback."""
        snapshot = self.sample()
        if self._store is not None:
            self._store.append(snapshot)
        if self._on_progress is not None:
            try:
                self._on_progress(snapshot)
            except Exception:
                logger.warning("Progress callback failed", exc_info=True)
        return snapshot
