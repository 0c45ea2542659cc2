"""Thread-safe in-memory time series of progress snapshots."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loadburst.metrics.models import ProgressSnapshot


class MetricStore:
    """Ordered storage for the ``ProgressSnapshot`` objects of one run.

    The progress reporter appends; the runner reads the series once to
    build the ``RunReport``.
    """

    def __init__(self) -> None:
        self._snapshots: list[ProgressSnapshot] = []
        self._lock = threading.Lock()

    def append(self, snapshot: ProgressSnapshot) -> None:
        """Append a snapshot to the series."""
        with self._lock:
            self._snapshots.append(snapshot)

    def get_all(self) -> list[ProgressSnapshot]:
        """Return a copy of all stored snapshots in chronological order."""
        with self._lock:
            return list(self._snapshots)

    def clear(self) -> None:
        """Drop every stored snapshot."""
        with self._lock:
            self._snapshots.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
