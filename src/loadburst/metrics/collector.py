"""Run statistics shared by every in-flight request of a run."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import TYPE_CHECKING

from loadburst.metrics.histogram import LatencyHistogram
from loadburst.metrics.models import EndpointStats, StatsSnapshot

if TYPE_CHECKING:
    from loadburst.dsl.http_client import RequestMetric

_PERCENTILES = (50.0, 95.0, 99.0)


class RunStatistics:
    """Lock-protected aggregate of request outcomes.

    One instance is owned by a run and handed to every dispatcher. ``record``
    applies all field updates for a request inside a single critical
    section, so ``total == success + failure`` holds whenever the lock is
    free. Readers only ever get an immutable ``StatsSnapshot`` copy.

    The lock is a ``threading.Lock`` and is never held across an ``await``;
    ``record`` may therefore be called from the event loop as well as from
    plain threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._histogram = LatencyHistogram()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total = 0
        self._success = 0
        self._failure = 0
        self._response_time_sum = 0.0
        self._min_response_time: float | None = None
        self._max_response_time = 0.0
        self._status_codes: dict[int, int] = defaultdict(int)
        self._errors: dict[str, int] = defaultdict(int)
        self._endpoint_counts: dict[str, int] = defaultdict(int)
        self._endpoint_failures: dict[str, int] = defaultdict(int)
        self._endpoint_latency: dict[str, float] = defaultdict(float)
        self._histogram.reset()

    @property
    def total_requests(self) -> int:
        """Completed requests recorded so far."""
        with self._lock:
            return self._total

    def record(self, metric: RequestMetric) -> None:
        """Fold one completed request into the aggregate.

        Args:
            metric: Outcome of the request. A transport failure is counted
                under its error classification and never under a status code.
        """
        latency = metric.latency_ms
        with self._lock:
            self._total += 1
            self._response_time_sum += latency
            if self._min_response_time is None or latency < self._min_response_time:
                self._min_response_time = latency
            if latency > self._max_response_time:
                self._max_response_time = latency
            self._histogram.record(latency)

            if metric.error_kind is not None:
                self._errors[metric.error_kind.value] += 1
            else:
                self._status_codes[metric.status_code] += 1

            if metric.succeeded:
                self._success += 1
            else:
                self._failure += 1
                self._endpoint_failures[metric.name] += 1

            self._endpoint_counts[metric.name] += 1
            self._endpoint_latency[metric.name] += latency

    def reset(self) -> None:
        """Zero every counter. Called when the measured phase begins."""
        with self._lock:
            self._reset_counters()

    def snapshot(self) -> StatsSnapshot:
        """Return a consistent, immutable copy of the current statistics."""
        with self._lock:
            p50, p95, p99 = self._histogram.percentiles(*_PERCENTILES)
            endpoints = {
                name: EndpointStats(
                    name=name,
                    request_count=count,
                    failure_count=self._endpoint_failures.get(name, 0),
                    total_latency_ms=self._endpoint_latency.get(name, 0.0),
                )
                for name, count in self._endpoint_counts.items()
            }
            return StatsSnapshot(
                total_requests=self._total,
                success_count=self._success,
                failure_count=self._failure,
                total_response_time_ms=self._response_time_sum,
                min_response_time_ms=self._min_response_time,
                max_response_time_ms=self._max_response_time,
                status_codes=dict(self._status_codes),
                errors=dict(self._errors),
                endpoints=endpoints,
                latency_p50=p50,
                latency_p95=p95,
                latency_p99=p99,
            )
