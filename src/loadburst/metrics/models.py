"""Snapshot and report dataclasses for loadburst."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from loadburst._internal.config import RunConfig

__all__ = [
    "EndpointStats",
    "ProgressSnapshot",
    "RunReport",
    "StatsSnapshot",
]


@dataclass(frozen=True)
class EndpointStats:
    """Aggregated outcomes for one endpoint (logical request name).

    Attributes:
        name: Endpoint name, e.g. "GET /users".
        request_count: Requests sent to this endpoint.
        failure_count: Requests that were non-2xx or failed in transport.
        total_latency_ms: Sum of response times in milliseconds.
    """

    name: str
    request_count: int = 0
    failure_count: int = 0
    total_latency_ms: float = 0.0

    @property
    def average_latency_ms(self) -> float:
        """Mean response time, 0.0 when no request was recorded."""
        if self.request_count == 0:
            return 0.0
        return self.total_latency_ms / self.request_count


@dataclass(frozen=True)
class StatsSnapshot:
    """Immutable copy of the run statistics at one point in time.

    Attributes:
        total_requests: Completed requests.
        success_count: Requests answered with a 2xx status.
        failure_count: Non-2xx responses plus transport failures.
        total_response_time_ms: Sum of every response time.
        min_response_time_ms: Fastest response, None before the first sample.
        max_response_time_ms: Slowest response, 0.0 before the first sample.
        status_codes: Occurrences of each HTTP status code.
        errors: Occurrences of each transport error classification.
        endpoints: Per-endpoint aggregates keyed by endpoint name.
        latency_p50: 50th percentile response time (ms).
        latency_p95: 95th percentile response time (ms).
        latency_p99: 99th percentile response time (ms).
    """

    total_requests: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_response_time_ms: float = 0.0
    min_response_time_ms: float | None = None
    max_response_time_ms: float = 0.0
    status_codes: dict[int, int] = field(default_factory=dict)
    errors: dict[str, int] = field(default_factory=dict)
    endpoints: dict[str, EndpointStats] = field(default_factory=dict)
    latency_p50: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0

    @property
    def average_response_time_ms(self) -> float:
        """Mean response time, 0.0 when no request was recorded."""
        if self.total_requests == 0:
            return 0.0
        average = self.total_response_time_ms / self.total_requests
        if self.min_response_time_ms is None:
            return average
        # Float summation can drift a ulp past the observed extremes.
        return min(max(average, self.min_response_time_ms), self.max_response_time_ms)

    @property
    def success_rate(self) -> float:
        """Fraction of requests that succeeded (0.0 to 1.0)."""
        if self.total_requests == 0:
            return 0.0
        return self.success_count / self.total_requests

    @property
    def failure_rate(self) -> float:
        """Fraction of requests that failed (0.0 to 1.0)."""
        if self.total_requests == 0:
            return 0.0
        return self.failure_count / self.total_requests


@dataclass(frozen=True)
class ProgressSnapshot:
    """Live figures shown on the progress line.

    Attributes:
        elapsed_seconds: Seconds since the measured phase started.
        total_requests: Completed requests so far.
        requests_per_second: ``total_requests / elapsed_seconds``.
        average_response_time_ms: Mean response time so far.
        success_count: 2xx responses so far.
        failure_count: Failures so far.
    """

    elapsed_seconds: float
    total_requests: int
    requests_per_second: float
    average_response_time_ms: float
    success_count: int
    failure_count: int


@dataclass(frozen=True)
class RunReport:
    """Complete result of a load test run.

    Attributes:
        config: Configuration the run was started with.
        start_time: Monotonic time when the measured phase started.
        end_time: Monotonic time when the measured phase ended.
        interrupted: True when the run was stopped before its deadline.
        final: Statistics accumulated over the measured phase.
        timeline: Progress snapshots, one per progress tick.
    """

    config: RunConfig
    start_time: float
    end_time: float
    interrupted: bool
    final: StatsSnapshot
    timeline: list[ProgressSnapshot] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Actual length of the measured phase."""
        return max(self.end_time - self.start_time, 0.0)

    @property
    def requests_per_second(self) -> float:
        """Average throughput over the measured phase."""
        if self.duration_seconds <= 0:
            return 0.0
        return self.final.total_requests / self.duration_seconds

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the report."""
        final = self.final
        return {
            "config": {
                "target_url": self.config.target_url,
                "concurrency": self.config.concurrency,
                "duration_seconds": self.config.duration_seconds,
                "request_timeout": self.config.request_timeout,
            },
            "duration_seconds": self.duration_seconds,
            "interrupted": self.interrupted,
            "total_requests": final.total_requests,
            "requests_per_second": self.requests_per_second,
            "success_count": final.success_count,
            "failure_count": final.failure_count,
            "success_rate": final.success_rate,
            "response_time_ms": {
                "average": final.average_response_time_ms,
                "min": final.min_response_time_ms,
                "max": final.max_response_time_ms,
                "p50": final.latency_p50,
                "p95": final.latency_p95,
                "p99": final.latency_p99,
            },
            "status_codes": {
                str(code): count for code, count in sorted(final.status_codes.items())
            },
            "errors": dict(final.errors),
            "endpoints": {
                name: {
                    "request_count": ep.request_count,
                    "failure_count": ep.failure_count,
                    "average_latency_ms": ep.average_latency_ms,
                }
                for name, ep in final.endpoints.items()
            },
            "timeline": [asdict(snapshot) for snapshot in self.timeline],
        }
