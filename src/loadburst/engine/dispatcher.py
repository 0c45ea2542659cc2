"""Request dispatch: one timed request, one statistics update."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loadburst._internal.logging import get_logger

if TYPE_CHECKING:
    from loadburst.dsl.endpoints import EndpointDescriptor
    from loadburst.dsl.http_client import HttpClient, RequestMetric
    from loadburst.metrics.collector import RunStatistics

logger = get_logger("engine.dispatcher")


class Dispatcher:
    """Sends requests through an ``HttpClient`` and records their outcome.

    Every completed dispatch updates the ``RunStatistics`` exactly once,
    whether it produced a response or a transport failure. A dispatch
    cancelled while its request is outstanding records nothing.
    """

    def __init__(self, client: HttpClient, stats: RunStatistics) -> None:
        self._client = client
        self._stats = stats

    @property
    def stats(self) -> RunStatistics:
        """The statistics this dispatcher records into."""
        return self._stats

    async def dispatch(self, endpoint: EndpointDescriptor) -> RequestMetric:
        """Execute one request for ``endpoint`` and record it.

        Args:
            endpoint: The endpoint to request.

        Returns:
            The recorded RequestMetric.
        """
        metric = await self._client.execute(endpoint)
        self._stats.record(metric)
        if metric.is_transport_error:
            logger.debug("%s failed: %s", metric.name, metric.error)
        return metric
