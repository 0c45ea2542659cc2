"""Run loop: probe, measured batches, report."""

from __future__ import annotations

import asyncio
import contextlib
import random
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from loadburst._internal.errors import EngineError, ProbeError
from loadburst._internal.logging import get_logger
from loadburst.dsl.endpoints import default_endpoints
from loadburst.dsl.http_client import HttpClient
from loadburst.engine.dispatcher import Dispatcher
from loadburst.engine.progress import ProgressReporter
from loadburst.engine.selector import WeightedSelectionTable
from loadburst.metrics.collector import RunStatistics
from loadburst.metrics.models import RunReport
from loadburst.metrics.store import MetricStore

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterable

    from loadburst._internal.config import RunConfig
    from loadburst.dsl.endpoints import EndpointDescriptor
    from loadburst.dsl.http_client import RequestMetric
    from loadburst.metrics.models import ProgressSnapshot

logger = get_logger("engine.runner")


class RunState(Enum):
    """State machine for a load test run."""

    CREATED = auto()
    PROBING = auto()
    RUNNING = auto()
    REPORTING = auto()
    COMPLETED = auto()
    FAILED = auto()


def _run_event_loop(main: Coroutine[Any, Any, RunReport]) -> RunReport:
    """Run ``main`` on a uvloop event loop, or asyncio's on Windows."""
    if sys.platform == "win32":
        return asyncio.run(main)

    import uvloop

    logger.debug("Running on the uvloop event loop")
    return uvloop.run(main)


class LoadTestRunner:
    """Drives one load test run against a single target.

    State machine: CREATED -> PROBING -> RUNNING -> REPORTING -> COMPLETED
                              -> FAILED (probe failure or engine error)

    The measured phase issues closed batches of ``config.concurrency``
    requests and waits for each batch to finish before checking the
    deadline, so a run may overrun its duration by one batch. ``request_stop``
    (wired to SIGINT/SIGTERM during the measured phase) cancels the batch in
    flight and moves straight to the report.

    Attributes:
        config: The run configuration.
        stats: Statistics owned by this run.
    """

    def __init__(
        self,
        config: RunConfig,
        endpoints: Iterable[EndpointDescriptor] | None = None,
        *,
        client: HttpClient | None = None,
        rng: random.Random | None = None,
        on_progress: Callable[[ProgressSnapshot], None] | None = None,
        on_probe: Callable[[RequestMetric], None] | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Target, concurrency, duration and timeouts.
            endpoints: Endpoint mix. Defaults to ``default_endpoints()``.
            client: Pre-built client to use instead of opening one from
                ``config``. The caller owns its lifecycle.
            rng: Random source for endpoint selection.
            on_progress: Invoked with each progress snapshot.
            on_probe: Invoked with the probe's RequestMetric once it succeeds.
            handle_signals: Install SIGINT/SIGTERM handlers during the
                measured phase.

        Raises:
            ConfigError: If the endpoint mix cannot be selected from.
        """
        self.config = config
        self.stats = RunStatistics()
        self._table = WeightedSelectionTable(
            endpoints if endpoints is not None else default_endpoints(),
            rng=rng,
        )
        self._client = client
        self._on_progress = on_progress
        self._on_probe = on_probe
        self._handle_signals = handle_signals
        self._store = MetricStore()
        self._stop_event = asyncio.Event()
        self._state = RunState.CREATED
        self._signals_installed = False

    @property
    def state(self) -> RunState:
        """Return the current run state."""
        return self._state

    @property
    def selection_table(self) -> WeightedSelectionTable:
        """The weighted table requests are drawn from."""
        return self._table

    def request_stop(self) -> None:
        """Ask the run to stop and report what it has measured so far."""
        if not self._stop_event.is_set():
            logger.info("Stop requested, finishing run")
        self._stop_event.set()

    def run(self) -> RunReport:
        """Execute the run on a fresh event loop and return the report.

        This is a blocking call.

        Raises:
            ProbeError: If the target is unreachable.
            EngineError: If the run loop fails unexpectedly.
        """
        return _run_event_loop(self.run_async())

    async def run_async(self) -> RunReport:
        """Execute the full probe / measure / report lifecycle.

        Returns:
            RunReport built from the measured phase.

        Raises:
            ProbeError: If the probe request fails at the transport level.
            EngineError: If the run loop fails unexpectedly.
        """
        logger.info(
            "Starting load test: target=%s, concurrency=%d, duration=%.1fs",
            self.config.target_url,
            self.config.concurrency,
            self.config.duration_seconds,
        )
        async with self._open_client() as client:
            dispatcher = Dispatcher(client, self.stats)
            await self._probe(dispatcher)
            return await self._measure(dispatcher)

    def _open_client(self) -> contextlib.AbstractAsyncContextManager[HttpClient]:
        if self._client is not None:
            return contextlib.nullcontext(self._client)
        return HttpClient(
            base_url=self.config.target.base_url,
            timeout=self.config.request_timeout,
            pool_size=max(self.config.concurrency, 1),
        )

    async def _probe(self, dispatcher: Dispatcher) -> None:
        self._state = RunState.PROBING
        metric = await dispatcher.dispatch(self._table.pick())
        if metric.is_transport_error:
            self._state = RunState.FAILED
            logger.error("Connection probe failed: %s", metric.error)
            msg = f"Connection failed: {metric.error}"
            raise ProbeError(msg)
        logger.info("Connection probe succeeded: %s -> %d", metric.name, metric.status_code)
        if self._on_probe is not None:
            self._on_probe(metric)

    async def _measure(self, dispatcher: Dispatcher) -> RunReport:
        self.stats.reset()
        self._store.clear()
        self._state = RunState.RUNNING

        start_time = time.monotonic()
        deadline = start_time + self.config.duration_seconds
        reporter = ProgressReporter(
            self.stats,
            start_time,
            interval=self.config.progress_interval,
            on_progress=self._on_progress,
            store=self._store,
        )

        interrupted = False
        batches = 0
        self._install_signal_handlers()
        reporter.start()
        try:
            while True:
                if self._stop_event.is_set():
                    interrupted = True
                    break
                completed = await self._run_batch(dispatcher)
                batches += 1
                if not completed:
                    interrupted = True
                    break
                logger.debug(
                    "Batch %d done, total_requests=%d", batches, self.stats.total_requests
                )
                if time.monotonic() >= deadline:
                    break
        except Exception as exc:
            self._state = RunState.FAILED
            logger.exception("Load test failed")
            raise EngineError("Load test failed") from exc
        finally:
            await reporter.stop()
            self._remove_signal_handlers()

        end_time = time.monotonic()
        self._state = RunState.REPORTING
        final = self.stats.snapshot()
        report = RunReport(
            config=self.config,
            start_time=start_time,
            end_time=end_time,
            interrupted=interrupted,
            final=final,
            timeline=self._store.get_all(),
        )
        self._state = RunState.COMPLETED

        logger.info(
            "Load test completed: duration=%.1fs, batches=%d, total_requests=%d, "
            "rps=%.1f, success_rate=%.2f%%, interrupted=%s",
            report.duration_seconds,
            batches,
            final.total_requests,
            report.requests_per_second,
            final.success_rate * 100,
            interrupted,
        )
        return report

    async def _run_batch(self, dispatcher: Dispatcher) -> bool:
        """Dispatch one batch and wait for all of it, or for a stop request.

        Returns:
            True if the whole batch completed, False if it was cancelled
            because a stop was requested.
        """
        tasks = [
            asyncio.create_task(dispatcher.dispatch(self._table.pick()), name=f"request-{i}")
            for i in range(self.config.concurrency)
        ]
        batch = asyncio.gather(*tasks)
        stop_waiter = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({batch, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stop_waiter

        if not batch.done():
            # Outstanding requests are dropped; finished ones are already recorded.
            batch.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await batch
            logger.debug("Batch cancelled by stop request")
            return False

        exc = batch.exception()
        if exc is not None:
            for task in tasks:
                task.cancel()
            raise exc
        return True

    def _install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to ``request_stop`` for the measured phase."""
        if not self._handle_signals:
            return

        def _signal_handler() -> None:
            logger.info("Signal received, stopping load test")
            self.request_stop()

        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
            signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())
        self._signals_installed = True

    def _remove_signal_handlers(self) -> None:
        if not self._signals_installed:
            return
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
        self._signals_installed = False
