"""Instrumented HTTP client with auto-timing and transport error classification."""

from __future__ import annotations

import asyncio
import errno
import socket
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from loadburst._internal.types import ErrorKind, Headers

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadburst.dsl.endpoints import EndpointDescriptor


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass(frozen=True)
class RequestMetric:
    """Outcome of one HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical endpoint name (e.g., "GET /users").
        method: HTTP method.
        url: Full request URL.
        status_code: HTTP response status code (0 if the request failed).
        latency_ms: Time from send to full body received, in milliseconds.
        content_length: Response body size in bytes.
        error_kind: Transport failure classification, None on a response.
        error: Error message if the request failed, None otherwise.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int = 0
    error_kind: ErrorKind | None = None
    error: str | None = None

    @property
    def is_transport_error(self) -> bool:
        """True when no HTTP response was received."""
        return self.error_kind is not None

    @property
    def succeeded(self) -> bool:
        """True for a 2xx response."""
        return not self.is_transport_error and 200 <= self.status_code < 300


def classify_transport_error(exc: BaseException) -> ErrorKind:
    """Map a transport-level exception to an ErrorKind.

    Args:
        exc: Exception raised while sending the request or reading the body.

    Returns:
        The matching classification, ``ErrorKind.UNKNOWN`` if none applies.
    """
    # ServerTimeoutError and friends subclass asyncio.TimeoutError.
    if isinstance(exc, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, aiohttp.ClientSSLError):
        return ErrorKind.SSL_ERROR
    if isinstance(exc, aiohttp.ClientConnectorError):
        return _classify_os_error(exc.os_error)
    if isinstance(exc, aiohttp.ServerDisconnectedError):
        return ErrorKind.SERVER_DISCONNECTED
    if isinstance(exc, OSError):
        return _classify_os_error(exc)
    return ErrorKind.UNKNOWN


def _classify_os_error(exc: OSError) -> ErrorKind:
    if isinstance(exc, socket.gaierror):
        return ErrorKind.DNS_FAILURE
    if isinstance(exc, TimeoutError) or exc.errno == errno.ETIMEDOUT:
        return ErrorKind.TIMEOUT
    if isinstance(exc, ConnectionRefusedError) or exc.errno == errno.ECONNREFUSED:
        return ErrorKind.CONNECTION_REFUSED
    if isinstance(exc, ConnectionResetError) or exc.errno == errno.ECONNRESET:
        return ErrorKind.CONNECTION_RESET
    return ErrorKind.UNKNOWN


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is timed from just before it is sent until its body has
    been read in full. Transport failures are caught, classified and
    reported in the returned ``RequestMetric`` instead of being raised.

    Attributes:
        base_url: Origin prepended to every endpoint path.
        headers: Headers applied to every request; endpoint headers win.
    """

    def __init__(
        self,
        base_url: str,
        headers: Headers | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        timeout: float = 30.0,
        pool_size: int = 100,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Origin prepended to every endpoint path.
            headers: Default headers applied to every request.
            metric_callback: Invoked with each ``RequestMetric``.
                Defaults to a no-op.
            timeout: Total per-request timeout in seconds.
            pool_size: Maximum simultaneous connections.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Headers = dict(headers or {})
        self._metric_callback = metric_callback or _noop_callback
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._pool_size = pool_size
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            timeout=self._timeout,
            connector=aiohttp.TCPConnector(limit=self._pool_size),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def execute(self, endpoint: EndpointDescriptor) -> RequestMetric:
        """Send one request described by ``endpoint`` and time it.

        Args:
            endpoint: Method, path, headers and body of the request.

        Returns:
            The RequestMetric for this request. Transport failures are
            reported through ``error_kind`` rather than raised.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = f"{self.base_url}{endpoint.path}"
        headers = {**self.headers, **endpoint.headers}
        data = endpoint.body.encode("utf-8") if endpoint.body is not None else None

        status_code = 0
        content_length = 0
        error_kind: ErrorKind | None = None
        error: str | None = None

        start = time.monotonic()
        try:
            async with self._session.request(
                endpoint.method,
                url,
                headers=headers,
                data=data,
            ) as resp:
                body = await resp.read()
                status_code = resp.status
                content_length = len(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            status_code = 0
            error_kind = classify_transport_error(exc)
            error = f"{type(exc).__name__}: {exc}"
        latency_ms = (time.monotonic() - start) * 1000

        metric = RequestMetric(
            timestamp=start,
            name=endpoint.name,
            method=endpoint.method,
            url=url,
            status_code=status_code,
            latency_ms=latency_ms,
            content_length=content_length,
            error_kind=error_kind,
            error=error,
        )
        self._metric_callback(metric)
        return metric
