"""Shared type aliases for loadburst."""

from __future__ import annotations

from enum import Enum

# HTTP headers dictionary.
Headers = dict[str, str]


class ErrorKind(str, Enum):
    """Classification of a transport-level request failure."""

    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    DNS_FAILURE = "dns_failure"
    CONNECTION_RESET = "connection_reset"
    SERVER_DISCONNECTED = "server_disconnected"
    SSL_ERROR = "ssl_error"
    UNKNOWN = "unknown"
