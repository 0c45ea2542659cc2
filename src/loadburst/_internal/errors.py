"""Custom exception hierarchy for loadburst."""

from __future__ import annotations


class LoadBurstError(Exception):
    """Base exception for all loadburst errors.

    Every error the CLI reports as a fatal condition inherits from this
    class, so a single except clause maps them to a non-zero exit code.
    """


class ConfigError(LoadBurstError):
    """Raised when configuration is invalid or missing.

    Examples:
        - The target URL is malformed or uses an unsupported scheme.
        - An environment variable has an invalid value.
        - An endpoint mix has negative weights or no selectable endpoint.
    """


class ProbeError(LoadBurstError):
    """Raised when the initial connectivity probe fails at the transport level.

    A non-2xx response does not raise this error; the probe only checks
    that the target can be reached.
    """


class EngineError(LoadBurstError):
    """Raised when the run loop fails for a reason other than a request outcome."""
