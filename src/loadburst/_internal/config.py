"""Run configuration and environment loading for loadburst."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field

from yarl import URL

from loadburst._internal.errors import ConfigError

DEFAULT_TARGET_URL = "http://localhost:3000"
DEFAULT_CONCURRENCY = 5
DEFAULT_DURATION = 30.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_PROGRESS_INTERVAL = 1.0

_SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class TargetURL:
    """A target URL reduced to the parts requests are built from.

    Attributes:
        scheme: ``http`` or ``https``.
        host: Host name or IP address.
        port: Explicit port, or the scheme's default port.
    """

    scheme: str
    host: str
    port: int

    @property
    def base_url(self) -> str:
        """``scheme://host:port`` with no path; endpoint paths are appended."""
        return str(URL.build(scheme=self.scheme, host=self.host, port=self.port))


def parse_target_url(raw: str) -> TargetURL:
    """Parse and validate a target URL.

    Any path, query or fragment on the URL is ignored; endpoint paths are
    always resolved against the origin.

    Args:
        raw: URL as typed by the user, e.g. ``http://localhost:3000``.

    Returns:
        The parsed TargetURL.

    Raises:
        ConfigError: If the URL cannot be parsed, has no host, or does not
            use http or https.
    """
    try:
        url = URL(raw.strip())
        scheme = url.scheme.lower()
        host = url.host
        port = url.port
    except (TypeError, ValueError) as exc:
        msg = f"Invalid URL: {raw!r} ({exc})"
        raise ConfigError(msg) from exc

    if scheme not in _SUPPORTED_SCHEMES:
        msg = f"Invalid URL: {raw!r} (scheme must be http or https)"
        raise ConfigError(msg)
    if not host:
        msg = f"Invalid URL: {raw!r} (missing host)"
        raise ConfigError(msg)
    if port is None:
        msg = f"Invalid URL: {raw!r} (cannot determine port)"
        raise ConfigError(msg)

    return TargetURL(scheme=scheme, host=host, port=port)


@dataclass(frozen=True)
class RunConfig:
    """Immutable configuration of one load test run.

    Attributes:
        target_url: The URL exactly as supplied, echoed in the report.
        concurrency: Requests kept in flight per batch.
        duration_seconds: Length of the measured phase.
        request_timeout: Per-request timeout in seconds.
        progress_interval: Seconds between progress updates.
        target: Parsed form of ``target_url``.
    """

    target_url: str = DEFAULT_TARGET_URL
    concurrency: int = DEFAULT_CONCURRENCY
    duration_seconds: float = DEFAULT_DURATION
    request_timeout: float = DEFAULT_TIMEOUT
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL
    target: TargetURL = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            msg = f"concurrency must be >= 1, got: {self.concurrency}"
            raise ConfigError(msg)
        for name, value in (
            ("duration", self.duration_seconds),
            ("request timeout", self.request_timeout),
            ("progress interval", self.progress_interval),
        ):
            if not math.isfinite(value):
                msg = f"{name} must be a finite number, got: {value}"
                raise ConfigError(msg)
        if self.duration_seconds < 0:
            msg = f"duration must be >= 0, got: {self.duration_seconds}"
            raise ConfigError(msg)
        if self.request_timeout <= 0:
            msg = f"request timeout must be positive, got: {self.request_timeout}"
            raise ConfigError(msg)
        if self.progress_interval <= 0:
            msg = f"progress interval must be positive, got: {self.progress_interval}"
            raise ConfigError(msg)
        object.__setattr__(self, "target", parse_target_url(self.target_url))


@dataclass(frozen=True)
class EnvConfig:
    """Defaults read from the environment.

    Attributes:
        default_target_url: Target used when none is given on the command line.
        request_timeout: Per-request timeout in seconds.
        progress_interval: Seconds between progress updates.
    """

    default_target_url: str = DEFAULT_TARGET_URL
    request_timeout: float = DEFAULT_TIMEOUT
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None
    if not math.isfinite(value):
        msg = f"{name} must be a finite number, got: {raw!r}"
        raise ConfigError(msg)
    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def load_config() -> EnvConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        LOADBURST_TARGET_URL: Default target URL.
        LOADBURST_TIMEOUT: Per-request timeout in seconds (default: 30.0).
        LOADBURST_PROGRESS_INTERVAL: Progress period in seconds (default: 1.0).

    Returns:
        Populated EnvConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    return EnvConfig(
        default_target_url=os.environ.get("LOADBURST_TARGET_URL", DEFAULT_TARGET_URL),
        request_timeout=_positive_float("LOADBURST_TIMEOUT", DEFAULT_TIMEOUT),
        progress_interval=_positive_float(
            "LOADBURST_PROGRESS_INTERVAL", DEFAULT_PROGRESS_INTERVAL
        ),
    )
