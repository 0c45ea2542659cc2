"""loadburst: batch HTTP load generator for small CRUD services."""

from __future__ import annotations

from loadburst._internal.config import RunConfig, TargetURL, parse_target_url
from loadburst._internal.errors import ConfigError, EngineError, LoadBurstError, ProbeError
from loadburst._internal.types import ErrorKind
from loadburst.dsl.endpoints import EndpointDescriptor, default_endpoints
from loadburst.dsl.http_client import HttpClient, RequestMetric
from loadburst.engine.runner import LoadTestRunner
from loadburst.engine.selector import WeightedSelectionTable
from loadburst.metrics.collector import RunStatistics
from loadburst.metrics.models import RunReport, StatsSnapshot

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "EndpointDescriptor",
    "EngineError",
    "ErrorKind",
    "HttpClient",
    "LoadBurstError",
    "LoadTestRunner",
    "ProbeError",
    "RequestMetric",
    "RunConfig",
    "RunReport",
    "RunStatistics",
    "StatsSnapshot",
    "TargetURL",
    "WeightedSelectionTable",
    "default_endpoints",
    "parse_target_url",
]
