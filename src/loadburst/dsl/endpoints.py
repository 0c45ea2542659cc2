"""Endpoint descriptors and the fixed endpoint mix exercised by a run."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class EndpointDescriptor:
    """Static definition of one request type the generator can issue.

    Attributes:
        path: URL path appended to the target origin.
        method: HTTP method (GET, POST, etc.).
        weight: Relative selection weight. Zero excludes the endpoint.
        body: Optional request body, sent as-is.
        headers: Optional request headers.
    """

    path: str
    method: str = "GET"
    weight: int = 1
    body: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def name(self) -> str:
        """Logical name used to group metrics, e.g. ``"GET /users"``."""
        return f"{self.method} {self.path}"


def generate_label() -> str:
    """Return the name used for resources created during a run."""
    return f"LoadTest-{int(time.time() * 1000)}"


def default_endpoints(label: str | None = None) -> tuple[EndpointDescriptor, ...]:
    """Build the health-check / list / create mix for the CRUD service.

    Args:
        label: Name placed in the create-resource body. Generated once from
            the current time when omitted.

    Returns:
        The three endpoint descriptors with weights 30, 50 and 20.
    """
    resource_name = label or generate_label()
    return (
        EndpointDescriptor(path="/healthz", method="GET", weight=30),
        EndpointDescriptor(path="/users", method="GET", weight=50),
        EndpointDescriptor(
            path="/users",
            method="POST",
            weight=20,
            body=json.dumps({"name": resource_name}),
            headers={"Content-Type": "application/json"},
        ),
    )
