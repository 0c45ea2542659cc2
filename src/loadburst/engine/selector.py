"""Weighted-random endpoint selection."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from loadburst._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from loadburst.dsl.endpoints import EndpointDescriptor


class WeightedSelectionTable:
    """Flat, immutable expansion of endpoints by weight.

    Each descriptor appears ``weight`` times, so a uniform pick over the
    table selects an endpoint with probability ``weight / total_weight``.
    Zero-weight endpoints are never selected.

    Attributes:
        endpoints: The descriptors the table was built from.
    """

    def __init__(
        self,
        endpoints: Iterable[EndpointDescriptor],
        rng: random.Random | None = None,
    ) -> None:
        """Build the table.

        Args:
            endpoints: Descriptors to choose between.
            rng: Random source. Defaults to a fresh ``random.Random``.

        Raises:
            ConfigError: If a weight is negative or every weight is zero.
        """
        self.endpoints = tuple(endpoints)
        expanded: list[EndpointDescriptor] = []
        for endpoint in self.endpoints:
            if endpoint.weight < 0:
                msg = f"Endpoint {endpoint.name!r} has negative weight {endpoint.weight}"
                raise ConfigError(msg)
            expanded.extend([endpoint] * endpoint.weight)
        if not expanded:
            msg = "Endpoint mix has no endpoint with a positive weight"
            raise ConfigError(msg)
        self._table: tuple[EndpointDescriptor, ...] = tuple(expanded)
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def total_weight(self) -> int:
        """Sum of all weights, equal to the table length."""
        return len(self._table)

    def pick(self) -> EndpointDescriptor:
        """Return one endpoint chosen uniformly from the expanded table."""
        return self._table[self._rng.randrange(len(self._table))]

    def probability(self, endpoint: EndpointDescriptor) -> float:
        """Return the selection probability of ``endpoint``."""
        return endpoint.weight / self.total_weight if endpoint in self.endpoints else 0.0

    def __len__(self) -> int:
        return len(self._table)
