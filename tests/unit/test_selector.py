"""Tests for weighted endpoint selection."""

from __future__ import annotations

import random
from collections import Counter

import pytest

from loadburst._internal.errors import ConfigError
from loadburst.dsl.endpoints import EndpointDescriptor, default_endpoints
from loadburst.engine.selector import WeightedSelectionTable


class TestWeightedSelectionTable:
    def test_length_equals_total_weight(self):
        table = WeightedSelectionTable(default_endpoints(label="x"))
        assert len(table) == 100
        assert table.total_weight == 100

    def test_single_endpoint_always_selected(self):
        only = EndpointDescriptor(path="/only", weight=3)
        table = WeightedSelectionTable([only], rng=random.Random(1))
        assert all(table.pick() is only for _ in range(50))

    def test_zero_weight_never_selected(self):
        never = EndpointDescriptor(path="/never", weight=0)
        always = EndpointDescriptor(path="/always", weight=1)
        table = WeightedSelectionTable([never, always], rng=random.Random(7))
        picks = {table.pick().path for _ in range(1_000)}
        assert picks == {"/always"}
        assert len(table) == 1

    def test_all_zero_weights_raise(self):
        with pytest.raises(ConfigError, match="no endpoint with a positive weight"):
            WeightedSelectionTable([EndpointDescriptor(path="/a", weight=0)])

    def test_empty_mix_raises(self):
        with pytest.raises(ConfigError):
            WeightedSelectionTable([])

    def test_negative_weight_raises(self):
        with pytest.raises(ConfigError, match="negative weight"):
            WeightedSelectionTable([EndpointDescriptor(path="/a", weight=-1)])

    def test_probability(self):
        endpoints = default_endpoints(label="x")
        table = WeightedSelectionTable(endpoints)
        assert [table.probability(ep) for ep in endpoints] == [0.3, 0.5, 0.2]
        assert table.probability(EndpointDescriptor(path="/other")) == 0.0

    def test_seeded_rng_is_reproducible(self):
        endpoints = default_endpoints(label="x")
        first = WeightedSelectionTable(endpoints, rng=random.Random(42))
        second = WeightedSelectionTable(endpoints, rng=random.Random(42))
        assert [first.pick().name for _ in range(100)] == [
            second.pick().name for _ in range(100)
        ]

    def test_frequencies_converge_to_weights(self):
        table = WeightedSelectionTable(default_endpoints(label="x"), rng=random.Random(2024))
        draws = 100_000
        counts = Counter(table.pick().name for _ in range(draws))

        assert counts["GET /healthz"] / draws == pytest.approx(0.3, abs=0.01)
        assert counts["GET /users"] / draws == pytest.approx(0.5, abs=0.01)
        assert counts["POST /users"] / draws == pytest.approx(0.2, abs=0.01)

    def test_uneven_weights_converge(self):
        heavy = EndpointDescriptor(path="/heavy", weight=9)
        light = EndpointDescriptor(path="/light", weight=1)
        table = WeightedSelectionTable([heavy, light], rng=random.Random(5))
        draws = 50_000
        counts = Counter(table.pick().path for _ in range(draws))
        assert counts["/light"] / draws == pytest.approx(0.1, abs=0.01)
