"""Tests for run configuration and environment loading."""

from __future__ import annotations

import math

import pytest

from loadburst._internal.config import (
    DEFAULT_TARGET_URL,
    EnvConfig,
    RunConfig,
    TargetURL,
    load_config,
    parse_target_url,
)
from loadburst._internal.errors import ConfigError


class TestParseTargetURL:
    """Tests for parse_target_url."""

    def test_explicit_port(self):
        target = parse_target_url("http://localhost:3000")
        assert target == TargetURL(scheme="http", host="localhost", port=3000)

    def test_default_http_port(self):
        assert parse_target_url("http://example.com").port == 80

    def test_default_https_port(self):
        target = parse_target_url("https://example.com")
        assert target.scheme == "https"
        assert target.port == 443

    def test_path_is_ignored_for_base_url(self):
        target = parse_target_url("http://127.0.0.1:8080/api/v1?x=1")
        assert target.base_url == "http://127.0.0.1:8080"

    def test_scheme_is_case_insensitive(self):
        assert parse_target_url("HTTP://localhost:3000").scheme == "http"

    @pytest.mark.parametrize(
        "raw",
        [
            "not a url",
            "localhost:3000",
            "ftp://example.com",
            "http://",
            "",
        ],
    )
    def test_malformed_urls_raise(self, raw: str):
        with pytest.raises(ConfigError, match="Invalid URL"):
            parse_target_url(raw)

    def test_invalid_port_raises(self):
        with pytest.raises(ConfigError, match="Invalid URL"):
            parse_target_url("http://localhost:notaport")


class TestRunConfig:
    """Tests for the RunConfig dataclass."""

    def test_defaults(self):
        config = RunConfig()
        assert config.target_url == DEFAULT_TARGET_URL
        assert config.concurrency == 5
        assert config.duration_seconds == 30.0
        assert config.request_timeout == 30.0
        assert config.progress_interval == 1.0
        assert config.target.port == 3000

    def test_frozen(self):
        config = RunConfig()
        with pytest.raises(AttributeError):
            config.concurrency = 10  # type: ignore[misc]

    def test_zero_duration_allowed(self):
        assert RunConfig(duration_seconds=0).duration_seconds == 0

    def test_zero_concurrency_raises(self):
        with pytest.raises(ConfigError, match="concurrency must be >= 1"):
            RunConfig(concurrency=0)

    def test_negative_duration_raises(self):
        with pytest.raises(ConfigError, match="duration must be >= 0"):
            RunConfig(duration_seconds=-1)

    def test_non_positive_timeout_raises(self):
        with pytest.raises(ConfigError, match="request timeout must be positive"):
            RunConfig(request_timeout=0)

    @pytest.mark.parametrize(
        "field",
        ["duration_seconds", "request_timeout", "progress_interval"],
    )
    @pytest.mark.parametrize("value", [math.nan, math.inf])
    def test_non_finite_values_raise(self, field: str, value: float):
        with pytest.raises(ConfigError, match="must be a finite number"):
            RunConfig(**{field: value})

    def test_bad_url_raises(self):
        with pytest.raises(ConfigError, match="Invalid URL"):
            RunConfig(target_url="nope")


class TestLoadConfig:
    """Tests for the load_config function."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("LOADBURST_TARGET_URL", "LOADBURST_TIMEOUT", "LOADBURST_PROGRESS_INTERVAL"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults_from_env(self):
        assert load_config() == EnvConfig()

    def test_target_url_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOADBURST_TARGET_URL", "http://api.example.com")
        assert load_config().default_target_url == "http://api.example.com"

    def test_timeout_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOADBURST_TIMEOUT", "2.5")
        assert load_config().request_timeout == 2.5

    def test_progress_interval_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOADBURST_PROGRESS_INTERVAL", "0.25")
        assert load_config().progress_interval == 0.25

    def test_invalid_timeout_raises_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOADBURST_TIMEOUT", "abc")
        with pytest.raises(ConfigError, match="must be a number"):
            load_config()

    def test_zero_timeout_raises_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOADBURST_TIMEOUT", "0")
        with pytest.raises(ConfigError, match="must be positive"):
            load_config()

    @pytest.mark.parametrize("name", ["LOADBURST_TIMEOUT", "LOADBURST_PROGRESS_INTERVAL"])
    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf"])
    def test_non_finite_values_raise_error(
        self, monkeypatch: pytest.MonkeyPatch, name: str, raw: str
    ):
        monkeypatch.setenv(name, raw)
        with pytest.raises(ConfigError, match=f"{name} must be a finite number"):
            load_config()

    def test_negative_interval_raises_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOADBURST_PROGRESS_INTERVAL", "-1")
        with pytest.raises(ConfigError, match="must be positive"):
            load_config()
