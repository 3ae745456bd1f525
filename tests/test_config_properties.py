"""
Property-based tests for configuration module.

Configurations written by ``save_config_to_file`` load back unchanged;
partial files fall back to defaults.
"""

import json
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from doh_checker.cli import load_config_from_file, save_config_to_file
from doh_checker.config import (
    DEFAULT_PROVIDERS,
    CacheConfig,
    HeuristicsConfig,
    LoggingConfig,
    ProviderConfig,
    RetryConfig,
    SystemConfig,
)


# Strategies for generating valid configuration objects

@st.composite
def provider_config_strategy(draw) -> ProviderConfig:
    name = draw(st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=12))
    path = draw(st.sampled_from(["dns-query", "resolve", "doh"]))
    headers = draw(st.dictionaries(
        st.sampled_from(["Accept", "User-Agent", "X-Client"]),
        st.text(alphabet="abcdefghijklmnopqrstuvwxyz/-", min_size=1, max_size=20),
        max_size=3,
    ))
    return ProviderConfig(
        name=name,
        base_url=f"https://{name}.example/{path}",
        headers=headers,
        method=draw(st.sampled_from(["GET", "POST"])),
    )


@st.composite
def retry_config_strategy(draw) -> RetryConfig:
    return RetryConfig(
        max_retries=draw(st.integers(min_value=0, max_value=5)),
        backoff_seconds=draw(st.floats(min_value=0.0, max_value=5.0)),
        retryable_http_statuses=draw(st.lists(
            st.sampled_from([429, 500, 502, 503, 504]), unique=True, max_size=5,
        )),
    )


@st.composite
def heuristics_config_strategy(draw) -> HeuristicsConfig:
    weight = st.integers(min_value=0, max_value=100)
    return HeuristicsConfig(
        parked_threshold=draw(weight),
        premium_threshold=draw(weight),
        spf_weight=draw(weight),
        dkim_weight=draw(weight),
        dmarc_weight=draw(weight),
        wildcard_txt_weight=draw(weight),
        registrar_weight=draw(weight),
    )


@st.composite
def system_config_strategy(draw) -> SystemConfig:
    return SystemConfig(
        providers=draw(st.lists(provider_config_strategy(), min_size=1, max_size=4)),
        retry=draw(retry_config_strategy()),
        heuristics=draw(heuristics_config_strategy()),
        cache=CacheConfig(ttl_seconds=draw(st.floats(min_value=0.0, max_value=86400.0))),
        logging=LoggingConfig(
            level=draw(st.sampled_from(["debug", "info", "warn", "error"])),
            output_format=draw(st.sampled_from(["json", "text", "both"])),
        ),
        timeout_ms=draw(st.integers(min_value=1, max_value=30000)),
        primary_provider_count=draw(st.integers(min_value=1, max_value=4)),
        simulation_mode=draw(st.booleans()),
        user_agent=draw(st.one_of(st.none(), st.just("doh-checker/0.1"))),
    )


class TestConfigurationRoundTrip:
    """Saving and loading a configuration loses nothing."""

    @given(config=system_config_strategy())
    @settings(max_examples=100)
    def test_round_trip_preserves_data(self, config: SystemConfig) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "config.json"
            assert save_config_to_file(config, path)
            loaded = load_config_from_file(path)

        assert loaded == config

    @given(config=system_config_strategy())
    @settings(max_examples=50)
    def test_saved_file_is_valid_json(self, config: SystemConfig) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            save_config_to_file(config, path)
            data = json.loads(path.read_text(encoding="utf-8"))

        assert set(data) == {
            "providers", "retry", "heuristics", "cache", "logging", "timeout_ms",
            "primary_provider_count", "simulation_mode", "user_agent",
        }
        assert [p["name"] for p in data["providers"]] == [p.name for p in config.providers]


class TestPartialConfiguration:
    """Missing sections take their defaults."""

    def test_empty_object_is_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{}", encoding="utf-8")
            assert load_config_from_file(path) == SystemConfig()

    def test_partial_heuristics(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"heuristics": {"parked_threshold": 55}}), encoding="utf-8")
            config = load_config_from_file(path)

        assert config.heuristics.parked_threshold == 55
        assert config.heuristics.premium_threshold == HeuristicsConfig().premium_threshold

    def test_invalid_json_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            assert load_config_from_file(path) is None

    def test_missing_file_returns_none(self) -> None:
        assert load_config_from_file(Path("/nonexistent/doh_checker/config.json")) is None

    def test_provider_without_url_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"providers": [{"name": "x"}]}), encoding="utf-8")
            assert load_config_from_file(path) is None


class TestDefaults:
    def test_default_providers(self) -> None:
        config = SystemConfig()
        assert [p.name for p in config.providers] == ["cloudflare", "quad9", "google"]
        assert config.timeout_ms == 5000
        assert config.primary_provider_count == 2
        assert config.retry.max_retries == 1
        assert config.retry.retryable_http_statuses == [500, 502, 503, 504]

    def test_default_providers_are_copied(self) -> None:
        config = SystemConfig()
        config.providers[0].headers["X-Test"] = "1"
        assert "X-Test" not in DEFAULT_PROVIDERS[0].headers
