"""Tests for settings, per-index strategy config and the index registry."""

import pytest
from pydantic import ValidationError

from reindex_scheduler.config import IndexStrategyConfig, Settings
from reindex_scheduler.exceptions import UnknownIndex
from reindex_scheduler.services.index_registry import IndexRegistry


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        source = Settings(_env_file=None)

        assert source.reindex_latency == 10
        assert source.reindex_margin == 2
        assert source.reindex_queue_name == "reindex"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REINDEX_LATENCY", "60")
        monkeypatch.setenv("DISABLE_REFRESH_ASYNC", "true")

        source = Settings(_env_file=None)

        assert source.reindex_latency == 60
        assert source.disable_refresh_async is True


class TestIndexStrategyConfig:
    """Tests for IndexStrategyConfig."""

    def test_from_settings_with_overrides(self, test_settings):
        config = IndexStrategyConfig.from_settings(test_settings, margin=5)

        assert config.latency == 10
        assert config.margin == 5
        assert config.reindex_wrapper is None
        assert config.refresh_suppressed is False

    @pytest.mark.parametrize("field,value", [("latency", 0), ("margin", -1), ("ttl", 0)])
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            IndexStrategyConfig(**{field: value})


class TestIndexRegistry:
    """Tests for IndexRegistry."""

    def test_register_and_get(self, test_settings, invoker):
        registry = IndexRegistry(test_settings)

        entry = registry.register("cities", invoker, latency=60)

        assert registry.get("cities") is entry
        assert entry.config.latency == 60
        assert registry.names() == ["cities"]

    def test_explicit_config(self, test_settings, invoker):
        registry = IndexRegistry(test_settings)
        config = IndexStrategyConfig(latency=30, margin=1)

        registry.register("cities", invoker, config=config)

        assert registry.config_for("cities") is config

    def test_unknown_index(self, test_settings):
        registry = IndexRegistry(test_settings)

        with pytest.raises(UnknownIndex) as exc_info:
            registry.get("streets")

        assert isinstance(exc_info.value, KeyError)
        assert "streets" in str(exc_info.value)

    def test_config_for_unregistered_uses_defaults(self, test_settings):
        registry = IndexRegistry(test_settings)

        assert registry.config_for("streets").latency == test_settings.reindex_latency

    def test_rejects_empty_name(self, test_settings, invoker):
        with pytest.raises(ValueError):
            IndexRegistry(test_settings).register("", invoker)
