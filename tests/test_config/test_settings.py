"""Tests for settings and component configs."""

import pytest
from pydantic import ValidationError

from feedrelay.admission.config import AdmissionConfig
from feedrelay.config.settings import Settings
from feedrelay.dedup.config import DedupConfig
from feedrelay.engine.config import EngineConfig


class TestSettings:
    """Tests for process-wide settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BOT_TOKEN", raising=False)
        monkeypatch.delenv("OWNER_ID", raising=False)
        settings = Settings(_env_file=None)

        assert settings.storage_backend == "postgres"
        assert settings.fetcher == "feedparser"
        assert not settings.telegram_configured
        assert not settings.is_production
        assert settings.owner_id is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BOT_TOKEN", "123:abc")
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("OWNER_ID", "42")

        settings = Settings(_env_file=None)

        assert settings.telegram_configured
        assert settings.storage_backend == "memory"
        assert settings.owner_id == "42"

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, storage_backend="mongodb")


class TestComponentConfigs:
    """Tests for prefixed component configs."""

    def test_engine_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ENGINE_CYCLE_INTERVAL_SECONDS", "30")
        monkeypatch.setenv("ENGINE_FETCH_CONCURRENCY", "2")

        config = EngineConfig()

        assert config.cycle_interval_seconds == 30
        assert config.fetch_concurrency == 2

    def test_dedup_history_bounds(self):
        assert DedupConfig().history_size == 50
        with pytest.raises(ValidationError):
            DedupConfig(history_size=0)

    def test_admission_defaults(self):
        config = AdmissionConfig()

        assert config.window_seconds == 60
        assert config.command_threshold == 4
        assert config.warning_cap == 4
        assert config.block_seconds == 3600

    def test_admission_cooldown_bounds(self):
        with pytest.raises(ValidationError):
            AdmissionConfig(block_seconds=10)
