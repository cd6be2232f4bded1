"""Tests for environment configuration helpers."""

import pytest

from streamcart.app_config import AppEnvironConfig
from streamcart.shared.config import EnvironConfig


@pytest.fixture
def config(monkeypatch) -> EnvironConfig:
    monkeypatch.setenv("TEST_FLAG", "yes")
    monkeypatch.setenv("TEST_INT", "12")
    monkeypatch.setenv("TEST_BAD_INT", "twelve")
    monkeypatch.setenv("TEST_FLOAT", "0.5")
    cfg = EnvironConfig()
    cfg.reload()
    return cfg


class TestEnvironConfig:
    def test_typed_getters(self, config: EnvironConfig):
        assert config.get_bool("TEST_FLAG") is True
        assert config.get_int("TEST_INT", 1) == 12
        assert config.get_float("TEST_FLOAT", 2.0) == 0.5

    def test_defaults(self, config: EnvironConfig):
        assert config.get("TEST_MISSING", "fallback") == "fallback"
        assert config.get_bool("TEST_MISSING", True) is True
        assert config.get_int("TEST_BAD_INT", 7) == 7

    def test_singleton(self):
        assert EnvironConfig() is EnvironConfig()


class TestAppEnvironConfig:
    def test_live_defaults(self):
        cfg = AppEnvironConfig()

        assert cfg.LIVE_TRENDING_LIMIT == 5
        assert cfg.LIVE_BROADCAST_INTERVAL_SECONDS == 2.0
        assert cfg.LIVE_FANOUT_BACKEND in {"local", "redis"}
