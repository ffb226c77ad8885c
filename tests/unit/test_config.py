"""Tests for panel settings."""

from pydantic import ValidationError
import pytest

from gamepanel.config import DEFAULT_API_URL, GatewayConfig, PanelSettings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "XMANAGE_API_URL",
        "XMANAGE_API_KEY",
        "POLL_INTERVAL",
        "CONFIRM_DELAY",
        "FALLBACK",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = get_settings()

    assert settings.xmanage_api_url == DEFAULT_API_URL
    assert settings.xmanage_api_key is None
    assert settings.poll_interval == 30.0  # noqa: PLR2004
    assert settings.confirm_delay == 3.0  # noqa: PLR2004
    assert settings.starting_timeout == 60.0  # noqa: PLR2004
    assert settings.fallback == "mock"
    assert not settings.gateway_config().configured


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("XMANAGE_API_URL", "https://panel.example.org/api/")
    monkeypatch.setenv("XMANAGE_API_KEY", "abc123")
    monkeypatch.setenv("CONFIRM_DELAY", "0.5")
    monkeypatch.setenv("FALLBACK", "none")

    settings = get_settings()
    gateway = settings.gateway_config()

    assert gateway.api_url == "https://panel.example.org/api"
    assert gateway.api_key == "abc123"
    assert settings.confirm_delay == 0.5  # noqa: PLR2004
    assert settings.fallback == "none"


def test_settings_are_cached():
    assert get_settings() is get_settings()


def test_log_level_is_normalized(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert get_settings().log_level == "DEBUG"


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    with pytest.raises(ValidationError):
        PanelSettings()


def test_invalid_fallback(monkeypatch):
    monkeypatch.setenv("FALLBACK", "live")

    with pytest.raises(ValidationError):
        PanelSettings()


class TestGatewayConfig:
    def test_blank_key_is_unconfigured(self):
        assert not GatewayConfig(api_key="").configured
        assert not GatewayConfig(api_key="  ").configured

    def test_with_helpers_return_new_configs(self):
        base = GatewayConfig()

        keyed = base.with_api_key("k")
        moved = keyed.with_api_url("https://other.example/")

        assert not base.configured
        assert keyed.configured
        assert moved.api_url == "https://other.example"
        assert moved.api_key == "k"
        assert not moved.cleared().configured

    def test_with_blank_key_stays_unconfigured(self):
        assert not GatewayConfig().with_api_key(" ").configured

    def test_is_immutable(self):
        config = GatewayConfig()

        with pytest.raises(ValidationError):
            config.api_key = "x"
