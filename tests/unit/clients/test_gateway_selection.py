"""Tests for Gateway selection."""

from gamepanel.clients.gateway import ServerGateway, create_gateway
from gamepanel.clients.mock import MockXManageClient
from gamepanel.clients.xmanage import XManageClient
from gamepanel.config import GatewayConfig


def test_configured_config_selects_live_client():
    gateway = create_gateway(GatewayConfig(api_key="secret"))

    assert isinstance(gateway, XManageClient)
    assert isinstance(gateway, ServerGateway)
    assert gateway.source == "live"


def test_unconfigured_falls_back_to_mock():
    gateway = create_gateway(GatewayConfig(), fallback="mock")

    assert isinstance(gateway, MockXManageClient)
    assert gateway.source == "mock"


def test_unconfigured_without_fallback():
    assert create_gateway(GatewayConfig(), fallback="none") is None


def test_cleared_key_is_unconfigured():
    config = GatewayConfig().with_api_key("secret").cleared()

    assert create_gateway(config, fallback="none") is None
