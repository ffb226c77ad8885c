"""Clients for external services."""

from .gateway import FallbackPolicy, GatewaySource, ServerGateway, create_gateway
from .mock import MockXManageClient
from .users import UserDirectory, authenticate, register
from .xmanage import XManageClient

__all__ = [
    "FallbackPolicy",
    "GatewaySource",
    "MockXManageClient",
    "ServerGateway",
    "UserDirectory",
    "XManageClient",
    "authenticate",
    "create_gateway",
    "register",
]
