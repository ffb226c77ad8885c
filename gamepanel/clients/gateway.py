"""Gateway capability and its selection at startup."""

from typing import Literal, Protocol, runtime_checkable

from gamepanel.config import GatewayConfig
from gamepanel.logging import get_logger
from gamepanel.schemas import (
    XManageBackup,
    XManageServer,
    XManageServerCreate,
    XManageServerUpdate,
    XManageStatus,
)

from .mock import MockXManageClient
from .xmanage import XManageClient

logger = get_logger(__name__)

GatewaySource = Literal["live", "mock"]
FallbackPolicy = Literal["mock", "none"]


@runtime_checkable
class ServerGateway(Protocol):
    """What the panel needs from a server management API."""

    source: GatewaySource

    async def list_servers(self) -> list[XManageServer]: ...

    async def get_server(self, server_id: str) -> XManageServer: ...

    async def get_server_status(self, server_id: str) -> XManageStatus: ...

    async def create_server(self, request: XManageServerCreate) -> XManageServer: ...

    async def update_server(
        self, server_id: str, request: XManageServerUpdate
    ) -> XManageServer: ...

    async def delete_server(self, server_id: str) -> None: ...

    async def start(self, server_id: str) -> None: ...

    async def stop(self, server_id: str) -> None: ...

    async def restart(self, server_id: str) -> None: ...

    async def list_backups(self, server_id: str) -> list[XManageBackup]: ...

    async def create_backup(self, server_id: str) -> XManageBackup: ...

    async def restore_backup(self, server_id: str, backup_name: str) -> None: ...

    async def delete_backup(self, server_id: str, backup_name: str) -> None: ...


def create_gateway(
    config: GatewayConfig, fallback: FallbackPolicy = "mock"
) -> ServerGateway | None:
    """Pick the Gateway implementation once.

    Returns the live client when ``config`` carries an API key. Otherwise the
    fallback policy decides: an in-memory mock seeded with demo servers, or
    ``None`` ("not configured").
    """
    if config.configured:
        logger.info("gateway_selected", source="live", api_url=config.api_url)
        return XManageClient(config)

    if fallback == "mock":
        logger.warning("gateway_not_configured", fallback="mock")
        return MockXManageClient()

    logger.warning("gateway_not_configured", fallback="none")
    return None
