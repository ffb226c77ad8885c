"""XManage Client for the server management API."""

from typing import Any

import httpx

from gamepanel.config import GatewayConfig
from gamepanel.errors import ConfigurationError, TransportError
from gamepanel.logging import get_logger
from gamepanel.schemas import (
    XManageBackup,
    XManageServer,
    XManageServerCreate,
    XManageServerUpdate,
    XManageStatus,
)

logger = get_logger(__name__)


class XManageClient:
    """Client for the XManage API.

    Every call is a fresh request; failures of any kind (connection, timeout,
    non-2xx) are raised as ``TransportError``.
    """

    source = "live"

    def __init__(self, config: GatewayConfig, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize XManage Client.

        Args:
            config: Endpoint and credential. Must be configured.
            transport: Optional httpx transport, used by tests.
        """
        if not config.configured:
            raise ConfigurationError("API Key not found. Please configure your API key.")
        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, action: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                resp = await client.request(method, url, headers=self._headers(), **kwargs)
                resp.raise_for_status()
                return resp
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("xmanage_request_failed", action=action, path=path, status_code=status)
            raise TransportError(f"Failed to {action}: {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.error(
                "xmanage_request_error",
                action=action,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(f"Failed to {action}: {e}") from e

    async def list_servers(self) -> list[XManageServer]:
        """List all servers."""
        resp = await self._request("GET", "/servers", "fetch servers")
        return [XManageServer.model_validate(item) for item in resp.json()]

    async def get_server(self, server_id: str) -> XManageServer:
        resp = await self._request("GET", f"/servers/{server_id}", "fetch server")
        return XManageServer.model_validate(resp.json())

    async def get_server_status(self, server_id: str) -> XManageStatus:
        resp = await self._request("GET", f"/servers/{server_id}/status", "get server status")
        return XManageStatus.model_validate(resp.json())

    async def create_server(self, request: XManageServerCreate) -> XManageServer:
        resp = await self._request(
            "POST", "/servers", "create server", json=request.model_dump(mode="json")
        )
        server = XManageServer.model_validate(resp.json())
        logger.info("xmanage_server_created", server_id=server.id, server_name=server.server_name)
        return server

    async def update_server(self, server_id: str, request: XManageServerUpdate) -> XManageServer:
        resp = await self._request(
            "PATCH",
            f"/servers/{server_id}",
            "update server",
            json=request.model_dump(mode="json", exclude_none=True),
        )
        return XManageServer.model_validate(resp.json())

    async def delete_server(self, server_id: str) -> None:
        await self._request("DELETE", f"/servers/{server_id}", "delete server")
        logger.info("xmanage_server_deleted", server_id=server_id)

    async def start(self, server_id: str) -> None:
        await self._request("POST", f"/servers/{server_id}/start", "start server")

    async def stop(self, server_id: str) -> None:
        await self._request("POST", f"/servers/{server_id}/stop", "stop server")

    async def restart(self, server_id: str) -> None:
        await self._request("POST", f"/servers/{server_id}/restart", "restart server")

    async def list_backups(self, server_id: str) -> list[XManageBackup]:
        resp = await self._request("GET", f"/servers/{server_id}/backups", "get server backups")
        return [XManageBackup.model_validate(item) for item in resp.json()]

    async def create_backup(self, server_id: str) -> XManageBackup:
        resp = await self._request("POST", f"/servers/{server_id}/backups", "create backup")
        return XManageBackup.model_validate(resp.json())

    async def restore_backup(self, server_id: str, backup_name: str) -> None:
        await self._request(
            "PUT", f"/servers/{server_id}/backups/{backup_name}", "restore backup"
        )

    async def delete_backup(self, server_id: str, backup_name: str) -> None:
        await self._request(
            "DELETE", f"/servers/{server_id}/backups/{backup_name}", "delete backup"
        )
