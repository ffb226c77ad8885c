import uuid

from gamepanel.errors import NotFound, TransportError
from gamepanel.logging import get_logger
from gamepanel.schemas import (
    XManageBackup,
    XManageGauge,
    XManageResources,
    XManageServer,
    XManageServerCreate,
    XManageServerUpdate,
    XManageStatus,
)
from gamepanel.units import parse_megabytes

logger = get_logger(__name__)


def _seed_servers() -> list[XManageServer]:
    return [
        XManageServer(
            id="1",
            server_name="Minecraft Server",
            cpu_limit="100%",
            ram_limit="1024M",
            swap_limit="0M",
            disk_limit="5G",
            ports="25565:25565",
            startup="java -Xms512M -Xmx1024M -jar server.jar",
            status="online",
            owner="1",
            resources=XManageResources(
                ram=XManageGauge(used=512, total=1024),
                cpu=XManageGauge(used=0.5, total=1),
                disk=XManageGauge(used=3072, total=5120),
            ),
        ),
        XManageServer(
            id="2",
            server_name="CS:GO Server",
            cpu_limit="100%",
            ram_limit="768M",
            swap_limit="0M",
            disk_limit="4G",
            ports="27015",
            startup="./srcds_run -game csgo -console -usercon +game_type 0",
            status="offline",
            owner="2",
            resources=XManageResources(
                ram=XManageGauge(used=0, total=768),
                cpu=XManageGauge(used=0, total=1),
                disk=XManageGauge(used=2048, total=4096),
            ),
        ),
        XManageServer(
            id="3",
            server_name="Valheim Server",
            cpu_limit="100%",
            ram_limit="768M",
            swap_limit="0M",
            disk_limit="3G",
            ports="2456-2458",
            startup='./valheim_server.x86_64 -name "My Server" -port 2456',
            status="starting",
            owner="2",
            resources=XManageResources(
                ram=XManageGauge(used=384, total=768),
                cpu=XManageGauge(used=0.8, total=1),
                disk=XManageGauge(used=1024, total=3072),
            ),
        ),
    ]


class MockXManageClient:
    """In-memory XManage stand-in.

    Used when no API key is configured (and in tests). Lifecycle commands take
    effect immediately on the mock side; the panel still shows ``starting``
    until it confirms. A server seeded as starting comes online on its first
    status read unless it is listed in ``stuck_starting``.
    """

    source = "mock"

    def __init__(self, servers: list[XManageServer] | None = None):
        seed = _seed_servers() if servers is None else servers
        self.servers: dict[str, XManageServer] = {s.id: s for s in seed}
        self.backups: dict[str, list[XManageBackup]] = {s.id: [] for s in seed}
        self.calls: list[tuple[str, str | None]] = []

        # Behavior Configuration
        self.should_fail: bool = False
        self.fail_exception: Exception | None = None
        self.fail_on: set[str] = set()
        # Servers whose start never completes
        self.stuck_starting: set[str] = set()

    def _check_failure(self, action: str) -> None:
        if self.should_fail or action in self.fail_on:
            raise self.fail_exception or TransportError(f"Failed to {action}: simulated failure")

    def _get(self, server_id: str) -> XManageServer:
        try:
            return self.servers[server_id]
        except KeyError:
            raise TransportError(f"Server {server_id} not found", status_code=404) from None

    def _set_status(self, server_id: str, status: str) -> None:
        server = self._get(server_id)
        resources = server.resources or XManageResources()
        if status == "offline":
            resources = resources.model_copy(
                update={
                    "ram": XManageGauge(used=0, total=resources.ram.total),
                    "cpu": XManageGauge(used=0, total=resources.cpu.total),
                }
            )
        self.servers[server_id] = server.model_copy(
            update={"status": status, "resources": resources}
        )

    async def list_servers(self) -> list[XManageServer]:
        self.calls.append(("list_servers", None))
        self._check_failure("fetch servers")
        return list(self.servers.values())

    async def get_server(self, server_id: str) -> XManageServer:
        self.calls.append(("get_server", server_id))
        self._check_failure("fetch server")
        return self._get(server_id)

    async def get_server_status(self, server_id: str) -> XManageStatus:
        self.calls.append(("get_server_status", server_id))
        self._check_failure("get server status")
        server = self._get(server_id)
        if server.status == "starting" and server_id not in self.stuck_starting:
            # A pending start finishes once someone asks for it
            self._set_status(server_id, "online")
            server = self.servers[server_id]
        return XManageStatus(status=server.status or "offline")

    async def create_server(self, request: XManageServerCreate) -> XManageServer:
        self.calls.append(("create_server", None))
        self._check_failure("create server")
        server = XManageServer(
            id=uuid.uuid4().hex[:9],
            status="offline",
            resources=XManageResources(
                ram=XManageGauge(used=0, total=parse_megabytes(request.ram_limit)),
                disk=XManageGauge(used=0, total=parse_megabytes(request.disk_limit)),
            ),
            **request.model_dump(),
        )
        self.servers[server.id] = server
        self.backups[server.id] = []
        logger.info("mock_xmanage_server_created", server_id=server.id)
        return server

    async def update_server(self, server_id: str, request: XManageServerUpdate) -> XManageServer:
        self.calls.append(("update_server", server_id))
        self._check_failure("update server")
        server = self._get(server_id).model_copy(update=request.model_dump(exclude_none=True))
        self.servers[server_id] = server
        return server

    async def delete_server(self, server_id: str) -> None:
        self.calls.append(("delete_server", server_id))
        self._check_failure("delete server")
        self._get(server_id)
        del self.servers[server_id]
        self.backups.pop(server_id, None)

    async def start(self, server_id: str) -> None:
        self.calls.append(("start", server_id))
        self._check_failure("start server")
        self._set_status(server_id, "online")

    async def stop(self, server_id: str) -> None:
        self.calls.append(("stop", server_id))
        self._check_failure("stop server")
        self._set_status(server_id, "offline")

    async def restart(self, server_id: str) -> None:
        self.calls.append(("restart", server_id))
        self._check_failure("restart server")
        self._set_status(server_id, "online")

    async def list_backups(self, server_id: str) -> list[XManageBackup]:
        self._check_failure("get server backups")
        self._get(server_id)
        return list(self.backups.get(server_id, []))

    async def create_backup(self, server_id: str) -> XManageBackup:
        self._check_failure("create backup")
        self._get(server_id)
        existing = self.backups.setdefault(server_id, [])
        backup = XManageBackup(name=f"backup-{len(existing) + 1}", size=0)
        existing.append(backup)
        return backup

    async def restore_backup(self, server_id: str, backup_name: str) -> None:
        self._check_failure("restore backup")
        self._find_backup(server_id, backup_name)

    async def delete_backup(self, server_id: str, backup_name: str) -> None:
        self._check_failure("delete backup")
        backup = self._find_backup(server_id, backup_name)
        self.backups[server_id].remove(backup)

    def _find_backup(self, server_id: str, backup_name: str) -> XManageBackup:
        self._get(server_id)
        for backup in self.backups.get(server_id, []):
            if backup.name == backup_name:
                return backup
        raise NotFound(f"Backup {backup_name} not found for server {server_id}")
