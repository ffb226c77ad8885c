"""ServerPanel - the entry point UI layers call into.

Ties the store, the reconciler and the lifecycle together for one session
user, and runs creation through validation and quota checks before the
Gateway is touched.
"""

import asyncio
from collections.abc import Callable
import math
import random
import time

from gamepanel.clients.gateway import FallbackPolicy, ServerGateway, create_gateway
from gamepanel.clients.users import UserDirectory
from gamepanel.config import GatewayConfig, PanelSettings
from gamepanel.contracts.dto.server import (
    Gauge,
    ServerCreate,
    ServerRecord,
    ServerResources,
    ServerStatus,
)
from gamepanel.contracts.dto.user import UserAccount
from gamepanel.errors import ConfigurationError, NotFound, PermissionDenied, ValidationError
from gamepanel.lifecycle import Lifecycle
from gamepanel.logging import get_logger
from gamepanel.quota import enforce_quota, enforce_resize_quota
from gamepanel.reconciler import ReconcileResult, Reconciler
from gamepanel.schemas import XManageBackup, XManageServerCreate, XManageServerUpdate
from gamepanel.store import ServerStore
from gamepanel.units import format_cpu, format_megabytes, parse_port

logger = get_logger(__name__)

DEFAULT_SWAP_LIMIT = "0M"
DEFAULT_IO_WEIGHT = 500


def validate_sizes(ram: float, cpu: float, disk: float) -> None:
    """Reject sizes that are not finite and positive."""
    for label, value in (("RAM", ram), ("CPU", cpu), ("Disk", disk)):
        if not math.isfinite(value) or value <= 0:
            raise ValidationError(f"{label} must be greater than 0")


class ServerPanel:
    def __init__(
        self,
        gateway: ServerGateway | None,
        user: UserAccount | None = None,
        *,
        store: ServerStore | None = None,
        users: UserDirectory | None = None,
        poll_interval: float = 30.0,
        confirm_delay: float = 3.0,
        starting_timeout: float = 60.0,
        fallback: FallbackPolicy = "mock",
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.user = user
        self.store = store if store is not None else ServerStore()
        self.users = users if users is not None else UserDirectory()
        self.fallback = fallback
        self.clock = clock
        self.rng = rng or random.Random()
        self.lifecycle = Lifecycle(
            gateway, self.store, confirm_delay=confirm_delay, clock=clock, rng=self.rng
        )
        self.reconciler = Reconciler(
            gateway,
            self.store,
            session_user_id=lambda: self.user.id if self.user else None,
            interval=poll_interval,
            starting_timeout=starting_timeout,
            clock=clock,
            rng=self.rng,
        )
        self._gateway = gateway

    @classmethod
    def from_settings(
        cls, settings: PanelSettings, user: UserAccount | None = None
    ) -> "ServerPanel":
        gateway = create_gateway(settings.gateway_config(), fallback=settings.fallback)
        return cls(
            gateway,
            user,
            poll_interval=settings.poll_interval,
            confirm_delay=settings.confirm_delay,
            starting_timeout=settings.starting_timeout,
            fallback=settings.fallback,
        )

    @property
    def gateway(self) -> ServerGateway | None:
        return self._gateway

    @property
    def source(self) -> str:
        return self._gateway.source if self._gateway is not None else "not_configured"

    def reconfigure(self, config: GatewayConfig) -> ServerGateway | None:
        """Swap the Gateway after the API key or URL was set or cleared.

        Records from the previous Gateway are dropped; the next refresh
        repopulates the store.
        """
        self.lifecycle.cancel_all()
        gateway = create_gateway(config, fallback=self.fallback)
        self._gateway = gateway
        self.lifecycle.gateway = gateway
        self.reconciler.swap_gateway(gateway)
        self.store.clear()
        logger.info("panel_reconfigured", source=self.source)
        return gateway

    def _require_user(self) -> UserAccount:
        if self.user is None:
            raise PermissionDenied("User not authenticated")
        return self.user

    def _require_admin(self) -> UserAccount:
        user = self._require_user()
        if not user.is_admin:
            raise PermissionDenied("Admin access required")
        return user

    def _require_gateway(self) -> ServerGateway:
        if self._gateway is None:
            raise ConfigurationError("XManage API is not configured")
        return self._gateway

    # Reads

    @property
    def servers(self) -> list[ServerRecord]:
        return self.store.records()

    @property
    def user_servers(self) -> list[ServerRecord]:
        if self.user is None:
            return []
        return self.store.for_owner(self.user.id)

    def get_server(self, server_id: str) -> ServerRecord:
        record = self.store.get(server_id)
        if record is None:
            raise NotFound(f"Server {server_id} not found")
        return record

    # Reconciliation

    async def refresh(self) -> ReconcileResult:
        return await self.reconciler.reconcile()

    def start_polling(self) -> asyncio.Task:
        return self.reconciler.start()

    async def close(self) -> None:
        """Tear down: stop polling and drop pending start confirmations."""
        await self.reconciler.stop()
        self.lifecycle.cancel_all()

    # Mutations

    async def create_server(
        self, name: str, ram: float, cpu: float, disk: float, startup_command: str
    ) -> ServerRecord:
        request = ServerCreate(
            name=name, ram=ram, cpu=cpu, disk=disk, startup_command=startup_command
        )
        return await self.create(request)

    async def create(self, request: ServerCreate) -> ServerRecord:
        user = self._require_user()
        if not request.name.strip():
            raise ValidationError("Please enter a server name")
        if not request.startup_command.strip():
            raise ValidationError("Please enter a startup command")
        validate_sizes(request.ram, request.cpu, request.disk)

        enforce_quota(request.ram, request.cpu, request.disk, user, len(self.user_servers))
        gateway = self._require_gateway()

        port = request.port
        remote = await gateway.create_server(
            XManageServerCreate(
                server_name=request.name.strip(),
                cpu_limit=format_cpu(request.cpu),
                ram_limit=format_megabytes(request.ram),
                swap_limit=DEFAULT_SWAP_LIMIT,
                disk_limit=format_megabytes(request.disk),
                io_weight=DEFAULT_IO_WEIGHT,
                ports=str(port) if port else "",
                startup=request.startup_command,
            )
        )

        now = self.clock()
        record = ServerRecord(
            id=remote.id,
            name=remote.server_name or request.name.strip(),
            status=ServerStatus.OFFLINE,
            owner=user.id,
            resources=ServerResources(
                ram=Gauge(used=0, total=request.ram),
                cpu=Gauge(used=0, total=request.cpu),
                disk=Gauge(used=0, total=request.disk),
            ),
            port=port or parse_port(remote.ports, self.rng),
            startup_command=request.startup_command,
            status_since=now,
            observed_at=now,
        )
        self.store.upsert(record)
        logger.info(
            "server_created",
            server_id=record.id,
            owner=record.owner,
            ram_mb=request.ram,
            cpu=request.cpu,
            disk_mb=request.disk,
            port=record.port,
        )
        return record

    async def resize_server(
        self,
        server_id: str,
        ram: float | None = None,
        cpu: float | None = None,
        disk: float | None = None,
    ) -> ServerRecord:
        """Change a server's limits. ``None`` keeps the current total.

        Only the hard caps apply; the server count is unchanged by a resize.
        """
        self._require_user()
        record = self.get_server(server_id)
        totals = record.resources
        ram = totals.ram.total if ram is None else ram
        cpu = totals.cpu.total if cpu is None else cpu
        disk = totals.disk.total if disk is None else disk
        validate_sizes(ram, cpu, disk)
        enforce_resize_quota(ram, cpu, disk)
        gateway = self._require_gateway()

        await gateway.update_server(
            server_id,
            XManageServerUpdate(
                cpu_limit=format_cpu(cpu),
                ram_limit=format_megabytes(ram),
                disk_limit=format_megabytes(disk),
            ),
        )

        # Usage may have moved while the Gateway was busy
        current = self.store.get(server_id) or record
        resources = ServerResources(
            ram=Gauge(used=current.resources.ram.used, total=ram),
            cpu=Gauge(used=current.resources.cpu.used, total=cpu),
            disk=Gauge(used=current.resources.disk.used, total=disk),
        ).clamped()
        updated = current.model_copy(update={"resources": resources, "observed_at": self.clock()})
        self.store.upsert(updated)
        logger.info("server_resized", server_id=server_id, ram_mb=ram, cpu=cpu, disk_mb=disk)
        return updated

    async def start_server(self, server_id: str) -> asyncio.Task:
        return await self.lifecycle.start(server_id)

    async def stop_server(self, server_id: str) -> ServerRecord:
        return await self.lifecycle.stop(server_id)

    async def restart_server(self, server_id: str) -> asyncio.Task:
        return await self.lifecycle.restart(server_id)

    async def delete_server(self, server_id: str) -> None:
        await self.lifecycle.delete(server_id)

    # Backups

    async def list_backups(self, server_id: str) -> list[XManageBackup]:
        self.get_server(server_id)
        return await self._require_gateway().list_backups(server_id)

    async def create_backup(self, server_id: str) -> XManageBackup:
        self.get_server(server_id)
        return await self._require_gateway().create_backup(server_id)

    async def restore_backup(self, server_id: str, backup_name: str) -> None:
        self.get_server(server_id)
        await self._require_gateway().restore_backup(server_id, backup_name)

    async def delete_backup(self, server_id: str, backup_name: str) -> None:
        self.get_server(server_id)
        await self._require_gateway().delete_backup(server_id, backup_name)

    # Users (admin)

    async def list_users(self) -> list[UserAccount]:
        self._require_admin()
        return await self.users.list_users()

    async def delete_user(self, user_id: str) -> None:
        admin = self._require_admin()
        if user_id == admin.id:
            raise ValidationError("You cannot delete your own account")
        await self.users.delete_user(user_id)
