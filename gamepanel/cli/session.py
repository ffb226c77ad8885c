from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from rich.console import Console
from rich.table import Table

from gamepanel.clients.users import authenticate
from gamepanel.config import get_settings
from gamepanel.contracts.dto.server import ServerRecord, ServerStatus
from gamepanel.errors import ConfigurationError, PermissionDenied, TransportError
from gamepanel.panel import ServerPanel

console = Console()

STATUS_STYLES = {
    ServerStatus.ONLINE: "green",
    ServerStatus.OFFLINE: "red",
    ServerStatus.STARTING: "yellow",
}


@dataclass
class Credentials:
    email: str | None = None
    password: str | None = None


@asynccontextmanager
async def open_panel(credentials: Credentials, load: bool = True) -> AsyncIterator[ServerPanel]:
    """Log in, build a panel from settings and (optionally) run the initial load."""
    user = None
    if credentials.email:
        user = authenticate(credentials.email, credentials.password or "")
        if user is None:
            raise PermissionDenied("Invalid credentials")

    panel = ServerPanel.from_settings(get_settings(), user)
    try:
        if load:
            result = await panel.refresh()
            if result.source == "not_configured":
                raise ConfigurationError(result.error or "XManage API is not configured")
            if not result.ok:
                raise TransportError(result.error or "Failed to fetch servers")
        yield panel
    finally:
        await panel.close()


def servers_table(servers: list[ServerRecord], title: str = "Servers") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Status")
    table.add_column("Port", justify="right")
    table.add_column("RAM (MB)", justify="right")
    table.add_column("CPU", justify="right")
    table.add_column("Disk (MB)", justify="right")

    for server in servers:
        res = server.resources
        style = STATUS_STYLES.get(server.status, "white")
        table.add_row(
            server.id,
            server.name,
            f"[{style}]{server.status.value}[/{style}]",
            str(server.port),
            f"{res.ram.used:.0f}/{res.ram.total:.0f}",
            f"{res.cpu.used:.2f}/{res.cpu.total:.2f}",
            f"{res.disk.used:.0f}/{res.disk.total:.0f}",
        )
    return table
