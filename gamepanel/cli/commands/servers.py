import asyncio
import json

import typer

from gamepanel.cli.session import Credentials, console, open_panel, servers_table
from gamepanel.config import get_settings
from gamepanel.contracts.dto.server import ServerCreate, ServerRecord
from gamepanel.errors import PanelError, PermissionDenied, ValidationError
from gamepanel.templates import TEMPLATES, from_template

app = typer.Typer(help="Manage game servers")


def _fail(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {str(e)}")
    raise typer.Exit(code=1) from None


def _visible(panel) -> list[ServerRecord]:
    return panel.user_servers if panel.user is not None else panel.servers


def _record_json(record: ServerRecord) -> dict:
    return record.model_dump(mode="json", exclude={"status_since", "observed_at"})


async def list_servers_command(credentials: Credentials, all_servers: bool) -> list[ServerRecord]:
    async with open_panel(credentials) as panel:
        if all_servers:
            if panel.user is not None and not panel.user.is_admin:
                raise PermissionDenied("Admin access required")
            return panel.servers
        return _visible(panel)


async def create_server_command(credentials: Credentials, request: ServerCreate) -> ServerRecord:
    async with open_panel(credentials) as panel:
        return await panel.create(request)


async def resize_server_command(
    credentials: Credentials,
    server_id: str,
    ram: float | None,
    cpu: float | None,
    disk: float | None,
) -> ServerRecord:
    async with open_panel(credentials) as panel:
        return await panel.resize_server(server_id, ram=ram, cpu=cpu, disk=disk)


async def start_server_command(
    credentials: Credentials, server_id: str, wait: bool
) -> ServerRecord:
    async with open_panel(credentials) as panel:
        confirmation = await panel.start_server(server_id)
        if wait:
            await confirmation
        return panel.get_server(server_id)


async def stop_server_command(credentials: Credentials, server_id: str) -> ServerRecord:
    async with open_panel(credentials) as panel:
        return await panel.stop_server(server_id)


async def restart_server_command(
    credentials: Credentials, server_id: str, wait: bool
) -> ServerRecord:
    async with open_panel(credentials) as panel:
        confirmation = await panel.restart_server(server_id)
        if wait:
            await confirmation
        return panel.get_server(server_id)


async def delete_server_command(credentials: Credentials, server_id: str) -> None:
    async with open_panel(credentials) as panel:
        await panel.delete_server(server_id)


async def watch_command(credentials: Credentials, iterations: int) -> None:
    interval = get_settings().poll_interval
    async with open_panel(credentials) as panel:
        console.print(servers_table(_visible(panel), title="Servers"))
        panel.start_polling()
        count = 1
        while iterations <= 0 or count < iterations:
            await asyncio.sleep(interval)
            console.print(servers_table(_visible(panel), title="Servers"))
            count += 1


@app.command("list")
def list_(
    ctx: typer.Context,
    all_servers: bool = typer.Option(False, "--all", help="Show every server (admin only)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List servers"""
    try:
        servers = asyncio.run(list_servers_command(ctx.obj, all_servers))
    except PanelError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps([_record_json(s) for s in servers], indent=2))
        return
    if not servers:
        console.print("No servers yet.")
        return
    console.print(servers_table(servers))


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Option("", "--name", "-n"),
    ram: int = typer.Option(512, "--ram", help="RAM in MB"),
    cpu: float = typer.Option(1.0, "--cpu", help="CPU in cores (1.0 = one vCore)"),
    disk: int = typer.Option(3072, "--disk", help="Disk in MB"),
    startup: str = typer.Option("", "--startup", help="Startup command"),
    template: str | None = typer.Option(
        None, "--template", "-t", help=f"One of: {', '.join(TEMPLATES)}"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Create a new server"""
    try:
        if template:
            if template not in TEMPLATES:
                raise ValidationError(f"Unknown template: {template}")
            request = from_template(template, name or None)
        else:
            request = ServerCreate(
                name=name, ram=ram, cpu=cpu, disk=disk, startup_command=startup
            )
        record = asyncio.run(create_server_command(ctx.obj, request))
    except PanelError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(_record_json(record), indent=2))
        return
    console.print("[bold green]✓ Server created successfully![/bold green]")
    console.print(f"ID: [cyan]{record.id}[/cyan]")
    console.print(f"Name: [magenta]{record.name}[/magenta]")
    console.print(f"Port: {record.port}")


@app.command()
def resize(
    ctx: typer.Context,
    server_id: str = typer.Argument(...),
    ram: int | None = typer.Option(None, "--ram", help="New RAM in MB"),
    cpu: float | None = typer.Option(None, "--cpu", help="New CPU in cores"),
    disk: int | None = typer.Option(None, "--disk", help="New disk in MB"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Change a server's RAM, CPU or disk limit"""
    try:
        record = asyncio.run(resize_server_command(ctx.obj, server_id, ram, cpu, disk))
    except PanelError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(_record_json(record), indent=2))
        return
    resources = record.resources
    console.print(f"[bold green]✓ Server {record.id} resized[/bold green]")
    console.print(
        f"RAM: {resources.ram.total:g} MB, CPU: {resources.cpu.total:g}, "
        f"Disk: {resources.disk.total:g} MB"
    )


@app.command()
def start(
    ctx: typer.Context,
    server_id: str = typer.Argument(...),
    wait: bool = typer.Option(False, "--wait", help="Wait for the start to be confirmed"),
):
    """Start a server"""
    try:
        record = asyncio.run(start_server_command(ctx.obj, server_id, wait))
    except PanelError as e:
        _fail(e)
    console.print(f"Server [cyan]{record.id}[/cyan] is [bold]{record.status.value}[/bold]")


@app.command()
def stop(ctx: typer.Context, server_id: str = typer.Argument(...)):
    """Stop a server"""
    try:
        record = asyncio.run(stop_server_command(ctx.obj, server_id))
    except PanelError as e:
        _fail(e)
    console.print(f"Server [cyan]{record.id}[/cyan] is [bold]{record.status.value}[/bold]")


@app.command()
def restart(
    ctx: typer.Context,
    server_id: str = typer.Argument(...),
    wait: bool = typer.Option(False, "--wait", help="Wait for the restart to be confirmed"),
):
    """Restart a server"""
    try:
        record = asyncio.run(restart_server_command(ctx.obj, server_id, wait))
    except PanelError as e:
        _fail(e)
    console.print(f"Server [cyan]{record.id}[/cyan] is [bold]{record.status.value}[/bold]")


@app.command()
def delete(
    ctx: typer.Context,
    server_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a server"""
    if not yes:
        typer.confirm(f"Delete server {server_id}?", abort=True)
    try:
        asyncio.run(delete_server_command(ctx.obj, server_id))
    except PanelError as e:
        _fail(e)
    console.print(f"[bold green]✓ Server {server_id} deleted[/bold green]")


@app.command()
def watch(
    ctx: typer.Context,
    iterations: int = typer.Option(0, "--iterations", help="Stop after N refreshes (0 = forever)"),
):
    """Poll the Gateway and print the server list on every refresh"""
    try:
        asyncio.run(watch_command(ctx.obj, iterations))
    except PanelError as e:
        _fail(e)
    except KeyboardInterrupt:
        console.print("Stopped.")
