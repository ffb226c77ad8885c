import asyncio
import json

from rich.table import Table
import typer

from gamepanel.cli.session import Credentials, console, open_panel
from gamepanel.contracts.dto.user import UserAccount
from gamepanel.errors import PanelError
from gamepanel.quota import plan_for

app = typer.Typer(help="Manage user accounts (admin)")


async def list_users_command(credentials: Credentials) -> list[UserAccount]:
    async with open_panel(credentials, load=False) as panel:
        return await panel.list_users()


async def delete_user_command(credentials: Credentials, user_id: str) -> None:
    async with open_panel(credentials, load=False) as panel:
        await panel.delete_user(user_id)


@app.command("list")
def list_(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List user accounts"""
    try:
        users = asyncio.run(list_users_command(ctx.obj))
    except PanelError as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps([u.model_dump(mode="json") for u in users], indent=2))
        return

    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Username", style="magenta")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Plan")
    table.add_column("Servers", justify="right")
    for user in users:
        table.add_row(
            user.id,
            user.username,
            user.email,
            user.role.value,
            plan_for(user).name,
            f"{user.servers}/{user.server_limit}",
        )
    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    user_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a user account"""
    if not yes:
        typer.confirm(f"Delete user {user_id}?", abort=True)
    try:
        asyncio.run(delete_user_command(ctx.obj, user_id))
    except PanelError as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise typer.Exit(code=1) from None
    console.print(f"[bold green]✓ User {user_id} deleted[/bold green]")
