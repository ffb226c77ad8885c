import typer

from gamepanel.cli.session import console
from gamepanel.config import get_settings

app = typer.Typer(help="Inspect panel configuration")


def _mask(secret: str | None) -> str:
    if not secret:
        return "(not set)"
    return "•" * 8 + secret[-4:] if len(secret) > 4 else "•" * 8


@app.command()
def show():
    """Show the effective configuration"""
    settings = get_settings()
    gateway = settings.gateway_config()

    console.print(f"API URL: [cyan]{gateway.api_url}[/cyan]")
    console.print(f"API key: {_mask(gateway.api_key)}")
    if gateway.configured:
        console.print("Gateway: [green]live[/green]")
    elif settings.fallback == "mock":
        console.print("Gateway: [yellow]not configured, using mock servers[/yellow]")
    else:
        console.print("Gateway: [red]not configured[/red]")
    console.print(f"Poll interval: {settings.poll_interval:g}s")
    console.print(f"Start confirmation delay: {settings.confirm_delay:g}s")
