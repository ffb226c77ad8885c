import typer

from gamepanel.cli.commands import config, servers, users
from gamepanel.cli.session import Credentials
from gamepanel.config import get_settings
from gamepanel.logging import setup_logging

app = typer.Typer()


@app.callback()
def callback(
    ctx: typer.Context,
    email: str | None = typer.Option(None, "--email", "-e", envvar="GAMEPANEL_EMAIL"),
    password: str | None = typer.Option(None, "--password", "-p", envvar="GAMEPANEL_PASSWORD"),
):
    """
    Game server panel CLI
    """
    settings = get_settings()
    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=settings.log_level,
    )
    ctx.obj = Credentials(email=email, password=password)


app.add_typer(servers.app, name="servers")
app.add_typer(users.app, name="users")
app.add_typer(config.app, name="config")
