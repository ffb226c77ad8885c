from gamepanel.cli.main import app

app(prog_name="gamepanel")
