import logging

import pytest


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    """Run the CLI against the mock Gateway with quiet logs and instant confirmations."""
    monkeypatch.delenv("XMANAGE_API_KEY", raising=False)
    monkeypatch.delenv("FALLBACK", raising=False)
    monkeypatch.delenv("GAMEPANEL_EMAIL", raising=False)
    monkeypatch.delenv("GAMEPANEL_PASSWORD", raising=False)
    monkeypatch.setenv("CONFIRM_DELAY", "0")
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    yield
    # setup_logging points the root handler at the runner's stream
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
