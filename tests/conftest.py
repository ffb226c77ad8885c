"""Shared fixtures for gamepanel tests."""

import random

import pytest

from gamepanel.clients.mock import MockXManageClient
from gamepanel.config import get_settings
from gamepanel.contracts.dto.server import Gauge, ServerRecord, ServerResources, ServerStatus
from gamepanel.store import ServerStore


class StepClock:
    """Monotonic test clock: every reading is ``step`` later than the last."""

    def __init__(self, start: float = 1000.0, step: float = 0.001):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def mock_gateway():
    """Mock XManage seeded with the three demo servers."""
    return MockXManageClient()


@pytest.fixture
def store():
    return ServerStore()


@pytest.fixture
def make_record():
    def _make(
        server_id: str = "1",
        status: ServerStatus = ServerStatus.OFFLINE,
        owner: str = "2",
        ram: tuple[float, float] = (0, 1024),
        cpu: tuple[float, float] = (0, 1.0),
        disk: tuple[float, float] = (0, 5120),
        status_since: float = 0.0,
        observed_at: float = 0.0,
    ) -> ServerRecord:
        return ServerRecord(
            id=server_id,
            name=f"Server {server_id}",
            status=status,
            owner=owner,
            resources=ServerResources(
                ram=Gauge(used=ram[0], total=ram[1]),
                cpu=Gauge(used=cpu[0], total=cpu[1]),
                disk=Gauge(used=disk[0], total=disk[1]),
            ),
            port=25565,
            startup_command="./run.sh",
            status_since=status_since,
            observed_at=observed_at,
        )

    return _make
