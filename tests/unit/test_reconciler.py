"""Tests for the Reconciler."""

import asyncio

import pytest

from gamepanel.clients.gateway import create_gateway
from gamepanel.clients.mock import MockXManageClient
from gamepanel.config import GatewayConfig
from gamepanel.contracts.dto.server import ServerStatus
from gamepanel.lifecycle import Lifecycle
from gamepanel.reconciler import Reconciler
from gamepanel.schemas import XManageGauge, XManageResources, XManageServer
from gamepanel.store import ServerStore


class HeldListGateway(MockXManageClient):
    """Mock that takes its server list snapshot, then waits to return it."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def list_servers(self) -> list[XManageServer]:
        servers = await super().list_servers()
        self.entered.set()
        await self.release.wait()
        return servers


def list_calls(gateway: MockXManageClient) -> int:
    return sum(1 for name, _ in gateway.calls if name == "list_servers")


class TestReconcile:
    @pytest.mark.asyncio
    async def test_loads_mock_servers(self, mock_gateway, store, clock):
        reconciler = Reconciler(mock_gateway, store, session_user_id="2", clock=clock)

        result = await reconciler.reconcile()

        assert result.ok
        assert result.source == "mock"
        assert result.servers == 3  # noqa: PLR2004
        assert result.added == 3  # noqa: PLR2004
        assert reconciler.last_result == result

        minecraft = store.get("1")
        assert minecraft.status == ServerStatus.ONLINE
        assert minecraft.owner == "1"
        assert minecraft.port == 25565  # noqa: PLR2004
        assert (minecraft.resources.ram.total, minecraft.resources.disk.total) == (1024, 5120)
        assert minecraft.resources.cpu.total == 1.0
        assert minecraft.resources.ram.used == 512  # noqa: PLR2004

    @pytest.mark.asyncio
    async def test_offline_server_keeps_disk_usage(self, mock_gateway, store, clock):
        await Reconciler(mock_gateway, store, clock=clock).reconcile()

        csgo = store.get("2")
        assert csgo.status == ServerStatus.OFFLINE
        assert csgo.resources.ram.used == 0
        assert csgo.resources.cpu.used == 0
        assert csgo.resources.disk.used == 2048  # noqa: PLR2004

    @pytest.mark.asyncio
    async def test_fallback_gateway_gives_demo_dataset(self, store):
        gateway = create_gateway(GatewayConfig(), fallback="mock")

        result = await Reconciler(gateway, store).reconcile()

        assert result.source == "mock"
        assert sorted(store.snapshot) == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_not_configured(self, store):
        reconciler = Reconciler(None, store)

        result = await reconciler.reconcile()

        assert result.source == "not_configured"
        assert not result.ok
        assert result.error
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_usage_is_clamped_to_totals(self, store, clock):
        gateway = MockXManageClient(
            servers=[
                XManageServer(
                    id="9",
                    server_name="Greedy",
                    ram_limit="512M",
                    cpu_limit="50%",
                    disk_limit="1G",
                    status="online",
                    resources=XManageResources(
                        ram=XManageGauge(used=900, total=512),
                        cpu=XManageGauge(used=0.9, total=1),
                        disk=XManageGauge(used=-5, total=1024),
                    ),
                ),
                XManageServer(
                    id="8",
                    server_name="Garbled",
                    ram_limit="lots",
                    cpu_limit="1G",
                    disk_limit="",
                    status="running",
                    resources=XManageResources(ram=XManageGauge(used=300)),
                ),
            ]
        )

        await Reconciler(gateway, store, clock=clock).reconcile()

        greedy = store.get("9").resources
        assert (greedy.ram.used, greedy.ram.total) == (512, 512)
        assert (greedy.cpu.used, greedy.cpu.total) == (0.5, 0.5)
        assert (greedy.disk.used, greedy.disk.total) == (0, 1024)

        garbled = store.get("8")
        assert garbled.status == ServerStatus.ONLINE
        assert garbled.resources.ram.total == 0
        assert garbled.resources.ram.used == 0
        assert garbled.resources.cpu.total == 0

    @pytest.mark.asyncio
    async def test_owner_attribution(self, store, clock, make_record):
        gateway = MockXManageClient(
            servers=[
                XManageServer(id="10", server_name="Unowned", status="offline"),
                XManageServer(id="11", server_name="Claimed", status="offline", owner="1"),
            ]
        )
        store.upsert(make_record("11", owner="5"))

        await Reconciler(gateway, store, session_user_id=lambda: "4", clock=clock).reconcile()

        assert store.get("10").owner == "4"
        assert store.get("11").owner == "5"

    @pytest.mark.asyncio
    async def test_failure_leaves_store_untouched(self, mock_gateway, store, clock):
        reconciler = Reconciler(mock_gateway, store, clock=clock)
        await reconciler.reconcile()
        snapshot = store.snapshot

        mock_gateway.should_fail = True
        result = await reconciler.reconcile()

        assert not result.ok
        assert result.source == "mock"
        assert "Failed to fetch servers" in result.error
        assert store.snapshot is snapshot

    @pytest.mark.asyncio
    async def test_partial_fetch_is_not_merged(self, mock_gateway, store, clock):
        mock_gateway.fail_on.add("get server status")

        result = await Reconciler(mock_gateway, store, clock=clock).reconcile()

        assert not result.ok
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_local_write_during_fetch_wins(self, store, clock, make_record):
        gateway = HeldListGateway()
        store.upsert(make_record("2", owner="2", ram=(0, 768), disk=(2048, 4096)))
        reconciler = Reconciler(gateway, store, clock=clock)
        lifecycle = Lifecycle(gateway, store, confirm_delay=10, clock=clock)

        task = asyncio.create_task(reconciler.reconcile())
        await gateway.entered.wait()
        await lifecycle.start("2")
        gateway.release.set()
        result = await task

        assert result.kept_local == 1
        assert store.get("2").status == ServerStatus.STARTING
        lifecycle.cancel_all()


class TestGatewaySwap:
    @pytest.mark.asyncio
    async def test_swap_during_fetch_discards_result(self, store, clock):
        gateway = HeldListGateway()
        reconciler = Reconciler(gateway, store, clock=clock)

        task = asyncio.create_task(reconciler.reconcile())
        await gateway.entered.wait()
        reconciler.swap_gateway(None)
        gateway.release.set()
        result = await task

        assert result.discarded
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_in_flight_run_keeps_its_gateway(self, store, clock):
        gateway = HeldListGateway()
        replacement = MockXManageClient(servers=[])
        reconciler = Reconciler(gateway, store, clock=clock)

        task = asyncio.create_task(reconciler.reconcile())
        await gateway.entered.wait()
        reconciler.swap_gateway(replacement)
        gateway.release.set()
        result = await task

        assert result.discarded
        assert replacement.calls == []
        assert len(store) == 0

        result = await reconciler.reconcile()
        assert result.ok
        assert replacement.calls == [("list_servers", None)]


class TestStaleStarting:
    @pytest.mark.asyncio
    async def test_stuck_start_is_marked_offline(self, mock_gateway, store, clock, make_record):
        mock_gateway.stuck_starting.add("3")
        store.upsert(make_record("3", ServerStatus.STARTING, ram=(384, 768), status_since=0.0))
        reconciler = Reconciler(mock_gateway, store, starting_timeout=60, clock=clock)

        result = await reconciler.reconcile()

        assert result.stale_resolved == 1
        valheim = store.get("3")
        assert valheim.status == ServerStatus.OFFLINE
        assert valheim.resources.ram.used == 0

    @pytest.mark.asyncio
    async def test_start_confirmed_by_remote(self, mock_gateway, store, clock, make_record):
        store.upsert(make_record("3", ServerStatus.STARTING, status_since=0.0))
        mock_gateway.servers["3"] = mock_gateway.servers["3"].model_copy(
            update={"status": "online"}
        )

        result = await Reconciler(mock_gateway, store, clock=clock).reconcile()

        assert result.stale_resolved == 0
        assert store.get("3").status == ServerStatus.ONLINE

    @pytest.mark.asyncio
    async def test_recent_start_is_left_alone(self, mock_gateway, store, clock):
        mock_gateway.stuck_starting.add("3")

        result = await Reconciler(mock_gateway, store, clock=clock).reconcile()

        assert result.stale_resolved == 0
        assert store.get("3").status == ServerStatus.STARTING

    @pytest.mark.asyncio
    async def test_demo_dataset_settles(self, mock_gateway, store, clock):
        reconciler = Reconciler(mock_gateway, store, starting_timeout=60, clock=clock)

        await reconciler.reconcile()
        clock.advance(120)
        result = await reconciler.reconcile()

        assert result.stale_resolved == 0
        assert store.get("3").status == ServerStatus.ONLINE


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_polls_until_stopped(self, mock_gateway, store):
        reconciler = Reconciler(mock_gateway, store, interval=0.01)

        task = reconciler.start()
        assert reconciler.start() is task
        await asyncio.sleep(0.05)
        await reconciler.stop()

        assert list_calls(mock_gateway) >= 2  # noqa: PLR2004
        assert not reconciler.running
        assert task.done()

    @pytest.mark.asyncio
    async def test_loop_survives_unexpected_errors(self, mock_gateway, store):
        mock_gateway.should_fail = True
        mock_gateway.fail_exception = RuntimeError("boom")
        reconciler = Reconciler(mock_gateway, store, interval=0.01)

        reconciler.start()
        await asyncio.sleep(0.05)

        assert reconciler.running
        assert list_calls(mock_gateway) >= 2  # noqa: PLR2004
        await reconciler.stop()

    @pytest.mark.asyncio
    async def test_stop_discards_in_flight_result(self, store):
        gateway = HeldListGateway()
        reconciler = Reconciler(gateway, store, interval=0.01)

        reconciler.start()
        await gateway.entered.wait()
        await reconciler.stop()
        gateway.release.set()
        for _ in range(5):
            await asyncio.sleep(0.01)

        assert len(store) == 0
        assert reconciler.last_result is None
