"""Reconciler - keeps the server store in line with the XManage Gateway."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
import random
import time
from typing import Literal

from gamepanel.clients.gateway import ServerGateway
from gamepanel.contracts.dto.server import Gauge, ServerRecord, ServerResources, ServerStatus
from gamepanel.errors import TransportError
from gamepanel.logging import get_logger, set_correlation_id
from gamepanel.schemas import XManageServer
from gamepanel.store import ServerStore
from gamepanel.units import normalize_limits, parse_port

logger = get_logger(__name__)

# How often to reconcile (seconds)
POLL_INTERVAL = 30.0
# How long a server may sit in "starting" before it is forcibly reconciled
STARTING_TIMEOUT = 60.0

ReconcileSource = Literal["live", "mock", "not_configured"]


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation, including which branch it took."""

    source: ReconcileSource
    ok: bool
    servers: int = 0
    added: int = 0
    updated: int = 0
    removed: int = 0
    kept_local: int = 0
    stale_resolved: int = 0
    discarded: bool = False
    error: str | None = None
    duration_sec: float = 0.0


class Reconciler:
    """Pulls the Gateway's server list and swaps it into the store.

    A run either merges a complete snapshot or leaves the store untouched.
    Failed runs are not retried; the next poll is the retry.
    """

    def __init__(
        self,
        gateway: ServerGateway | None,
        store: ServerStore,
        *,
        session_user_id: Callable[[], str | None] | str | None = None,
        interval: float = POLL_INTERVAL,
        starting_timeout: float = STARTING_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.gateway = gateway
        self.store = store
        self._session_user_id = session_user_id
        self.interval = interval
        self.starting_timeout = starting_timeout
        self.clock = clock
        self.rng = rng or random.Random()
        self.last_result: ReconcileResult | None = None
        self._task: asyncio.Task | None = None
        self._closed = False
        # Bumped on every Gateway swap; runs started under an older one are dropped
        self._generation = 0

    def swap_gateway(self, gateway: ServerGateway | None) -> None:
        """Point future runs at ``gateway`` and invalidate any run in flight."""
        self.gateway = gateway
        self._generation += 1

    @property
    def session_user_id(self) -> str | None:
        if callable(self._session_user_id):
            return self._session_user_id()
        return self._session_user_id

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def reconcile(self) -> ReconcileResult:
        """Run one reconciliation."""
        start_time = time.time()
        gateway = self.gateway
        generation = self._generation

        if gateway is None:
            logger.warning("reconcile_skipped_not_configured")
            result = ReconcileResult(
                source="not_configured", ok=False, error="XManage API is not configured"
            )
            self.last_result = result
            return result

        source = gateway.source
        fetched_at = self.clock()
        try:
            remote_servers = await gateway.list_servers()
            statuses = []
            for remote in remote_servers:
                status = await gateway.get_server_status(remote.id)
                statuses.append((remote, status.status))
        except TransportError as e:
            logger.error(
                "reconcile_fetch_failed",
                source=source,
                error=str(e),
                error_type=type(e).__name__,
            )
            result = ReconcileResult(
                source=source,
                ok=False,
                error=str(e),
                duration_sec=round(time.time() - start_time, 3),
            )
            self.last_result = result
            return result

        if self._closed or generation != self._generation:
            logger.info("reconcile_result_discarded", source=source)
            return ReconcileResult(source=source, ok=False, discarded=True)

        records = [self._to_record(remote, status, fetched_at) for remote, status in statuses]
        stats = self.store.merge(records, observed_at=fetched_at)
        stale_resolved = await self._resolve_stale_starting(gateway, generation)
        if generation != self._generation:
            logger.info("reconcile_result_discarded", source=source)
            return ReconcileResult(source=source, ok=False, discarded=True)

        result = ReconcileResult(
            source=source,
            ok=True,
            servers=len(self.store),
            added=stats.added,
            updated=stats.updated,
            removed=stats.removed,
            kept_local=stats.kept_local,
            stale_resolved=stale_resolved,
            duration_sec=round(time.time() - start_time, 3),
        )
        logger.info(
            "reconcile_complete",
            source=source,
            servers=result.servers,
            added=result.added,
            updated=result.updated,
            removed=result.removed,
            kept_local=result.kept_local,
            stale_resolved=result.stale_resolved,
            duration_sec=result.duration_sec,
        )
        self.last_result = result
        return result

    def _owner_for(self, remote: XManageServer, existing: ServerRecord | None) -> str:
        if existing is not None:
            return existing.owner
        if remote.owner:
            return remote.owner
        return self.session_user_id or ""

    def _to_record(
        self, remote: XManageServer, remote_status: str | None, fetched_at: float
    ) -> ServerRecord:
        """Normalize one Gateway server into a clamped store record."""
        existing = self.store.get(remote.id)
        status = ServerStatus.from_remote(remote_status or remote.status)
        limits = normalize_limits(remote.ram_limit, remote.cpu_limit, remote.disk_limit)

        if remote.resources is not None:
            used = (
                remote.resources.ram.used,
                remote.resources.cpu.used,
                remote.resources.disk.used,
            )
        elif existing is not None:
            used = (
                existing.resources.ram.used,
                existing.resources.cpu.used,
                existing.resources.disk.used,
            )
        else:
            used = (0, 0, 0)

        resources = ServerResources(
            ram=Gauge(used=used[0], total=limits.ram),
            cpu=Gauge(used=used[1], total=limits.cpu),
            disk=Gauge(used=used[2], total=limits.disk),
        ).clamped()
        if status == ServerStatus.OFFLINE:
            resources = resources.with_usage(ram=0, cpu=0)

        if existing is not None and existing.status == status:
            status_since = existing.status_since
        else:
            status_since = fetched_at

        return ServerRecord(
            id=remote.id,
            name=remote.server_name,
            status=status,
            owner=self._owner_for(remote, existing),
            resources=resources,
            port=existing.port if existing is not None else parse_port(remote.ports, self.rng),
            startup_command=remote.startup,
            status_since=status_since,
            observed_at=fetched_at,
        )

    async def _resolve_stale_starting(self, gateway: ServerGateway, generation: int) -> int:
        """Force a status read for servers stuck in ``starting``.

        A server the Gateway still reports as starting after the timeout is
        marked offline: its start is treated as failed.
        """
        now = self.clock()
        resolved = 0
        for record in self.store.records():
            waited = record.starting_for(now)
            if waited is None or waited < self.starting_timeout:
                continue
            try:
                remote = await gateway.get_server_status(record.id)
            except TransportError as e:
                logger.warning("stale_start_check_failed", server_id=record.id, error=str(e))
                continue

            if self._closed or generation != self._generation:
                break
            current = self.store.get(record.id)
            if current is None or current.status != ServerStatus.STARTING:
                continue

            status = ServerStatus.from_remote(remote.status)
            if status == ServerStatus.STARTING:
                status = ServerStatus.OFFLINE
            resources = current.resources
            if status == ServerStatus.OFFLINE:
                resources = resources.with_usage(ram=0, cpu=0)
            observed = self.clock()
            self.store.upsert(
                current.model_copy(
                    update={
                        "status": status,
                        "resources": resources,
                        "status_since": observed,
                        "observed_at": observed,
                    }
                )
            )
            resolved += 1
            logger.warning(
                "stale_start_resolved",
                server_id=record.id,
                waited_sec=round(waited, 1),
                resolved_status=status.value,
            )
        return resolved

    async def run_forever(self) -> None:
        """Reconcile on load, then every ``interval`` seconds."""
        logger.info("reconciler_started", interval=self.interval)
        while True:
            set_correlation_id()
            try:
                # Shielded: stopping the loop must not abort a Gateway call mid-flight
                await asyncio.shield(self.reconcile())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "reconciler_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        """Start the background poll loop (idempotent)."""
        self._closed = False
        if not self.running:
            self._task = asyncio.create_task(self.run_forever(), name="reconciler")
        return self._task

    async def stop(self) -> None:
        """Cancel the poll timer. A run in flight finishes but its result is dropped."""
        self._closed = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("reconciler_stopped")
