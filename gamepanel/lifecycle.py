"""Server lifecycle: start, stop, restart and delete.

``starting`` is optimistic. It is written to the store as soon as a start is
issued, and a confirmation task scheduled ``confirm_delay`` seconds later asks
the Gateway for the real status. If the Gateway rejects the command itself,
the record goes back to its last confirmed status and the error is raised.

Allowed transitions:

    start    offline           -> starting -> online
    stop     online | starting -> offline
    restart  online            -> starting -> online
    delete   any               -> (removed)
"""

import asyncio
from collections.abc import Callable
import math
import random
import time

from gamepanel.clients.gateway import ServerGateway
from gamepanel.contracts.dto.server import ServerRecord, ServerResources, ServerStatus
from gamepanel.errors import ConfigurationError, InvalidTransition, NotFound, TransportError
from gamepanel.logging import get_logger
from gamepanel.store import ServerStore

logger = get_logger(__name__)

ALLOWED_FROM: dict[str, frozenset[ServerStatus]] = {
    "start": frozenset({ServerStatus.OFFLINE}),
    "stop": frozenset({ServerStatus.ONLINE, ServerStatus.STARTING}),
    "restart": frozenset({ServerStatus.ONLINE}),
    "delete": frozenset(ServerStatus),
}


def check_transition(command: str, status: ServerStatus) -> None:
    """Raise ``InvalidTransition`` if ``command`` is not allowed from ``status``."""
    if status not in ALLOWED_FROM[command]:
        raise InvalidTransition(command, status.value)


def stopped_resources(resources: ServerResources) -> ServerResources:
    """Usage of a server that is not running."""
    return resources.with_usage(ram=0, cpu=0, disk=0)


def simulated_usage(resources: ServerResources, rng: random.Random) -> ServerResources:
    """Usage for a server that just came online, when the Gateway reports none."""
    ram_total = resources.ram.total
    ram = max(math.floor(ram_total * 0.6), 1) if ram_total > 0 else 0
    cpu = rng.uniform(0.05, 0.8)
    disk = math.floor(resources.disk.used * 1.1)
    return resources.with_usage(ram=ram, cpu=cpu, disk=disk)


class Lifecycle:
    """Applies lifecycle commands to the store and the Gateway."""

    def __init__(
        self,
        gateway: ServerGateway | None,
        store: ServerStore,
        *,
        confirm_delay: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.gateway = gateway
        self.store = store
        self.confirm_delay = confirm_delay
        self.clock = clock
        self.rng = rng or random.Random()
        self._pending: dict[str, asyncio.Task] = {}
        # Record each pending confirmation rolls back to if the Gateway fails
        self._confirm_targets: dict[str, ServerRecord] = {}

    def _require_gateway(self) -> ServerGateway:
        if self.gateway is None:
            raise ConfigurationError("XManage API is not configured")
        return self.gateway

    def _require(self, server_id: str) -> ServerRecord:
        record = self.store.get(server_id)
        if record is None:
            raise NotFound(f"Server {server_id} not found")
        return record

    def _write(self, record: ServerRecord, **changes) -> ServerRecord:
        now = self.clock()
        if "status" in changes and changes["status"] != record.status:
            changes.setdefault("status_since", now)
        updated = record.model_copy(update={**changes, "observed_at": now})
        self.store.upsert(updated)
        return updated

    def _rollback(self, prior: ServerRecord, command: str, error: Exception) -> None:
        logger.warning(
            "server_command_rolled_back",
            server_id=prior.id,
            command=command,
            restored_status=prior.status.value,
            error=str(error),
        )
        self.store.upsert(prior.model_copy(update={"observed_at": self.clock()}))

    def pending(self, server_id: str) -> asyncio.Task | None:
        task = self._pending.get(server_id)
        if task is None or task.done():
            return None
        return task

    def cancel_confirmation(self, server_id: str) -> bool:
        self._confirm_targets.pop(server_id, None)
        task = self._pending.pop(server_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("start_confirmation_cancelled", server_id=server_id)
        return True

    def cancel_all(self) -> None:
        for server_id in list(self._pending):
            self.cancel_confirmation(server_id)

    def _schedule_confirmation(self, server_id: str, prior: ServerRecord) -> asyncio.Task:
        self.cancel_confirmation(server_id)
        task = asyncio.create_task(
            self._confirm_after_delay(server_id, prior), name=f"confirm-start-{server_id}"
        )
        self._pending[server_id] = task
        self._confirm_targets[server_id] = prior
        task.add_done_callback(lambda t: self._forget(server_id, t))
        return task

    def _forget(self, server_id: str, task: asyncio.Task) -> None:
        if self._pending.get(server_id) is task:
            del self._pending[server_id]
            self._confirm_targets.pop(server_id, None)

    def _resume_confirmation(self, prior: ServerRecord) -> None:
        """Keep a restored ``starting`` record under confirmation."""
        if prior.status != ServerStatus.STARTING or self.pending(prior.id) is not None:
            return
        target = self._confirm_targets.get(prior.id) or prior.model_copy(
            update={
                "status": ServerStatus.OFFLINE,
                "resources": stopped_resources(prior.resources),
            }
        )
        self._schedule_confirmation(prior.id, target)

    async def start(self, server_id: str) -> asyncio.Task:
        """Start a server. Returns the confirmation task (a cancellation handle)."""
        gateway = self._require_gateway()
        prior = self._require(server_id)
        check_transition("start", prior.status)

        self._write(prior, status=ServerStatus.STARTING)
        logger.info("server_starting", server_id=server_id)
        try:
            await gateway.start(server_id)
        except TransportError as e:
            self._rollback(prior, "start", e)
            raise
        return self._schedule_confirmation(server_id, prior)

    async def stop(self, server_id: str) -> ServerRecord:
        """Stop a server. Takes effect locally at once; there is no staged state."""
        gateway = self._require_gateway()
        prior = self._require(server_id)
        check_transition("stop", prior.status)

        stopped = self._write(
            prior, status=ServerStatus.OFFLINE, resources=stopped_resources(prior.resources)
        )
        logger.info("server_stopped", server_id=server_id, previous_status=prior.status.value)
        try:
            await gateway.stop(server_id)
        except TransportError as e:
            self._rollback(prior, "stop", e)
            self._resume_confirmation(prior)
            raise
        self.cancel_confirmation(server_id)
        return stopped

    async def restart(self, server_id: str) -> asyncio.Task:
        """Restart: stop semantics first, then ``starting`` until confirmed online."""
        gateway = self._require_gateway()
        prior = self._require(server_id)
        check_transition("restart", prior.status)

        self.cancel_confirmation(server_id)
        self._write(
            prior, status=ServerStatus.STARTING, resources=stopped_resources(prior.resources)
        )
        logger.info("server_restarting", server_id=server_id)
        try:
            await gateway.restart(server_id)
        except TransportError as e:
            self._rollback(prior, "restart", e)
            raise
        return self._schedule_confirmation(server_id, prior)

    async def delete(self, server_id: str) -> None:
        """Delete on the Gateway, then drop the record. No tombstone is kept."""
        gateway = self._require_gateway()
        self._require(server_id)
        await gateway.delete_server(server_id)
        self.cancel_confirmation(server_id)
        self.store.remove(server_id)
        logger.info("server_deleted", server_id=server_id)

    async def _confirm_after_delay(
        self, server_id: str, prior: ServerRecord
    ) -> ServerRecord | None:
        await asyncio.sleep(self.confirm_delay)
        return await self.confirm(server_id, prior)

    async def confirm(self, server_id: str, prior: ServerRecord) -> ServerRecord | None:
        """Replace an optimistic ``starting`` with the Gateway's status.

        Returns the updated record, or None when there was nothing to confirm
        (the server was deleted, stopped, or already reconciled).
        """
        record = self.store.get(server_id)
        if record is None or record.status != ServerStatus.STARTING:
            return None

        gateway = self._require_gateway()
        try:
            remote = await gateway.get_server_status(server_id)
        except TransportError as e:
            self._rollback(prior, "confirm", e)
            return None

        # The record may have changed while we waited on the Gateway
        record = self.store.get(server_id)
        if record is None or record.status != ServerStatus.STARTING:
            return None

        status = ServerStatus.from_remote(remote.status)
        if status == ServerStatus.ONLINE:
            if remote.resources is not None:
                resources = record.resources.with_usage(
                    ram=remote.resources.ram.used,
                    cpu=remote.resources.cpu.used,
                    disk=remote.resources.disk.used,
                )
            else:
                resources = simulated_usage(record.resources, self.rng)
            updated = self._write(record, status=ServerStatus.ONLINE, resources=resources)
            logger.info("server_online", server_id=server_id)
            return updated
        if status == ServerStatus.OFFLINE:
            updated = self._write(
                record,
                status=ServerStatus.OFFLINE,
                resources=stopped_resources(record.resources),
            )
            logger.warning("server_start_not_confirmed", server_id=server_id)
            return updated

        logger.info("server_still_starting", server_id=server_id)
        return record
