"""Local cache of known servers.

The store holds one immutable snapshot. Every write builds a new mapping and
swaps it in with a single assignment, so a reader never sees a half-applied
merge.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from gamepanel.contracts.dto.server import ServerRecord
from gamepanel.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MergeStats:
    added: int = 0
    updated: int = 0
    removed: int = 0
    kept_local: int = 0


class ServerStore:
    def __init__(self, records: Iterable[ServerRecord] = ()):
        self._snapshot: Mapping[str, ServerRecord] = MappingProxyType(
            {record.id: record for record in records}
        )

    @property
    def snapshot(self) -> Mapping[str, ServerRecord]:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, server_id: object) -> bool:
        return server_id in self._snapshot

    def records(self) -> list[ServerRecord]:
        return list(self._snapshot.values())

    def get(self, server_id: str) -> ServerRecord | None:
        return self._snapshot.get(server_id)

    def for_owner(self, owner: str) -> list[ServerRecord]:
        return [record for record in self._snapshot.values() if record.owner == owner]

    def _swap(self, records: dict[str, ServerRecord]) -> None:
        self._snapshot = MappingProxyType(records)

    def replace(self, records: Iterable[ServerRecord]) -> None:
        """Swap in a complete new snapshot, ignoring what was there."""
        self._swap({record.id: record for record in records})

    def clear(self) -> None:
        self._swap({})

    def merge(self, records: Iterable[ServerRecord], observed_at: float) -> MergeStats:
        """Swap in a remote snapshot taken at ``observed_at``.

        Local records written after ``observed_at`` (a lifecycle change or a
        creation that raced the fetch) are kept, including ones the remote
        snapshot does not list yet.
        """
        current = self._snapshot
        merged: dict[str, ServerRecord] = {}
        added = updated = kept_local = 0

        for record in records:
            existing = current.get(record.id)
            if existing is not None and existing.observed_at > observed_at:
                merged[record.id] = existing
                kept_local += 1
                continue
            merged[record.id] = record
            if existing is None:
                added += 1
            elif existing != record:
                updated += 1

        removed = 0
        for server_id, existing in current.items():
            if server_id in merged:
                continue
            if existing.observed_at > observed_at:
                merged[server_id] = existing
                kept_local += 1
            else:
                removed += 1

        self._swap(merged)
        return MergeStats(added=added, updated=updated, removed=removed, kept_local=kept_local)

    def upsert(self, record: ServerRecord) -> bool:
        """Write one record unless the store already holds newer data for it."""
        existing = self._snapshot.get(record.id)
        if existing is not None and existing.observed_at > record.observed_at:
            logger.debug(
                "store_write_skipped_stale",
                server_id=record.id,
                existing_observed_at=existing.observed_at,
                observed_at=record.observed_at,
            )
            return False
        merged = dict(self._snapshot)
        merged[record.id] = record
        self._swap(merged)
        return True

    def remove(self, server_id: str) -> bool:
        if server_id not in self._snapshot:
            return False
        merged = dict(self._snapshot)
        del merged[server_id]
        self._swap(merged)
        return True
