from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ServerStatus(str, Enum):
    OFFLINE = "offline"
    STARTING = "starting"
    ONLINE = "online"

    @classmethod
    def from_remote(cls, value: str | None) -> "ServerStatus":
        """Map a Gateway status string. Unknown or missing values read as offline."""
        normalized = (value or "").strip().lower()
        if normalized in _ONLINE_ALIASES:
            return cls.ONLINE
        if normalized in _STARTING_ALIASES:
            return cls.STARTING
        return cls.OFFLINE


_ONLINE_ALIASES = {"online", "running", "active", "started"}
_STARTING_ALIASES = {"starting", "installing", "restarting"}


class Gauge(BaseModel):
    """One resource gauge: RAM and disk in MB, CPU in core-fractions."""

    model_config = ConfigDict(frozen=True)

    used: float = 0
    total: float = 0

    def clamped(self) -> "Gauge":
        """Return a gauge with ``0 <= used <= total``."""
        total = max(self.total, 0)
        used = min(max(self.used, 0), total)
        if used == self.used and total == self.total:
            return self
        return Gauge(used=used, total=total)

    def with_used(self, used: float) -> "Gauge":
        return Gauge(used=used, total=self.total).clamped()

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.used / self.total * 100)


class ServerResources(BaseModel):
    model_config = ConfigDict(frozen=True)

    ram: Gauge = Field(default_factory=Gauge)
    cpu: Gauge = Field(default_factory=Gauge)
    disk: Gauge = Field(default_factory=Gauge)

    def clamped(self) -> "ServerResources":
        return ServerResources(
            ram=self.ram.clamped(), cpu=self.cpu.clamped(), disk=self.disk.clamped()
        )

    def with_usage(
        self,
        ram: float | None = None,
        cpu: float | None = None,
        disk: float | None = None,
    ) -> "ServerResources":
        """Replace usage values, keeping totals. ``None`` leaves a gauge as is."""
        return ServerResources(
            ram=self.ram if ram is None else self.ram.with_used(ram),
            cpu=self.cpu if cpu is None else self.cpu.with_used(cpu),
            disk=self.disk if disk is None else self.disk.with_used(disk),
        )


class ServerRecord(BaseModel):
    """A game server as held in the local store.

    ``status_since`` and ``observed_at`` are monotonic clock readings.
    ``observed_at`` orders writes to the same record: a merge never replaces
    a record with data observed earlier.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: ServerStatus = ServerStatus.OFFLINE
    owner: str
    resources: ServerResources = Field(default_factory=ServerResources)
    port: int
    startup_command: str

    status_since: float = 0.0
    observed_at: float = 0.0

    @property
    def is_confirmed(self) -> bool:
        """``starting`` is optimistic; every other status came from the Gateway."""
        return self.status != ServerStatus.STARTING

    def starting_for(self, now: float) -> float | None:
        """Seconds spent in ``starting``, or None if not starting."""
        if self.status != ServerStatus.STARTING:
            return None
        return max(now - self.status_since, 0.0)


class ServerCreate(BaseModel):
    """Create server request as entered by the user (numeric units)."""

    name: str
    ram: float = Field(..., description="RAM in MB")
    cpu: float = Field(..., description="CPU in core-fractions")
    disk: float = Field(..., description="Disk in MB")
    startup_command: str
    port: int | None = None
