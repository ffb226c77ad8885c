"""Quota checks for server creation and resize.

Only the global hard caps and the per-account server count are enforced.
The plan catalogue below carries the per-plan ceilings shown on the pricing
page; they are informational and are not checked here.
"""

from dataclasses import dataclass

from gamepanel.contracts.dto.user import UserAccount
from gamepanel.errors import QuotaError

HARD_CAP_RAM_MB = 1024
HARD_CAP_CPU = 1.0
HARD_CAP_DISK_MB = 10240

RAM_LIMIT_EXCEEDED = "RAM limit exceeded"
CPU_LIMIT_EXCEEDED = "CPU limit exceeded"
DISK_LIMIT_EXCEEDED = "Disk limit exceeded"
SERVER_LIMIT_REACHED = "Server limit reached"


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = QuotaDecision(allowed=True)


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: float
    server_limit: int
    # Advertised per-server ceilings (not enforced)
    ram_mb: int
    cpu: float
    disk_mb: int


PLANS: dict[str, Plan] = {
    "free": Plan("free", "Free", 0.0, server_limit=1, ram_mb=1024, cpu=1.0, disk_mb=10240),
    "basic": Plan("basic", "Basic", 9.99, server_limit=3, ram_mb=2048, cpu=2.0, disk_mb=20480),
    "premium": Plan(
        "premium", "Premium", 19.99, server_limit=10, ram_mb=4096, cpu=4.0, disk_mb=51200
    ),
}


def plan_for(account: UserAccount) -> Plan:
    """Plan an account is on. No subscription (or an unknown tag) means free."""
    return PLANS.get(account.subscription or "free", PLANS["free"])


def check_caps(ram: float, cpu: float, disk: float) -> QuotaDecision:
    """Check a server size against the global hard caps."""
    if ram > HARD_CAP_RAM_MB:
        return QuotaDecision(False, RAM_LIMIT_EXCEEDED)
    if cpu > HARD_CAP_CPU:
        return QuotaDecision(False, CPU_LIMIT_EXCEEDED)
    if disk > HARD_CAP_DISK_MB:
        return QuotaDecision(False, DISK_LIMIT_EXCEEDED)
    return ALLOWED


def check_quota(
    ram: float, cpu: float, disk: float, account: UserAccount, owned_servers: int
) -> QuotaDecision:
    """Validate a proposed new server for ``account``.

    Checks run in a fixed order and the first failure wins.
    """
    decision = check_caps(ram, cpu, disk)
    if not decision:
        return decision
    if owned_servers >= account.server_limit:
        return QuotaDecision(False, SERVER_LIMIT_REACHED)
    return ALLOWED


def _raise_if_rejected(decision: QuotaDecision) -> None:
    if not decision.allowed:
        raise QuotaError(decision.reason or "Quota exceeded")


def enforce_quota(
    ram: float, cpu: float, disk: float, account: UserAccount, owned_servers: int
) -> None:
    """Same as ``check_quota`` but raises ``QuotaError`` on rejection."""
    _raise_if_rejected(check_quota(ram, cpu, disk, account, owned_servers))


def enforce_resize_quota(ram: float, cpu: float, disk: float) -> None:
    """Gate a resize. The server already counts toward the limit, so only caps apply."""
    _raise_if_rejected(check_caps(ram, cpu, disk))
