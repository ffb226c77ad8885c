"""Conversion between XManage limit strings and numeric resources.

XManage encodes limits as ``<int>M`` (megabytes), ``<int>G`` (gigabytes) and
``<int>%`` (percent of one core). A string that does not match yields 0; the
caller gets a zero total rather than an error.
"""

import random
import re
from typing import NamedTuple

_UNIT_RE = re.compile(r"^\s*(\d+)\s*([MG%])\s*$", re.IGNORECASE)
_PORT_RE = re.compile(r"\d+")

PORT_RANGE = (20000, 30000)


class ResourceLimits(NamedTuple):
    ram: float  # MB
    cpu: float  # core-fraction
    disk: float  # MB


def parse_quantity(value: str | None) -> float:
    """``"NM"`` -> N, ``"NG"`` -> N*1024, ``"N%"`` -> N/100, anything else -> 0."""
    if not value:
        return 0
    match = _UNIT_RE.match(value)
    if not match:
        return 0
    amount = int(match.group(1))
    unit = match.group(2).upper()
    if unit == "M":
        return amount
    if unit == "G":
        return amount * 1024
    return amount / 100


def parse_megabytes(value: str | None) -> float:
    """Size limit in MB. Percent strings are not sizes and give 0."""
    if value and value.strip().endswith("%"):
        return 0
    return parse_quantity(value)


def parse_cpu(value: str | None) -> float:
    """CPU limit as a fraction of one core. Only percent strings are accepted."""
    if not value or not value.strip().endswith("%"):
        return 0
    return parse_quantity(value)


def normalize_limits(
    ram_limit: str | None, cpu_limit: str | None, disk_limit: str | None
) -> ResourceLimits:
    return ResourceLimits(
        ram=parse_megabytes(ram_limit),
        cpu=parse_cpu(cpu_limit),
        disk=parse_megabytes(disk_limit),
    )


def format_megabytes(mb: float) -> str:
    """1024 -> "1024M". Whole gigabytes are still sent in MB."""
    return f"{int(round(mb))}M"


def format_cpu(fraction: float) -> str:
    """0.5 -> "50%"."""
    return f"{int(round(fraction * 100))}%"


def random_port(rng: random.Random | None = None) -> int:
    low, high = PORT_RANGE
    return (rng or random).randrange(low, high)


def parse_port(ports: str | None, rng: random.Random | None = None) -> int:
    """First integer in the ports string, or a random port in [20000, 30000)."""
    if ports:
        match = _PORT_RE.search(ports)
        if match:
            return int(match.group(0))
    return random_port(rng)
