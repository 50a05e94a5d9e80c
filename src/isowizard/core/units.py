"""
IsoWizard size and unit helpers.

Byte counts are always the source of truth; everything here either renders
a byte count for display or turns a tool/user size string back into bytes.
"""

from __future__ import annotations

import re

KIB = 1024
MIB = 1024 * 1024
GIB = 1024 * 1024 * 1024
TIB = 1024 * 1024 * 1024 * 1024

# Free space at or below this is partition-alignment slack, not usable space
UNALLOCATED_SLACK_BYTES = MIB

ZERO_SIZE = "0 Bytes"

_BINARY_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]

UNIT_MULTIPLIERS: dict[str, int] = {
    "B": 1,
    "KiB": KIB,
    "MiB": MIB,
    "GiB": GIB,
    "TiB": TIB,
    "KB": 1000,
    "MB": 1000**2,
    "GB": 1000**3,
    "TB": 1000**4,
}

_SIZE_TOKEN = re.compile(r"^(\d+(?:\.\d+)?)\s*([A-Za-z]+)$")


def format_bytes(size_bytes: int | float | None) -> str:
    """Render a byte count with binary units and two decimals."""
    if size_bytes is None or size_bytes <= 0:
        return ZERO_SIZE

    value = float(size_bytes)
    for unit in _BINARY_UNITS[:-1]:
        if value < 1024:
            return f"{value:.2f} {unit}"
        value /= 1024

    return f"{value:.2f} {_BINARY_UNITS[-1]}"


def normalize_unit(unit: str) -> str:
    """Return the canonical unit symbol, MiB when the symbol is unknown."""
    unit_lower = unit.strip().lower()
    for known in UNIT_MULTIPLIERS:
        if known.lower() == unit_lower:
            return known
    return "MiB"


def parse_unit_to_bytes(value: float, unit: str) -> int:
    """
    Convert a (value, unit) pair into bytes.

    Binary symbols (KiB, MiB, ...) are 1024-based, decimal symbols
    (KB, MB, ...) are 1000-based. Lookup is case-insensitive and an
    unrecognized symbol is treated as MiB.
    """
    return int(value * UNIT_MULTIPLIERS[normalize_unit(unit)])


def parse_size_token(token: str) -> tuple[float, str] | None:
    """
    Split a size token such as ``100MiB``, ``16.0MiB`` or ``1,00MiB``.

    Returns None when the token does not look like a number followed by
    a unit.
    """
    match = _SIZE_TOKEN.match(token.strip().replace(",", "."))
    if not match:
        return None
    number, unit = match.groups()
    return float(number), unit


def parse_size_spec(spec: str, total_bytes: int) -> int:
    """
    Parse a size as typed by a user: a percentage or an absolute size.

    Examples: ``"50%"``, ``"10GiB"``, ``"500 MB"``, ``"1048576"``.

    Raises:
        ValueError: If the specification cannot be parsed.
    """
    spec = spec.strip()
    if spec.endswith("%"):
        try:
            percentage = float(spec[:-1])
        except ValueError:
            raise ValueError(f"Invalid size specification: {spec}") from None
        if percentage < 0:
            raise ValueError(f"Invalid size specification: {spec}")
        return int(total_bytes * percentage / 100)

    if spec.isdigit():
        return int(spec)

    parsed = parse_size_token(spec.replace(" ", ""))
    if parsed is None:
        raise ValueError(f"Invalid size specification: {spec}")

    value, unit = parsed
    if normalize_unit(unit).lower() != unit.lower():
        raise ValueError(f"Unknown unit: {unit}")
    return parse_unit_to_bytes(value, unit)
