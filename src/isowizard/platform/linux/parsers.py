"""
Linux output parsers.

Parsers for parted, blkid and lsblk output, and the merge of the three
into a raw block-device tree.
"""

from __future__ import annotations

import json
import re
from typing import Any

from isowizard.core.logging import get_logger
from isowizard.core.models import (
    DISK_KIND,
    PARTITION_KIND,
    BlockDeviceInfo,
    FsIdentity,
    PartedPartition,
    PartedReport,
)
from isowizard.core.units import normalize_unit, parse_size_token, parse_unit_to_bytes

logger = get_logger(__name__)

# Flags parted can print in the last column of a partition listing
PARTED_FLAGS = frozenset(
    {
        "boot",
        "esp",
        "bios_grub",
        "legacy_boot",
        "msftdata",
        "msftres",
        "hidden",
        "raid",
        "lvm",
        "swap",
        "diag",
        "prep",
        "irst",
        "atvrecv",
        "palo",
        "lba",
        "hp-service",
        "chromeos_kernel",
        "bls_boot",
        "no_automount",
    }
)

# Words that start a partition name or type column, never a filesystem
NON_FILESYSTEM_KEYWORDS = frozenset(
    {
        "primary",
        "logical",
        "extended",
        "microsoft",
        "basic",
        "efi",
        "linux",
        "bios",
        "windows",
        "recovery",
    }
)

PARTITION_TYPES = frozenset({"primary", "logical", "extended"})

UNRECOGNISED_LABEL_MARKERS = ("unrecognised disk label", "unrecognized disk label")

_MODEL_LINE = re.compile(r"^Model:\s*(.+?)\s*(?:\(([^)]*)\))?\s*$")
_DISK_SIZE_LINE = re.compile(r"^Disk\s+/dev/\S+?:\s*(\d+(?:[.,]\d+)?)\s*([A-Za-z]+)")
_TABLE_LINE = re.compile(r"^Partition Table:\s*(\S+)")
_PARTITION_ROW = re.compile(r"^\s*\d+\s")
_EXPORT_ESCAPE = re.compile(r"\\(.)")


def partition_device_name(device: str, number: int) -> str:
    """
    Kernel device name of a partition.

    Disks whose name ends in a digit (nvme0n1, mmcblk0, loop0) get a ``p``
    separator: ``nvme0n1`` -> ``nvme0n1p1``, ``sda`` -> ``sda1``.
    """
    device = device.removeprefix("/dev/")
    if device and device[-1].isdigit():
        return f"{device}p{number}"
    return f"{device}{number}"


def is_unrecognised_label(stderr: str | None) -> bool:
    """Whether parted reported a disk without a readable partition table."""
    if not stderr:
        return False
    stderr_lower = stderr.lower()
    return any(marker in stderr_lower for marker in UNRECOGNISED_LABEL_MARKERS)


def _looks_like_filesystem(token: str) -> bool:
    token_lower = token.lower()
    if token_lower.rstrip(",") in PARTED_FLAGS:
        return False
    if token_lower in NON_FILESYSTEM_KEYWORDS:
        return False
    return "partition" not in token_lower and "reserved" not in token_lower


def _split_flags(tokens: list[str]) -> tuple[list[str], list[str]]:
    """
    Split the trailing flags off a row's remaining tokens.

    parted joins flags with ", ", so only the last token may lack a comma.
    """
    end = len(tokens)
    flags: list[str] = []
    while end > 0:
        token = tokens[end - 1]
        is_last = end == len(tokens)
        if not is_last and not token.endswith(","):
            break
        flag = token.rstrip(",").lower()
        if flag not in PARTED_FLAGS:
            break
        flags.insert(0, flag)
        end -= 1
    return tokens[:end], flags


def _size_bytes(size: str, start: str, end: str) -> int:
    parsed = parse_size_token(size)
    number, unit = parsed if parsed else (0.0, "MiB")

    if number == 0:
        start_parsed = parse_size_token(start)
        end_parsed = parse_size_token(end)
        if (
            start_parsed
            and end_parsed
            and normalize_unit(start_parsed[1]) == normalize_unit(end_parsed[1])
        ):
            number = end_parsed[0] - start_parsed[0]
            unit = end_parsed[1]

    return parse_unit_to_bytes(max(number, 0.0), unit)


def parse_parted_row(line: str, has_type_column: bool = False) -> PartedPartition:
    """
    Parse one row of a ``parted print`` partition listing.

    Example (GPT)::

        1      1,00MiB  101MiB     100MiB     fat32        EFI system partition  boot, esp

    MBR listings carry a Type column (primary/logical/extended) instead of
    a Name column.
    """
    parts = line.split()
    number = int(parts[0])
    start = parts[1].replace(",", ".")
    end = parts[2].replace(",", ".")
    size = parts[3].replace(",", ".")

    rest, flags = _split_flags(parts[4:])

    filesystem = ""
    name = ""
    position = 0

    if has_type_column and position < len(rest) and rest[position].lower() in PARTITION_TYPES:
        name = rest[position]
        position += 1

    if position < len(rest) and _looks_like_filesystem(rest[position]):
        filesystem = rest[position]
        position += 1

    if position < len(rest):
        remainder = " ".join(rest[position:])
        name = f"{name} {remainder}".strip() if has_type_column else remainder

    return PartedPartition(
        number=number,
        start=start,
        end=end,
        size=size,
        size_bytes=_size_bytes(size, start, end),
        filesystem=filesystem,
        name=name,
        flags=flags,
    )


def parse_parted_output(output: str, device: str) -> PartedReport:
    """
    Parse ``parted -s /dev/X unit MiB print`` output.

    Example input::

        Model: ATA Samsung SSD 860 (scsi)
        Disk /dev/sda: 476940MiB
        Sector size (logical/physical): 512B/512B
        Partition Table: gpt
        Disk Flags:

        Number  Start    End        Size       File system  Name  Flags
         1      1,00MiB  101MiB     100MiB     fat32              boot, esp
    """
    report = PartedReport(device=device.removeprefix("/dev/"))
    lines = [line for line in output.splitlines() if line.strip()]

    i = 0
    while i < len(lines):
        line = lines[i].strip()

        model_match = _MODEL_LINE.match(line)
        size_match = _DISK_SIZE_LINE.match(line)
        table_match = _TABLE_LINE.match(line)

        if model_match:
            report.model = model_match.group(1).strip() or "Unknown"
            report.transport_hint = model_match.group(2) or None
        elif size_match:
            report.size = float(size_match.group(1).replace(",", "."))
            report.size_unit = size_match.group(2)
            report.size_bytes = parse_unit_to_bytes(report.size, report.size_unit)
        elif table_match:
            report.partition_table = table_match.group(1)
        elif all(column in line for column in ("Number", "Start", "End", "Size")):
            has_type_column = " Type " in f" {line} "
            i += 1
            while i < len(lines):
                if _PARTITION_ROW.match(lines[i]):
                    try:
                        report.partitions.append(parse_parted_row(lines[i], has_type_column))
                    except (IndexError, ValueError) as e:
                        logger.warning(
                            "Skipping unparsable partition row",
                            device=report.device,
                            row=lines[i].strip(),
                            error=str(e),
                        )
                i += 1
            continue
        i += 1

    return report


def parse_blkid_export(output: str) -> dict[str, FsIdentity]:
    """
    Parse ``blkid -o export`` output.

    Example input::

        DEVNAME=/dev/sda1
        UUID=1234-ABCD
        TYPE=vfat
        PARTLABEL=EFI\\ system\\ partition

        DEVNAME=/dev/sda2
        ...

    A record ends at a blank line or when the next DEVNAME starts;
    records without a DEVNAME are dropped.
    """
    result: dict[str, FsIdentity] = {}
    attrs: dict[str, str] = {}

    def flush() -> None:
        devname = attrs.get("DEVNAME")
        if devname:
            result[devname] = FsIdentity.from_export(attrs)
        attrs.clear()

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            flush()
            continue

        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip().upper()
        value = _EXPORT_ESCAPE.sub(r"\1", value.strip())

        if key == "DEVNAME":
            flush()
        attrs[key] = value

    flush()
    return result


def parse_lsblk_json(output: str) -> list[dict[str, Any]]:
    """Parse JSON output from lsblk."""
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return []
    if not isinstance(data, dict):
        return []
    return data.get("blockdevices", []) or []


def parse_lsblk_names(output: str, include_loop: bool = False) -> list[str]:
    """Parse ``lsblk -d -o NAME -n`` into device short names."""
    names = []
    for line in output.splitlines():
        name = line.strip()
        if not name:
            continue
        if name.startswith("loop") and not include_loop:
            continue
        names.append(name)
    return names


def parse_lsblk_size(output: str) -> int:
    """Parse ``lsblk -b -dn -o SIZE /dev/X``; 0 if unreadable."""
    try:
        return max(int(output.strip().splitlines()[0].strip()), 0)
    except (IndexError, ValueError):
        return 0


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parse_rota(value: Any) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if str(value).strip() in ("1", "true"):
        return True
    if str(value).strip() in ("0", "false"):
        return False
    return None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_block_device(block: dict[str, Any]) -> BlockDeviceInfo:
    """Build a BlockDeviceInfo tree from one lsblk JSON device."""
    mountpoint = block.get("mountpoint")
    if mountpoint is None:
        # util-linux >= 2.37 reports a list
        mountpoints = [m for m in block.get("mountpoints") or [] if m]
        mountpoint = mountpoints[0] if mountpoints else None

    return BlockDeviceInfo(
        name=str(block.get("name", "")).removeprefix("/dev/"),
        size_bytes=_parse_int(block.get("size")),
        kind=str(block.get("type") or ""),
        mountpoint=mountpoint,
        model=_clean(block.get("model")),
        vendor=_clean(block.get("vendor")),
        transport=_clean(block.get("tran")),
        rotational=_parse_rota(block.get("rota")),
        children=[build_block_device(child) for child in block.get("children") or []],
    )


def fallback_block_device(
    device: str, size_bytes: int, details: BlockDeviceInfo | None = None
) -> BlockDeviceInfo:
    """Record for a disk without a usable partition table."""
    name = device.removeprefix("/dev/")
    return BlockDeviceInfo(
        name=name,
        size_bytes=size_bytes,
        kind=DISK_KIND,
        model=details.model if details else None,
        vendor=details.vendor if details else None,
        transport=details.transport if details else ("nvme" if name.startswith("nvme") else None),
        rotational=details.rotational if details else None,
    )


def report_to_block_device(
    report: PartedReport,
    identities: dict[str, FsIdentity],
    details: BlockDeviceInfo | None = None,
) -> BlockDeviceInfo:
    """
    Merge a parted report with blkid identities and lsblk details.

    ``details`` is the matching lsblk entry, when the block lister could be
    queried; it contributes vendor, transport, rotation and mount points.
    """
    mountpoints: dict[str, str | None] = {}
    if details is not None:
        mountpoints = {child.name: child.mountpoint for child in details.children}

    transport = details.transport if details and details.transport else None
    if transport is None:
        if report.device.startswith("nvme") or report.transport_hint == "nvme":
            transport = "nvme"
        else:
            transport = report.transport_hint

    disk = BlockDeviceInfo(
        name=report.device,
        size_bytes=report.size_bytes,
        kind=DISK_KIND,
        model=report.model if report.model != "Unknown" else (details.model if details else None),
        vendor=details.vendor if details else None,
        transport=transport,
        rotational=details.rotational if details else None,
    )

    for part in report.partitions:
        name = partition_device_name(report.device, part.number)
        identity = identities.get(f"/dev/{name}")

        filesystem = part.filesystem or (identity.fs_type if identity else None)
        partition_name = part.name or (identity.label if identity else None)

        disk.children.append(
            BlockDeviceInfo(
                name=name,
                size_bytes=part.size_bytes,
                kind=PARTITION_KIND,
                mountpoint=mountpoints.get(name),
                number=part.number,
                partition_name=partition_name or None,
                filesystem_hint=filesystem or None,
                flags=list(part.flags),
                start=part.start,
                end=part.end,
            )
        )

    return disk


def parse_disk_report(
    device: str,
    output: str,
    identities: dict[str, FsIdentity],
    details: BlockDeviceInfo | None = None,
) -> BlockDeviceInfo:
    """
    Parse one disk's parted output into a block-device record.

    A failure here only affects this disk: it degrades to a zero-size,
    zero-partition record and is logged.
    """
    try:
        report = parse_parted_output(output, device)
        return report_to_block_device(report, identities, details)
    except Exception as e:
        logger.warning(
            "Failed to parse partition table report",
            device=device,
            error=str(e),
        )
        return fallback_block_device(device, 0, details)
