"""
IsoWizard topology transformer.

Turns the raw block-device tree and the blkid identities into the
canonical Disk/Partition model.
"""

from __future__ import annotations

from isowizard.core.logging import get_logger
from isowizard.core.models import (
    DISK_KIND,
    PARTITION_KIND,
    BlockDeviceInfo,
    Disk,
    DiskClass,
    FsIdentity,
    Partition,
)
from isowizard.core.units import format_bytes

logger = get_logger(__name__)

NOT_AVAILABLE = "N/A"
SSD_MODEL_KEYWORDS = ("ssd", "solid", "flash")


def infer_disk_class(
    name: str,
    transport: str | None,
    rotational: bool | None,
    model: str | None,
) -> DiskClass:
    """
    Infer the class of a disk.

    NVMe transport or naming wins, then the rotation flag, then a keyword
    scan of the model string. Anything else is Unknown.
    """
    if (transport or "").lower() == "nvme" or name.removeprefix("/dev/").startswith("nvme"):
        return DiskClass.NVME

    if rotational is False:
        return DiskClass.SSD
    if rotational is True:
        return DiskClass.HDD

    model_lower = (model or "").lower()
    if any(keyword in model_lower for keyword in SSD_MODEL_KEYWORDS):
        return DiskClass.SSD

    return DiskClass.UNKNOWN


def resolve_identity(identity: FsIdentity | None) -> tuple[str | None, str | None, str | None]:
    """
    Resolve (fs_type, label, uuid) for a partition.

    Filesystem fields come first; the partition-table label and UUID are
    fallbacks for label and UUID only.
    """
    if identity is None:
        return None, None, None
    return (
        identity.fs_type or None,
        identity.label or identity.part_label or None,
        identity.uuid or identity.part_uuid or None,
    )


def build_partition(device: BlockDeviceInfo, identities: dict[str, FsIdentity]) -> Partition:
    """Build a canonical Partition from a raw partition entry."""
    path = device.path
    fs_type, label, uuid = resolve_identity(identities.get(path))
    size_bytes = max(device.size_bytes or 0, 0)

    return Partition(
        id=device.name.removeprefix("/dev/"),
        path=path,
        kind=device.kind,
        fs_type=fs_type,
        label=label,
        uuid=uuid,
        size_bytes=size_bytes,
        size=format_bytes(size_bytes),
        mountpoint=device.mountpoint,
    )


def build_disk(device: BlockDeviceInfo, identities: dict[str, FsIdentity]) -> Disk:
    """Build a canonical Disk from a raw disk entry."""
    size_bytes = max(device.size_bytes or 0, 0)
    partitions = [
        build_partition(child, identities)
        for child in device.children
        if child.kind == PARTITION_KIND
    ]

    disk = Disk(
        id=device.name.removeprefix("/dev/"),
        path=device.path,
        model=device.model or NOT_AVAILABLE,
        vendor=device.vendor or NOT_AVAILABLE,
        transport=device.transport or NOT_AVAILABLE,
        disk_class=infer_disk_class(device.name, device.transport, device.rotational, device.model),
        size_bytes=size_bytes,
        size=format_bytes(size_bytes),
        partitions=partitions,
    )

    if disk.total_partition_bytes > disk.size_bytes:
        logger.warning(
            "Partition sizes exceed disk size",
            disk=disk.path,
            disk_bytes=disk.size_bytes,
            partition_bytes=disk.total_partition_bytes,
        )

    return disk


def transform(
    raw_disks: list[BlockDeviceInfo], identities: dict[str, FsIdentity] | None = None
) -> list[Disk]:
    """Convert raw block devices to canonical disks, keeping only kind ``disk``."""
    identities = identities or {}
    return [build_disk(device, identities) for device in raw_disks if device.kind == DISK_KIND]
