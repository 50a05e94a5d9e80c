"""
IsoWizard data models.

Defines the raw tool-report structures, the canonical disk/partition
model, and the editor-level block and state types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from isowizard.core.units import format_bytes

UNALLOCATED_NAME = "Unallocated"
FREE_KIND = "free"
PARTITION_KIND = "part"
DISK_KIND = "disk"


class DiskClass(Enum):
    """Inferred class of a disk device."""

    SSD = "SSD"
    HDD = "HDD"
    NVME = "NVMe"
    UNKNOWN = "Unknown"


class FileSystem(Enum):
    """Filesystem types a planned partition may carry."""

    EXT4 = "ext4"
    NTFS = "ntfs"
    FAT32 = "fat32"
    VFAT = "vfat"
    EXFAT = "exfat"
    SWAP = "swap"
    XFS = "xfs"
    BTRFS = "btrfs"
    F2FS = "f2fs"

    @classmethod
    def from_string(cls, value: str) -> FileSystem | None:
        """Create FileSystem from string value, None if not recognized."""
        value_lower = value.lower().strip()
        for fs in cls:
            if fs.value == value_lower or fs.name.lower() == value_lower:
                return fs
        aliases = {
            "fat": cls.FAT32,
            "linux-swap": cls.SWAP,
            "linux-swap(v1)": cls.SWAP,
            "linux-swap(v0)": cls.SWAP,
        }
        return aliases.get(value_lower)

    @classmethod
    def is_recognized(cls, value: str | None) -> bool:
        return value is not None and cls.from_string(value) is not None


# Purpose presets of the create/edit form and the filesystem each one suggests
PURPOSE_FILESYSTEMS: dict[str, FileSystem] = {
    "linux": FileSystem.EXT4,
    "windows": FileSystem.NTFS,
    "boot": FileSystem.FAT32,
    "iso_storage": FileSystem.EXFAT,
}

FILESYSTEM_PURPOSES: dict[FileSystem, str] = {fs: purpose for purpose, fs in PURPOSE_FILESYSTEMS.items()}

PARTITION_PURPOSES = ("linux", "windows", "macos", "data", "iso_storage", "boot", "recovery")


@dataclass
class FsIdentity:
    """Filesystem/partition identification for one device path (blkid)."""

    fs_type: str | None = None
    label: str | None = None
    uuid: str | None = None
    part_label: str | None = None
    part_uuid: str | None = None

    @classmethod
    def from_export(cls, attrs: dict[str, str]) -> FsIdentity:
        """Build from blkid export keys (TYPE, LABEL, UUID, PARTLABEL, PARTUUID)."""
        return cls(
            fs_type=attrs.get("TYPE") or None,
            label=attrs.get("LABEL") or None,
            uuid=attrs.get("UUID") or None,
            part_label=attrs.get("PARTLABEL") or None,
            part_uuid=attrs.get("PARTUUID") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "TYPE": self.fs_type,
            "LABEL": self.label,
            "UUID": self.uuid,
            "PARTLABEL": self.part_label,
            "PARTUUID": self.part_uuid,
        }


@dataclass
class BlockDeviceInfo:
    """A block device as reported by the block lister, with its children."""

    name: str
    size_bytes: int | None
    kind: str
    mountpoint: str | None = None
    model: str | None = None
    vendor: str | None = None
    transport: str | None = None
    rotational: bool | None = None
    children: list[BlockDeviceInfo] = field(default_factory=list)
    # Partition-table extras (parted), only set on partitions
    number: int | None = None
    partition_name: str | None = None
    filesystem_hint: str | None = None
    flags: list[str] = field(default_factory=list)
    start: str | None = None
    end: str | None = None

    @property
    def path(self) -> str:
        return self.name if self.name.startswith("/dev/") else f"/dev/{self.name}"


@dataclass
class PartedPartition:
    """One row of a parted partition listing."""

    number: int
    start: str
    end: str
    size: str
    size_bytes: int
    filesystem: str = ""
    name: str = ""
    flags: list[str] = field(default_factory=list)


@dataclass
class PartedReport:
    """Parsed ``parted print`` output for a single disk."""

    device: str
    model: str = "Unknown"
    transport_hint: str | None = None
    size: float = 0
    size_unit: str = "MiB"
    size_bytes: int = 0
    partition_table: str = "unknown"
    partitions: list[PartedPartition] = field(default_factory=list)


@dataclass
class Partition:
    """Canonical partition of a disk."""

    id: str  # e.g., sda1
    path: str  # e.g., /dev/sda1
    kind: str
    fs_type: str | None
    label: str | None
    uuid: str | None
    size_bytes: int
    size: str = ""
    mountpoint: str | None = None

    def __post_init__(self) -> None:
        if not self.size:
            self.size = format_bytes(self.size_bytes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "kind": self.kind,
            "fs_type": self.fs_type,
            "label": self.label,
            "uuid": self.uuid,
            "size_bytes": self.size_bytes,
            "size": self.size,
            "mountpoint": self.mountpoint,
        }


@dataclass
class Disk:
    """Canonical disk with its partitions in table order."""

    id: str  # e.g., sda
    path: str  # e.g., /dev/sda
    model: str = "N/A"
    vendor: str = "N/A"
    transport: str = "N/A"
    disk_class: DiskClass = DiskClass.UNKNOWN
    size_bytes: int = 0
    size: str = ""
    partitions: list[Partition] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.size:
            self.size = format_bytes(self.size_bytes)

    @property
    def total_partition_bytes(self) -> int:
        # May exceed size_bytes, tool reports are not exact
        return sum(p.size_bytes for p in self.partitions)

    @property
    def display_name(self) -> str:
        """Human-readable name for display."""
        parts = [p for p in (self.vendor, self.model) if p and p not in ("N/A", "Unknown")]
        if not parts:
            parts.append(self.path)
        return " ".join(parts)

    def get_partition(self, partition_id: str) -> Partition | None:
        for p in self.partitions:
            if p.id == partition_id:
                return p
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "model": self.model,
            "vendor": self.vendor,
            "transport": self.transport,
            "type": self.disk_class.value,
            "size_bytes": self.size_bytes,
            "size": self.size,
            "partitions": [p.to_dict() for p in self.partitions],
        }


@dataclass(frozen=True)
class PartitionBlock:
    """
    A contiguous region of a disk as tracked by the editor.

    Blocks are immutable so history snapshots can share them; editor
    operations build new blocks with ``dataclasses.replace``.
    """

    id: str
    path: str
    kind: str
    fs_type: str | None
    label: str | None
    uuid: str | None
    size_bytes: int
    size: str
    is_allocated: bool
    original_id: str | None = None
    mountpoint: str | None = None

    @classmethod
    def from_partition(cls, partition: Partition, size_bytes: int | None = None) -> PartitionBlock:
        size_bytes = partition.size_bytes if size_bytes is None else size_bytes
        return cls(
            id=partition.id,
            path=partition.path,
            kind=partition.kind,
            fs_type=partition.fs_type,
            label=partition.label,
            uuid=partition.uuid,
            size_bytes=size_bytes,
            size=format_bytes(size_bytes),
            is_allocated=True,
            original_id=partition.id,
            mountpoint=partition.mountpoint,
        )

    @classmethod
    def unallocated(cls, block_id: str, size_bytes: int) -> PartitionBlock:
        return cls(
            id=block_id,
            path=UNALLOCATED_NAME,
            kind=FREE_KIND,
            fs_type=None,
            label=None,
            uuid=None,
            size_bytes=size_bytes,
            size=format_bytes(size_bytes),
            is_allocated=False,
        )

    def resized(self, size_bytes: int) -> PartitionBlock:
        return replace(self, size_bytes=size_bytes, size=format_bytes(size_bytes))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "kind": self.kind,
            "fs_type": self.fs_type,
            "label": self.label,
            "uuid": self.uuid,
            "size_bytes": self.size_bytes,
            "size": self.size,
            "is_allocated": self.is_allocated,
            "original_id": self.original_id,
            "mountpoint": self.mountpoint,
        }


@dataclass
class PartitionFormData:
    """Values collected by the create/edit partition form."""

    size_bytes: int
    fs_type: str = FileSystem.EXT4.value
    label: str = "New Partition"
    purpose: str = "data"

    def with_purpose(self, purpose: str) -> PartitionFormData:
        """Select a purpose, switching to the filesystem it suggests."""
        fs = PURPOSE_FILESYSTEMS.get(purpose)
        return replace(self, purpose=purpose, fs_type=fs.value if fs else self.fs_type)

    def with_fs_type(self, fs_type: str) -> PartitionFormData:
        """Select a filesystem, switching to the purpose it suggests."""
        fs = FileSystem.from_string(fs_type)
        purpose = FILESYSTEM_PURPOSES.get(fs, self.purpose) if fs else self.purpose
        return replace(self, fs_type=fs_type, purpose=purpose)


@dataclass(frozen=True)
class EditorState:
    """Complete state of the partition editor for one session."""

    selected_disk: Disk | None = None
    blocks: tuple[PartitionBlock, ...] = ()
    is_loading: bool = False
    error: str | None = None
    history: tuple[tuple[PartitionBlock, ...], ...] = ()
    future: tuple[tuple[PartitionBlock, ...], ...] = ()
    iso_storage_created: bool = False

    @property
    def has_disk(self) -> bool:
        return self.selected_disk is not None

    def get_block(self, block_id: str) -> PartitionBlock | None:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected_disk": self.selected_disk.to_dict() if self.selected_disk else None,
            "blocks": [b.to_dict() for b in self.blocks],
            "is_loading": self.is_loading,
            "error": self.error,
            "history_depth": len(self.history),
            "redo_depth": len(self.future),
            "iso_storage_created": self.iso_storage_created,
        }


@dataclass
class DiskInventory:
    """All disks found by one scan."""

    disks: list[Disk] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    platform: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def total_disks(self) -> int:
        return len(self.disks)

    @property
    def total_partitions(self) -> int:
        return sum(len(d.partitions) for d in self.disks)

    def get_disk(self, disk_id: str) -> Disk | None:
        """Find disk by short name or device path."""
        for disk in self.disks:
            if disk.id == disk_id or disk.path == disk_id:
                return disk
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "platform": self.platform,
            "total_disks": self.total_disks,
            "total_partitions": self.total_partitions,
            "disks": [d.to_dict() for d in self.disks],
            "errors": self.errors,
        }
