"""
Tests for isowizard.core.topology module.
"""

from isowizard.core.models import BlockDeviceInfo, DiskClass, FsIdentity
from isowizard.core.topology import infer_disk_class, resolve_identity, transform

MIB = 1024 * 1024


class TestInferDiskClass:
    """Tests for infer_disk_class."""

    def test_nvme_by_transport(self) -> None:
        assert infer_disk_class("sdx", "nvme", True, None) == DiskClass.NVME

    def test_nvme_by_name(self) -> None:
        assert infer_disk_class("nvme0n1", None, None, None) == DiskClass.NVME
        assert infer_disk_class("/dev/nvme1n1", None, None, None) == DiskClass.NVME

    def test_rotation_flag(self) -> None:
        assert infer_disk_class("sda", "sata", False, None) == DiskClass.SSD
        assert infer_disk_class("sda", "sata", True, "Some SSD") == DiskClass.HDD

    def test_model_keywords(self) -> None:
        assert infer_disk_class("sda", None, None, "Samsung SSD 860") == DiskClass.SSD
        assert infer_disk_class("sdb", None, None, "USB Flash Disk") == DiskClass.SSD

    def test_unknown(self) -> None:
        assert infer_disk_class("sda", None, None, "WDC WD10EZEX") == DiskClass.UNKNOWN
        assert infer_disk_class("sda", None, None, None) == DiskClass.UNKNOWN


class TestResolveIdentity:
    """Tests for resolve_identity precedence."""

    def test_missing_identity(self) -> None:
        assert resolve_identity(None) == (None, None, None)

    def test_filesystem_fields_win(self) -> None:
        identity = FsIdentity(
            fs_type="ext4", label="root", uuid="fs-uuid", part_label="Linux", part_uuid="part-uuid"
        )
        assert resolve_identity(identity) == ("ext4", "root", "fs-uuid")

    def test_partition_table_fallback(self) -> None:
        identity = FsIdentity(part_label="Microsoft reserved partition", part_uuid="part-uuid")
        assert resolve_identity(identity) == (None, "Microsoft reserved partition", "part-uuid")


class TestTransform:
    """Tests for transform."""

    def _raw_disk(self) -> BlockDeviceInfo:
        return BlockDeviceInfo(
            name="sda",
            size_bytes=100 * MIB,
            kind="disk",
            model="Samsung SSD 860",
            vendor="ATA",
            transport="sata",
            rotational=False,
            children=[
                BlockDeviceInfo(name="sda1", size_bytes=10 * MIB, kind="part", mountpoint="/boot/efi"),
                BlockDeviceInfo(name="sda2", size_bytes=20 * MIB, kind="part"),
            ],
        )

    def test_builds_disk_and_partitions(self) -> None:
        identities = {"/dev/sda1": FsIdentity(fs_type="vfat", label="EFI", uuid="1234-ABCD")}
        disks = transform([self._raw_disk()], identities)

        assert len(disks) == 1
        disk = disks[0]
        assert disk.id == "sda"
        assert disk.path == "/dev/sda"
        assert disk.disk_class == DiskClass.SSD
        assert disk.size == "100.00 MiB"
        assert [p.id for p in disk.partitions] == ["sda1", "sda2"]

        efi = disk.partitions[0]
        assert efi.fs_type == "vfat"
        assert efi.label == "EFI"
        assert efi.uuid == "1234-ABCD"
        assert efi.mountpoint == "/boot/efi"

        # No identity for the path resolves to all-null
        other = disk.partitions[1]
        assert (other.fs_type, other.label, other.uuid) == (None, None, None)

    def test_non_disk_devices_skipped(self) -> None:
        loop = BlockDeviceInfo(name="loop0", size_bytes=MIB, kind="loop")
        rom = BlockDeviceInfo(name="sr0", size_bytes=MIB, kind="rom")
        disks = transform([loop, self._raw_disk(), rom])
        assert [d.id for d in disks] == ["sda"]

    def test_missing_metadata_defaults(self) -> None:
        raw = BlockDeviceInfo(name="sdz", size_bytes=None, kind="disk")
        disk = transform([raw])[0]

        assert disk.model == "N/A"
        assert disk.vendor == "N/A"
        assert disk.transport == "N/A"
        assert disk.size_bytes == 0
        assert disk.size == "0 Bytes"
        assert disk.partitions == []

    def test_empty_input(self) -> None:
        assert transform([]) == []
