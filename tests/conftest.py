"""
Pytest configuration and fixtures for IsoWizard tests.
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

MIB = 1024 * 1024
GIB = 1024 * MIB


PARTED_GPT_SDA = """\
Model: ATA Samsung SSD 860 (scsi)
Disk /dev/sda: 476940MiB
Sector size (logical/physical): 512B/512B
Partition Table: gpt
Disk Flags:

Number  Start      End        Size       File system  Name                          Flags
 1      1,00MiB    101MiB     100MiB     fat32        EFI system partition          boot, esp
 2      101MiB     117MiB     16,0MiB                 Microsoft reserved partition  msftres
 3      117MiB     200117MiB  200000MiB  ntfs         Basic data partition          msftdata
 4      200117MiB  300117MiB  100000MiB  ext4

"""

PARTED_MSDOS_SDB = """\
Model: SanDisk Ultra (scsi)
Disk /dev/sdb: 30528MiB
Sector size (logical/physical): 512B/512B
Partition Table: msdos
Disk Flags:

Number  Start    End       Size      Type     File system  Flags
 1      1,00MiB  513MiB    512MiB    primary  fat32        boot, lba
 2      513MiB   20513MiB  20000MiB  primary  ext4

"""

PARTED_NVME = """\
Model: Samsung SSD 980 PRO 1TB (nvme)
Disk /dev/nvme0n1: 953870MiB
Sector size (logical/physical): 512B/512B
Partition Table: gpt
Disk Flags:

Number  Start    End        Size       File system     Name  Flags
 1      1,00MiB  513MiB     512MiB     fat32                 boot, esp
 2      513MiB   8705MiB    8192MiB    linux-swap(v1)        swap
 3      8705MiB  953869MiB  945164MiB  btrfs

"""

PARTED_UNRECOGNISED = "Error: /dev/nvme1n1: unrecognised disk label\n"

BLKID_EXPORT = """\
DEVNAME=/dev/sda1
UUID=1234-ABCD
BLOCK_SIZE=512
TYPE=vfat
PARTLABEL=EFI\\ system\\ partition
PARTUUID=aaaa-0001

DEVNAME=/dev/sda2
PARTLABEL=Microsoft\\ reserved\\ partition
PARTUUID=aaaa-0002

DEVNAME=/dev/sda3
LABEL=Windows
UUID=01D9ABCDEF
TYPE=ntfs
PARTUUID=aaaa-0003

DEVNAME=/dev/sda4
LABEL=data
UUID=6f1c1f6e-0000-4000-8000-000000000004
TYPE=ext4
PARTUUID=aaaa-0004

DEVNAME=/dev/nvme0n1p3
UUID=bbbb-0003
TYPE=btrfs
PARTUUID=cccc-0003
"""


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for tests."""
    return tmp_path


@pytest.fixture
def sample_config(tmp_path: Path) -> Generator["IsoWizardConfig", None, None]:
    """Configuration writing only to a temporary directory."""
    from isowizard.core.config import IsoWizardConfig

    config = IsoWizardConfig(session_directory=tmp_path / "sessions")
    config.logging.log_directory = tmp_path / "logs"
    config.logging.file_enabled = False
    config.logging.console_enabled = False
    config.ensure_directories()
    yield config


@pytest.fixture
def parted_gpt() -> str:
    """parted output for a GPT disk with four partitions."""
    return PARTED_GPT_SDA


@pytest.fixture
def parted_msdos() -> str:
    """parted output for an MBR disk."""
    return PARTED_MSDOS_SDB


@pytest.fixture
def parted_nvme() -> str:
    """parted output for an NVMe disk."""
    return PARTED_NVME


@pytest.fixture
def parted_unrecognised() -> str:
    """parted stderr for a disk without a partition table."""
    return PARTED_UNRECOGNISED


@pytest.fixture
def blkid_export() -> str:
    """blkid -o export output matching the sample disks."""
    return BLKID_EXPORT


@pytest.fixture
def capture_dir(tmp_path: Path) -> Path:
    """A directory of captured tool output for two disks and a blank NVMe drive."""
    root = tmp_path / "capture"
    parted = root / "parted"
    parted.mkdir(parents=True)
    (parted / "sda.txt").write_text(PARTED_GPT_SDA)
    (parted / "nvme0n1.txt").write_text(PARTED_NVME)
    (parted / "nvme1n1.txt").write_text(PARTED_UNRECOGNISED)
    (root / "blkid.txt").write_text(BLKID_EXPORT)
    (root / "lsblk.json").write_text(
        """{"blockdevices": [
            {"name": "sda", "size": 500107862016, "type": "disk", "mountpoint": null,
             "model": "Samsung SSD 860", "vendor": "ATA     ", "tran": "sata", "rota": false,
             "children": [
                {"name": "sda1", "size": 104857600, "type": "part", "mountpoint": "/boot/efi"},
                {"name": "sda4", "size": 104857600000, "type": "part", "mountpoint": "/data"}
             ]},
            {"name": "nvme0n1", "size": 1000204886016, "type": "disk", "mountpoint": null,
             "model": "Samsung SSD 980 PRO 1TB", "vendor": null, "tran": "nvme", "rota": false},
            {"name": "nvme1n1", "size": 2000398934016, "type": "disk", "mountpoint": null,
             "model": "WD Black SN850X", "vendor": null, "tran": "nvme", "rota": false}
        ]}"""
    )
    return root


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
