"""
Scanner over captured tool output.

Reads the output of lsblk, parted and blkid saved to a directory, so a
machine's disk layout can be inspected and planned elsewhere::

    capture/
        lsblk.json        # lsblk -J -b -o NAME,SIZE,TYPE,MOUNTPOINT,MODEL,VENDOR,TRAN,ROTA (optional)
        blkid.txt         # blkid -o export (optional)
        parted/sda.txt    # parted -s /dev/sda unit MiB print, stdout and stderr
        parted/nvme0n1.txt
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from isowizard.core.errors import ScanError
from isowizard.core.logging import get_logger
from isowizard.core.models import BlockDeviceInfo, DiskInventory
from isowizard.core.topology import transform
from isowizard.platform.base import PlatformBackend
from isowizard.platform.linux.parsers import (
    build_block_device,
    fallback_block_device,
    is_unrecognised_label,
    parse_blkid_export,
    parse_disk_report,
    parse_lsblk_json,
)

logger = get_logger(__name__)


class CapturedScanner(PlatformBackend):
    """Builds an inventory from a directory of saved tool output."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    @property
    def name(self) -> str:
        return "captured"

    def _read(self, relative: str) -> str | None:
        path = self.directory / relative
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="replace")

    def get_disk_inventory(self) -> DiskInventory:
        parted_dir = self.directory / "parted"
        if not parted_dir.is_dir():
            raise ScanError(f"No parted output found in {self.directory}")

        inventory = DiskInventory(platform=self.name)

        lsblk_output = self._read("lsblk.json")
        details: dict[str, BlockDeviceInfo] = {}
        if lsblk_output:
            for block in parse_lsblk_json(lsblk_output):
                device = build_block_device(block)
                details[device.name] = device

        blkid_output = self._read("blkid.txt")
        identities = parse_blkid_export(blkid_output) if blkid_output else {}

        raw_disks: list[BlockDeviceInfo] = []
        for report_file in sorted(parted_dir.glob("*.txt")):
            device = report_file.stem
            output = report_file.read_text(encoding="utf-8", errors="replace")
            detail = details.get(device)

            if is_unrecognised_label(output):
                size = detail.size_bytes if detail and detail.size_bytes else 0
                raw_disks.append(fallback_block_device(device, size, detail))
            else:
                raw_disks.append(parse_disk_report(device, output, identities, detail))

        inventory.disks = transform(raw_disks, identities)
        inventory.timestamp = datetime.now()

        logger.info(
            "Loaded captured disk data",
            directory=str(self.directory),
            disks=inventory.total_disks,
        )
        return inventory
