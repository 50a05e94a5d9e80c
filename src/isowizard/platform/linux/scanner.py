"""
Linux disk scanner.

Collects disk data with lsblk, parted and blkid and turns it into the
canonical disk model. Nothing here writes to a device.
"""

from __future__ import annotations

import subprocess
import time
from datetime import datetime

from isowizard.core.config import ScanConfig
from isowizard.core.errors import CommandError
from isowizard.core.logging import get_logger
from isowizard.core.models import BlockDeviceInfo, DiskInventory, FsIdentity
from isowizard.core.topology import transform
from isowizard.platform.base import CommandResult, PlatformBackend
from isowizard.platform.linux.parsers import (
    build_block_device,
    fallback_block_device,
    is_unrecognised_label,
    parse_blkid_export,
    parse_disk_report,
    parse_lsblk_json,
    parse_lsblk_names,
    parse_lsblk_size,
)

logger = get_logger(__name__)


class LinuxScanner(PlatformBackend):
    """Linux implementation of the disk scan."""

    # Tool paths (can be overridden for testing)
    LSBLK = "lsblk"
    BLKID = "blkid"
    PARTED = "parted"
    SUDO = "sudo"

    LSBLK_COLUMNS = "NAME,SIZE,TYPE,MOUNTPOINT,MODEL,VENDOR,TRAN,ROTA"

    def __init__(self, config: ScanConfig | None = None) -> None:
        self.config = config or ScanConfig()

    @property
    def name(self) -> str:
        return "linux"

    def _privileged(self, command: list[str]) -> list[str]:
        if self.config.use_sudo:
            return [self.SUDO, "-n", *command]
        return command

    def run_command(self, command: list[str], check: bool = True) -> CommandResult:
        """Run a system command."""
        timeout = self.config.command_timeout_seconds
        logger.debug("Running command", command=command)
        start_time = time.time()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                returncode=-1,
                stdout="",
                stderr=f"Command timed out after {timeout}s",
                command=command,
                duration_seconds=timeout,
            )
        except OSError as e:
            return CommandResult(
                returncode=-1,
                stdout="",
                stderr=str(e),
                command=command,
                duration_seconds=time.time() - start_time,
            )

        if check and result.returncode != 0:
            logger.warning(
                "Command failed",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr[:500] if result.stderr else "",
            )

        return CommandResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            command=command,
            duration_seconds=time.time() - start_time,
        )

    def list_disk_names(self) -> list[str]:
        """Short names of all whole-disk devices."""
        result = self.run_command([self.LSBLK, "-d", "-o", "NAME", "-n"])
        if not result.success:
            raise CommandError(result.command, result.returncode, result.stderr)
        return parse_lsblk_names(result.stdout, include_loop=self.config.include_loop_devices)

    def get_device_details(self) -> dict[str, BlockDeviceInfo]:
        """lsblk details (vendor, transport, rotation, mounts) keyed by name."""
        result = self.run_command(
            [self.LSBLK, "-J", "-b", "-o", self.LSBLK_COLUMNS],
            check=False,
        )
        if not result.success:
            logger.info("lsblk details unavailable", stderr=result.stderr.strip())
            return {}
        devices = [build_block_device(block) for block in parse_lsblk_json(result.stdout)]
        return {device.name: device for device in devices}

    def get_identities(self) -> dict[str, FsIdentity]:
        """blkid identities, trying sudo first and then an unprivileged run."""
        commands = [[self.BLKID, "-o", "export"]]
        if self.config.use_sudo:
            commands.insert(0, self._privileged([self.BLKID, "-o", "export"]))

        for command in commands:
            result = self.run_command(command, check=False)
            if result.success:
                return parse_blkid_export(result.stdout)
            logger.warning("blkid failed", command=result.command_line, stderr=result.stderr.strip())

        return {}

    def get_fallback_size(self, device: str) -> int:
        """Disk size from lsblk, used when parted cannot read a label."""
        result = self.run_command([self.LSBLK, "-b", "-dn", "-o", "SIZE", f"/dev/{device}"])
        if not result.success:
            logger.warning("Could not get disk size", device=device, stderr=result.stderr.strip())
            return 0
        return parse_lsblk_size(result.stdout)

    def scan_disk(
        self,
        device: str,
        identities: dict[str, FsIdentity],
        details: BlockDeviceInfo | None = None,
    ) -> BlockDeviceInfo | None:
        """
        Read one disk's partition table.

        Returns None when parted fails for any reason other than a missing
        disk label; such disks are left out of the inventory.
        """
        result = self.run_command(
            self._privileged(
                [self.PARTED, "-s", f"/dev/{device}", "unit", self.config.parted_unit, "print"]
            ),
            check=False,
        )

        if result.success:
            return parse_disk_report(device, result.stdout, identities, details)

        if is_unrecognised_label(result.stderr):
            logger.info("Disk has no partition table", device=device)
            return fallback_block_device(device, self.get_fallback_size(device), details)

        logger.warning(
            "parted failed",
            device=device,
            command=result.command_line,
            returncode=result.returncode,
            stderr=result.stderr.strip()[:500],
        )
        return None

    def get_disk_inventory(self) -> DiskInventory:
        """Get complete disk inventory using lsblk, parted and blkid."""
        inventory = DiskInventory(platform=self.name)

        names = self.list_disk_names()
        details = self.get_device_details()
        identities = self.get_identities()

        raw_disks: list[BlockDeviceInfo] = []
        for device in names:
            raw = self.scan_disk(device, identities, details.get(device))
            if raw is None:
                inventory.errors.append(f"Could not read partition table of /dev/{device}")
                continue
            raw_disks.append(raw)

        inventory.disks = transform(raw_disks, identities)
        inventory.timestamp = datetime.now()

        logger.info(
            "Disk scan complete",
            disks=inventory.total_disks,
            partitions=inventory.total_partitions,
            errors=len(inventory.errors),
        )
        return inventory
