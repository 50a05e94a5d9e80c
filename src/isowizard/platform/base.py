"""
IsoWizard Platform Backend Base.

Defines the interface for the read-only disk scanners that feed the
topology model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from isowizard.core.models import Disk, DiskInventory


@dataclass
class CommandResult:
    """Exit status and captured output of one tool invocation."""

    returncode: int
    stdout: str
    stderr: str
    command: list[str]
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.command)


class PlatformBackend(ABC):
    """A source of disk inventories."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'linux', 'captured')."""

    @abstractmethod
    def get_disk_inventory(self) -> DiskInventory:
        """Scan all disks. Always a full re-query, never incremental."""

    def get_disk_info(self, disk_id: str) -> Disk | None:
        """Scan and return one disk by short name or device path."""
        return self.get_disk_inventory().get_disk(disk_id)
