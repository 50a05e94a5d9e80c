"""
IsoWizard exceptions.

Parsing and editing never raise; these are used at the scanner and
session boundary only.
"""

from __future__ import annotations


class IsoWizardError(Exception):
    """Base exception for IsoWizard errors."""


class ScanError(IsoWizardError):
    """Disk data could not be collected at all."""


class CommandError(ScanError):
    """An external tool failed in a way the scan cannot recover from."""

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{' '.join(command)} failed (rc={returncode}): {stderr.strip()}")


class UnsupportedPlatformError(IsoWizardError):
    """Disk scanning is not available on this operating system."""


class DiskNotFoundError(IsoWizardError):
    """The requested disk is not part of the current inventory."""

    def __init__(self, disk_id: str) -> None:
        self.disk_id = disk_id
        super().__init__(f"Disk not found: {disk_id}")
