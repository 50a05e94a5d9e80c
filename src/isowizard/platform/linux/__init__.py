"""
IsoWizard Linux Platform Scanner.

Reads disk topology using standard Linux tools:
- lsblk for the device list, sizes and transport
- parted for partition tables
- blkid for filesystem types, labels and UUIDs
"""

from isowizard.platform.linux.parsers import (
    parse_blkid_export,
    parse_lsblk_json,
    parse_parted_output,
)
from isowizard.platform.linux.scanner import LinuxScanner

__all__ = [
    "LinuxScanner",
    "parse_blkid_export",
    "parse_lsblk_json",
    "parse_parted_output",
]
