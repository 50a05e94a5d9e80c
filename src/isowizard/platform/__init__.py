"""
IsoWizard Platform Layer.

Read-only disk scanners that collect the tool output the topology model
is built from.
"""

from __future__ import annotations

import platform
from pathlib import Path
from typing import TYPE_CHECKING

from isowizard.core.errors import UnsupportedPlatformError
from isowizard.platform.base import CommandResult, PlatformBackend
from isowizard.platform.captured import CapturedScanner

if TYPE_CHECKING:
    from isowizard.core.config import ScanConfig


def get_platform_backend(config: ScanConfig | None = None) -> PlatformBackend:
    """Get the disk scanner for the current OS."""
    system = get_platform_name()

    if system == "linux":
        from isowizard.platform.linux import LinuxScanner

        return LinuxScanner(config)

    raise UnsupportedPlatformError(f"Unsupported platform: {system}")


def get_captured_backend(directory: Path) -> PlatformBackend:
    """Get a scanner over saved tool output."""
    return CapturedScanner(directory)


def get_platform_name() -> str:
    """Get the current platform name."""
    return platform.system().lower()


__all__ = [
    "CapturedScanner",
    "CommandResult",
    "PlatformBackend",
    "get_captured_backend",
    "get_platform_backend",
    "get_platform_name",
]
