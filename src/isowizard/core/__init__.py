"""
IsoWizard Core.

Contains the disk topology model, the gap calculator, the partition
editor, configuration and session management.
"""

from isowizard.core.blocks import calculate_blocks, merge_adjacent_unallocated
from isowizard.core.config import IsoWizardConfig
from isowizard.core.editor import EditOutcome, EditStatus, PartitionEditor
from isowizard.core.logging import get_logger, setup_logging
from isowizard.core.session import Session
from isowizard.core.topology import transform
from isowizard.core.units import format_bytes, parse_unit_to_bytes

__all__ = [
    "IsoWizardConfig",
    "EditOutcome",
    "EditStatus",
    "PartitionEditor",
    "Session",
    "calculate_blocks",
    "format_bytes",
    "get_logger",
    "merge_adjacent_unallocated",
    "parse_unit_to_bytes",
    "setup_logging",
    "transform",
]
