"""
IsoWizard gap calculator.

Computes the ordered sequence of allocated and unallocated regions of a
disk from its partitions, and the merge pass over such a sequence.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from isowizard.core.logging import get_logger
from isowizard.core.models import Partition, PartitionBlock
from isowizard.core.units import UNALLOCATED_SLACK_BYTES

logger = get_logger(__name__)

_TRAILING_NUMBER = re.compile(r"(\d+)$")


def new_block_id(prefix: str) -> str:
    """Generate a fresh id for a block created by the editor."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def partition_sort_key(partition_id: str) -> int:
    """Trailing partition number of an id (``nvme0n1p2`` -> 2), 0 if none."""
    match = _TRAILING_NUMBER.search(partition_id)
    return int(match.group(1)) if match else 0


def calculate_blocks(
    partitions: Iterable[Partition],
    disk_size_bytes: int | None,
    slack_bytes: int = UNALLOCATED_SLACK_BYTES,
) -> list[PartitionBlock]:
    """
    Build the block sequence for a disk.

    Partitions are ordered by partition number. When their declared sizes
    add up to more than the disk, every size is scaled down by the same
    factor so the sequence fits. Remaining space larger than
    ``slack_bytes`` becomes one trailing unallocated block.
    """
    disk_size = max(disk_size_bytes or 0, 0)
    if disk_size == 0:
        return []

    ordered = sorted(partitions, key=lambda p: partition_sort_key(p.id))
    total = sum(max(p.size_bytes, 0) for p in ordered)

    scale = total > disk_size
    if scale:
        logger.warning(
            "Total partition size exceeds disk size, scaling",
            partition_bytes=total,
            disk_bytes=disk_size,
            scale_factor=round(disk_size / total, 4),
        )

    blocks: list[PartitionBlock] = []
    used = 0
    for partition in ordered:
        size = max(partition.size_bytes, 0)
        if scale:
            # floor(size * disk_size / total) without float rounding
            size = size * disk_size // total
        blocks.append(PartitionBlock.from_partition(partition, size))
        used += size

    remaining = disk_size - used
    if remaining > slack_bytes:
        blocks.append(PartitionBlock.unallocated(new_block_id("unallocated-end"), remaining))

    return blocks


def merge_adjacent_unallocated(blocks: Sequence[PartitionBlock]) -> list[PartitionBlock]:
    """
    Coalesce runs of adjacent unallocated blocks into single blocks.

    Allocated blocks are boundaries. Blocks that did not take part in a
    merge are returned unchanged, so the pass is idempotent.
    """
    result: list[PartitionBlock] = []
    for block in blocks:
        previous = result[-1] if result else None
        if previous is not None and not previous.is_allocated and not block.is_allocated:
            merged = PartitionBlock.unallocated(
                new_block_id("unallocated"), previous.size_bytes + block.size_bytes
            )
            result[-1] = merged
        else:
            result.append(block)
    return result


@dataclass
class BlockSummary:
    """Byte totals of a block sequence."""

    allocated_bytes: int
    unallocated_bytes: int
    allocated_count: int
    unallocated_count: int

    @property
    def total_bytes(self) -> int:
        return self.allocated_bytes + self.unallocated_bytes

    def used_percentage(self, disk_size_bytes: int) -> float:
        if disk_size_bytes <= 0:
            return 0.0
        return self.allocated_bytes / disk_size_bytes * 100


def summarize_blocks(blocks: Iterable[PartitionBlock]) -> BlockSummary:
    summary = BlockSummary(0, 0, 0, 0)
    for block in blocks:
        if block.is_allocated:
            summary.allocated_bytes += block.size_bytes
            summary.allocated_count += 1
        else:
            summary.unallocated_bytes += block.size_bytes
            summary.unallocated_count += 1
    return summary
