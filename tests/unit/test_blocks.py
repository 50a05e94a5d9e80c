"""
Tests for isowizard.core.blocks module.
"""

import pytest

from isowizard.core.blocks import (
    calculate_blocks,
    merge_adjacent_unallocated,
    new_block_id,
    partition_sort_key,
    summarize_blocks,
)
from isowizard.core.models import Partition, PartitionBlock

MIB = 1024 * 1024


def make_partition(part_id: str, size_bytes: int, fs_type: str | None = "ext4") -> Partition:
    return Partition(
        id=part_id,
        path=f"/dev/{part_id}",
        kind="part",
        fs_type=fs_type,
        label=None,
        uuid=None,
        size_bytes=size_bytes,
    )


def allocated(block_id: str, size_bytes: int) -> PartitionBlock:
    return PartitionBlock.from_partition(make_partition(block_id, size_bytes))


class TestHelpers:
    """Tests for id and ordering helpers."""

    def test_new_block_id_is_unique(self) -> None:
        first = new_block_id("unallocated")
        second = new_block_id("unallocated")
        assert first.startswith("unallocated-")
        assert first != second

    def test_partition_sort_key(self) -> None:
        assert partition_sort_key("sda2") == 2
        assert partition_sort_key("nvme0n1p12") == 12
        assert partition_sort_key("mmcblk0p3") == 3
        assert partition_sort_key("weird") == 0


class TestCalculateBlocks:
    """Tests for calculate_blocks."""

    def test_empty_disk_is_one_free_block(self) -> None:
        blocks = calculate_blocks([], 500 * MIB)

        assert len(blocks) == 1
        assert blocks[0].is_allocated is False
        assert blocks[0].size_bytes == 500 * MIB
        assert blocks[0].size == "500.00 MiB"
        assert blocks[0].id.startswith("unallocated-end-")

    def test_missing_or_invalid_disk_size(self) -> None:
        partitions = [make_partition("sda1", MIB)]
        assert calculate_blocks(partitions, None) == []
        assert calculate_blocks(partitions, 0) == []
        assert calculate_blocks(partitions, -10) == []

    def test_trailing_free_space(self) -> None:
        blocks = calculate_blocks(
            [make_partition("sda1", 100 * MIB), make_partition("sda2", 200 * MIB)],
            1000 * MIB,
        )

        assert [b.is_allocated for b in blocks] == [True, True, False]
        assert blocks[-1].size_bytes == 700 * MIB
        assert sum(b.size_bytes for b in blocks) == 1000 * MIB

    def test_slack_is_not_reported(self) -> None:
        blocks = calculate_blocks([make_partition("sda1", 100 * MIB)], 101 * MIB)
        assert len(blocks) == 1

        blocks = calculate_blocks([make_partition("sda1", 100 * MIB)], 101 * MIB + 1)
        assert len(blocks) == 2
        assert blocks[1].size_bytes == MIB + 1

    def test_custom_slack(self) -> None:
        blocks = calculate_blocks([make_partition("sda1", 100 * MIB)], 110 * MIB, slack_bytes=16 * MIB)
        assert len(blocks) == 1

    def test_ordered_by_partition_number(self) -> None:
        blocks = calculate_blocks(
            [
                make_partition("sda10", MIB),
                make_partition("sda2", MIB),
                make_partition("sda1", MIB),
            ],
            3 * MIB,
        )
        assert [b.id for b in blocks] == ["sda1", "sda2", "sda10"]

    def test_oversized_partitions_are_scaled(self) -> None:
        disk_size = 1_000_000_000_000
        blocks = calculate_blocks(
            [
                make_partition("sda1", 400_000_000_000),
                make_partition("sda2", 700_000_000_000),
            ],
            disk_size,
        )

        assert len(blocks) == 2
        assert blocks[0].size_bytes == 363_636_363_636
        assert blocks[1].size_bytes == 636_363_636_363
        assert sum(b.size_bytes for b in blocks) <= disk_size
        assert blocks[0].size_bytes / blocks[1].size_bytes == pytest.approx(4 / 7, rel=1e-9)

    def test_blocks_keep_partition_identity(self) -> None:
        part = Partition(
            id="sda1",
            path="/dev/sda1",
            kind="part",
            fs_type="vfat",
            label="EFI",
            uuid="1234-ABCD",
            size_bytes=100 * MIB,
            mountpoint="/boot/efi",
        )
        block = calculate_blocks([part], 100 * MIB)[0]

        assert block.original_id == "sda1"
        assert block.fs_type == "vfat"
        assert block.label == "EFI"
        assert block.mountpoint == "/boot/efi"


class TestMergeAdjacentUnallocated:
    """Tests for merge_adjacent_unallocated."""

    def test_merges_runs(self) -> None:
        blocks = [
            PartitionBlock.unallocated("free-1", MIB),
            PartitionBlock.unallocated("free-2", 2 * MIB),
            allocated("sda1", 10 * MIB),
            PartitionBlock.unallocated("free-3", 3 * MIB),
            PartitionBlock.unallocated("free-4", 4 * MIB),
            PartitionBlock.unallocated("free-5", 5 * MIB),
        ]
        merged = merge_adjacent_unallocated(blocks)

        assert len(merged) == 3
        assert merged[0].size_bytes == 3 * MIB
        assert merged[1].id == "sda1"
        assert merged[2].size_bytes == 12 * MIB
        assert merged[2].id not in {"free-3", "free-4", "free-5"}

    def test_allocated_blocks_are_boundaries(self) -> None:
        blocks = [
            PartitionBlock.unallocated("free-1", MIB),
            allocated("sda1", MIB),
            PartitionBlock.unallocated("free-2", MIB),
        ]
        merged = merge_adjacent_unallocated(blocks)
        assert merged == blocks

    def test_idempotent(self) -> None:
        blocks = [
            PartitionBlock.unallocated("free-1", MIB),
            PartitionBlock.unallocated("free-2", MIB),
            allocated("sda1", MIB),
        ]
        once = merge_adjacent_unallocated(blocks)
        twice = merge_adjacent_unallocated(once)
        assert twice == once

    def test_empty(self) -> None:
        assert merge_adjacent_unallocated([]) == []


class TestSummarizeBlocks:
    """Tests for summarize_blocks."""

    def test_totals(self) -> None:
        summary = summarize_blocks(
            [allocated("sda1", 30 * MIB), PartitionBlock.unallocated("free-1", 70 * MIB)]
        )
        assert summary.allocated_bytes == 30 * MIB
        assert summary.unallocated_bytes == 70 * MIB
        assert summary.total_bytes == 100 * MIB
        assert summary.allocated_count == 1
        assert summary.used_percentage(100 * MIB) == 30.0
        assert summary.used_percentage(0) == 0.0
