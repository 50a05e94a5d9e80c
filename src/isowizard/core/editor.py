"""
IsoWizard partition editor.

Every edit is a pure transition ``(EditorState) -> (EditorState, EditOutcome)``.
A transition that cannot apply returns the very same state object together
with a NOOP or INVALID outcome; it never raises. ``PartitionEditor`` owns
one state for a session and adds logging on top of the transitions.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any

from isowizard.core.blocks import calculate_blocks, merge_adjacent_unallocated, new_block_id
from isowizard.core.config import EditorConfig
from isowizard.core.logging import get_logger
from isowizard.core.models import (
    PARTITION_KIND,
    Disk,
    EditorState,
    FileSystem,
    PartitionBlock,
    PartitionFormData,
)
from isowizard.core.units import format_bytes

logger = get_logger(__name__)

NEW_PARTITION_NAME = "New Partition"
ISO_STORAGE_NAME = "ISO Storage"

# Filesystems cycled by edit_partition when no target is given
TOGGLE_FILESYSTEMS = (FileSystem.EXT4.value, FileSystem.NTFS.value)

Blocks = tuple[PartitionBlock, ...]


class EditStatus(Enum):
    """Result of an editor operation."""

    APPLIED = auto()
    NOOP = auto()  # Nothing to do: unknown block, no free space, guard tripped
    INVALID = auto()  # Rejected input: bad size or filesystem


@dataclass(frozen=True)
class EditOutcome:
    """What an editor operation did."""

    operation: str
    status: EditStatus
    message: str = ""

    @property
    def applied(self) -> bool:
        return self.status == EditStatus.APPLIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "status": self.status.name,
            "message": self.message,
        }


Transition = tuple[EditorState, EditOutcome]


def _noop(state: EditorState, operation: str, message: str) -> Transition:
    return state, EditOutcome(operation, EditStatus.NOOP, message)


def _invalid(state: EditorState, operation: str, message: str) -> Transition:
    return state, EditOutcome(operation, EditStatus.INVALID, message)


def _commit(
    state: EditorState,
    blocks: Blocks,
    operation: str,
    message: str,
    config: EditorConfig,
    **changes: Any,
) -> Transition:
    """Install a new block sequence, push it onto history and drop redo."""
    history = state.history + (blocks,)
    if len(history) > config.max_history:
        history = history[-config.max_history :]
    new_state = replace(state, blocks=blocks, history=history, future=(), **changes)
    return new_state, EditOutcome(operation, EditStatus.APPLIED, message)


def _find_index(blocks: Blocks, block_id: str) -> int:
    for index, block in enumerate(blocks):
        if block.id == block_id:
            return index
    return -1


def _first_unallocated(blocks: Blocks) -> int:
    for index, block in enumerate(blocks):
        if not block.is_allocated:
            return index
    return -1


def _new_partition_block(
    size_bytes: int, fs_type: str, label: str, prefix: str = "partition", name: str = NEW_PARTITION_NAME
) -> PartitionBlock:
    return PartitionBlock(
        id=new_block_id(prefix),
        path=name,
        kind=PARTITION_KIND,
        fs_type=fs_type,
        label=label,
        uuid=None,
        size_bytes=size_bytes,
        size=format_bytes(size_bytes),
        is_allocated=True,
        original_id=None,
    )


def initial_state() -> EditorState:
    """The empty state: no disk selected."""
    return EditorState()


def initialize(disk: Disk, config: EditorConfig | None = None) -> EditorState:
    """Select a disk and derive its block sequence."""
    config = config or EditorConfig()
    blocks = tuple(calculate_blocks(disk.partitions, disk.size_bytes, config.unallocated_slack_bytes))
    return EditorState(
        selected_disk=disk,
        blocks=blocks,
        is_loading=False,
        error=None,
        history=(blocks,),
        future=(),
        iso_storage_created=False,
    )


def add_partition(
    state: EditorState,
    form: PartitionFormData | None = None,
    config: EditorConfig | None = None,
) -> Transition:
    """
    Allocate the first unallocated region.

    Without ``form`` the new partition takes the whole region with the
    default filesystem and label. With ``form`` it takes ``form.size_bytes``
    and any remainder stays unallocated right after it.
    """
    operation = "add_partition"
    config = config or EditorConfig()

    index = _first_unallocated(state.blocks)
    if index == -1:
        return _noop(state, operation, "No unallocated space")

    region = state.blocks[index]

    if form is None:
        block = _new_partition_block(region.size_bytes, config.default_fs_type, config.default_label)
        blocks = state.blocks[:index] + (block,) + state.blocks[index + 1 :]
        return _commit(state, blocks, operation, f"Created {block.size} partition", config)

    if form.size_bytes <= 0:
        return _invalid(state, operation, "Partition size must be positive")
    if form.size_bytes > region.size_bytes:
        return _invalid(
            state,
            operation,
            f"Requested {format_bytes(form.size_bytes)} exceeds free region of {region.size}",
        )
    fs = FileSystem.from_string(form.fs_type)
    if fs is None:
        return _invalid(state, operation, f"Unsupported filesystem: {form.fs_type}")

    block = _new_partition_block(form.size_bytes, fs.value, form.label or config.default_label)
    inserted: Blocks = (block,)
    remainder = region.size_bytes - form.size_bytes
    if remainder > 0:
        inserted += (PartitionBlock.unallocated(new_block_id("unallocated"), remainder),)

    blocks = state.blocks[:index] + inserted + state.blocks[index + 1 :]
    return _commit(state, blocks, operation, f"Created {block.size} {fs.value} partition", config)


def delete_partition(
    state: EditorState, block_id: str, config: EditorConfig | None = None
) -> Transition:
    """Turn an allocated block into free space and merge it with free neighbours."""
    operation = "delete_partition"
    index = _find_index(state.blocks, block_id)
    if index == -1:
        return _noop(state, operation, f"Block not found: {block_id}")

    target = state.blocks[index]
    if not target.is_allocated:
        return _noop(state, operation, f"Block is already unallocated: {block_id}")

    freed = PartitionBlock.unallocated(new_block_id("unallocated"), target.size_bytes)
    blocks = tuple(
        merge_adjacent_unallocated(state.blocks[:index] + (freed,) + state.blocks[index + 1 :])
    )
    return _commit(
        state, blocks, operation, f"Deleted {target.path} ({target.size})", config or EditorConfig()
    )


def edit_partition(
    state: EditorState,
    block_id: str,
    fs_type: str | None = None,
    label: str | None = None,
    config: EditorConfig | None = None,
) -> Transition:
    """
    Change the filesystem and label of an allocated block.

    With neither ``fs_type`` nor ``label`` the filesystem toggles between
    ext4 and ntfs and the label follows it.
    """
    operation = "edit_partition"
    index = _find_index(state.blocks, block_id)
    if index == -1:
        return _noop(state, operation, f"Block not found: {block_id}")

    target = state.blocks[index]
    if not target.is_allocated:
        return _noop(state, operation, f"Cannot edit unallocated block: {block_id}")

    if fs_type is None and label is None:
        new_fs = TOGGLE_FILESYSTEMS[1] if target.fs_type == TOGGLE_FILESYSTEMS[0] else TOGGLE_FILESYSTEMS[0]
        new_label = f"{new_fs.upper()} Partition"
    else:
        if fs_type is None:
            new_fs = target.fs_type
        else:
            fs = FileSystem.from_string(fs_type)
            if fs is None:
                return _invalid(state, operation, f"Unsupported filesystem: {fs_type}")
            new_fs = fs.value
        new_label = target.label if label is None else label

    if new_fs == target.fs_type and new_label == target.label:
        return _noop(state, operation, "Partition already has these settings")

    edited = replace(target, fs_type=new_fs, label=new_label)
    blocks = state.blocks[:index] + (edited,) + state.blocks[index + 1 :]
    return _commit(
        state, blocks, operation, f"Set {target.path} to {new_fs}", config or EditorConfig()
    )


def merge_unallocated(state: EditorState, config: EditorConfig | None = None) -> Transition:
    """Run the merge pass; records history only if blocks were merged."""
    operation = "merge_unallocated"
    blocks = tuple(merge_adjacent_unallocated(state.blocks))
    if len(blocks) >= len(state.blocks):
        return _noop(state, operation, "No adjacent unallocated blocks")
    return _commit(
        state,
        blocks,
        operation,
        f"Merged free space into {len(blocks)} blocks",
        config or EditorConfig(),
    )


def create_iso_storage_partition(
    state: EditorState, config: EditorConfig | None = None
) -> Transition:
    """
    Allocate all free space to one ISO storage partition.

    Runs once per disk selection. All unallocated blocks are summed into a
    single exFAT block placed after the allocated blocks.
    """
    operation = "create_iso_storage_partition"
    config = config or EditorConfig()

    if state.iso_storage_created:
        return _noop(state, operation, "ISO storage partition already created")

    merged = merge_adjacent_unallocated(state.blocks)
    free = [b for b in merged if not b.is_allocated]
    if not free:
        return _noop(state, operation, "No unallocated space")

    total = sum(b.size_bytes for b in free)
    iso_block = _new_partition_block(
        total, config.iso_fs_type, config.iso_label, prefix="iso-storage", name=ISO_STORAGE_NAME
    )
    blocks = tuple(b for b in merged if b.is_allocated) + (iso_block,)
    return _commit(
        state,
        blocks,
        operation,
        f"Created {iso_block.size} ISO storage partition",
        config,
        iso_storage_created=True,
    )


def undo(state: EditorState) -> Transition:
    """Step back to the previous block sequence."""
    operation = "undo"
    if len(state.history) < 2:
        return _noop(state, operation, "Nothing to undo")
    history = state.history[:-1]
    new_state = replace(
        state,
        blocks=history[-1],
        history=history,
        future=state.future + (state.history[-1],),
    )
    return new_state, EditOutcome(operation, EditStatus.APPLIED, "Undid last change")


def redo(state: EditorState) -> Transition:
    """Re-apply the most recently undone block sequence."""
    operation = "redo"
    if not state.future:
        return _noop(state, operation, "Nothing to redo")
    blocks = state.future[-1]
    new_state = replace(
        state,
        blocks=blocks,
        history=state.history + (blocks,),
        future=state.future[:-1],
    )
    return new_state, EditOutcome(operation, EditStatus.APPLIED, "Redid last change")


def build_plan(state: EditorState) -> list[dict[str, Any]]:
    """The block sequence as an ordered plan for an executor."""
    return [
        {
            "position": position,
            "id": block.id,
            "original_id": block.original_id,
            "size_bytes": block.size_bytes,
            "fs_type": block.fs_type,
            "label": block.label,
            "is_allocated": block.is_allocated,
        }
        for position, block in enumerate(state.blocks)
    ]


class PartitionEditor:
    """
    Owns the editor state for one wizard session.

    Each method applies the matching transition, keeps the resulting state
    and returns the outcome.
    """

    def __init__(self, config: EditorConfig | None = None) -> None:
        self.config = config or EditorConfig()
        self._state = initial_state()

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def blocks(self) -> Blocks:
        return self._state.blocks

    @property
    def can_undo(self) -> bool:
        return len(self._state.history) > 1

    @property
    def can_redo(self) -> bool:
        return bool(self._state.future)

    def _apply(self, transition: Transition) -> EditOutcome:
        new_state, outcome = transition
        self._state = new_state
        log = logger.info if outcome.applied else logger.debug
        log(
            "Editor operation",
            operation=outcome.operation,
            status=outcome.status.name,
            detail=outcome.message,
            blocks=len(new_state.blocks),
        )
        return outcome

    def initialize(self, disk: Disk) -> None:
        self._state = initialize(disk, self.config)
        logger.info(
            "Editor initialized",
            disk=disk.path,
            disk_size=disk.size,
            blocks=len(self._state.blocks),
        )

    def reset(self) -> None:
        self._state = initial_state()

    def set_loading(self) -> None:
        """Mark a disk load in progress; the current disk is kept until replaced."""
        self._state = replace(self._state, is_loading=True, error=None)

    def set_error(self, message: str) -> None:
        """Record a failed disk load, clearing the selection."""
        self._state = replace(initial_state(), error=message)

    def add_partition(self, form: PartitionFormData | None = None) -> EditOutcome:
        return self._apply(add_partition(self._state, form, self.config))

    def delete_partition(self, block_id: str) -> EditOutcome:
        return self._apply(delete_partition(self._state, block_id, self.config))

    def edit_partition(
        self, block_id: str, fs_type: str | None = None, label: str | None = None
    ) -> EditOutcome:
        return self._apply(edit_partition(self._state, block_id, fs_type, label, self.config))

    def merge_unallocated(self) -> EditOutcome:
        return self._apply(merge_unallocated(self._state, self.config))

    def create_iso_storage_partition(self) -> EditOutcome:
        return self._apply(create_iso_storage_partition(self._state, self.config))

    def undo(self) -> EditOutcome:
        return self._apply(undo(self._state))

    def redo(self) -> EditOutcome:
        return self._apply(redo(self._state))

    def plan(self) -> list[dict[str, Any]]:
        return build_plan(self._state)
