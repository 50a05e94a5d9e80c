"""
IsoWizard Session Management.

A session owns the configuration, the latest disk inventory and the
partition editor for the disk currently checked out, and records every
edit in a report.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from isowizard.core.config import IsoWizardConfig, load_config
from isowizard.core.editor import EditOutcome, PartitionEditor
from isowizard.core.errors import DiskNotFoundError, ScanError
from isowizard.core.logging import OperationLogger, SessionLogger, get_logger, setup_logging
from isowizard.core.models import Disk, DiskInventory, PartitionFormData

logger = get_logger(__name__)


@dataclass
class SessionReport:
    """Record of a planning session for review."""

    session_id: str
    started_at: datetime
    ended_at: datetime | None = None
    scans: list[dict[str, Any]] = field(default_factory=list)
    operations: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    final_plan: list[dict[str, Any]] = field(default_factory=list)
    config_snapshot: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "scans": self.scans,
            "operations": self.operations,
            "errors": self.errors,
            "final_plan": self.final_plan,
            "config_snapshot": self.config_snapshot,
            "summary": {
                "total_operations": len(self.operations),
                "applied_operations": sum(
                    1 for op in self.operations if op.get("status") == "APPLIED"
                ),
                "total_errors": len(self.errors),
            },
        }

    def save(self, path: Path) -> None:
        """Save report to file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)


class Session:
    """
    Drives the wizard: scan, pick a disk, edit its plan.

    Scans replace the inventory as a whole; selecting a disk replaces the
    editor state as a whole.
    """

    def __init__(
        self,
        config: IsoWizardConfig | None = None,
        session_id: str | None = None,
        backend: Any | None = None,
    ) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.config = config or load_config()
        self.started_at = datetime.now()

        setup_logging(self.config.logging)

        self.editor = PartitionEditor(self.config.editor)
        self.inventory: DiskInventory | None = None
        self.session_logger = SessionLogger(
            self.config.get_session_file(),
            get_logger(f"session.{self.id[:8]}"),
            session_id=self.id,
        )

        self._report = SessionReport(
            session_id=self.id,
            started_at=self.started_at,
            config_snapshot=self.config.model_dump(mode="json"),
        )

        # Platform backend (lazily loaded)
        self._platform_backend = backend

        logger.info("Session started", session_id=self.id)
        self.session_logger.info("Session started", session_id=self.id)

    @property
    def platform(self) -> Any:
        """Get the disk scanner."""
        if self._platform_backend is None:
            from isowizard.platform import get_platform_backend

            self._platform_backend = get_platform_backend(self.config.scan)
        return self._platform_backend

    def scan(self) -> DiskInventory:
        """Re-query all disks and replace the inventory."""
        try:
            with OperationLogger("disk scan", logger, backend=self.platform.name):
                inventory = self.platform.get_disk_inventory()
        except ScanError as e:
            self._report.errors.append(str(e))
            self.session_logger.error("Disk scan failed", error=str(e))
            raise

        self.inventory = inventory
        self._report.scans.append(
            {
                "timestamp": inventory.timestamp.isoformat(),
                "disks": [d.id for d in inventory.disks],
                "errors": list(inventory.errors),
            }
        )
        self._report.errors.extend(inventory.errors)
        self.session_logger.info(
            "Disk scan complete",
            disks=inventory.total_disks,
            errors=len(inventory.errors),
        )
        return inventory

    def select_disk(self, disk_id: str) -> Disk:
        """Check a disk out into the editor, scanning first if needed."""
        if self.inventory is None:
            self.scan()
        assert self.inventory is not None

        disk = self.inventory.get_disk(disk_id)
        if disk is None:
            raise DiskNotFoundError(disk_id)

        self.editor.initialize(disk)
        self.session_logger.info(
            "Disk selected",
            disk=disk.path,
            blocks=len(self.editor.blocks),
        )
        return disk

    def apply(self, operation: Callable[[], EditOutcome]) -> EditOutcome:
        """Run an editor operation and record its outcome."""
        outcome = operation()
        record = {"timestamp": datetime.now().isoformat(), **outcome.to_dict()}
        self._report.operations.append(record)
        self.session_logger.info(
            "Editor operation",
            operation=outcome.operation,
            status=outcome.status.name,
            detail=outcome.message,
        )
        return outcome

    def add_partition(self, form: PartitionFormData | None = None) -> EditOutcome:
        return self.apply(lambda: self.editor.add_partition(form))

    def delete_partition(self, block_id: str) -> EditOutcome:
        return self.apply(lambda: self.editor.delete_partition(block_id))

    def edit_partition(
        self, block_id: str, fs_type: str | None = None, label: str | None = None
    ) -> EditOutcome:
        return self.apply(lambda: self.editor.edit_partition(block_id, fs_type, label))

    def merge_unallocated(self) -> EditOutcome:
        return self.apply(self.editor.merge_unallocated)

    def create_iso_storage_partition(self) -> EditOutcome:
        return self.apply(self.editor.create_iso_storage_partition)

    def undo(self) -> EditOutcome:
        return self.apply(self.editor.undo)

    def redo(self) -> EditOutcome:
        return self.apply(self.editor.redo)

    def close(self) -> Path:
        """Close the session and save reports."""
        self._report.ended_at = datetime.now()
        self._report.final_plan = self.editor.plan()

        self.session_logger.save()

        report_path = self.config.session_directory / f"report_{self.id[:8]}.json"
        self._report.save(report_path)

        logger.info(
            "Session closed",
            session_id=self.id,
            duration_seconds=(self._report.ended_at - self.started_at).total_seconds(),
            report_path=str(report_path),
        )

        return report_path

    def get_report(self) -> SessionReport:
        """Get the current session report."""
        return self._report

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
