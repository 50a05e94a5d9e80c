"""
IsoWizard CLI Main Entry Point.

Lists disks and previews partition plans. Plans are never applied to a
device.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
import humanize
from rich.console import Console
from rich.table import Table

from isowizard import __version__
from isowizard.core.blocks import summarize_blocks
from isowizard.core.config import IsoWizardConfig, load_config
from isowizard.core.editor import EditOutcome
from isowizard.core.errors import IsoWizardError
from isowizard.core.models import FileSystem, PartitionFormData
from isowizard.core.session import Session
from isowizard.core.units import parse_size_spec

console = Console()


def get_session(ctx: click.Context) -> Session:
    """Get or create session from context."""
    if "session" not in ctx.obj:
        config = ctx.obj.get("config") or load_config()
        backend = None
        capture = ctx.obj.get("capture")
        if capture is not None:
            from isowizard.platform import get_captured_backend

            backend = get_captured_backend(capture)
        ctx.obj["session"] = Session(config=config, backend=backend)
    return ctx.obj["session"]


def print_outcome(outcome: EditOutcome) -> None:
    color = {"APPLIED": "green", "NOOP": "yellow", "INVALID": "red"}[outcome.status.name]
    console.print(f"[{color}]{outcome.operation}: {outcome.message}[/{color}]")


@click.group()
@click.version_option(version=__version__, prog_name="IsoWizard")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--capture",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Read saved lsblk/parted/blkid output from this directory instead of scanning",
)
@click.option("--no-sudo", is_flag=True, help="Run parted and blkid without sudo")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    capture: Path | None,
    no_sudo: bool,
    json_output: bool,
) -> None:
    """
    IsoWizard - Plan an ISO storage drive.

    Scans disks and partition tables and previews partition changes in
    memory. Nothing is written to any device.
    """
    ctx.ensure_object(dict)

    loaded = IsoWizardConfig.load(config) if config else load_config()
    if no_sudo:
        loaded.scan.use_sudo = False

    ctx.obj["config"] = loaded
    ctx.obj["capture"] = capture
    ctx.obj["json_output"] = json_output


@cli.command("list")
@click.pass_context
def list_disks(ctx: click.Context) -> None:
    """List all disks and partitions."""
    session = get_session(ctx)
    json_output = ctx.obj.get("json_output", False)

    with console.status("Scanning disks..."):
        inventory = session.scan()

    if json_output:
        click.echo(json.dumps(inventory.to_dict(), indent=2, default=str))
        return

    table = Table(title="Disks")
    table.add_column("Device", style="cyan")
    table.add_column("Model", style="white")
    table.add_column("Size", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Transport", style="magenta")
    table.add_column("Partitions", justify="right")

    for disk in inventory.disks:
        table.add_row(
            disk.path,
            disk.display_name[:30],
            humanize.naturalsize(disk.size_bytes, binary=True),
            disk.disk_class.value,
            disk.transport,
            str(len(disk.partitions)),
        )

    console.print(table)
    console.print()

    for disk in inventory.disks:
        if not disk.partitions:
            continue
        part_table = Table(title=f"Partitions on {disk.path}")
        part_table.add_column("Device", style="cyan")
        part_table.add_column("Size", style="green")
        part_table.add_column("FS", style="yellow")
        part_table.add_column("Label", style="white")
        part_table.add_column("UUID", style="dim")
        part_table.add_column("Mount", style="blue")

        for part in disk.partitions:
            part_table.add_row(
                part.path,
                humanize.naturalsize(part.size_bytes, binary=True),
                part.fs_type or "",
                part.label or "",
                part.uuid or "",
                part.mountpoint or "",
            )

        console.print(part_table)
        console.print()

    for error in inventory.errors:
        console.print(f"[yellow]{error}[/yellow]")


@cli.command("plan")
@click.argument("disk")
@click.option("--delete", "delete_ids", multiple=True, help="Delete a partition block by id")
@click.option("--add", "add_sizes", multiple=True, help="Add a partition (e.g., 20GiB, 50%, all)")
@click.option(
    "--fs",
    "fs_type",
    type=click.Choice([fs.value for fs in FileSystem]),
    default=None,
    help="Filesystem for added partitions",
)
@click.option("--label", "-l", default=None, help="Label for added partitions")
@click.option("--merge", is_flag=True, help="Merge adjacent free space")
@click.option("--iso-storage", is_flag=True, help="Allocate all free space to ISO storage")
@click.option("--report/--no-report", default=False, help="Save a session report")
@click.pass_context
def plan(
    ctx: click.Context,
    disk: str,
    delete_ids: tuple[str, ...],
    add_sizes: tuple[str, ...],
    fs_type: str | None,
    label: str | None,
    merge: bool,
    iso_storage: bool,
    report: bool,
) -> None:
    """Preview a partition plan for DISK (e.g., sda or /dev/nvme0n1)."""
    session = get_session(ctx)
    json_output = ctx.obj.get("json_output", False)
    editor_config = session.config.editor

    with console.status("Scanning disks..."):
        session.scan()
    selected = session.select_disk(disk)

    outcomes: list[EditOutcome] = []
    for block_id in delete_ids:
        outcomes.append(session.delete_partition(block_id))

    if merge:
        outcomes.append(session.merge_unallocated())

    for size_spec in add_sizes:
        if size_spec.lower() == "all" and fs_type is None and label is None:
            outcomes.append(session.add_partition())
            continue

        free = next((b for b in session.editor.blocks if not b.is_allocated), None)
        free_bytes = free.size_bytes if free else 0
        try:
            size_bytes = free_bytes if size_spec.lower() == "all" else parse_size_spec(size_spec, free_bytes)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--add") from e

        form = PartitionFormData(
            size_bytes=size_bytes,
            fs_type=fs_type or editor_config.default_fs_type,
            label=label or editor_config.default_label,
        )
        outcomes.append(session.add_partition(form))

    if iso_storage:
        outcomes.append(session.create_iso_storage_partition())

    if json_output:
        click.echo(
            json.dumps(
                {
                    "disk": selected.to_dict(),
                    "operations": [o.to_dict() for o in outcomes],
                    "plan": session.editor.plan(),
                },
                indent=2,
                default=str,
            )
        )
    else:
        for outcome in outcomes:
            print_outcome(outcome)

        table = Table(title=f"Plan for {selected.path} ({selected.size}, {selected.disk_class.value})")
        table.add_column("#", style="dim")
        table.add_column("Block", style="cyan")
        table.add_column("Size", style="green")
        table.add_column("FS", style="yellow")
        table.add_column("Label", style="white")
        table.add_column("State", style="magenta")

        for position, block in enumerate(session.editor.blocks):
            if not block.is_allocated:
                state = "free"
            elif block.original_id is None:
                state = "new"
            else:
                state = "existing"
            table.add_row(
                str(position),
                block.id,
                humanize.naturalsize(block.size_bytes, binary=True),
                block.fs_type or "",
                block.label or "",
                state,
            )

        console.print(table)

        summary = summarize_blocks(session.editor.blocks)
        console.print(
            f"Allocated: {humanize.naturalsize(summary.allocated_bytes, binary=True)} "
            f"({summary.used_percentage(selected.size_bytes):.1f}%), "
            f"free: {humanize.naturalsize(summary.unallocated_bytes, binary=True)}"
        )

    if report:
        path = session.close()
        if not json_output:
            console.print(f"[dim]Report saved to {path}[/dim]")


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except IsoWizardError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
