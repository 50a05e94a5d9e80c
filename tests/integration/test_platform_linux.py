"""
Tests for isowizard.platform.linux module.

Uses mocking to test without requiring root privileges or real disks.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from isowizard.core.config import ScanConfig
from isowizard.core.errors import CommandError, ScanError
from isowizard.core.models import DiskClass
from isowizard.platform.base import CommandResult
from isowizard.platform.linux.scanner import LinuxScanner

LSBLK_DETAILS = json.dumps(
    {
        "blockdevices": [
            {
                "name": "sda",
                "size": 500107862016,
                "type": "disk",
                "model": "Samsung SSD 860",
                "vendor": "ATA",
                "tran": "sata",
                "rota": False,
                "children": [
                    {"name": "sda1", "size": 104857600, "type": "part", "mountpoint": "/boot/efi"},
                ],
            },
            {
                "name": "nvme1n1",
                "size": 2000398934016,
                "type": "disk",
                "model": "WD Black SN850X",
                "tran": "nvme",
                "rota": False,
            },
        ]
    }
)


class FakeTools:
    """Canned lsblk/blkid/parted results keyed by the command line."""

    def __init__(self, parted: dict[str, CommandResult], names: str, blkid: str) -> None:
        self.parted = parted
        self.names = names
        self.blkid = blkid
        self.commands: list[list[str]] = []

    def __call__(self, command: list[str], check: bool = True) -> CommandResult:
        self.commands.append(command)
        tool = [part for part in command if part not in ("sudo", "-n")]

        if tool[:2] == ["lsblk", "-d"]:
            return CommandResult(0, self.names, "", command)
        if tool[:2] == ["lsblk", "-J"]:
            return CommandResult(0, LSBLK_DETAILS, "", command)
        if tool[:3] == ["lsblk", "-b", "-dn"]:
            return CommandResult(0, "2000398934016\n", "", command)
        if tool[0] == "blkid":
            return CommandResult(0, self.blkid, "", command)
        if tool[0] == "parted":
            device = tool[2].removeprefix("/dev/")
            return self.parted[device]
        raise AssertionError(f"unexpected command {command}")


@pytest.fixture
def scanner() -> LinuxScanner:
    return LinuxScanner(ScanConfig(use_sudo=True))


@pytest.mark.integration
class TestLinuxScanner:
    """Tests for LinuxScanner with mocked commands."""

    def test_get_disk_inventory(
        self,
        scanner: LinuxScanner,
        parted_gpt: str,
        parted_unrecognised: str,
        blkid_export: str,
    ) -> None:
        tools = FakeTools(
            parted={
                "sda": CommandResult(0, parted_gpt, "", ["parted"]),
                "nvme1n1": CommandResult(1, "", parted_unrecognised, ["parted"]),
            },
            names="sda\nnvme1n1\nloop0\n",
            blkid=blkid_export,
        )

        with patch.object(scanner, "run_command", side_effect=tools):
            inventory = scanner.get_disk_inventory()

        assert inventory.platform == "linux"
        assert inventory.errors == []
        assert [d.id for d in inventory.disks] == ["sda", "nvme1n1"]

        sda = inventory.get_disk("sda")
        assert sda.disk_class == DiskClass.SSD
        assert sda.vendor == "ATA"
        assert len(sda.partitions) == 4
        assert sda.partitions[0].fs_type == "vfat"
        assert sda.partitions[0].mountpoint == "/boot/efi"
        assert sda.partitions[1].fs_type is None
        assert sda.partitions[1].label == "Microsoft reserved partition"
        assert sda.partitions[3].label == "data"

        blank = inventory.get_disk("nvme1n1")
        assert blank.partitions == []
        assert blank.size_bytes == 2000398934016
        assert blank.disk_class == DiskClass.NVME

    def test_privileged_commands_use_sudo(
        self, scanner: LinuxScanner, parted_gpt: str, blkid_export: str
    ) -> None:
        tools = FakeTools(
            parted={"sda": CommandResult(0, parted_gpt, "", ["parted"])},
            names="sda\n",
            blkid=blkid_export,
        )

        with patch.object(scanner, "run_command", side_effect=tools):
            scanner.get_disk_inventory()

        parted_calls = [c for c in tools.commands if "parted" in c]
        assert parted_calls == [
            ["sudo", "-n", "parted", "-s", "/dev/sda", "unit", "MiB", "print"]
        ]
        list_call = tools.commands[0]
        assert list_call[0] == "lsblk"

    def test_without_sudo(self, parted_gpt: str, blkid_export: str) -> None:
        scanner = LinuxScanner(ScanConfig(use_sudo=False))
        tools = FakeTools(
            parted={"sda": CommandResult(0, parted_gpt, "", ["parted"])},
            names="sda\n",
            blkid=blkid_export,
        )

        with patch.object(scanner, "run_command", side_effect=tools):
            scanner.get_disk_inventory()

        assert all("sudo" not in c for c in tools.commands)

    def test_failing_disk_is_reported_not_fatal(
        self, scanner: LinuxScanner, parted_gpt: str, blkid_export: str
    ) -> None:
        tools = FakeTools(
            parted={
                "sda": CommandResult(0, parted_gpt, "", ["parted"]),
                "sdc": CommandResult(1, "", "Error: Could not stat device /dev/sdc", ["parted"]),
            },
            names="sdc\nsda\n",
            blkid=blkid_export,
        )

        with patch.object(scanner, "run_command", side_effect=tools):
            inventory = scanner.get_disk_inventory()

        assert [d.id for d in inventory.disks] == ["sda"]
        assert inventory.errors == ["Could not read partition table of /dev/sdc"]

    def test_lsblk_failure_raises(self, scanner: LinuxScanner) -> None:
        with patch.object(
            scanner,
            "run_command",
            return_value=CommandResult(1, "", "lsblk: not found", ["lsblk", "-d", "-o", "NAME", "-n"]),
        ):
            with pytest.raises(ScanError) as exc_info:
                scanner.get_disk_inventory()

        assert isinstance(exc_info.value, CommandError)
        assert exc_info.value.returncode == 1

    def test_blkid_falls_back_to_unprivileged(self, scanner: LinuxScanner, blkid_export: str) -> None:
        with patch.object(
            scanner,
            "run_command",
            side_effect=[
                CommandResult(1, "", "sudo: a password is required", ["sudo"]),
                CommandResult(0, blkid_export, "", ["blkid"]),
            ],
        ) as mock_run:
            identities = scanner.get_identities()

        assert mock_run.call_count == 2
        assert "/dev/sda1" in identities

    def test_details_unavailable(self, scanner: LinuxScanner) -> None:
        with patch.object(scanner, "run_command", return_value=CommandResult(1, "", "", ["lsblk"])):
            assert scanner.get_device_details() == {}
            assert scanner.get_fallback_size("sdz") == 0

    def test_get_disk_info(self, scanner: LinuxScanner, parted_gpt: str, blkid_export: str) -> None:
        tools = FakeTools(
            parted={"sda": CommandResult(0, parted_gpt, "", ["parted"])},
            names="sda\n",
            blkid=blkid_export,
        )

        with patch.object(scanner, "run_command", side_effect=tools):
            assert scanner.get_disk_info("/dev/sda") is not None

        with patch.object(scanner, "run_command", side_effect=tools):
            assert scanner.get_disk_info("sdz") is None


@pytest.mark.integration
class TestRunCommand:
    """Tests for LinuxScanner.run_command."""

    def test_success(self, scanner: LinuxScanner) -> None:
        completed = subprocess.CompletedProcess(["lsblk"], 0, stdout="sda\n", stderr="")
        with patch("subprocess.run", return_value=completed) as mock_run:
            result = scanner.run_command(["lsblk"])

        assert result.success
        assert result.stdout == "sda\n"
        assert mock_run.call_args.kwargs["timeout"] == scanner.config.command_timeout_seconds

    def test_timeout(self, scanner: LinuxScanner) -> None:
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(["parted"], 30)):
            result = scanner.run_command(["parted"])

        assert result.returncode == -1
        assert "timed out" in result.stderr

    def test_missing_tool(self, scanner: LinuxScanner) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError("parted")):
            result = scanner.run_command(["parted"])

        assert result.success is False
        assert "parted" in result.stderr
