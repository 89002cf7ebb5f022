"""Tests for system/mount.py - boot partition mount bracket."""

import pytest
from conftest import issued_commands

from kerninst.system import mount
from kerninst.system.commands import CommandResult
from kerninst.system.exceptions import BootNotMountedError, ExternalStepFailure


@pytest.fixture
def boot(tmp_path):
    """An unmounted /boot: the mount point exists, the grub marker does not."""
    boot_dir = tmp_path / "boot"
    boot_dir.mkdir()
    return boot_dir


@pytest.fixture
def mount_creates_marker(boot, mock_command_runner):
    """Make ``mount`` reveal boot/grub, as mounting the real partition would."""

    def run(command):
        if command.argv[0] == "mount":
            (boot / "grub").mkdir()
        return CommandResult(command=command, returncode=0)

    mock_command_runner.run.side_effect = run
    return mock_command_runner


class TestBootMounted:
    def test_mounts_and_unmounts_when_marker_missing(self, boot, mount_creates_marker, mocker):
        mocker.patch("kerninst.system.mount.is_mounted", return_value=False)

        with mount.boot_mounted(boot, boot / "grub", mount_creates_marker):
            assert [c.argv for c in issued_commands(mount_creates_marker)] == [
                ("mount", str(boot))
            ]

        assert [c.argv for c in issued_commands(mount_creates_marker)] == [
            ("mount", str(boot)),
            ("umount", str(boot)),
        ]

    def test_existing_marker_means_no_mount(self, boot, mock_command_runner, mocker):
        """/boot on the root filesystem: boot/grub exists without a mount point."""
        (boot / "grub").mkdir()
        mocker.patch("kerninst.system.mount.is_mounted", return_value=False)

        with mount.boot_mounted(boot, boot / "grub", mock_command_runner):
            pass

        assert issued_commands(mock_command_runner) == []

    def test_already_mounted_is_left_alone(self, boot, mock_command_runner, mocker):
        (boot / "grub").mkdir()
        mocker.patch("kerninst.system.mount.is_mounted", return_value=True)

        with mount.boot_mounted(boot, boot / "grub", mock_command_runner):
            pass

        mock_command_runner.run.assert_not_called()

    def test_disabled_never_mounts(self, boot, mock_command_runner, mocker):
        mocker.patch("kerninst.system.mount.is_mounted", return_value=False)

        with pytest.raises(BootNotMountedError):
            with mount.boot_mounted(boot, boot / "grub", mock_command_runner, enabled=False):
                pytest.fail("body must not run")

        mock_command_runner.run.assert_not_called()

    def test_failure_inside_leaves_boot_mounted(self, boot, mount_creates_marker, mocker):
        mocker.patch("kerninst.system.mount.is_mounted", return_value=False)

        with pytest.raises(ExternalStepFailure):
            with mount.boot_mounted(boot, boot / "grub", mount_creates_marker):
                raise ExternalStepFailure("install", ["make", "install"], 1)

        assert [c.argv[0] for c in issued_commands(mount_creates_marker)] == ["mount"]

    def test_marker_still_missing_after_mount(self, boot, mock_command_runner, mocker):
        mocker.patch("kerninst.system.mount.is_mounted", return_value=False)

        with pytest.raises(BootNotMountedError, match="EFI"):
            with mount.boot_mounted(boot, boot / "EFI", mock_command_runner):
                pytest.fail("body must not run")

        assert [c.argv[0] for c in issued_commands(mock_command_runner)] == ["mount"]

    def test_mount_point_without_marker_raises(self, boot, mock_command_runner, mocker):
        mocker.patch("kerninst.system.mount.is_mounted", return_value=True)

        with pytest.raises(BootNotMountedError, match="EFI"):
            with mount.boot_mounted(boot, boot / "EFI", mock_command_runner):
                pytest.fail("body must not run")

        mock_command_runner.run.assert_not_called()

    def test_mount_failure_propagates(self, boot, mock_command_runner, mocker):
        mocker.patch("kerninst.system.mount.is_mounted", return_value=False)
        mock_command_runner.run.side_effect = ExternalStepFailure("mount boot", ["mount"], 32)

        with pytest.raises(ExternalStepFailure):
            with mount.boot_mounted(boot, boot / "grub", mock_command_runner):
                pytest.fail("body must not run")


def test_is_mounted_uses_ismount(mocker, tmp_path):
    ismount = mocker.patch("kerninst.system.mount.os.path.ismount", return_value=True)

    assert mount.is_mounted(tmp_path) is True
    ismount.assert_called_once_with(str(tmp_path))
