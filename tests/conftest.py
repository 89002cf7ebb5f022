"""
Pytest configuration and shared fixtures for kerninst tests.

Every test works on a throwaway filesystem layout under ``tmp_path``
(``usr/src``, ``boot``, ``lib/modules``, ``etc``) and a mocked command
runner, so nothing touches the real system.
"""

from pathlib import Path
from typing import Callable, List

import pytest
from loguru import logger

from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import BootManagerVariant, VersionContext
from kerninst.system.commands import Command, CommandResult, CommandRunner


ACTIVE_VERSION = "6.1.0-gentoo"
MACHINE_ID = "abcd1234"


# ==============================================================================
# Filesystem Layout Helpers
# ==============================================================================


def make_source_tree(src_dir: Path, version: str) -> Path:
    """Create a minimal kernel source tree named linux-<version>."""
    source = src_dir / f"linux-{version}"
    source.mkdir(parents=True, exist_ok=True)
    (source / "Makefile").write_text("# SPDX-License-Identifier: GPL-2.0\nKBUILD_VERBOSE = 0\n")
    return source


def point_kernel_link(src_dir: Path, version: str) -> Path:
    """Point usr/src/linux at linux-<version> with a relative link."""
    link = src_dir / "linux"
    if link.is_symlink():
        link.unlink()
    link.symlink_to(f"linux-{version}")
    return link


def touch(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


# ==============================================================================
# Configuration Fixtures
# ==============================================================================


@pytest.fixture
def make_config(tmp_path) -> Callable[..., KerninstConfig]:
    """
    Fixture providing a factory for configs rooted under tmp_path.

    Creates the directories a mounted system would have: boot/grub,
    boot/EFI, lib/modules, usr/src, the machine id and os-release files,
    and an EFI stub.
    """
    (tmp_path / "usr" / "src").mkdir(parents=True)
    (tmp_path / "boot" / "grub").mkdir(parents=True)
    (tmp_path / "boot" / "EFI").mkdir(parents=True)
    (tmp_path / "lib" / "modules").mkdir(parents=True)
    touch(tmp_path / "etc" / "machine-id", f"{MACHINE_ID}\n")
    touch(tmp_path / "etc" / "os-release", 'NAME=Gentoo\nID=gentoo\nPRETTY_NAME="Gentoo Linux"\n')
    touch(tmp_path / "usr" / "lib" / "systemd" / "boot" / "efi" / "linuxx64.efi.stub", "stub")

    def factory(**overrides) -> KerninstConfig:
        values = dict(
            boot_manager=BootManagerVariant.GRUB,
            kernel_arch="x86",
            mount_boot=False,
            kernel_cmdline="root=/dev/sda2 init=/sbin/init quiet",
            src_dir=tmp_path / "usr" / "src",
            boot_dir=tmp_path / "boot",
            modules_dir=tmp_path / "lib" / "modules",
            firmware_dir=tmp_path / "lib" / "firmware",
            machine_id_file=tmp_path / "etc" / "machine-id",
            os_release_file=tmp_path / "etc" / "os-release",
            efi_stub_dir=tmp_path / "usr" / "lib" / "systemd" / "boot" / "efi",
            tmp_dir=tmp_path / "var" / "tmp" / "kerninst",
            log_file=tmp_path / "var" / "log" / "kerninst.log",
        )
        values.update(overrides)
        return KerninstConfig(**values)

    return factory


@pytest.fixture
def config(make_config) -> KerninstConfig:
    """Fixture providing a grub config rooted under tmp_path."""
    return make_config()


@pytest.fixture
def ctx(config) -> VersionContext:
    """Fixture providing the active version with its source tree in place."""
    source = make_source_tree(config.src_dir, ACTIVE_VERSION)
    point_kernel_link(config.src_dir, ACTIVE_VERSION)
    return VersionContext(
        kernel_version=ACTIVE_VERSION,
        kernel_source_dir=source,
        machine_id=MACHINE_ID,
    )


# ==============================================================================
# Command Runner Fixtures
# ==============================================================================


@pytest.fixture
def mock_command_runner(mocker):
    """
    Fixture providing a mocked CommandRunner whose commands all succeed.

    Set ``side_effect`` on ``run`` to simulate tools writing files or failing.
    """
    runner = mocker.MagicMock(spec=CommandRunner)
    runner.run.side_effect = lambda command: CommandResult(command=command, returncode=0)
    return runner


def issued_commands(runner) -> List[Command]:
    """Commands passed to a mocked runner, in call order."""
    return [call.args[0] for call in runner.run.call_args_list]


def issued_steps(runner) -> List[str]:
    return [command.step for command in issued_commands(runner)]


@pytest.fixture
def mock_subprocess_run(mocker):
    """
    Fixture providing a mock for subprocess.run.

    Returns:
        Mock object for subprocess.run
    """
    return mocker.patch("subprocess.run")


# ==============================================================================
# Logging
# ==============================================================================


@pytest.fixture(autouse=True)
def reset_logging():
    """
    Auto-use fixture that drops sinks added during a test.

    Sinks bound to pytest's captured stderr must not outlive the test.
    """
    yield
    logger.remove()
