"""Boot partition mount handling.

kerninst relies on fstab for the actual device: ``mount /boot`` and
``umount /boot``. A partition that is already mounted is left alone.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from kerninst.logging import LoggerFactory

from .commands import Command, CommandRunner
from .exceptions import BootNotMountedError


log = LoggerFactory.for_system()


def is_mounted(path: Path) -> bool:
    return os.path.ismount(str(path))


def mount_boot(boot_dir: Path, runner: CommandRunner) -> bool:
    """Mount the boot partition if it is not mounted yet.

    Returns:
        True if this call mounted it, False if it was already mounted.

    Raises:
        ExternalStepFailure: If mount fails
    """
    if is_mounted(boot_dir):
        log.debug(f"{boot_dir} is already mounted")
        return False
    log.info(f"Mounting {boot_dir}...")
    runner.run(Command.of("mount boot", "mount", boot_dir))
    return True


def unmount_boot(boot_dir: Path, runner: CommandRunner) -> None:
    log.info(f"Unmounting {boot_dir}...")
    runner.run(Command.of("unmount boot", "umount", boot_dir))


@contextmanager
def boot_mounted(
    boot_dir: Path,
    required_dir: Path,
    runner: CommandRunner,
    *,
    enabled: bool = True,
) -> Iterator[Path]:
    """Scope a multi-stage run inside a mounted boot partition.

    ``required_dir`` is the marker for a usable /boot: when it already
    exists nothing is mounted or unmounted, which also covers a /boot that
    lives on the root filesystem. The partition is only unmounted on the
    normal exit path: after a fatal error it stays mounted so the partial
    state can be inspected.

    Args:
        boot_dir: Boot partition mount point
        required_dir: Directory that must exist once /boot is mounted
        runner: Command runner for mount/umount
        enabled: Whether kerninst should mount /boot at all

    Raises:
        BootNotMountedError: If ``required_dir`` is missing after mounting
    """
    required_dir = Path(required_dir)
    mounted_here = False
    if required_dir.is_dir():
        log.debug(f"{required_dir} present, {boot_dir} is usable as is")
    else:
        if enabled:
            mounted_here = mount_boot(boot_dir, runner)
        if not required_dir.is_dir():
            raise BootNotMountedError(required_dir)
    yield boot_dir
    if mounted_here:
        unmount_boot(boot_dir, runner)
