"""Initrd generation with dracut."""

from __future__ import annotations

from pathlib import Path
from typing import AbstractSet, FrozenSet

from kerninst.bootmanager.base import BootManagerAdapter
from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.commands import Command, CommandRunner
from kerninst.system.exceptions import FilesystemError

from .modules import rebuild_modules


def collect_firmware(firmware_dir: Path) -> FrozenSet[Path]:
    """Every regular file below ``firmware_dir``."""
    if not firmware_dir.is_dir():
        return frozenset()
    return frozenset(path for path in firmware_dir.rglob("*") if path.is_file())


def initrd_include_paths(config: KerninstConfig) -> FrozenSet[Path]:
    """Extra files to force into the initrd."""
    paths = set(config.initrd_include)
    if config.include_firmware:
        paths |= collect_firmware(config.firmware_dir)
    return frozenset(paths)


class InitrdCoordinator:
    """Produce the initrd where the boot manager adapter expects it."""

    def __init__(self, config: KerninstConfig, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner
        self.log = LoggerFactory.for_initrd()

    def dracut_command(
        self, output: Path, version: str, include_paths: AbstractSet[Path]
    ) -> Command:
        args = ["dracut", "-f", "-H"]
        # An empty list must not be passed: dracut would still apply its defaults
        if include_paths:
            args += ["-I", " ".join(str(path) for path in sorted(include_paths))]
        args += [str(output), version]
        return Command.of("dracut", *args)

    def build(
        self,
        ctx: VersionContext,
        adapter: BootManagerAdapter,
        rebuild: bool = False,
        include_paths: AbstractSet[Path] = frozenset(),
    ) -> Path:
        """Generate the initrd for ``ctx`` and return its path.

        Args:
            ctx: Active version
            adapter: Boot manager deciding the output location
            rebuild: Rebuild external modules first
            include_paths: Files passed to dracut as an explicit inclusion list
        """
        if rebuild:
            rebuild_modules(self.config, self.runner)

        output = adapter.initrd_path(ctx)
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(output.parent, "create", e.strerror or str(e)) from e

        self.log.info(f"Creating initrd for kernel version {ctx.kernel_version}...")
        if include_paths:
            self.log.debug(f"Including {len(include_paths)} extra files")
        self.runner.run(self.dracut_command(output, ctx.kernel_version, include_paths))
        self.log.info(f"The initrd was saved in {output}.")
        return output
