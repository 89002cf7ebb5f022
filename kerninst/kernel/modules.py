"""Rebuild out-of-tree kernel modules through portage."""

from __future__ import annotations

from kerninst.config.settings import KerninstConfig
from kerninst.logging import LoggerFactory
from kerninst.system.commands import Command, CommandRunner


log = LoggerFactory.for_initrd()


def rebuild_modules(config: KerninstConfig, runner: CommandRunner) -> None:
    """Run ``emerge -v <MODULE_REBUILD_SET>``."""
    log.info(f"Recompiling modules ({config.module_rebuild_set})...")
    runner.run(
        Command.of("module rebuild", "emerge", "-v", config.module_rebuild_set)
    )
