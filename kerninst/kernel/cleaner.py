"""Removal of every kernel version except the active one."""

from __future__ import annotations

from pathlib import Path
from typing import List

from kerninst.bootmanager.base import BootManagerAdapter
from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.files import remove_path

from .version import SOURCE_PREFIX, version_from_source_name


class StaleVersionCleaner:
    """Delete boot artifacts, module trees and source trees of other versions.

    The active version is never in the candidate sets: they are computed as
    "everything installed minus the active version".
    """

    def __init__(self, config: KerninstConfig) -> None:
        self.config = config
        self.log = LoggerFactory.for_clean()

    def stale_source_trees(self, ctx: VersionContext) -> List[Path]:
        src_dir = self.config.src_dir
        if not src_dir.is_dir():
            return []
        active = ctx.kernel_source_dir.resolve()
        stale = []
        for entry in sorted(src_dir.glob(f"{SOURCE_PREFIX}*")):
            if entry.is_symlink() or not entry.is_dir():
                continue
            if entry.resolve() == active:
                continue
            if version_from_source_name(entry.name) == ctx.kernel_version:
                continue
            stale.append(entry)
        return stale

    def stale_module_trees(self, ctx: VersionContext) -> List[Path]:
        modules_dir = self.config.modules_dir
        if not modules_dir.is_dir():
            return []
        return sorted(
            entry
            for entry in modules_dir.iterdir()
            if entry.is_dir() and not entry.is_symlink() and entry.name != ctx.kernel_version
        )

    def clean(self, ctx: VersionContext, adapter: BootManagerAdapter) -> List[str]:
        """Remove all stale versions and return the versions removed from /boot."""
        stale_versions = sorted(adapter.enumerate_other_versions(ctx))
        for version in stale_versions:
            self.log.info(f"Removing kernel {version} from {self.config.boot_dir}...")
            adapter.delete_version_artifacts(ctx, version)

        for tree in self.stale_module_trees(ctx) + self.stale_source_trees(ctx):
            self.log.info(f"Removing {tree}...")
            remove_path(tree)

        if not stale_versions:
            self.log.info("No stale kernel versions found")
        return stale_versions
