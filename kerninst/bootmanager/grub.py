"""GRUB layout: flat version-suffixed files in /boot, generated grub.cfg."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Set

from kerninst.domain.models import BootManagerVariant, VersionContext
from kerninst.system.commands import Command

from .base import BootManagerAdapter


# File name prefixes written by installkernel and dracut
KERNEL_PREFIX = "vmlinuz-"
SYSTEM_MAP_PREFIX = "System.map-"
CONFIG_PREFIX = "config-"
INITRD_PREFIX = "initrd-"

ARTIFACT_PREFIXES = (CONFIG_PREFIX, INITRD_PREFIX, SYSTEM_MAP_PREFIX, KERNEL_PREFIX)


class GrubAdapter(BootManagerAdapter):
    variant = BootManagerVariant.GRUB

    @property
    def grub_config(self) -> Path:
        return self.config.grub_config or self.boot_dir / "grub" / "grub.cfg"

    def required_mount_dir(self) -> Path:
        return self.grub_config.parent

    def kernel_install_path(self, ctx: VersionContext) -> Path:
        return self.boot_dir / f"{KERNEL_PREFIX}{ctx.kernel_version}"

    def initrd_path(self, ctx: VersionContext) -> Path:
        return self.boot_dir / f"{INITRD_PREFIX}{ctx.kernel_version}"

    def install_dir(self, ctx: VersionContext) -> Optional[Path]:
        return self.boot_dir

    def write_boot_entry(self, ctx: VersionContext, cmdline: str) -> None:
        # grub-mkconfig picks the command line up from /etc/default/grub
        self.log.info(f"Generating {self.grub_config}...")
        self.runner.run(
            Command.of(
                "grub-mkconfig", self.config.grub_mkconfig, "-o", self.grub_config
            )
        )

    def version_artifacts(self, ctx: VersionContext, version: str) -> List[Path]:
        return [self.boot_dir / f"{prefix}{version}" for prefix in ARTIFACT_PREFIXES]

    def installed_versions(self, ctx: VersionContext) -> Set[str]:
        versions: Set[str] = set()
        for prefix in ARTIFACT_PREFIXES:
            versions |= self._versions_with_prefix(self.boot_dir, prefix)
        return versions
