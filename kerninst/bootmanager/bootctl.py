"""systemd-boot layouts.

Split layout (boot loader specification type #1)::

    /boot/<machine-id>/<version>/vmlinuz-<version>
    /boot/<machine-id>/<version>/initrd
    /boot/loader/entries/<machine-id>-<version>.conf

Unified layout (type #2)::

    /boot/EFI/Linux/linux-<version>-<machine-id>.efi
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import List, Optional, Set

from kerninst.domain.models import BootEntry, BootManagerVariant, VersionContext
from kerninst.system.files import write_text_atomic

from .base import BootManagerAdapter


ENTRIES_DIR = Path("loader") / "entries"
UNIFIED_IMAGE_DIR = Path("EFI") / "Linux"
UNIFIED_IMAGE_PREFIX = "linux-"


class BootctlAdapter(BootManagerAdapter):
    """Shared behaviour of both systemd-boot layouts."""

    def required_mount_dir(self) -> Path:
        return self.boot_dir / "EFI"

    def boot_relative(self, path: Path) -> str:
        """Path as seen by the boot manager, rooted at the partition."""
        return str(PurePosixPath("/") / Path(path).relative_to(self.boot_dir))


class BootctlSplitAdapter(BootctlAdapter):
    variant = BootManagerVariant.BOOTCTL_SPLIT

    def machine_dir(self, ctx: VersionContext) -> Path:
        return self.boot_dir / ctx.require_machine_id()

    def version_dir(self, ctx: VersionContext, version: str) -> Path:
        return self.machine_dir(ctx) / version

    def entry_path(self, ctx: VersionContext, version: str) -> Path:
        return self.boot_dir / ENTRIES_DIR / f"{ctx.require_machine_id()}-{version}.conf"

    def kernel_install_path(self, ctx: VersionContext) -> Path:
        version = ctx.kernel_version
        return self.version_dir(ctx, version) / f"vmlinuz-{version}"

    def initrd_path(self, ctx: VersionContext) -> Path:
        return self.version_dir(ctx, ctx.kernel_version) / "initrd"

    def install_dir(self, ctx: VersionContext) -> Optional[Path]:
        return self.version_dir(ctx, ctx.kernel_version)

    def build_entry(self, ctx: VersionContext, cmdline: str) -> BootEntry:
        return BootEntry(
            title=self.config.entry_title,
            version=ctx.kernel_version,
            machine_id=ctx.require_machine_id(),
            linux=self.boot_relative(self.kernel_install_path(ctx)),
            initrd=self.boot_relative(self.initrd_path(ctx)),
            options=cmdline,
        )

    def write_boot_entry(self, ctx: VersionContext, cmdline: str) -> None:
        # Never register an entry whose kernel or initrd is not in place
        self._require_artifact(self.kernel_install_path(ctx))
        self._require_artifact(self.initrd_path(ctx))
        path = self.entry_path(ctx, ctx.kernel_version)
        write_text_atomic(path, self.build_entry(ctx, cmdline).render())
        self.log.info(f"Wrote boot entry {path}")

    def version_artifacts(self, ctx: VersionContext, version: str) -> List[Path]:
        return [self.entry_path(ctx, version), self.version_dir(ctx, version)]

    def installed_versions(self, ctx: VersionContext) -> Set[str]:
        machine_id = ctx.require_machine_id()
        versions = self._versions_with_prefix(
            self.boot_dir / ENTRIES_DIR, f"{machine_id}-", ".conf"
        )
        machine_dir = self.machine_dir(ctx)
        if machine_dir.is_dir():
            versions |= {entry.name for entry in machine_dir.iterdir() if entry.is_dir()}
        return versions


class BootctlUnifiedAdapter(BootctlAdapter):
    variant = BootManagerVariant.BOOTCTL_UNIFIED

    def image_path(self, ctx: VersionContext, version: str) -> Path:
        return (
            self.boot_dir
            / UNIFIED_IMAGE_DIR
            / f"{UNIFIED_IMAGE_PREFIX}{version}-{ctx.require_machine_id()}.efi"
        )

    def kernel_install_path(self, ctx: VersionContext) -> Path:
        return self.image_path(ctx, ctx.kernel_version)

    def initrd_path(self, ctx: VersionContext) -> Path:
        # Consumed by the image composer, so it never lands on /boot
        return self.config.tmp_dir / f"initrd-{ctx.kernel_version}.img"

    def write_boot_entry(self, ctx: VersionContext, cmdline: str) -> None:
        self.log.info(
            f"No entry to write, {self.kernel_install_path(ctx).name} is found by systemd-boot"
        )

    def version_artifacts(self, ctx: VersionContext, version: str) -> List[Path]:
        return [self.image_path(ctx, version)]

    def installed_versions(self, ctx: VersionContext) -> Set[str]:
        return self._versions_with_prefix(
            self.boot_dir / UNIFIED_IMAGE_DIR,
            UNIFIED_IMAGE_PREFIX,
            f"-{ctx.require_machine_id()}.efi",
        )
