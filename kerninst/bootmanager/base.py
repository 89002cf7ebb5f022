"""Common interface for boot manager layouts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Set

from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import BootManagerVariant, VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.commands import CommandRunner
from kerninst.system.exceptions import FilesystemError
from kerninst.system.files import remove_path


class BootManagerAdapter(ABC):
    """Path layout and entry protocol of one boot manager variant.

    Every path a variant owns is derived from (variant, version, machine id),
    so deleting a version only ever touches that version's files.
    """

    variant: BootManagerVariant

    def __init__(self, config: KerninstConfig, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner
        self.log = LoggerFactory.for_bootmanager(self.variant.value)

    @property
    def boot_dir(self) -> Path:
        return self.config.boot_dir

    @abstractmethod
    def required_mount_dir(self) -> Path:
        """Directory whose presence shows the boot partition is mounted."""

    @abstractmethod
    def kernel_install_path(self, ctx: VersionContext) -> Path:
        """Where the bootable kernel for ``ctx`` ends up."""

    @abstractmethod
    def initrd_path(self, ctx: VersionContext) -> Path:
        """Output path for the ramdisk generator."""

    def install_dir(self, ctx: VersionContext) -> Optional[Path]:
        """INSTALL_PATH for ``make install``, or None to skip it."""
        return None

    @abstractmethod
    def write_boot_entry(self, ctx: VersionContext, cmdline: str) -> None:
        """Register ``ctx`` with the boot manager."""

    @abstractmethod
    def version_artifacts(self, ctx: VersionContext, version: str) -> List[Path]:
        """Every boot partition path belonging to ``version``."""

    @abstractmethod
    def installed_versions(self, ctx: VersionContext) -> Set[str]:
        """Versions with any state in this layout, the active one included."""

    def delete_version_artifacts(self, ctx: VersionContext, version: str) -> None:
        """Remove all artifacts of ``version``.

        Raises:
            FilesystemError: If a removal fails
        """
        for path in self.version_artifacts(ctx, version):
            if remove_path(path):
                self.log.info(f"Deleted {path}")

    def enumerate_other_versions(self, ctx: VersionContext) -> Set[str]:
        """Installed versions other than the active one."""
        return self.installed_versions(ctx) - {ctx.kernel_version}

    def _require_artifact(self, path: Path) -> None:
        if not path.is_file():
            raise FilesystemError(path, "find boot artifact", "file is missing")

    def _versions_with_prefix(self, directory: Path, prefix: str, suffix: str = "") -> Set[str]:
        """Versions encoded as ``<prefix><version><suffix>`` file names."""
        versions = set()
        if not directory.is_dir():
            return versions
        for entry in directory.glob(f"{prefix}*{suffix}"):
            name = entry.name
            version = name[len(prefix):len(name) - len(suffix)]
            if version:
                versions.add(version)
        return versions
