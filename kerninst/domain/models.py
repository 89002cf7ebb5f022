"""Domain model for kernel lifecycle operations.

Type-safe value objects shared by the boot manager adapters, the stage
implementations and the pipeline. All of them are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from kerninst.system.exceptions import ConfigurationError


# ==============================================================================
# Boot Manager Domain
# ==============================================================================


class BootManagerVariant(Enum):
    """Boot manager layouts kerninst can maintain."""

    GRUB = "grub"
    BOOTCTL_SPLIT = "bootctl-split"
    BOOTCTL_UNIFIED = "bootctl-unified"

    @property
    def requires_machine_id(self) -> bool:
        """Boot-loader-spec paths embed the machine id."""
        return self is not BootManagerVariant.GRUB

    @property
    def is_unified(self) -> bool:
        return self is BootManagerVariant.BOOTCTL_UNIFIED


# ==============================================================================
# Version Domain
# ==============================================================================


@dataclass(frozen=True)
class VersionContext:
    """The kernel version a run operates on.

    Resolved once at startup from the /usr/src/linux symlink and never
    mutated afterwards.
    """

    kernel_version: str  # e.g., "6.1.0-gentoo"
    kernel_source_dir: Path  # e.g., /usr/src/linux-6.1.0-gentoo
    machine_id: Optional[str] = None  # contents of /etc/machine-id

    @property
    def source_link_name(self) -> str:
        return self.kernel_source_dir.name

    def require_machine_id(self) -> str:
        if not self.machine_id:
            raise ConfigurationError(
                "Machine id is required for boot-loader-spec layouts"
            )
        return self.machine_id


# ==============================================================================
# Boot Entry Domain
# ==============================================================================


BOOT_ENTRY_KEYS = ("title", "version", "machine-id", "linux", "initrd", "options")


@dataclass(frozen=True)
class BootEntry:
    """A boot-loader-spec entry for the split bootctl layout.

    Paths are relative to the root of the boot partition.
    """

    title: str
    version: str
    machine_id: str
    linux: str
    initrd: str
    options: str

    def items(self) -> list[tuple[str, str]]:
        """Key/value pairs in on-disk order."""
        values = (
            self.title,
            self.version,
            self.machine_id,
            self.linux,
            self.initrd,
            self.options,
        )
        return list(zip(BOOT_ENTRY_KEYS, values))

    def render(self) -> str:
        """Render the entry file contents, one ``key value`` pair per line."""
        width = max(len(key) for key in BOOT_ENTRY_KEYS) + 3
        return "".join(f"{key:<{width}}{value}\n" for key, value in self.items())


# ==============================================================================
# Unified Image Domain
# ==============================================================================


@dataclass(frozen=True)
class ImageSection:
    """A named PE section embedded into the EFI stub."""

    name: str  # e.g., ".linux"
    source: Path
    vma: int  # virtual memory address expected by the stub

    def objcopy_args(self) -> list[str]:
        return [
            "--add-section",
            f"{self.name}={self.source}",
            "--change-section-vma",
            f"{self.name}={self.vma_hex}",
        ]

    @property
    def vma_hex(self) -> str:
        """Address in the stub's documented notation, e.g. 0x0020000."""
        return format(self.vma, "#09x")


# ==============================================================================
# Pipeline Domain
# ==============================================================================


class Stage(Enum):
    """Pipeline stages, declared in execution order."""

    COMPILE = "compile"
    INSTALL = "install"
    UPDATEMODS = "updatemods"
    MKINITRD = "mkinitrd"
    UPDATEBM = "updatebm"
    CLEAN = "clean"
    NEWCONFIG = "newconfig"

    @property
    def touches_boot(self) -> bool:
        """Stages that read or write the boot partition."""
        return self in (Stage.INSTALL, Stage.MKINITRD, Stage.UPDATEBM, Stage.CLEAN)


FULL_PIPELINE = (
    Stage.COMPILE,
    Stage.INSTALL,
    Stage.UPDATEMODS,
    Stage.MKINITRD,
    Stage.UPDATEBM,
    Stage.CLEAN,
)
