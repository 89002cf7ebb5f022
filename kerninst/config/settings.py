"""Settings for kerninst, read from a flat shell-style key/value file."""

from __future__ import annotations

import os
import platform
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Tuple

from kerninst.domain.models import BootManagerVariant
from kerninst.logging import LoggerFactory
from kerninst.system.exceptions import ConfigurationError


CONFIG_PATH = Path(
    os.environ.get("KERNINST_CONFIG_PATH", "/etc/kerninst/kerninst.conf")
)

# Kernel architecture directory names under arch/ for common machine names
ARCH_ALIASES = {
    "x86_64": "x86",
    "i386": "x86",
    "i686": "x86",
    "amd64": "x86",
    "aarch64": "arm64",
    "armv7l": "arm",
    "ppc64le": "powerpc",
    "riscv64": "riscv",
}

DEFAULT_SETTINGS: dict[str, str] = {
    "BOOTMANAGER": "grub",
    "UNIFIED_KERNEL_IMAGE": "no",
    "KERNEL_CONFIG": "",
    "UPDATE_KERNEL_CONFIG": "no",
    "KERNEL_MAKEOPTS": "",
    "KERNEL_ARCH": "",
    "MODULES_REBUILD": "yes",
    "MODULE_REBUILD_SET": "@module-rebuild",
    "INCLUDE_FIRMWARE": "no",
    "FIRMWARE_DIR": "/lib/firmware",
    "INITRD_INCLUDE": "",
    "KERNEL_CMDLINE": "",
    "ROOT_PARTITION": "",
    "INIT": "",
    "INIT_OPTIONS": "",
    "ENTRY_TITLE": "Gentoo Linux",
    "SPLASH_IMAGE": "",
    "MOUNT_BOOT": "yes",
    "GRUB_MKCONFIG": "grub-mkconfig",
    "GRUB_CONFIG": "",
    "SRC_DIR": "/usr/src",
    "BOOT_DIR": "/boot",
    "MODULES_DIR": "/lib/modules",
    "MACHINE_ID_FILE": "/etc/machine-id",
    "OS_RELEASE_FILE": "/etc/os-release",
    "EFI_STUB_DIR": "/usr/lib/systemd/boot/efi",
    "TMP_DIR": "/var/tmp/kerninst",
    "LOG_FILE": "/var/log/kerninst.log",
}

TRUE_VALUES = ("yes", "y", "true", "1", "on")
FALSE_VALUES = ("no", "n", "false", "0", "off", "")


def default_kernel_arch() -> str:
    machine = platform.machine().lower()
    return ARCH_ALIASES.get(machine, machine)


@dataclass(frozen=True)
class KerninstConfig:
    """Immutable configuration for one run.

    Constructed once at startup and passed explicitly to every component.
    """

    boot_manager: BootManagerVariant = BootManagerVariant.GRUB
    kernel_config: Optional[Path] = None
    update_kernel_config: bool = False
    kernel_makeopts: Tuple[str, ...] = ()
    kernel_arch: str = field(default_factory=default_kernel_arch)
    modules_rebuild: bool = True
    module_rebuild_set: str = "@module-rebuild"
    include_firmware: bool = False
    firmware_dir: Path = Path("/lib/firmware")
    initrd_include: Tuple[Path, ...] = ()
    kernel_cmdline: str = ""
    entry_title: str = "Gentoo Linux"
    splash_image: Optional[Path] = None
    mount_boot: bool = True
    grub_mkconfig: str = "grub-mkconfig"
    grub_config: Optional[Path] = None
    src_dir: Path = Path("/usr/src")
    boot_dir: Path = Path("/boot")
    modules_dir: Path = Path("/lib/modules")
    machine_id_file: Path = Path("/etc/machine-id")
    os_release_file: Path = Path("/etc/os-release")
    efi_stub_dir: Path = Path("/usr/lib/systemd/boot/efi")
    tmp_dir: Path = Path("/var/tmp/kerninst")
    log_file: Path = Path("/var/log/kerninst.log")

    @property
    def kernel_link(self) -> Path:
        """The symlink selecting the active kernel source tree."""
        return self.src_dir / "linux"

    def with_overrides(self, **changes: Any) -> KerninstConfig:
        """Return a copy with the non-None values in ``changes`` applied."""
        return replace(
            self, **{key: value for key, value in changes.items() if value is not None}
        )


def parse_settings(text: str, source: str = "<config>") -> dict[str, str]:
    """Parse ``KEY=value`` lines; values follow shell quoting rules.

    Raises:
        ConfigurationError: If a line cannot be parsed
    """
    values: dict[str, str] = {}
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, raw_value = line.partition("=")
        key = key.strip()
        if not sep or not key.isidentifier():
            raise ConfigurationError(f"{source}:{number}: expected KEY=value")
        try:
            tokens = shlex.split(raw_value, comments=True)
        except ValueError as e:
            raise ConfigurationError(f"{source}:{number}: {e}") from e
        values[key] = " ".join(tokens)
    return values


def load_settings(path: Path | None = None) -> dict[str, str]:
    """Read the configuration file merged over ``DEFAULT_SETTINGS``.

    A missing file is not an error: the defaults apply.
    """
    path = path or CONFIG_PATH
    values = dict(DEFAULT_SETTINGS)
    if not path.exists():
        LoggerFactory.for_system().warning(
            f"Configuration file {path} not found, using defaults"
        )
        return values
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e.strerror or e}") from e
    values.update(parse_settings(text, source=str(path)))
    return values


def get_bool(values: dict[str, str], key: str) -> bool:
    value = values.get(key, DEFAULT_SETTINGS.get(key, "")).strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be yes or no, got {value!r}")


def _optional_path(value: str) -> Optional[Path]:
    return Path(value) if value else None


def parse_boot_manager(name: str, unified: bool = False) -> BootManagerVariant:
    """Map a BOOTMANAGER value onto a variant.

    ``grub2`` is accepted as grub; plain ``bootctl`` is split unless
    ``UNIFIED_KERNEL_IMAGE`` is enabled.
    """
    normalized = name.strip().lower()
    if normalized in ("grub", "grub2"):
        return BootManagerVariant.GRUB
    if normalized == "bootctl":
        if unified:
            return BootManagerVariant.BOOTCTL_UNIFIED
        return BootManagerVariant.BOOTCTL_SPLIT
    for variant in BootManagerVariant:
        if normalized == variant.value:
            return variant
    raise ConfigurationError(f"Invalid boot manager {name!r}")


def compose_cmdline(values: dict[str, str]) -> str:
    """Kernel command line from KERNEL_CMDLINE or the root/init settings."""
    explicit = values.get("KERNEL_CMDLINE", "").strip()
    if explicit:
        return explicit
    parts = []
    if values.get("ROOT_PARTITION"):
        parts.append(f"root={values['ROOT_PARTITION']}")
    if values.get("INIT"):
        parts.append(f"init={values['INIT']}")
    if values.get("INIT_OPTIONS"):
        parts.append(values["INIT_OPTIONS"])
    return " ".join(parts)


def config_from_settings(values: dict[str, str]) -> KerninstConfig:
    """Convert raw settings into a ``KerninstConfig``."""
    merged = dict(DEFAULT_SETTINGS)
    merged.update(values)
    return KerninstConfig(
        boot_manager=parse_boot_manager(
            merged["BOOTMANAGER"], get_bool(merged, "UNIFIED_KERNEL_IMAGE")
        ),
        kernel_config=_optional_path(merged["KERNEL_CONFIG"]),
        update_kernel_config=get_bool(merged, "UPDATE_KERNEL_CONFIG"),
        kernel_makeopts=tuple(shlex.split(merged["KERNEL_MAKEOPTS"])),
        kernel_arch=ARCH_ALIASES.get(merged["KERNEL_ARCH"], merged["KERNEL_ARCH"])
        or default_kernel_arch(),
        modules_rebuild=get_bool(merged, "MODULES_REBUILD"),
        module_rebuild_set=merged["MODULE_REBUILD_SET"],
        include_firmware=get_bool(merged, "INCLUDE_FIRMWARE"),
        firmware_dir=Path(merged["FIRMWARE_DIR"]),
        initrd_include=tuple(Path(p) for p in shlex.split(merged["INITRD_INCLUDE"])),
        kernel_cmdline=compose_cmdline(merged),
        entry_title=merged["ENTRY_TITLE"],
        splash_image=_optional_path(merged["SPLASH_IMAGE"]),
        mount_boot=get_bool(merged, "MOUNT_BOOT"),
        grub_mkconfig=merged["GRUB_MKCONFIG"],
        grub_config=_optional_path(merged["GRUB_CONFIG"]),
        src_dir=Path(merged["SRC_DIR"]),
        boot_dir=Path(merged["BOOT_DIR"]),
        modules_dir=Path(merged["MODULES_DIR"]),
        machine_id_file=Path(merged["MACHINE_ID_FILE"]),
        os_release_file=Path(merged["OS_RELEASE_FILE"]),
        efi_stub_dir=Path(merged["EFI_STUB_DIR"]),
        tmp_dir=Path(merged["TMP_DIR"]),
        log_file=Path(merged["LOG_FILE"]),
    )


def load_config(path: Path | None = None) -> KerninstConfig:
    return config_from_settings(load_settings(path))
