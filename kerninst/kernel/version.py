"""Resolve the active kernel version from the /usr/src/linux symlink."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.exceptions import ConfigurationError


SOURCE_PREFIX = "linux-"
BUILD_MARKER = "Makefile"
BUILD_MARKER_TEXT = "KBUILD"
# Interpolated into paths and tool arguments downstream
FORBIDDEN_VERSION_CHARS = ("'", '"')


log = LoggerFactory.for_version()


def version_from_source_name(name: str) -> str:
    """Strip the ``linux-`` prefix from a source directory name."""
    if name.startswith(SOURCE_PREFIX):
        return name[len(SOURCE_PREFIX):]
    return name


def validate_version(version: str) -> str:
    """Return ``version`` unchanged if it is usable in paths and commands.

    Raises:
        ConfigurationError: If the version is empty or contains whitespace
            or quote characters
    """
    if not version:
        raise ConfigurationError("Kernel version is empty")
    if any(char.isspace() for char in version) or any(
        char in version for char in FORBIDDEN_VERSION_CHARS
    ):
        raise ConfigurationError(
            f"Kernel version {version!r} contains whitespace or quote characters"
        )
    return version


def is_kernel_source_dir(path: Path) -> bool:
    """Check for a kernel build system Makefile in ``path``."""
    marker = path / BUILD_MARKER
    if not path.is_dir() or not marker.is_file():
        return False
    try:
        return BUILD_MARKER_TEXT in marker.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def read_machine_id(path: Path) -> Optional[str]:
    try:
        machine_id = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e.strerror or e}") from e
    return machine_id or None


def resolve_version_context(
    config: KerninstConfig, *, require_machine_id: bool | None = None
) -> VersionContext:
    """Resolve the kernel version and machine identity for this run.

    Args:
        config: Run configuration
        require_machine_id: Fail if /etc/machine-id is missing. Defaults to
            whether the configured boot manager needs it.

    Raises:
        ConfigurationError: If the symlink, source tree, version or machine
            id is invalid
    """
    link = config.kernel_link
    if not link.is_symlink():
        raise ConfigurationError(f"The symbolic link {link} does not exist")

    target = Path(os.readlink(link))
    source_dir = target if target.is_absolute() else link.parent / target
    if not is_kernel_source_dir(source_dir):
        raise ConfigurationError(f"{source_dir} is not a valid kernel directory")

    version = validate_version(version_from_source_name(target.name))

    if require_machine_id is None:
        require_machine_id = config.boot_manager.requires_machine_id
    machine_id = read_machine_id(config.machine_id_file)
    if require_machine_id:
        if not machine_id:
            raise ConfigurationError(
                f"Machine id missing from {config.machine_id_file}"
            )
        if any(char.isspace() for char in machine_id) or "/" in machine_id:
            raise ConfigurationError(f"Invalid machine id {machine_id!r}")

    log.info(f"Kernel version {version} from {source_dir}")
    return VersionContext(
        kernel_version=version,
        kernel_source_dir=source_dir,
        machine_id=machine_id,
    )
