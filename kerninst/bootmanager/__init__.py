"""Boot manager adapters, one per supported layout."""

from __future__ import annotations

from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import BootManagerVariant
from kerninst.system.commands import CommandRunner
from kerninst.system.exceptions import ConfigurationError

from .base import BootManagerAdapter
from .bootctl import BootctlSplitAdapter, BootctlUnifiedAdapter
from .grub import GrubAdapter


ADAPTERS = {
    BootManagerVariant.GRUB: GrubAdapter,
    BootManagerVariant.BOOTCTL_SPLIT: BootctlSplitAdapter,
    BootManagerVariant.BOOTCTL_UNIFIED: BootctlUnifiedAdapter,
}


def get_adapter(config: KerninstConfig, runner: CommandRunner) -> BootManagerAdapter:
    """Instantiate the adapter for the configured boot manager."""
    try:
        adapter_class = ADAPTERS[config.boot_manager]
    except KeyError:
        raise ConfigurationError(
            f"Invalid boot manager {config.boot_manager!r}"
        ) from None
    return adapter_class(config, runner)


__all__ = [
    "ADAPTERS",
    "BootManagerAdapter",
    "BootctlSplitAdapter",
    "BootctlUnifiedAdapter",
    "GrubAdapter",
    "get_adapter",
]
