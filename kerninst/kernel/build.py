"""Kernel configuration and compilation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.commands import Command, CommandRunner
from kerninst.system.exceptions import ConfigurationError
from kerninst.system.files import copy_file


# Boot image produced by the default make target, per arch/ directory
KERNEL_IMAGE_NAMES = {
    "x86": "bzImage",
    "arm64": "Image",
    "arm": "zImage",
    "riscv": "Image",
    "powerpc": "zImage",
}


log = LoggerFactory.for_build()


def kernel_image_path(config: KerninstConfig, ctx: VersionContext) -> Path:
    """Location of the compiled kernel image inside the source tree."""
    image_name = KERNEL_IMAGE_NAMES.get(config.kernel_arch, "bzImage")
    return ctx.kernel_source_dir / "arch" / config.kernel_arch / "boot" / image_name


def make_command(step: str, ctx: VersionContext, *args: str) -> Command:
    return Command.of(step, "make", "-C", ctx.kernel_source_dir, *args)


def configure_kernel(
    config: KerninstConfig, ctx: VersionContext, runner: CommandRunner
) -> None:
    """Seed .config from KERNEL_CONFIG and answer new options with defaults."""
    if config.kernel_config is not None:
        if not config.kernel_config.is_file():
            raise ConfigurationError(
                f"Kernel configuration {config.kernel_config} does not exist"
            )
        log.info(f"Copying kernel configuration from {config.kernel_config}...")
        copy_file(config.kernel_config, ctx.kernel_source_dir / ".config")

    log.info("Configuring kernel...")
    runner.run(make_command("configure", ctx, "olddefconfig"))


def persist_kernel_config(config: KerninstConfig, ctx: VersionContext) -> None:
    """Copy the refreshed .config back to KERNEL_CONFIG."""
    if config.kernel_config is None:
        raise ConfigurationError("KERNEL_CONFIG is not set, cannot save .config")
    log.info(f"Updating kernel config {config.kernel_config}...")
    copy_file(ctx.kernel_source_dir / ".config", config.kernel_config)


def compile_kernel(
    config: KerninstConfig,
    ctx: VersionContext,
    runner: CommandRunner,
    *,
    persist_config: Optional[bool] = None,
) -> None:
    """Configure and build the kernel and its modules."""
    if persist_config is None:
        persist_config = config.update_kernel_config

    configure_kernel(config, ctx, runner)
    if persist_config:
        persist_kernel_config(config, ctx)

    log.info(f"Compiling kernel {ctx.kernel_version}...")
    runner.run(
        Command.of(
            "compile",
            "make",
            *config.kernel_makeopts,
            "-C",
            ctx.kernel_source_dir,
        )
    )


def refresh_kernel_config(
    config: KerninstConfig, ctx: VersionContext, runner: CommandRunner
) -> None:
    """Bring KERNEL_CONFIG up to date with the active source tree."""
    if config.kernel_config is None:
        raise ConfigurationError("KERNEL_CONFIG is not set, nothing to refresh")
    configure_kernel(config, ctx, runner)
    persist_kernel_config(config, ctx)
