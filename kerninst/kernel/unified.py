"""Unified kernel image composition.

The systemd EFI stub finds its payload in named PE sections. Their virtual
addresses are fixed by the stub and must not overlap::

    .osrel    0x0020000   /etc/os-release
    .cmdline  0x0030000   kernel command line
    .splash   0x0040000   boot splash bitmap (optional)
    .linux    0x2000000   kernel image
    .initrd   0x3000000   initrd
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from kerninst.bootmanager.base import BootManagerAdapter
from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import ImageSection, VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.commands import Command, CommandRunner
from kerninst.system.exceptions import (
    ConfigurationError,
    ExternalStepFailure,
    FilesystemError,
)
from kerninst.system.files import remove_path, replace_file, write_text_atomic

from .build import kernel_image_path


OSREL_VMA = 0x0020000
CMDLINE_VMA = 0x0030000
SPLASH_VMA = 0x0040000
LINUX_VMA = 0x2000000
INITRD_VMA = 0x3000000

STUB_PATTERN = "linux*.efi.stub"


class UnifiedImageComposer:
    """Embed kernel, initrd and metadata into a copy of the EFI stub."""

    def __init__(self, config: KerninstConfig, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner
        self.log = LoggerFactory.for_unified()

    def find_stub(self) -> Path:
        """First EFI stub matching ``linux*.efi.stub`` in EFI_STUB_DIR."""
        stub_dir = self.config.efi_stub_dir
        candidates = sorted(stub_dir.glob(STUB_PATTERN)) if stub_dir.is_dir() else []
        if not candidates:
            raise ConfigurationError(f"No EFI stub matching {STUB_PATTERN} in {stub_dir}")
        return candidates[0]

    def splash_path(self) -> Path | None:
        splash = self.config.splash_image
        if splash is None:
            return None
        if not splash.is_file():
            self.log.warning(f"Splash image {splash} not found, building without it")
            return None
        return splash

    def cmdline_path(self, ctx: VersionContext) -> Path:
        return self.config.tmp_dir / f"cmdline-{ctx.kernel_version}.txt"

    def build_sections(
        self, ctx: VersionContext, adapter: BootManagerAdapter, cmdline_file: Path
    ) -> List[ImageSection]:
        """Sections in ascending address order; .linux and .initrd always present."""
        sections = [
            ImageSection(".osrel", self.config.os_release_file, OSREL_VMA),
            ImageSection(".cmdline", cmdline_file, CMDLINE_VMA),
        ]
        splash = self.splash_path()
        if splash is not None:
            sections.append(ImageSection(".splash", splash, SPLASH_VMA))
        sections.append(
            ImageSection(".linux", kernel_image_path(self.config, ctx), LINUX_VMA)
        )
        sections.append(ImageSection(".initrd", adapter.initrd_path(ctx), INITRD_VMA))
        return sections

    def objcopy_command(
        self, sections: List[ImageSection], stub: Path, output: Path
    ) -> Command:
        args: List[str] = ["objcopy"]
        for section in sections:
            args += section.objcopy_args()
        args += [str(stub), str(output)]
        return Command.of("objcopy", *args)

    def compose(
        self, ctx: VersionContext, adapter: BootManagerAdapter, cmdline: str
    ) -> Path:
        """Build the unified image for ``ctx`` and return its path.

        On success the transient initrd and command line files are removed.
        If objcopy fails they are left in place for diagnosis.

        Raises:
            ConfigurationError: If os-release or the EFI stub is missing
            FilesystemError: If the kernel image or initrd is missing
            ExternalStepFailure: If objcopy fails
        """
        if not adapter.variant.is_unified:
            raise ConfigurationError(
                f"Unified images are not used with {adapter.variant.value}"
            )
        if not self.config.os_release_file.is_file():
            raise ConfigurationError(f"{self.config.os_release_file} does not exist")

        kernel_image = kernel_image_path(self.config, ctx)
        initrd = adapter.initrd_path(ctx)
        for required in (kernel_image, initrd):
            if not required.is_file():
                raise FilesystemError(required, "find boot artifact", "file is missing")
        stub = self.find_stub()

        cmdline_file = self.cmdline_path(ctx)
        write_text_atomic(cmdline_file, cmdline + "\n")
        sections = self.build_sections(ctx, adapter, cmdline_file)

        output = adapter.kernel_install_path(ctx)
        partial = output.with_name(f".{output.name}.tmp")
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(output.parent, "create", e.strerror or str(e)) from e

        self.log.info(
            f"Composing {output.name} from {stub.name} with sections "
            f"{', '.join(section.name for section in sections)}..."
        )
        try:
            self.runner.run(self.objcopy_command(sections, stub, partial))
        except ExternalStepFailure:
            remove_path(partial)
            raise
        replace_file(partial, output)

        remove_path(initrd)
        remove_path(cmdline_file)
        self.log.info(f"The unified kernel image was saved in {output}.")
        return output
