"""Stage ordering and dispatch.

A run is a sequence of stages executed against one resolved version and
one boot manager adapter. The first failing stage stops the run; stages
that already completed are not rolled back.
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Callable, Dict, Optional, Sequence

from kerninst.bootmanager import BootManagerAdapter, get_adapter
from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import FULL_PIPELINE, Stage, VersionContext
from kerninst.kernel.build import compile_kernel, refresh_kernel_config
from kerninst.kernel.cleaner import StaleVersionCleaner
from kerninst.kernel.initrd import InitrdCoordinator, initrd_include_paths
from kerninst.kernel.installer import ArtifactInstaller
from kerninst.kernel.modules import rebuild_modules
from kerninst.kernel.unified import UnifiedImageComposer
from kerninst.logging import LoggerFactory, stage_context
from kerninst.system.commands import CommandRunner
from kerninst.system.exceptions import ConfigurationError
from kerninst.system.mount import boot_mounted


# Folded into the unified-image compose step
UNIFIED_SUBSUMED_STAGES = (Stage.INSTALL, Stage.MKINITRD)


class Pipeline:
    def __init__(
        self,
        config: KerninstConfig,
        ctx: VersionContext,
        runner: CommandRunner,
        adapter: Optional[BootManagerAdapter] = None,
    ) -> None:
        self.config = config
        self.ctx = ctx
        self.runner = runner
        self.adapter = adapter or get_adapter(config, runner)
        self.installer = ArtifactInstaller(config, runner)
        self.initrd = InitrdCoordinator(config, runner)
        self.composer = UnifiedImageComposer(config, runner)
        self.cleaner = StaleVersionCleaner(config)
        self.log = LoggerFactory.for_system()
        self._handlers: Dict[Stage, Callable[[bool], None]] = {
            Stage.COMPILE: self.compile,
            Stage.NEWCONFIG: self.newconfig,
            Stage.INSTALL: self.install,
            Stage.UPDATEMODS: self.updatemods,
            Stage.MKINITRD: self.mkinitrd,
            Stage.UPDATEBM: self.updatebm,
            Stage.CLEAN: self.clean,
        }

    @property
    def unified(self) -> bool:
        return self.adapter.variant.is_unified

    def check_single_stage(self, stage: Stage) -> None:
        """Reject stages that only make sense inside the full pipeline.

        Raises:
            ConfigurationError: For install/mkinitrd with unified images
        """
        if self.unified and stage in UNIFIED_SUBSUMED_STAGES:
            raise ConfigurationError(
                f"'{stage.value}' cannot run on its own with unified kernel images; "
                "run the full pipeline instead"
            )

    def run_all(self) -> None:
        self._run(FULL_PIPELINE, full=True)

    def run_stage(self, stage: Stage) -> None:
        self.check_single_stage(stage)
        self._run((stage,), full=False)

    def _run(self, stages: Sequence[Stage], *, full: bool) -> None:
        with ExitStack() as stack:
            if any(stage.touches_boot for stage in stages):
                stack.enter_context(
                    boot_mounted(
                        self.config.boot_dir,
                        self.adapter.required_mount_dir(),
                        self.runner,
                        enabled=self.config.mount_boot,
                    )
                )
            for stage in stages:
                with stage_context(stage.value, version=self.ctx.kernel_version):
                    self._handlers[stage](full)

    # Stage handlers. ``full`` is True inside the full pipeline.

    def compile(self, full: bool) -> None:
        compile_kernel(self.config, self.ctx, self.runner)

    def newconfig(self, full: bool) -> None:
        refresh_kernel_config(self.config, self.ctx, self.runner)

    def install(self, full: bool) -> None:
        self.installer.install(self.ctx, self.adapter)

    def updatemods(self, full: bool) -> None:
        if full and not self.config.modules_rebuild:
            self.log.info("Module rebuild disabled, skipping")
            return
        rebuild_modules(self.config, self.runner)

    def mkinitrd(self, full: bool) -> None:
        # The full pipeline already ran updatemods
        self.initrd.build(
            self.ctx,
            self.adapter,
            rebuild=self.config.modules_rebuild and not full,
            include_paths=initrd_include_paths(self.config),
        )
        if self.unified:
            self.composer.compose(self.ctx, self.adapter, self.config.kernel_cmdline)

    def updatebm(self, full: bool) -> None:
        self.log.info(f"Updating {self.adapter.variant.value}...")
        self.adapter.write_boot_entry(self.ctx, self.config.kernel_cmdline)

    def clean(self, full: bool) -> None:
        self.cleaner.clean(self.ctx, self.adapter)
