"""Install the kernel image and modules, replacing any previous copy."""

from __future__ import annotations

from kerninst.bootmanager.base import BootManagerAdapter
from kerninst.config.settings import KerninstConfig
from kerninst.domain.models import VersionContext
from kerninst.logging import LoggerFactory
from kerninst.system.commands import CommandRunner
from kerninst.system.exceptions import FilesystemError
from kerninst.system.files import remove_path

from .build import make_command


class ArtifactInstaller:
    """Delete-old then install-new for one kernel version.

    Re-installing a version replaces its artifacts instead of adding to them.
    """

    def __init__(self, config: KerninstConfig, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner
        self.log = LoggerFactory.for_install()

    def install(self, ctx: VersionContext, adapter: BootManagerAdapter) -> None:
        version = ctx.kernel_version
        self.log.info(
            f"Deleting kernel files with version {version} from "
            f"{self.config.boot_dir} and {self.config.modules_dir}..."
        )
        adapter.delete_version_artifacts(ctx, version)
        remove_path(self.config.modules_dir / version)

        install_dir = adapter.install_dir(ctx)
        if install_dir is None:
            self.log.info("Kernel image is embedded at compose time, skipping make install")
        else:
            try:
                install_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(install_dir, "create", e.strerror or str(e)) from e
            self.log.info("Installing kernel...")
            self.runner.run(
                make_command("install", ctx, f"INSTALL_PATH={install_dir}", "install")
            )

        self.log.info("Installing modules...")
        self.runner.run(make_command("modules_install", ctx, "modules_install"))
