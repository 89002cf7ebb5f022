"""Command line entry point.

The same program behaves differently depending on the name it is invoked
as: ``kerninst`` runs the full pipeline (or the stage given as a command
word) while ``kerninst-<stage>`` runs that single stage.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from kerninst.__version__ import __version__
from kerninst.config.settings import CONFIG_PATH, load_config
from kerninst.domain.models import Stage
from kerninst.kernel.version import resolve_version_context
from kerninst.logging import LoggerFactory, setup_logging
from kerninst.pipeline import Pipeline
from kerninst.system.commands import CommandRunner
from kerninst.system.exceptions import KerninstError


PROGRAM_NAME = "kerninst"

ALIASES = {
    PROGRAM_NAME: None,
    **{f"{PROGRAM_NAME}-{stage.value}": stage for stage in Stage},
}


def build_parser(prog: str, alias_stage: Stage | None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Compile, install and register the kernel selected by /usr/src/linux",
    )
    if alias_stage is None:
        parser.add_argument(
            "command",
            nargs="?",
            choices=[stage.value for stage in Stage],
            help="Run a single stage instead of the full pipeline",
        )
    parser.add_argument(
        "--rebuild-modules",
        dest="modules_rebuild",
        action="store_const",
        const=True,
        default=None,
        help="Rebuild external modules before creating the initrd",
    )
    parser.add_argument(
        "--no-modules",
        dest="modules_rebuild",
        action="store_const",
        const=False,
        help="Do not rebuild external modules",
    )
    parser.add_argument(
        "--update-config",
        dest="update_kernel_config",
        action="store_const",
        const=True,
        default=None,
        help="Save the refreshed .config back to KERNEL_CONFIG",
    )
    parser.add_argument(
        "--no-update-config",
        dest="update_kernel_config",
        action="store_const",
        const=False,
        help="Leave KERNEL_CONFIG untouched",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"Configuration file (default: {CONFIG_PATH})",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Show command output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_stage(prog: str, args: argparse.Namespace) -> Stage | None:
    """The single stage to run, or None for the full pipeline."""
    alias_stage = ALIASES.get(prog)
    if alias_stage is not None:
        return alias_stage
    command = getattr(args, "command", None)
    return Stage(command) if command else None


def main(argv=None, prog: str | None = None) -> int:
    prog = prog or Path(sys.argv[0]).name
    if prog not in ALIASES:
        prog = PROGRAM_NAME
    parser = build_parser(prog, ALIASES[prog])
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            modules_rebuild=args.modules_rebuild,
            update_kernel_config=args.update_kernel_config,
        )
    except KerninstError as error:
        logger.error(f"{error.step} failed: {error}")
        return 1

    try:
        setup_logging(config.log_file, debug=args.debug)
    except OSError as error:
        logger.error(f"Cannot open run log {config.log_file}: {error}")
        return 1
    log = LoggerFactory.for_system()

    stage = resolve_stage(prog, args)
    try:
        ctx = resolve_version_context(config)
        pipeline = Pipeline(config, ctx, CommandRunner())
        if stage is None:
            pipeline.run_all()
        else:
            pipeline.run_stage(stage)
    except KerninstError as error:
        log.error(f"{error.step} failed: {error}")
        log.error("Completed stages were not rolled back; fix the problem and rerun.")
        log.error(f"Full output of the failing step is in {config.log_file}")
        logger.complete()
        return 1

    log.success(f"kerninst finished for kernel {ctx.kernel_version}")
    logger.complete()
    return 0


if __name__ == "__main__":
    sys.exit(main())
