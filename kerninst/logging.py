from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_FILE = Path("/var/log/kerninst.log")


def _should_log_command_output(record, debug: bool) -> bool:
    """Hide raw external command output from the console unless debugging."""
    tags = record["extra"].get("tags", [])

    if record["level"].no >= logger.level("WARNING").no:
        return True

    if "output" in tags:
        return debug

    return True


def setup_logging(
    log_file: Path | None = None,
    *,
    debug: bool = False,
    console: bool = True,
) -> Logger:
    """
    Setup the console sink and the per-run log file.

    Sinks:
    - Console (stderr): INFO+ step messages, DEBUG+ with ``debug``. Raw
      output of external commands is only shown in debug mode.
    - Run log: every record at DEBUG+, including the full stdout/stderr of
      each external command. The file is truncated at the start of each
      invocation so it only ever describes the most recent run.

    Args:
        log_file: Run log path (defaults to /var/log/kerninst.log)
        debug: Enable DEBUG level on the console
        console: Attach the stderr sink (disabled by tests)
    """
    logger.remove()
    logger.configure(extra={"stage": "-", "tags": [], "source": "kerninst"})

    if console:
        logger.add(
            sys.stderr,
            level="DEBUG" if debug else "INFO",
            enqueue=True,
            backtrace=False,
            diagnose=False,
            filter=lambda record: _should_log_command_output(record, debug),
            colorize=True,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[source]: <11}</cyan> | "
                "{message}"
            ),
        )

    log_file = log_file or DEFAULT_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        level="DEBUG",
        mode="w",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <11} | "
            "{extra[stage]: <10} | "
            "{message}"
        ),
    )

    return logger


def get_logger(
    *,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        tags: Tags for filtering (e.g., ["command", "output"])
        source: Source component (e.g., "install", "initrd")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def stage_context(stage: str, **details):
    """
    Context manager wrapping one pipeline stage with timing.

    Logs stage start, completion, and failure. Failures are re-raised
    untouched; nothing is rolled back.

    Example:
        with stage_context("install", version="6.1.0-gentoo") as log:
            log.info("Installing kernel...")
    """
    with logger.contextualize(stage=stage):
        start_time = time.time()
        log = logger.bind(source=stage, tags=[stage])

        log.info(f"Stage {stage} started", **details)

        try:
            yield log
            duration = time.time() - start_time
            log.success(f"Stage {stage} completed", duration_seconds=round(duration, 2))
        except Exception as e:
            duration = time.time() - start_time
            log.error(
                f"Stage {stage} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for component loggers with a fixed source and tag set.
    """

    @staticmethod
    def for_version() -> Logger:
        """Logger for kernel version and machine identity resolution."""
        return logger.bind(source="version", tags=["version"])

    @staticmethod
    def for_build() -> Logger:
        """Logger for kernel configuration and compilation."""
        return logger.bind(source="build", tags=["build"])

    @staticmethod
    def for_install() -> Logger:
        """Logger for kernel image and module installation."""
        return logger.bind(source="install", tags=["install"])

    @staticmethod
    def for_initrd() -> Logger:
        """Logger for module rebuilds and initrd generation."""
        return logger.bind(source="initrd", tags=["initrd"])

    @staticmethod
    def for_unified() -> Logger:
        """Logger for unified kernel image composition."""
        return logger.bind(source="unified", tags=["unified", "efi"])

    @staticmethod
    def for_clean() -> Logger:
        """Logger for stale version cleanup."""
        return logger.bind(source="clean", tags=["clean"])

    @staticmethod
    def for_bootmanager(variant: str | None = None) -> Logger:
        """Logger for boot manager adapters."""
        return logger.bind(
            source="bootmanager", tags=["bootmanager"], variant=variant or "-"
        )

    @staticmethod
    def for_command() -> Logger:
        """Logger for external command execution."""
        return logger.bind(source="command", tags=["command"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup, configuration and mount handling."""
        return logger.bind(source="system", tags=["system"])
