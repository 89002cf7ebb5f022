"""External command execution.

Every external tool kerninst drives (make, emerge, dracut, objcopy,
grub-mkconfig, mount) is described by a :class:`Command` and executed
through a single :class:`CommandRunner`. Arguments are always passed as a
list, never through a shell, and the captured output goes to the run log.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from kerninst.logging import LoggerFactory

from .exceptions import ExternalStepFailure


MISSING_EXECUTABLE_STATUS = 127


@dataclass(frozen=True)
class Command:
    """A typed invocation of an external tool.

    ``step`` names the operation in diagnostics (e.g. "modules_install").
    """

    step: str
    argv: Tuple[str, ...]
    success_codes: FrozenSet[int] = field(default_factory=lambda: frozenset({0}))
    cwd: Optional[Path] = None
    input_text: Optional[str] = None

    @classmethod
    def of(cls, step: str, *args, **kwargs) -> Command:
        """Build a command, converting every argument to a string."""
        return cls(step=step, argv=tuple(str(arg) for arg in args), **kwargs)

    def display(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True)
class CommandResult:
    command: Command
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class CommandRunner:
    """Run commands synchronously and log their output to the run log."""

    def __init__(self) -> None:
        self.log = LoggerFactory.for_command()

    def run(self, command: Command) -> CommandResult:
        """Run a command and raise ExternalStepFailure if it fails."""
        self.log.bind(step=command.step).debug(f"Running command: {command.display()}")
        try:
            completed = subprocess.run(
                list(command.argv),
                input=command.input_text,
                cwd=str(command.cwd) if command.cwd else None,
                text=True,
                errors="replace",
                capture_output=True,
            )
        except FileNotFoundError as error:
            raise ExternalStepFailure(
                command.step,
                command.argv,
                MISSING_EXECUTABLE_STATUS,
                str(error),
            ) from error

        result = CommandResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        self._log_output(result)

        if result.returncode not in command.success_codes:
            self.log.error(
                f"Command failed with code {result.returncode}: {command.display()}"
            )
            raise ExternalStepFailure(
                command.step, command.argv, result.returncode, result.output
            )
        return result

    def _log_output(self, result: CommandResult) -> None:
        output_log = self.log.bind(tags=["command", "output"])
        for line in result.stdout.splitlines():
            output_log.debug(f"stdout: {line}")
        for line in result.stderr.splitlines():
            output_log.debug(f"stderr: {line}")


__all__ = [
    "Command",
    "CommandResult",
    "CommandRunner",
    "MISSING_EXECUTABLE_STATUS",
]
