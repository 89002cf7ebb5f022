"""Custom exceptions for kernel lifecycle operations.

Every failure is fatal: nothing in kerninst retries or rolls back. The
exceptions carry enough context for ``main`` to name the failing step.

Exception Hierarchy:
    KerninstError (base)
        ├── ConfigurationError
        ├── ExternalStepFailure
        └── FilesystemError
            └── BootNotMountedError

Usage:
    from kerninst.system.exceptions import ConfigurationError

    if not version:
        raise ConfigurationError("Kernel version is empty")
"""

from __future__ import annotations

from typing import Sequence


class KerninstError(Exception):
    """Base exception for all kerninst operations."""

    step = "kerninst"


class ConfigurationError(KerninstError):
    """Invalid or missing configuration, detected before any mutation."""

    step = "configuration"


class ExternalStepFailure(KerninstError):
    """An external command exited with an unexpected status."""

    def __init__(
        self,
        step: str,
        command: Sequence[str],
        returncode: int,
        output: str = "",
    ):
        self.step = step
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        msg = f"{' '.join(self.command)} exited with status {returncode}"
        last_line = output.strip().splitlines()[-1] if output.strip() else ""
        if last_line:
            msg += f": {last_line}"
        super().__init__(msg)


class FilesystemError(KerninstError):
    """A deletion, copy or write under the managed trees failed."""

    def __init__(self, path, operation: str, reason: str = ""):
        self.path = str(path)
        self.operation = operation
        self.reason = reason
        self.step = operation
        msg = f"Failed to {operation} {self.path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class BootNotMountedError(FilesystemError):
    """The boot partition does not look mounted."""

    def __init__(self, path):
        super().__init__(path, "find boot partition directory", "is /boot mounted?")
