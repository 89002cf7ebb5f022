"""Process, filesystem and mount primitives shared by every stage."""

from .commands import Command, CommandResult, CommandRunner
from .exceptions import (
    BootNotMountedError,
    ConfigurationError,
    ExternalStepFailure,
    FilesystemError,
    KerninstError,
)


__all__ = [
    "BootNotMountedError",
    "Command",
    "CommandResult",
    "CommandRunner",
    "ConfigurationError",
    "ExternalStepFailure",
    "FilesystemError",
    "KerninstError",
]
