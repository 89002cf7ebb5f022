"""Filesystem mutations under /boot, /lib/modules and /usr/src.

All helpers translate ``OSError`` into :class:`FilesystemError` so a failed
deletion or copy halts the run like any other step.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from kerninst.logging import LoggerFactory

from .exceptions import FilesystemError


log = LoggerFactory.for_system()


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree.

    Returns:
        True if something was removed, False if the path did not exist.

    Raises:
        FilesystemError: If the removal fails
    """
    path = Path(path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            return False
    except OSError as e:
        raise FilesystemError(path, "remove", e.strerror or str(e)) from e
    log.debug(f"Removed {path}")
    return True


def copy_file(source: Path, destination: Path) -> None:
    """Copy a file, creating the destination directory if needed."""
    try:
        Path(destination).parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
    except OSError as e:
        raise FilesystemError(source, "copy", e.strerror or str(e)) from e
    log.debug(f"Copied {source} to {destination}")


def write_text_atomic(path: Path, text: str) -> None:
    """Write text next to ``path`` and rename it into place."""
    path = Path(path)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        raise FilesystemError(path, "write", e.strerror or str(e)) from e


def replace_file(source: Path, destination: Path) -> None:
    """Rename ``source`` over ``destination`` in one step."""
    try:
        os.replace(source, destination)
    except OSError as e:
        raise FilesystemError(destination, "replace", e.strerror or str(e)) from e
