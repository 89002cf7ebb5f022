"""Domain models for kernel lifecycle operations."""

from __future__ import annotations

from .models import (
    BOOT_ENTRY_KEYS,
    FULL_PIPELINE,
    BootEntry,
    BootManagerVariant,
    ImageSection,
    Stage,
    VersionContext,
)


__all__ = [
    "BOOT_ENTRY_KEYS",
    "FULL_PIPELINE",
    "BootEntry",
    "BootManagerVariant",
    "ImageSection",
    "Stage",
    "VersionContext",
]
