"""Kernel lifecycle stages: build, install, initrd, unified image, cleanup."""

from .build import compile_kernel, kernel_image_path, refresh_kernel_config
from .cleaner import StaleVersionCleaner
from .initrd import InitrdCoordinator, collect_firmware, initrd_include_paths
from .installer import ArtifactInstaller
from .modules import rebuild_modules
from .unified import UnifiedImageComposer
from .version import resolve_version_context


__all__ = [
    "ArtifactInstaller",
    "InitrdCoordinator",
    "StaleVersionCleaner",
    "UnifiedImageComposer",
    "collect_firmware",
    "compile_kernel",
    "initrd_include_paths",
    "kernel_image_path",
    "rebuild_modules",
    "refresh_kernel_config",
    "resolve_version_context",
]
