"""Kernel build, install and boot-entry orchestration for Gentoo systems."""

from .__version__ import __version__


__all__ = ["__version__"]
