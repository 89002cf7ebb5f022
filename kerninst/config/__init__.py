"""Configuration loading for kerninst."""

from .settings import CONFIG_PATH, KerninstConfig, load_config


__all__ = ["CONFIG_PATH", "KerninstConfig", "load_config"]
