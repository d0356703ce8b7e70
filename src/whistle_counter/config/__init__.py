"""Configuration and persisted settings."""

from .settings import WhistleCounterConfig, load_config, save_config, setup_logging
from .store import JsonFileSettingsStore, MemorySettingsStore, SettingsStore

__all__ = [
    "WhistleCounterConfig",
    "load_config",
    "save_config",
    "setup_logging",
    "SettingsStore",
    "MemorySettingsStore",
    "JsonFileSettingsStore",
]
