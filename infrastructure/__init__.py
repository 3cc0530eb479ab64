"""
PAGEGRAPH INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- config: TOML settings loaded into msgspec structs
- logger: Handler setup for the package loggers
"""

from infrastructure.config import (
    Settings,
    GraphSettings,
    LoggingSettings,
    FilterSettings,
    load_settings,
    get_settings,
    set_settings,
)
from infrastructure.logger import configure_logging

__all__ = [
    "Settings",
    "GraphSettings",
    "LoggingSettings",
    "FilterSettings",
    "load_settings",
    "get_settings",
    "set_settings",
    "configure_logging",
]
