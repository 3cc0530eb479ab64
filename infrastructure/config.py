"""
PAGEGRAPH SETTINGS - TOML configuration as typed structs

Configuration is read once from config/pagegraph.toml and converted into
msgspec structs. Missing or malformed files fall back to defaults with a
warning; a broken config file should never stop an analysis.

Usage:
    from infrastructure.config import load_settings

    settings = load_settings()
    settings.graph.multigraph       # False
    settings.logging.level          # "WARNING"
"""
import tomllib
import warnings
from pathlib import Path
from typing import Dict, Optional

import msgspec


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "pagegraph.toml"


# =============================================================================
# SETTINGS STRUCTS
# =============================================================================

class GraphSettings(msgspec.Struct, kw_only=True, frozen=True):
    multigraph: bool = False


class LoggingSettings(msgspec.Struct, kw_only=True, frozen=True):
    level: str = "WARNING"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class FilterSettings(msgspec.Struct, kw_only=True, frozen=True):
    # recorder request type -> adblock option name
    request_type_aliases: Dict[str, str] = msgspec.field(default_factory=dict)


class Settings(msgspec.Struct, kw_only=True, frozen=True):
    graph: GraphSettings = msgspec.field(default_factory=GraphSettings)
    logging: LoggingSettings = msgspec.field(default_factory=LoggingSettings)
    filters: FilterSettings = msgspec.field(default_factory=FilterSettings)


# =============================================================================
# LOADING
# =============================================================================

def load_settings(path: Optional[str | Path] = None) -> Settings:
    """
    Load settings from a TOML file.

    Args:
        path: Config file. Defaults to config/pagegraph.toml.

    Returns:
        Settings (defaults for anything missing)
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
        return msgspec.convert(raw, type=Settings)
    except (OSError, tomllib.TOMLDecodeError, msgspec.ValidationError) as e:
        warnings.warn(f"Failed to load config from {config_path}, using defaults: {e}")
        return Settings()


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace (or with None, reset) the process-wide settings."""
    global _settings
    _settings = settings
