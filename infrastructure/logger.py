"""
PAGEGRAPH LOGGING - Handler setup for the package loggers

Every module logs through logging.getLogger(__name__), so all records land
under the "pagegraph" namespace. configure_logging() attaches one stream
handler there using the level and format from settings; calling it again
only updates the level and format.
"""
import logging
from typing import Optional

from infrastructure.config import LoggingSettings, get_settings

ROOT_LOGGER_NAME = "pagegraph"

_HANDLER_ATTR = "_pagegraph_handler"


def configure_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    """
    Attach (or refresh) the package log handler.

    Args:
        settings: LoggingSettings. Taken from the loaded config if None.

    Returns:
        The "pagegraph" logger
    """
    if settings is None:
        settings = get_settings().logging

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.level}")

    handler = next(
        (h for h in logger.handlers if getattr(h, _HANDLER_ATTR, False)),
        None,
    )
    if handler is None:
        handler = logging.StreamHandler()
        setattr(handler, _HANDLER_ATTR, True)
        logger.addHandler(handler)

    handler.setFormatter(logging.Formatter(settings.format))
    logger.setLevel(level)
    return logger
