"""
Logging setup.

`configure_logging` returns the application logger; callers hand that logger
to the components that need it instead of reaching for a module global.
"""

from __future__ import annotations

import logging
import sys

from .config import Settings

APP_LOGGER_NAME = "userfamily"

_DEV_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s"
_PROD_FORMAT = "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    # getLevelName returns "Level X" for unknown names.
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> logging.Logger:
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(_resolve_level(settings.log_level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    fmt = _PROD_FORMAT if settings.is_production else _DEV_FORMAT
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    logger.addHandler(handler)
    return logger
