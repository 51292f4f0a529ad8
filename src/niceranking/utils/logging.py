"""
Logging for niceranking.

Every module logs through ``get_logger(__name__)``, so records land under
the ``niceranking`` logger tree:

- ``niceranking.model.*``: DEBUG for structural mutations (insert, move,
  remove), criteria changes and refused operations such as hiding a frozen
  column. WARNING when a restore skips malformed input (bad filter bounds,
  unknown descriptions, criteria that name missing columns).
- ``niceranking.model.events``: ERROR with traceback when a subscriber
  raises; the remaining subscribers still run.
- ``niceranking.provider.*``: INFO when rows are (re)loaded, DEBUG for
  ranking lifecycle and re-sorting.
- ``niceranking.ranking_grid.*``: INFO when a grid is built or layouts are
  saved, DEBUG for header clicks, WARNING for unusable browser payloads and
  unreadable layout files.

The package ``__init__`` attaches a NullHandler, so nothing is printed
until an application configures logging. Library code never calls
``configure_logging()``; scripts and demos do:

    ```python
    from niceranking.utils.logging import configure_logging
    configure_logging(level="DEBUG")   # or NICERANKING_LOG_LEVEL=DEBUG
    ```

niceranking does NOT write any log files.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

LOGGER_NAME = "niceranking"
LOG_LEVEL_ENV = "NICERANKING_LOG_LEVEL"

DEFAULT_FMT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d:%(funcName)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: Optional[Union[str, int]] = None,
    *,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Configure logging for the niceranking logger only (never root).

    Parameters
    ----------
    level:
        Logging level (e.g. "DEBUG", "INFO"). Defaults to the
        NICERANKING_LOG_LEVEL env var, or "INFO" if unset.
    fmt:
        Log message format. Defaults to DEFAULT_FMT.
    datefmt:
        Date format. Defaults to "%Y-%m-%d %H:%M:%S".
    force:
        If True, remove existing handlers before adding a new one. If False,
        do nothing when a stderr StreamHandler is already attached.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    formatter = logging.Formatter(fmt=fmt or DEFAULT_FMT, datefmt=datefmt or DEFAULT_DATEFMT)

    if force:
        for h in logger.handlers[:]:
            h.close()
            logger.removeHandler(h)
    else:
        for h in logger.handlers:
            if isinstance(h, logging.StreamHandler) and h.stream is sys.stderr:
                return

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger by name.

    If name is None, returns the 'niceranking' logger.

    Use like:
        logger = get_logger(__name__)
        logger.info("Hello")
    """
    if name is None:
        name = LOGGER_NAME
    return logging.getLogger(name)
