"""
Logging configuration for Constellation Health.

Records go to stderr through rich so report output on stdout (JSON, CSV)
stays machine-readable. Handlers hang off the package logger rather than
the root logger, and a later ``setup_logging`` call replaces the handlers of
an earlier one.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "constellation_health"

FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attribute set on handlers installed by setup_logging
_OWNED = "_constellation_health_owned"


def _level(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    return logging.DEBUG if verbose else logging.WARNING


def _terminal_handler(verbose: bool) -> logging.Handler:
    # File names and commit authors can contain [brackets]; never read them as markup
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_path=verbose,
        log_time_format="[%X]",
    )


def _file_handler(log_file: str) -> logging.Handler:
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Install rich terminal logging, and optionally a log file, on the package logger.

    Args:
        verbose: Log at DEBUG, with source paths and traceback locals
        quiet: Log only errors (wins over ``verbose``)
        log_file: Append records to this file as well

    Returns:
        The ``constellation_health`` logger
    """
    level = _level(verbose, quiet)
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    handlers = [_terminal_handler(verbose)]
    if log_file:
        handlers.append(_file_handler(log_file))

    for handler in handlers:
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a module, always inside the package namespace.

    ``get_logger(__name__)`` is the usual call; a bare name such as
    ``"cache"`` becomes ``constellation_health.cache``.
    """
    if name is None or name == PACKAGE_LOGGER:
        return logging.getLogger(PACKAGE_LOGGER)
    if name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(PACKAGE_LOGGER).getChild(name)
