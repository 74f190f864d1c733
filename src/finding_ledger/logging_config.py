"""
Logging for finding-ledger.

Everything logs under the ``finding_ledger`` logger. The CLI attaches a rich
handler on stderr so that stdout stays clean for ``--json`` output; library
users configure logging themselves.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "finding_ledger"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _level(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    return logging.DEBUG if verbose else logging.WARNING


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route finding-ledger log records to stderr (and optionally a file).

    Calling it again replaces the handlers installed by the previous call.

    Args:
        verbose: Log at DEBUG and show source paths
        quiet: Only log errors; wins over ``verbose``
        log_file: Also append records to this file

    Returns:
        The ``finding_ledger`` logger
    """
    level = _level(verbose, quiet)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Finding text is tool-supplied; never interpret it as rich markup.
    logger.addHandler(
        RichHandler(
            console=Console(stderr=True),
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            show_path=verbose,
        )
    )
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``name`` inside the ``finding_ledger`` namespace."""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
