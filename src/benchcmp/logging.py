"""Logging setup for benchcmp.

Everything logs under the ``benchcmp`` namespace. The console shows INFO by
default; the optional log file always gets DEBUG, which includes every
subprocess command line, so a failed comparison can be replayed by hand.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "benchcmp"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_PLAIN_FORMAT = "%(message)s"
_VERBOSE_FORMAT = "%(levelname)-8s %(message)s"


def _console_handler(verbose: bool, quiet: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    if verbose:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(_VERBOSE_FORMAT))
        return handler
    handler.setLevel(logging.WARNING if quiet else logging.INFO)
    handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    return handler


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """(Re)configure the ``benchcmp`` logger and return it.

    *verbose* wins over *quiet*. Handlers from an earlier call are closed
    and replaced, so calling this twice never duplicates output.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.addHandler(_console_handler(verbose, quiet))

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
