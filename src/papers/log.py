"""Logging setup for the command line.

Library modules only create loggers; handlers are attached here, once.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("papers")


class StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stderr`` is at emit time.

    Callers that swap ``sys.stderr`` (test capture, embedding ``main()``)
    never leave the handler writing to a closed stream.
    """

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


_stderr_handler: StderrHandler | None = None


def verbosity_level(verbose: int) -> int:
    """0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def configure(verbose: int = 0) -> logging.Logger:
    """Attach a stderr handler to the ``papers`` logger (idempotent)."""
    global _stderr_handler
    level = verbosity_level(verbose)
    if _stderr_handler is None:
        _stderr_handler = StderrHandler()
        _stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(_stderr_handler)
    _stderr_handler.setLevel(level)
    logger.setLevel(level)
    return logger
