"""Log setup for the command line."""

from __future__ import annotations

import logging

_FORMAT = "%(levelname)-7s %(message)s"
_DEBUG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Send log records to stderr, keeping stdout for progress and the summary.

    At DEBUG level records also carry a timestamp and the logger name.
    """

    debug = level <= logging.DEBUG
    logging.basicConfig(
        level=level,
        format=_DEBUG_FORMAT if debug else _FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
