"""Logging setup for the ``app`` logger tree.

Every module logs through ``logging.getLogger(__name__)``; this wires a single
console handler onto the ``app`` parent logger so those records share one format.
"""

import logging
import sys

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Initialise the ``app`` logger. Safe to call more than once."""
    root_logger = logging.getLogger("app")
    root_logger.setLevel(level.upper())

    # repeated calls (reloads, tests) keep the first handler
    if root_logger.handlers:
        return root_logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

    root_logger.debug("Logging initialised at %s", level.upper())
    return root_logger
