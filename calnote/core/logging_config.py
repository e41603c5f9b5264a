"""
Logging setup for the calnote command line.

The markwhen block is written to stdout so it can be piped into a note;
log records therefore go to stderr. Third-party libraries stay at the root
level (WARNING unless CALNOTE_LOG_LEVEL says otherwise) while calnote's own
modules log at INFO, or DEBUG on request.
"""

import logging
import os
import sys

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_TRUTHY = ("1", "true", "yes")
_ROOT_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def debug_requested(debug_mode: bool = False) -> bool:
    """True when ``--debug`` was passed or CALNOTE_DEBUG is set to 1/true/yes."""
    return debug_mode or os.getenv("CALNOTE_DEBUG", "").lower() in _TRUTHY


def configure_logging(debug_mode: bool = False) -> int:
    """
    Route log records to stderr and set calnote's log levels.

    A handler is only installed when the root logger has none, so a host
    application's own logging setup is left in place.

    Args:
        debug_mode: Enable DEBUG output for calnote modules

    Returns:
        The level applied to the ``calnote`` logger

    Environment Variables:
        CALNOTE_DEBUG: '1', 'true' or 'yes' turns on debug output
        CALNOTE_LOG_LEVEL: Root level for everything else (DEBUG, INFO, WARNING, ERROR)
    """
    debug = debug_requested(debug_mode)
    package_level = logging.DEBUG if debug else logging.INFO
    root_level = _ROOT_LEVELS.get(os.getenv("CALNOTE_LOG_LEVEL", "").upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT if debug else LOG_FORMAT))
        root_logger.addHandler(handler)

    logging.getLogger("calnote").setLevel(package_level)
    logging.getLogger(__name__).debug("Debug logging enabled for calnote")
    return package_level
