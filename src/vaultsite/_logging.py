"""Logging configuration for vaultsite.

Library modules only ever do::

    import logging
    log = logging.getLogger(__name__)

Applications embedding vaultsite (a renderer, a dev server) call
:func:`configure_logging` once at startup.  The level is read from the
``VAULTSITE_LOG_LEVEL`` environment variable:

    - DEBUG: every dangling reference, every file visited
    - INFO: load and resolution summaries (default)
    - WARNING: skipped files, shadowed aliases
    - ERROR: failures that abort the run
"""

import logging
import os
import sys

LOGGER_NAME = "vaultsite"


def configure_logging() -> None:
    """Attach a stderr handler to the ``vaultsite`` logger.

    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger(LOGGER_NAME)

    if root_logger.handlers:
        return

    level_name = os.environ.get("VAULTSITE_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(name)s: %(message)s"))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Keep messages out of the application's root handlers
    root_logger.propagate = False
