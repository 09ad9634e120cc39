"""Side channel for diagnostics about the masking runtime itself.

Records logged here never reach the handlers the masking policy is installed
on, so a failure inside the policy cannot feed back into the policy.
"""

from __future__ import annotations

import logging
import sys
import threading

STATUS_LOGGER_NAME = "masking_lib.status"

_STATUS_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LOCK = threading.Lock()
_INITIALIZED = False


def get_status_logger() -> logging.Logger:
    """Return the non-propagating status logger, creating its handler once."""

    global _INITIALIZED

    logger = logging.getLogger(STATUS_LOGGER_NAME)
    if _INITIALIZED:
        return logger

    with _LOCK:
        if not _INITIALIZED:
            from .config import get_settings

            logger.propagate = False
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(_STATUS_FORMAT))
            logger.addHandler(handler)
            logger.setLevel(get_settings().status_level)
            _INITIALIZED = True

    return logger
