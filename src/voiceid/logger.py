"""Package logger for voiceid.

Enrollment warnings (skipped quiet samples, unreadable records) go out at
INFO and above by default; set ``VOICEID_LOG_LEVEL=DEBUG`` to also see
per-utterance match decisions and filterbank builds.
"""

from __future__ import annotations

import logging
import os

_level_name = os.getenv("VOICEID_LOG_LEVEL", "INFO").strip().upper()
LOG_LEVEL = logging.getLevelName(_level_name)
if not isinstance(LOG_LEVEL, int):
    LOG_LEVEL = logging.INFO

logger = logging.getLogger("voiceid")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(LOG_LEVEL)

__all__ = ["LOG_LEVEL", "logger"]
