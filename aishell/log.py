import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Send aishell logs to stderr; level from the argument, then AISHELL_LOG, then WARNING."""
    level_name = (level or os.environ.get("AISHELL_LOG") or "WARNING").upper()
    logger = logging.getLogger("aishell")
    logger.setLevel(getattr(logging, level_name, logging.WARNING))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
