import logging
import sys
from typing import Optional

from common.config import settings


def get_logger(name: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name or "inscription-export")
    if logger.handlers:
        return logger
    logger.setLevel(settings.log_level.upper())

    handler = logging.StreamHandler(sys.stderr)
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
