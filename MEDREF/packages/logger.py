from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from MEDREF.packages.constants import LOG_FILENAME, LOGS_PATH

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = os.getenv("MEDREF_LOG_LEVEL", "INFO").upper()


# -----------------------------------------------------------------------------
def build_logger(name: str = "MEDREF") -> logging.Logger:
    instance = logging.getLogger(name)
    if instance.handlers:
        return instance
    instance.setLevel(LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    instance.addHandler(console)

    try:
        os.makedirs(LOGS_PATH, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(LOGS_PATH, LOG_FILENAME),
            maxBytes=5_000_000,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError:
        # read-only installs keep console logging only
        return instance
    file_handler.setFormatter(formatter)
    instance.addHandler(file_handler)
    return instance


logger = build_logger()
