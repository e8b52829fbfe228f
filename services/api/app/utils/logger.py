from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOGGER_NAME = "backoffice"


def setup_logger() -> logging.Logger:
    """Configure the ``backoffice`` logger once; module loggers are its children.

    - Level from BACKOFFICE_LOG_LEVEL (default INFO)
    - Console output always
    - Daily rotating file under BACKOFFICE_LOG_DIR when set
    """

    logger = logging.getLogger(LOGGER_NAME)
    level_name = os.getenv("BACKOFFICE_LOG_LEVEL", "INFO").strip().upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Repeated startups (tests create several TestClients) must not stack handlers.
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_dir = os.getenv("BACKOFFICE_LOG_DIR", "").strip()
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=Path(log_dir) / "backoffice.log",
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logger initialized (level=%s)", logging.getLevelName(logger.level))
    return logger
