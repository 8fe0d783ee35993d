"""Logging setup driven by ``AppConfig``."""
from __future__ import annotations

import logging
import sys
from typing import Optional

from studio_booking.app.config import AppConfig, get_settings


def setup_logging(config: Optional[AppConfig] = None) -> None:
    """Configure the root logger once for the whole service."""
    config = config or get_settings()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(config.log_format))
    root_logger.addHandler(console_handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
