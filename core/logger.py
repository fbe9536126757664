#!/usr/bin/env python3
"""
Service logger setup

Usage:
    from core.logger import setup_service_logger
    logger = setup_service_logger("campaign_service")
"""

import logging
import sys
from typing import Optional

from .config import LoggingConfig


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """Configure root handlers once and return the service logger"""
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)
    formatter = logging.Formatter(config.log_format)

    root = logging.getLogger()
    if not getattr(root, "_service_logging_configured", False):
        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)
        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        root._service_logging_configured = True
    root.setLevel(log_level)

    driver_level = getattr(logging, config.driver_log_level.upper(), logging.INFO)
    logging.getLogger("pymongo").setLevel(max(log_level, driver_level))

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger


__all__ = ["setup_service_logger"]
