"""Logging configuration for the application."""
from __future__ import annotations

import logging

from demandplus.core.settings import Settings


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(settings: Settings) -> None:
    """Configures root logger only once."""
    root_logger = logging.getLogger()
    if getattr(root_logger, "_demandplus_logging_configured", False):
        return

    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    root_logger.setLevel(level)

    root_logger._demandplus_logging_configured = True
