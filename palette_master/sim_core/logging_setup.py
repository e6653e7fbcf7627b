"""
Logging Setup
=============

Configures the dedicated "palette_master" logger. Modules log through child
loggers ("palette_master.physics", "palette_master.waves", ...) so hosts can
tune the simulation's verbosity without touching the root logger.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from palette_master.sim_core.config_loader import GameConfig, get_config

LOGGER_NAME = "palette_master"


def setup_logging(config: Optional[GameConfig] = None) -> logging.Logger:
    """
    Set up logging for the simulation.

    Attaches a console handler, and a file handler when ``logging.file`` is
    set, to the "palette_master" logger. Propagation to the root logger is
    disabled and existing handlers are replaced, so calling this twice does
    not duplicate output.

    Args:
        config: Configuration. Uses default if None.

    Returns:
        The configured logger.
    """
    if config is None:
        config = get_config()

    log_config = config.logging

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_config.level)
    logger.propagate = False

    formatter = logging.Formatter(log_config.format)

    if logger.hasHandlers():
        logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_config.file:
        log_dir = os.path.dirname(log_config.file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_config.file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized at level {log_config.level}")
    return logger
