#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ******************************************************************************
# Project: GDAL I/O Bridge (GDALIO)
# Author: Eric Robeck <robeckgeo@gmail.com>
#
# Copyright (c) 2025, Eric Robeck
# Licensed under the MIT License
# ******************************************************************************

"""
This module provides logging helpers for the GDAL I/O Bridge command-line tools.
"""

import logging
import os
import sys
from typing import Optional

from gdalio.utils.config_loader import config


def level_from_config(default: int = logging.INFO) -> int:
    """Resolve the `logging.level` configuration value to a logging constant."""
    name = str(config.get("logging.level", "")).upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default

def setup_logger(log_file: Optional[str] = None, level: Optional[int] = None) -> logging.Logger:
    """
    Set up and configure the root logger.

    Args:
        log_file (str, optional): The full path to the log file. Falls back to
            the `logging.file` configuration value.
        level (int, optional): The logging level. Falls back to the
            `logging.level` configuration value.

    Returns:
        logging.Logger: The configured root logger instance.
    """
    if level is None:
        level = level_from_config()
    if log_file is None:
        log_file = config.get("logging.file") or None

    logger = logging.getLogger()
    logger.setLevel(level)

    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter('%(message)s')
    file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger

def shutdown_logger(logger: logging.Logger):
    """
    Safely shuts down a logger by removing and closing its handlers.
    This is crucial for releasing file locks.
    """
    if not logger:
        return
    handlers = logger.handlers[:]
    for handler in handlers:
        handler.flush()
        handler.close()
        logger.removeHandler(handler)
