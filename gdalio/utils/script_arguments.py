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
Dataclass-based Argument Models for GDALIO Tools.

This module defines strongly-typed dataclasses for parsing and validating the
command-line arguments for each tool (`info`, `histogram`). It uses
`__post_init__` for validation, ensuring that the core logic receives clean and
validated inputs.

Classes:
    BaseArguments: A base dataclass for common script arguments.
    InfoArguments: Arguments for the raster_info tool.
    HistogramArguments: Arguments for the compute_histogram tool.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

def is_virtual_path(path: str) -> bool:
    """GDAL virtual paths (/vsi*/, URL-like registered prefixes) are left for GDAL to resolve."""
    return path.startswith('/vsi') or '://' in path

@dataclass
class BaseArguments:
    """A base dataclass for common script arguments."""
    input_path: Optional[Union[str, Path]] = None
    shared: bool = False
    verbose: bool = False

    def __post_init__(self):
        """Coerce local paths to Path and check that they exist."""
        if isinstance(self.input_path, str) and not is_virtual_path(self.input_path):
            self.input_path = Path(self.input_path)
        try:
            self._validate_input()
        except ValueError as e:
            self.handle_error(str(e))

    def _validate_input(self):
        if not self.input_path:
            raise ValueError("An input dataset is required.")
        if is_virtual_path(str(self.input_path)):
            return
        if not self.input_path.exists():
            raise ValueError(f"Input file not found: {self.input_path}")

    def handle_error(self, message: str):
        """Logs an error and raises ValueError."""
        logger.error(message)
        raise ValueError(message)

@dataclass
class InfoArguments(BaseArguments):
    """Arguments for the raster_info tool."""
    pass

@dataclass
class HistogramArguments(BaseArguments):
    """Arguments for the compute_histogram tool."""
    band: int = 1
    buckets: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    include_out_of_range: bool = False
    approximate: bool = False

    def __post_init__(self):
        """Validation for compute_histogram arguments."""
        super().__post_init__()
        try:
            self._validate_histogram()
        except ValueError as e:
            self.handle_error(str(e))

    def _validate_histogram(self):
        if self.band < 1:
            raise ValueError(f"Band index must be 1 or greater, got {self.band}")
        given = [v is not None for v in (self.buckets, self.min_value, self.max_value)]
        if any(given) and not all(given):
            raise ValueError("--buckets, --min and --max must be given together.")
        if self.buckets is not None:
            if self.buckets < 1:
                raise ValueError(f"Bucket count must be positive, got {self.buckets}")
            if self.max_value <= self.min_value:
                raise ValueError(f"--max ({self.max_value}) must be greater than --min ({self.min_value})")

    @property
    def intervals(self) -> Optional[Tuple[int, float, float]]:
        if self.buckets is None:
            return None
        return (self.buckets, self.min_value, self.max_value)
