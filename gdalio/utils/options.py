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
Dataclass-based Option Models for GDALIO Operations.

Each public operation takes one explicit options object with documented
defaults. Every options class derives from `CallOptions`, which carries the
per-call error handler and the thread-local GDAL configuration options applied
for the duration of the call. Validation happens in `__post_init__` so the core
logic receives clean inputs.

Classes:
    CallOptions: Error handler and configuration options shared by all calls.
    BandIOOptions: Windowed band read/write options.
    DatasetIOOptions: Windowed multi-band read/write options.
    HistogramOptions: Histogram interval and sampling options.
    StatisticsOptions: Statistics sampling options.
    OpenOptions: Dataset open options.
    CreateOptions: Dataset creation options.
    BuildOverviewsOptions: Overview building options.
    VSIHandlerOptions: Virtual file system registration options.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from gdalio.utils.exceptions import ContractViolation
from gdalio.utils.io_constants import (
    DEFAULT_OVERVIEW_MIN_SIZE,
    DEFAULT_OVERVIEW_RESAMPLING,
    Interleave,
    Resampling,
    Severity,
)

if TYPE_CHECKING:
    from gdalio.vsi.block_cache import BlockCache

ErrorHandler = Callable[[Severity, int, str], Optional[Exception]]


@dataclass
class CallOptions:
    """Options shared by every operation."""
    error_handler: Optional[ErrorHandler] = None
    config: Dict[str, str] = field(default_factory=dict)

@dataclass
class BandIOOptions(CallOptions):
    """
    Options for a windowed band transfer.

    `window` is the (width, height) of the source window in raster pixels; when
    omitted it equals the buffer dimensions and no resampling takes place.
    Spacing overrides are given in bytes (`*_spacing`) or in elements
    (`*_stride`); the element form wins when both are set.
    """
    window: Optional[Tuple[int, int]] = None
    resampling: Resampling = Resampling.NEAREST
    pixel_spacing: Optional[int] = None
    line_spacing: Optional[int] = None
    pixel_stride: Optional[int] = None
    line_stride: Optional[int] = None

    def __post_init__(self):
        if self.window is not None:
            if len(self.window) != 2 or min(self.window) < 0:
                raise ContractViolation(f"window must be a (width, height) pair of non-negative ints, got {self.window}")

@dataclass
class DatasetIOOptions(BandIOOptions):
    """Options for a windowed multi-band transfer; `bands` are 1-based."""
    bands: Optional[List[int]] = None
    interleave: Interleave = Interleave.BAND
    band_spacing: Optional[int] = None
    band_stride: Optional[int] = None

@dataclass
class HistogramOptions(CallOptions):
    """
    Histogram options.

    `intervals` is a (count, min, max) triple; without it GDAL's default
    histogram for the band's data type is computed.
    """
    approximate: bool = False
    intervals: Optional[Tuple[int, float, float]] = None
    include_out_of_range: bool = False

    def __post_init__(self):
        if self.intervals is not None:
            count, lo, hi = self.intervals
            if count <= 0:
                raise ContractViolation(f"histogram bucket count must be positive, got {count}")
            if hi <= lo:
                raise ContractViolation(f"histogram max ({hi}) must be greater than min ({lo})")

@dataclass
class StatisticsOptions(CallOptions):
    approximate: bool = False

@dataclass
class OpenOptions(CallOptions):
    """Options for opening a dataset."""
    update: bool = False
    shared: bool = False
    raster_only: bool = False
    vector_only: bool = False
    drivers: Optional[List[str]] = None
    open_options: Optional[List[str]] = None
    sibling_files: Optional[List[str]] = None

    def __post_init__(self):
        if self.raster_only and self.vector_only:
            raise ContractViolation("raster_only and vector_only are mutually exclusive")

@dataclass
class CreateOptions(CallOptions):
    creation_options: List[str] = field(default_factory=list)

@dataclass
class BuildOverviewsOptions(CallOptions):
    """
    Options for building overviews.

    When `levels` is omitted, power-of-two levels are generated until the
    smallest overview fits within `min_size` pixels on both axes.
    """
    resampling: Resampling = DEFAULT_OVERVIEW_RESAMPLING
    levels: Optional[List[int]] = None
    min_size: int = DEFAULT_OVERVIEW_MIN_SIZE

    def __post_init__(self):
        if self.levels is not None and any(level < 2 for level in self.levels):
            raise ContractViolation(f"overview levels must be >= 2, got {self.levels}")
        if self.min_size < 1:
            raise ContractViolation(f"min_size must be positive, got {self.min_size}")

@dataclass
class VSIHandlerOptions(CallOptions):
    """
    Options for registering a backing store.

    `buffer_size` and `cache_size` fall back to the `vsi.*` configuration
    values; zero disables the read-ahead buffer or the cache. A prebuilt
    `cache` may be passed to share one cache between several prefixes.
    """
    strip_prefix: bool = False
    buffer_size: Optional[int] = None
    cache_size: Optional[int] = None
    cache: Optional['BlockCache'] = None
    max_workers: Optional[int] = None

    def __post_init__(self):
        for name in ('buffer_size', 'cache_size', 'max_workers'):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ContractViolation(f"{name} must not be negative, got {value}")
