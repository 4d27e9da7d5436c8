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
Data Models for the GDAL I/O Bridge.

This module defines strongly-typed data classes for representing diagnostics
and the results of raster operations. These classes provide type safety,
self-documentation, and clear contracts between modules.

Domain model classes:
    Diagnostic: A severity-tagged message emitted by GDAL during a call
    Bucket: One interval of a histogram and its count
    Histogram: Equal-width partition of a value range with per-bucket counts
    Statistics: Minimum, maximum, mean and standard deviation of a band
    BandStructure: Size, block size and data type of a band
    DatasetStructure: Size, band count and block layout of a dataset
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from gdalio.utils.io_constants import ElementType, Severity


# ============================================================================
# Diagnostics
# ============================================================================

@dataclass(frozen=True)
class Diagnostic:
    """A single message emitted by GDAL's error callback."""
    severity: Severity
    code: int
    message: str

    def __str__(self) -> str:
        return self.message


# ============================================================================
# Histogram
# ============================================================================

@dataclass(frozen=True)
class Bucket:
    """Half-open interval [min, max) of a histogram and its occurrence count."""
    min: float
    max: float
    count: int

@dataclass
class Histogram:
    """
    Equal-width histogram over [min, max).

    Bucket `i` spans `[min + i * width, min + (i + 1) * width)` where
    `width = (max - min) / len(counts)`.
    """
    min: float
    max: float
    counts: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.counts)

    def __iter__(self) -> Iterator[Bucket]:
        for i in range(len(self.counts)):
            yield self.bucket(i)

    @property
    def width(self) -> float:
        if not self.counts:
            return 0.0
        return (self.max - self.min) / len(self.counts)

    def bucket(self, i: int) -> Bucket:
        """Return bucket `i`; negative indexes are not supported."""
        if i < 0 or i >= len(self.counts):
            raise IndexError(f"bucket index {i} out of range for {len(self.counts)} buckets")
        width = self.width
        return Bucket(min=self.min + i * width, max=self.min + (i + 1) * width, count=self.counts[i])

    def total(self) -> int:
        return sum(self.counts)


# ============================================================================
# Statistics and structure
# ============================================================================

@dataclass
class Statistics:
    """Band statistics as reported by GDAL."""
    minimum: float
    maximum: float
    mean: float
    std_dev: float
    approximate: bool = False

@dataclass
class BandStructure:
    """Layout information for a single band."""
    size_x: int
    size_y: int
    block_size_x: int
    block_size_y: int
    data_type: Optional[ElementType]
    gdal_data_type: str = ''

@dataclass
class DatasetStructure:
    """Layout information for a dataset; block and type come from the first band."""
    size_x: int
    size_y: int
    band_count: int
    block_size_x: int = 0
    block_size_y: int = 0
    data_type: Optional[ElementType] = None
    driver: str = ''
    bands: List[BandStructure] = field(default_factory=list)
