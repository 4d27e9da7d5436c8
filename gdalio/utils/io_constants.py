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
Shared Constants and Default Values for Raster I/O.

This module centralizes the enumerations and default parameters used throughout
GDALIO. It provides a single source of truth for buffer element types,
resampling algorithms, buffer layouts, diagnostic severities and the virtual
file system defaults.

Classes:
    ElementType: Closed set of buffer element types understood by GDAL.
    Resampling: Resampling algorithms for scaled I/O and overviews.
    Interleave: Memory layout of multi-band buffers.
    IOOperation: Direction of a raster transfer.
    Severity: Severity of a GDAL diagnostic (CE_* values).
"""
from enum import Enum, IntEnum

import numpy as np
from osgeo import gdal

from gdalio.utils.exceptions import UnsupportedResamplingError

# --- Helper Accessors ---

def rasterio_resampling_for(resampling: 'Resampling') -> int:
    """Return the GRIORA_* constant for a RasterIO call."""
    name = RASTERIO_RESAMPLING.get(resampling)
    if name is None:
        raise UnsupportedResamplingError(
            f"resampling '{resampling.value}' is not supported for raster I/O")
    return getattr(gdal, name)

def overview_resampling_for(resampling: 'Resampling') -> str:
    """Return the resampling keyword accepted by BuildOverviews."""
    name = OVERVIEW_RESAMPLING.get(resampling)
    if name is None:
        raise UnsupportedResamplingError(
            f"resampling '{resampling.value}' is not supported for overview building")
    return name


# --- Enumerations ---

class ElementType(Enum):
    """Enumeration of buffer element types, keyed by numpy dtype name."""
    UINT8 = 'uint8'
    INT8 = 'int8'
    UINT16 = 'uint16'
    INT16 = 'int16'
    UINT32 = 'uint32'
    INT32 = 'int32'
    UINT64 = 'uint64'
    INT64 = 'int64'
    FLOAT32 = 'float32'
    FLOAT64 = 'float64'
    COMPLEX64 = 'complex64'
    COMPLEX128 = 'complex128'

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def item_size(self) -> int:
        return self.dtype.itemsize

    @property
    def gdal_code(self) -> int:
        return getattr(gdal, GDAL_TYPE_NAMES[self])

class Resampling(Enum):
    """Enumeration of resampling algorithms."""
    NEAREST = 'nearest'
    BILINEAR = 'bilinear'
    CUBIC = 'cubic'
    CUBICSPLINE = 'cubicspline'
    LANCZOS = 'lanczos'
    AVERAGE = 'average'
    GAUSS = 'gauss'
    MODE = 'mode'
    MAX = 'max'
    MIN = 'min'
    MEDIAN = 'med'
    SUM = 'sum'
    Q1 = 'q1'
    Q3 = 'q3'

class Interleave(Enum):
    """Layout of a multi-band buffer."""
    BAND = 'band'
    PIXEL = 'pixel'

class IOOperation(Enum):
    """Direction of a raster transfer."""
    READ = 'read'
    WRITE = 'write'

class Severity(IntEnum):
    """Severity of a GDAL diagnostic, numerically equal to GDAL's CE_* values."""
    NONE = 0
    DEBUG = 1
    WARNING = 2
    FAILURE = 3
    FATAL = 4


# --- Default Parameter Values ---

# Virtual file system
DEFAULT_VSI_BUFFER_SIZE = 64 * 1024
DEFAULT_VSI_CACHE_SIZE = 128 * 1024
DEFAULT_VSI_MAX_WORKERS = 8

# Overviews
DEFAULT_OVERVIEW_RESAMPLING = Resampling.AVERAGE
DEFAULT_OVERVIEW_MIN_SIZE = 256

# GDAL error numbers (CPLE_*)
CPLE_APP_DEFINED = 1
CPLE_FILE_IO = 3
CPLE_OPEN_FAILED = 4
CPLE_NOT_SUPPORTED = 6

NOT_FOUND_MESSAGES = (
    "No such file or directory",
    "does not exist in the file system",
)


# --- Default Mappings ---

GDAL_TYPE_NAMES = {
    ElementType.UINT8: 'GDT_Byte',
    ElementType.INT8: 'GDT_Int8',
    ElementType.UINT16: 'GDT_UInt16',
    ElementType.INT16: 'GDT_Int16',
    ElementType.UINT32: 'GDT_UInt32',
    ElementType.INT32: 'GDT_Int32',
    ElementType.UINT64: 'GDT_UInt64',
    ElementType.INT64: 'GDT_Int64',
    ElementType.FLOAT32: 'GDT_Float32',
    ElementType.FLOAT64: 'GDT_Float64',
    ElementType.COMPLEX64: 'GDT_CFloat32',
    ElementType.COMPLEX128: 'GDT_CFloat64',
}

# RasterIO only accepts these; the remaining algorithms are statistical
# reductions GDAL offers to the warper alone.
RASTERIO_RESAMPLING = {
    Resampling.NEAREST: 'GRIORA_NearestNeighbour',
    Resampling.BILINEAR: 'GRIORA_Bilinear',
    Resampling.CUBIC: 'GRIORA_Cubic',
    Resampling.CUBICSPLINE: 'GRIORA_CubicSpline',
    Resampling.LANCZOS: 'GRIORA_Lanczos',
    Resampling.AVERAGE: 'GRIORA_Average',
    Resampling.MODE: 'GRIORA_Mode',
    Resampling.GAUSS: 'GRIORA_Gauss',
}

OVERVIEW_RESAMPLING = {
    Resampling.NEAREST: 'NEAREST',
    Resampling.BILINEAR: 'BILINEAR',
    Resampling.CUBIC: 'CUBIC',
    Resampling.CUBICSPLINE: 'CUBICSPLINE',
    Resampling.LANCZOS: 'LANCZOS',
    Resampling.AVERAGE: 'AVERAGE',
    Resampling.MODE: 'MODE',
    Resampling.GAUSS: 'GAUSS',
}
