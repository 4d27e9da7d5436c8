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
Raster I/O Operation Core.

Windowed transfers between numpy buffers and GDAL bands or datasets, plus the
band-level computations that share the same calling pattern (histogram,
statistics, fill) and overview maintenance.

A transfer runs in four steps, all of which complete before GDAL is called:

1. the buffer is marshaled into a flat typed view (`core.buffers`);
2. the resampling algorithm is checked against what RasterIO accepts;
3. the spacing triple is resolved and checked against the buffer capacity
   (`core.spacing`);
4. a strided view over the caller's storage is built with the resolved spacing.

The view is then handed to `gdal_array.BandRasterIONumPy` or
`gdal_array.DatasetIONumPy`, which take their pixel, line and band spacing from
the view's strides, inside an `ErrorScope`.
"""
import logging
import math
from typing import Any, List, Optional, Tuple, Union

import numpy as np
from numpy.lib.stride_tricks import as_strided
from osgeo import gdal, gdal_array

from gdalio.core.buffers import marshal
from gdalio.core.error_bridge import ErrorScope
from gdalio.core.spacing import check_capacity, resolve_spacing
from gdalio.utils.data_models import Histogram, Statistics
from gdalio.utils.exceptions import ContractViolation, NativeError
from gdalio.utils.io_constants import Interleave, IOOperation, overview_resampling_for, rasterio_resampling_for
from gdalio.utils.options import (
    BandIOOptions,
    BuildOverviewsOptions,
    CallOptions,
    DatasetIOOptions,
    HistogramOptions,
    StatisticsOptions,
)

logger = logging.getLogger(__name__)


def _buffer_shape(buffer: np.ndarray, is_dataset: bool, interleave: Interleave) -> Tuple[int, int]:
    """Infer (width, height) from the buffer's shape when the caller gave none."""
    if not isinstance(buffer, np.ndarray) or buffer.ndim < 2:
        raise ContractViolation("width and height are required for buffers with fewer than two dimensions")
    if is_dataset and buffer.ndim == 3 and interleave is Interleave.PIXEL:
        return buffer.shape[1], buffer.shape[0]
    return buffer.shape[-1], buffer.shape[-2]

def _check_ret(scope: ErrorScope, ret: Any):
    if ret is None or ret != gdal.CE_None:
        scope.fail()

def transfer(
    direction: IOOperation,
    target: Any,
    x: int,
    y: int,
    buffer: np.ndarray,
    width: Optional[int] = None,
    height: Optional[int] = None,
    options: Optional[Union[BandIOOptions, DatasetIOOptions]] = None,
) -> None:
    """
    Read or write a window of a band or dataset.

    Args:
        direction: IOOperation.READ fills `buffer`; IOOperation.WRITE consumes it.
        target: A `Band` or `Dataset` handle.
        x, y: Origin of the source window in raster pixels.
        buffer: C-contiguous numpy array of a supported element type.
        width, height: Buffer window in elements; inferred from the buffer's
            shape when omitted.
        options: Window, resampling, spacing and (for datasets) band options.

    Raises:
        ContractViolation: Unsupported or too small buffer, bad spacing.
        UnsupportedResamplingError: Resampling not accepted by RasterIO.
        NativeError: GDAL rejected the transfer (e.g. window out of bounds).
        InvalidatedHandleError / ClosedHandleError: Target no longer usable.
    """
    native = target.native
    is_dataset = isinstance(native, gdal.Dataset)
    if options is None:
        options = DatasetIOOptions() if is_dataset else BandIOOptions()
    interleave = getattr(options, 'interleave', Interleave.BAND)
    writing = direction is IOOperation.WRITE

    marshaled = marshal(buffer, writable=not writing)
    if width is None or height is None:
        inferred_w, inferred_h = _buffer_shape(buffer, is_dataset, interleave)
        width = inferred_w if width is None else width
        height = inferred_h if height is None else height

    resample_alg = rasterio_resampling_for(options.resampling)

    band_list: List[int] = []
    if is_dataset:
        band_list = list(options.bands) if options.bands else list(range(1, native.RasterCount + 1))
        if not band_list:
            raise ContractViolation("dataset has no bands to transfer")
    band_count = len(band_list) if is_dataset else 1

    spacing = resolve_spacing(
        width, height, marshaled.item_size, band_count,
        interleave=interleave,
        pixel_spacing=options.pixel_spacing,
        line_spacing=options.line_spacing,
        band_spacing=getattr(options, 'band_spacing', None),
        pixel_stride=options.pixel_stride,
        line_stride=options.line_stride,
        band_stride=getattr(options, 'band_stride', None),
    )
    check_capacity(spacing, width, height, band_count, marshaled.item_size, marshaled.nbytes)

    src_width, src_height = options.window if options.window is not None else (width, height)

    if is_dataset:
        view = as_strided(marshaled.array, shape=(band_count, height, width), strides=spacing.strides(band_count))
    else:
        view = as_strided(marshaled.array, shape=(height, width), strides=spacing.strides())

    logger.debug(
        f"{direction.value} {width}x{height}x{band_count} {marshaled.element_type.value} "
        f"from window ({x}, {y}, {src_width}, {src_height}) spacing {spacing}")

    with ErrorScope.for_options(options) as scope:
        if is_dataset:
            ret = scope.call(
                gdal_array.DatasetIONumPy, native, int(writing), x, y, src_width, src_height,
                view, marshaled.gdal_type, resample_alg, None, None, True, band_list)
        else:
            ret = scope.call(
                gdal_array.BandRasterIONumPy, native, int(writing), x, y, src_width, src_height,
                view, marshaled.gdal_type, resample_alg)
        _check_ret(scope, ret)


# --- Band computations ---

def compute_histogram(band: Any, options: Optional[HistogramOptions] = None) -> Histogram:
    """
    Compute a histogram over a band.

    With `options.intervals` set to (count, min, max) the histogram uses those
    buckets; otherwise GDAL's default histogram for the band's data type is
    computed (256 buckets, [-0.5, 255.5) for byte data).
    """
    options = options or HistogramOptions()
    native = band.native
    lo = hi = 0.0
    counts: List[int] = []
    with ErrorScope.for_options(options) as scope:
        if options.intervals is None:
            result = scope.call(native.GetDefaultHistogram, force=1)
            if result is None:
                scope.fail()
            else:
                lo, hi, counts = result[0], result[1], result[3]
        else:
            buckets, lo, hi = options.intervals
            counts = scope.call(
                native.GetHistogram,
                min=float(lo),
                max=float(hi),
                buckets=int(buckets),
                include_out_of_range=int(options.include_out_of_range),
                approx_ok=int(options.approximate),
            )
            if counts is None:
                scope.fail()
    return Histogram(min=float(lo), max=float(hi), counts=[int(c) for c in counts or []])

def compute_statistics(band: Any, options: Optional[StatisticsOptions] = None) -> Statistics:
    """Compute min, max, mean and standard deviation of a band."""
    options = options or StatisticsOptions()
    native = band.native
    with ErrorScope.for_options(options) as scope:
        values = scope.call(native.ComputeStatistics, bool(options.approximate))
        if not values:
            scope.fail()
    if not values:
        raise NativeError(f"statistics could not be computed for {band!r}")
    minimum, maximum, mean, std_dev = values
    return Statistics(minimum=minimum, maximum=maximum, mean=mean, std_dev=std_dev,
                      approximate=options.approximate)

def fill(band: Any, real: float, imaginary: float = 0.0, options: Optional[CallOptions] = None):
    """Set every pixel of a band to a constant value."""
    native = band.native
    with ErrorScope.for_options(options) as scope:
        _check_ret(scope, scope.call(native.Fill, float(real), float(imaginary)))


# --- Overviews ---

def overview_levels(size_x: int, size_y: int, min_size: int) -> List[int]:
    """Power-of-two decimation levels until both axes fit within `min_size`."""
    levels = []
    level = 1
    while size_x > min_size or size_y > min_size:
        level *= 2
        levels.append(level)
        size_x = math.ceil(size_x / 2)
        size_y = math.ceil(size_y / 2)
    return levels

def build_overviews(dataset: Any, options: Optional[BuildOverviewsOptions] = None) -> List[int]:
    """
    Build overviews for every band of a dataset.

    Returns:
        The decimation levels requested from GDAL (empty when the dataset is
        already smaller than `options.min_size`).
    """
    options = options or BuildOverviewsOptions()
    resampling = overview_resampling_for(options.resampling)
    native = dataset.native
    levels = list(options.levels) if options.levels else overview_levels(
        native.RasterXSize, native.RasterYSize, options.min_size)
    if not levels:
        logger.debug(f"No overviews needed for {dataset.name}")
        return levels
    with ErrorScope.for_options(options) as scope:
        _check_ret(scope, scope.call(native.BuildOverviews, resampling, levels))
    logger.debug(f"Built overviews {levels} for {dataset.name} using {resampling}")
    return levels

def clear_overviews(dataset: Any, options: Optional[CallOptions] = None):
    native = dataset.native
    with ErrorScope.for_options(options) as scope:
        _check_ret(scope, scope.call(native.BuildOverviews, 'NONE', []))
