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
Dataset, Band and Layer handles.

`Dataset` owns a `gdal.Dataset`; `Band` (including masks and overviews) and
`Layer` are aliases that stay usable only while their dataset is open.

Example:
    >>> with open_dataset('dem.tif') as ds:
    ...     band = ds.band(1)
    ...     buf = np.zeros((256, 256), dtype=np.float32)
    ...     band.read(0, 0, buf)
    >>> band.read(0, 0, buf)
    Traceback (most recent call last):
    InvalidatedHandleError: band belongs to dataset 'dem.tif', which is closed
"""
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

import numpy as np
from osgeo import gdal, ogr

from gdalio.core import raster_io
from gdalio.core.buffers import element_type_for, element_type_from_gdal
from gdalio.core.error_bridge import ErrorScope, promote_not_found
from gdalio.core.handles import AliasHandle, HandleKind, OwnedHandle
from gdalio.core.spatial import Geometry, SpatialRef
from gdalio.utils.data_models import BandStructure, DatasetStructure, Histogram, Statistics
from gdalio.utils.exceptions import ContractViolation, GdalIOError, NativeError
from gdalio.utils.io_constants import ElementType, IOOperation
from gdalio.utils.options import (
    BandIOOptions,
    BuildOverviewsOptions,
    CallOptions,
    CreateOptions,
    DatasetIOOptions,
    HistogramOptions,
    OpenOptions,
    StatisticsOptions,
)

logger = logging.getLogger(__name__)


def _check_ret(scope: ErrorScope, ret: Any):
    if ret is None or ret != gdal.CE_None:
        scope.fail()


class Band(AliasHandle):
    """A raster band, mask or overview of an open dataset."""
    label = 'band'

    def __init__(self, owner: 'Dataset', native: Any, label: str = 'band'):
        super().__init__(owner, native)
        self.label = label

    # --- I/O ---

    def read(self, x: int, y: int, buffer: np.ndarray, width: Optional[int] = None,
             height: Optional[int] = None, options: Optional[BandIOOptions] = None):
        """Read the window at (x, y) into `buffer`."""
        raster_io.transfer(IOOperation.READ, self, x, y, buffer, width, height, options)

    def write(self, x: int, y: int, buffer: np.ndarray, width: Optional[int] = None,
              height: Optional[int] = None, options: Optional[BandIOOptions] = None):
        """Write `buffer` into the window at (x, y)."""
        raster_io.transfer(IOOperation.WRITE, self, x, y, buffer, width, height, options)

    def io(self, direction: IOOperation, x: int, y: int, buffer: np.ndarray, width: Optional[int] = None,
           height: Optional[int] = None, options: Optional[BandIOOptions] = None):
        raster_io.transfer(direction, self, x, y, buffer, width, height, options)

    def histogram(self, options: Optional[HistogramOptions] = None) -> Histogram:
        return raster_io.compute_histogram(self, options)

    def compute_statistics(self, options: Optional[StatisticsOptions] = None) -> Statistics:
        return raster_io.compute_statistics(self, options)

    def fill(self, real: float, imaginary: float = 0.0, options: Optional[CallOptions] = None):
        raster_io.fill(self, real, imaginary, options)

    # --- Structure ---

    def structure(self) -> BandStructure:
        native = self.native
        block_x, block_y = native.GetBlockSize()
        return BandStructure(
            size_x=native.XSize,
            size_y=native.YSize,
            block_size_x=block_x,
            block_size_y=block_y,
            data_type=element_type_from_gdal(native.DataType),
            gdal_data_type=gdal.GetDataTypeName(native.DataType),
        )

    def no_data(self) -> Optional[float]:
        return self.native.GetNoDataValue()

    def set_no_data(self, value: float, options: Optional[CallOptions] = None):
        native = self.native
        with ErrorScope.for_options(options) as scope:
            _check_ret(scope, scope.call(native.SetNoDataValue, float(value)))

    def clear_no_data(self, options: Optional[CallOptions] = None):
        native = self.native
        with ErrorScope.for_options(options) as scope:
            _check_ret(scope, scope.call(native.DeleteNoDataValue))

    # --- Masks and overviews ---

    def mask_band(self) -> 'Band':
        return Band(self.owner, self.native.GetMaskBand(), label='mask band')

    def mask_flags(self) -> int:
        return self.native.GetMaskFlags()

    def create_mask(self, flags: int = gdal.GMF_PER_DATASET, options: Optional[CallOptions] = None) -> 'Band':
        native = self.native
        with ErrorScope.for_options(options) as scope:
            _check_ret(scope, scope.call(native.CreateMaskBand, flags))
        return self.mask_band()

    def overviews(self) -> List['Band']:
        native = self.native
        return [Band(self.owner, native.GetOverview(i), label='overview')
                for i in range(native.GetOverviewCount())]


class Layer(AliasHandle):
    """A vector layer of an open dataset."""
    label = 'layer'

    def name(self) -> str:
        return self.native.GetName()

    def feature_count(self, force: bool = True) -> int:
        return self.native.GetFeatureCount(int(force))

    def add_geometry(self, geometry: Geometry, options: Optional[CallOptions] = None):
        """Append a feature holding a copy of `geometry`."""
        native = self.native
        feature = ogr.Feature(native.GetLayerDefn())
        feature.SetGeometry(geometry.native)
        with ErrorScope.for_options(options) as scope:
            ret = scope.call(native.CreateFeature, feature)
            if ret is None or ret != 0:
                scope.fail()


class Dataset(OwnedHandle):
    """Owning handle on a `gdal.Dataset`."""
    kind = HandleKind.DATASET

    def _release(self, native: Any, options: Optional[CallOptions]):
        with ErrorScope.for_options(options) as scope:
            ret = scope.call(native.Close)
            if ret is not None and ret != gdal.CE_None:
                scope.fail()

    # --- Children ---

    @property
    def band_count(self) -> int:
        return self.native.RasterCount

    def band(self, index: int) -> Band:
        """Return band `index` (1-based)."""
        native = self.native
        if index < 1 or index > native.RasterCount:
            raise ContractViolation(f"band index {index} out of range 1..{native.RasterCount}")
        return Band(self, native.GetRasterBand(index))

    def bands(self) -> List[Band]:
        native = self.native
        return [Band(self, native.GetRasterBand(i)) for i in range(1, native.RasterCount + 1)]

    def layers(self) -> List[Layer]:
        native = self.native
        return [Layer(self, native.GetLayerByIndex(i)) for i in range(native.GetLayerCount())]

    def create_layer(self, name: str, srs: Optional[SpatialRef] = None, geometry_type: int = ogr.wkbUnknown,
                     options: Optional[CallOptions] = None) -> Layer:
        native = self.native
        with ErrorScope.for_options(options) as scope:
            layer = scope.call(native.CreateLayer, name, srs.native if srs is not None else None, geometry_type)
            if layer is None:
                scope.fail()
        return Layer(self, layer)

    # --- I/O ---

    def read(self, x: int, y: int, buffer: np.ndarray, width: Optional[int] = None,
             height: Optional[int] = None, options: Optional[DatasetIOOptions] = None):
        """Read the window at (x, y) of the selected bands into `buffer`."""
        raster_io.transfer(IOOperation.READ, self, x, y, buffer, width, height, options)

    def write(self, x: int, y: int, buffer: np.ndarray, width: Optional[int] = None,
              height: Optional[int] = None, options: Optional[DatasetIOOptions] = None):
        """Write `buffer` into the window at (x, y) of the selected bands."""
        raster_io.transfer(IOOperation.WRITE, self, x, y, buffer, width, height, options)

    def io(self, direction: IOOperation, x: int, y: int, buffer: np.ndarray, width: Optional[int] = None,
           height: Optional[int] = None, options: Optional[DatasetIOOptions] = None):
        raster_io.transfer(direction, self, x, y, buffer, width, height, options)

    # --- Overviews and masks ---

    def build_overviews(self, options: Optional[BuildOverviewsOptions] = None) -> List[int]:
        return raster_io.build_overviews(self, options)

    def clear_overviews(self, options: Optional[CallOptions] = None):
        raster_io.clear_overviews(self, options)

    def create_mask(self, flags: int = gdal.GMF_PER_DATASET, options: Optional[CallOptions] = None):
        native = self.native
        with ErrorScope.for_options(options) as scope:
            _check_ret(scope, scope.call(native.CreateMaskBand, flags))

    # --- Structure ---

    def driver_name(self) -> str:
        driver = self.native.GetDriver()
        return driver.ShortName if driver is not None else ''

    def structure(self) -> DatasetStructure:
        native = self.native
        bands = [band.structure() for band in self.bands()]
        first = bands[0] if bands else None
        return DatasetStructure(
            size_x=native.RasterXSize,
            size_y=native.RasterYSize,
            band_count=native.RasterCount,
            block_size_x=first.block_size_x if first else 0,
            block_size_y=first.block_size_y if first else 0,
            data_type=first.data_type if first else None,
            driver=self.driver_name(),
            bands=bands,
        )

    def flush(self, options: Optional[CallOptions] = None):
        native = self.native
        with ErrorScope.for_options(options) as scope:
            ret = scope.call(native.FlushCache)
            if ret is not None and ret != gdal.CE_None:
                scope.fail()


# --- Constructors ---

def open_dataset(path: Union[str, Path], options: Optional[OpenOptions] = None) -> Dataset:
    """
    Open a dataset.

    Raises:
        NotFoundError: The path (or virtual file key) does not exist.
        NativeError: GDAL could not open the dataset for another reason.
    """
    options = options or OpenOptions()
    name = str(path)
    flags = gdal.OF_VERBOSE_ERROR
    if options.raster_only:
        flags |= gdal.OF_RASTER
    elif options.vector_only:
        flags |= gdal.OF_VECTOR
    else:
        flags |= gdal.OF_RASTER | gdal.OF_VECTOR
    if options.update:
        flags |= gdal.OF_UPDATE
    if options.shared:
        flags |= gdal.OF_SHARED

    try:
        with ErrorScope.for_options(options) as scope:
            native = scope.call(
                gdal.OpenEx, name, flags,
                allowed_drivers=options.drivers,
                open_options=options.open_options,
                sibling_files=options.sibling_files,
            )
            if native is None:
                scope.fail()
    except GdalIOError as e:
        promoted = promote_not_found(e)
        if promoted is e:
            raise
        raise promoted from e
    if native is None:
        raise NativeError(f"{name}: open failed")
    logger.debug(f"Opened {name} with driver {native.GetDriver().ShortName}")
    return Dataset(native, name=name, shared=options.shared)

def create_dataset(
    driver: str,
    path: Union[str, Path],
    bands: int,
    element_type: Union[ElementType, Any],
    width: int,
    height: int,
    options: Optional[CreateOptions] = None,
) -> Dataset:
    """Create a dataset with `driver`; `element_type` may also be a numpy dtype."""
    options = options or CreateOptions()
    if not isinstance(element_type, ElementType):
        element_type = element_type_for(element_type)
    name = str(path)
    gdal_driver = gdal.GetDriverByName(driver)
    if gdal_driver is None:
        raise NativeError(f"driver '{driver}' is not available")
    with ErrorScope.for_options(options) as scope:
        native = scope.call(gdal_driver.Create, name, width, height, bands, element_type.gdal_code,
                            options=list(options.creation_options))
        if native is None:
            scope.fail()
    if native is None:
        raise NativeError(f"{name}: create failed")
    return Dataset(native, name=name)
