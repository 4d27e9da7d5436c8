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
Mock Raster Factory for Testing.

This module provides the MockRaster class, a factory for creating small rasters
with known pixel values. Rasters can be materialized as in-memory GDAL datasets
(MEM driver), as GeoTIFF files on disk, or as GeoTIFF bytes for feeding a
backing store.

Example:
    >>> mock = MockRaster(width=16, height=16, bands=1)
    >>> ds = mock.to_gdal_dataset()
    >>> assert ds.RasterXSize == 16

    >>> # Pixel values follow a deterministic ramp unless given explicitly
    >>> mock = MockRaster(width=4, height=2, data_type=gdal.GDT_Int16)
    >>> mock.pixel_data[0].tolist()
    [[0, 1, 2, 3], [4, 5, 6, 7]]
"""

import uuid
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from osgeo import gdal, gdal_array, osr


class MockRaster:
    """
    Factory for creating rasters with controlled pixel values.

    Attributes:
        width: Raster width in pixels
        height: Raster height in pixels
        bands: Number of bands
        data_type: GDAL data type constant (e.g., gdal.GDT_Float32)
        crs: Coordinate reference system as 'EPSG:<code>' or WKT
        geo_transform: Affine transformation tuple (6 values)
        nodata_value: NoData value for every band
        tiled: Whether GeoTIFF output is tiled
        tile_size: Tile dimensions in pixels
        pixel_data: Pixel data with shape (bands, height, width)
    """

    def __init__(
        self,
        width: int = 16,
        height: int = 16,
        bands: int = 1,
        data_type: int = gdal.GDT_Byte,
        crs: Optional[str] = 'EPSG:4326',
        geo_transform: Optional[Tuple[float, ...]] = None,
        nodata_value: Optional[float] = None,
        tiled: bool = False,
        tile_size: int = 256,
        pixel_data: Optional[np.ndarray] = None,
    ):
        self.width = width
        self.height = height
        self.bands = bands
        self.data_type = data_type
        self.crs = crs
        self.nodata_value = nodata_value
        self.tiled = tiled
        self.tile_size = tile_size
        self.geo_transform = geo_transform or (0.0, 1.0, 0.0, 0.0, 0.0, -1.0)

        if pixel_data is not None:
            self.pixel_data = np.asarray(pixel_data).reshape(bands, height, width)
        else:
            self.pixel_data = self._generate_pixel_data()

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(gdal_array.GDALTypeCodeToNumericTypeCode(self.data_type))

    def _generate_pixel_data(self) -> np.ndarray:
        """
        Generate a ramp: band `b` holds `index + 100 * b`, wrapped to fit integer types.

        Returns:
            numpy array with shape (bands, height, width)
        """
        dtype = self.dtype
        ramp = np.arange(self.width * self.height, dtype=np.int64).reshape(self.height, self.width)
        data = np.stack([ramp + 100 * b for b in range(self.bands)])
        if np.issubdtype(dtype, np.integer):
            data = data % min(int(np.iinfo(dtype).max) + 1, 1 << 31)
        return data.astype(dtype)

    def _apply(self, ds: gdal.Dataset):
        ds.SetGeoTransform(self.geo_transform)
        if self.crs:
            srs = osr.SpatialReference()
            srs.SetFromUserInput(self.crs)
            ds.SetProjection(srs.ExportToWkt())
        for band_idx in range(self.bands):
            band = ds.GetRasterBand(band_idx + 1)
            band.WriteArray(self.pixel_data[band_idx])
            if self.nodata_value is not None:
                band.SetNoDataValue(float(self.nodata_value))
        ds.FlushCache()

    def to_gdal_dataset(self) -> gdal.Dataset:
        """Create an in-memory dataset with the MEM driver."""
        driver = gdal.GetDriverByName('MEM')
        ds = driver.Create('', self.width, self.height, self.bands, self.data_type)
        if ds is None:
            raise RuntimeError("Failed to create in-memory dataset")
        self._apply(ds)
        return ds

    def _creation_options(self) -> List[str]:
        options = []
        if self.tiled:
            options += ['TILED=YES', f'BLOCKXSIZE={self.tile_size}', f'BLOCKYSIZE={self.tile_size}']
        return options

    def save_to_file(self, filepath: Union[str, Path]) -> Path:
        """Write a GeoTIFF to `filepath` and return the path."""
        filepath = Path(filepath)
        driver = gdal.GetDriverByName('GTiff')
        ds = driver.Create(str(filepath), self.width, self.height, self.bands, self.data_type,
                           options=self._creation_options())
        if ds is None:
            raise RuntimeError(f"Failed to create GeoTIFF at {filepath}")
        self._apply(ds)
        ds = None
        return filepath

    def to_geotiff_bytes(self) -> bytes:
        """Return the bytes of a GeoTIFF holding this raster."""
        path = f'/vsimem/mock_raster_{uuid.uuid4().hex}.tif'
        self.save_to_file(path)
        try:
            stat = gdal.VSIStatL(path)
            fp = gdal.VSIFOpenL(path, 'rb')
            try:
                return bytes(gdal.VSIFReadL(1, stat.size, fp))
            finally:
                gdal.VSIFCloseL(fp)
        finally:
            gdal.Unlink(path)

    def __repr__(self) -> str:
        return (
            f"MockRaster(width={self.width}, height={self.height}, "
            f"bands={self.bands}, data_type={gdal.GetDataTypeName(self.data_type)})"
        )
