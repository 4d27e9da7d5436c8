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
Spatial reference, coordinate transformation and geometry handles.

Thin owning wrappers: the math is GDAL's, these classes only add explicit
lifetimes and route diagnostics through the error bridge.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from osgeo import ogr, osr

from gdalio.core.error_bridge import ErrorScope
from gdalio.core.handles import HandleKind, OwnedHandle
from gdalio.utils.exceptions import NativeError
from gdalio.utils.options import CallOptions

logger = logging.getLogger(__name__)

OGRERR_NONE = 0


def _check_ogr(scope: ErrorScope, ret):
    if ret is None or ret != OGRERR_NONE:
        scope.fail()


class SpatialRef(OwnedHandle):
    """Owning handle on an `osr.SpatialReference` using traditional x/y axis order."""
    kind = HandleKind.SPATIAL_REF

    @classmethod
    def _build(cls, method: str, value, name: str, options: Optional[CallOptions]) -> 'SpatialRef':
        srs = osr.SpatialReference()
        with ErrorScope.for_options(options) as scope:
            ret = scope.call(getattr(srs, method), value)
            _check_ogr(scope, ret)
        srs.SetAxisMappingStrategy(osr.OAMS_TRADITIONAL_GIS_ORDER)
        return cls(srs, name=name)

    @classmethod
    def from_epsg(cls, code: int, options: Optional[CallOptions] = None) -> 'SpatialRef':
        return cls._build('ImportFromEPSG', int(code), f"EPSG:{code}", options)

    @classmethod
    def from_wkt(cls, wkt: str, options: Optional[CallOptions] = None) -> 'SpatialRef':
        return cls._build('ImportFromWkt', wkt, 'wkt', options)

    @classmethod
    def from_user_input(cls, text: str, options: Optional[CallOptions] = None) -> 'SpatialRef':
        return cls._build('SetFromUserInput', text, text, options)

    def to_wkt(self, options: Optional[CallOptions] = None) -> str:
        with ErrorScope.for_options(options) as scope:
            wkt = scope.call(self.native.ExportToWkt)
            if not wkt:
                scope.fail()
        return wkt

    def epsg(self) -> Optional[int]:
        code = self.native.GetAuthorityCode(None)
        return int(code) if code else None

    def is_same(self, other: 'SpatialRef') -> bool:
        return bool(self.native.IsSame(other.native))


class Transform(OwnedHandle):
    """Owning handle on an `osr.CoordinateTransformation`."""
    kind = HandleKind.TRANSFORM

    @classmethod
    def between(cls, source: SpatialRef, target: SpatialRef, options: Optional[CallOptions] = None) -> 'Transform':
        with ErrorScope.for_options(options) as scope:
            native = scope.call(osr.CoordinateTransformation, source.native, target.native)
            if native is None:
                scope.fail()
        if native is None:
            raise NativeError(f"no transformation from {source.name} to {target.name}")
        return cls(native, name=f"{source.name} -> {target.name}")

    def transform_points(self, points: Sequence[Tuple[float, ...]],
                         options: Optional[CallOptions] = None) -> List[Tuple[float, ...]]:
        """Transform (x, y) or (x, y, z) tuples; returns (x, y, z) tuples."""
        with ErrorScope.for_options(options) as scope:
            result = scope.call(self.native.TransformPoints, [tuple(p) for p in points])
            if result is None:
                scope.fail()
        return [tuple(p) for p in result]


class Geometry(OwnedHandle):
    """Owning handle on an `ogr.Geometry`."""
    kind = HandleKind.GEOMETRY

    @classmethod
    def from_wkt(cls, wkt: str, srs: Optional[SpatialRef] = None,
                 options: Optional[CallOptions] = None) -> 'Geometry':
        with ErrorScope.for_options(options) as scope:
            native = scope.call(ogr.CreateGeometryFromWkt, wkt, srs.native if srs is not None else None)
            if native is None:
                scope.fail()
        if native is None:
            raise NativeError(f"invalid WKT geometry: {wkt[:80]}")
        return cls(native, name=native.GetGeometryName())

    def to_wkt(self) -> str:
        return self.native.ExportToWkt()

    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (min_x, min_y, max_x, max_y)."""
        min_x, max_x, min_y, max_y = self.native.GetEnvelope()
        return (min_x, min_y, max_x, max_y)

    def transform(self, transform: Transform, options: Optional[CallOptions] = None):
        """Reproject the geometry in place."""
        with ErrorScope.for_options(options) as scope:
            ret = scope.call(self.native.Transform, transform.native)
            _check_ogr(scope, ret)
