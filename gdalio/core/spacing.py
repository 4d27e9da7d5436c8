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
Stride/Window Calculator.

Resolves the pixel, line and band spacing (in bytes) passed to GDAL's RasterIO
and validates that the implied layout fits inside the caller's buffer. The
capacity check is the only thing standing between a bad spacing override and a
native out-of-bounds write, so it always runs before the native call.

Default packing:
    band-sequential:  pixel = item, line = width * pixel, band = line * height
    pixel-interleaved: pixel = item * bands, line = width * pixel, band = item
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from gdalio.utils.exceptions import ContractViolation
from gdalio.utils.io_constants import Interleave


@dataclass(frozen=True)
class Spacing:
    """Resolved byte offsets between samples, rows and bands."""
    pixel: int
    line: int
    band: int

    def strides(self, band_count: Optional[int] = None) -> Tuple[int, ...]:
        """numpy strides for a (height, width) or (bands, height, width) view."""
        if band_count is None:
            return (self.line, self.pixel)
        return (self.band, self.line, self.pixel)


def _override(name: str, byte_value: Optional[int], element_value: Optional[int], item_size: int) -> Optional[int]:
    """Resolve one override; element strides win over byte spacings, 0 means default."""
    for label, value, scale in ((f'{name}_stride', element_value, item_size), (f'{name}_spacing', byte_value, 1)):
        if value is None:
            continue
        if value < 0:
            raise ContractViolation(f"{label} must not be negative, got {value}")
        if value > 0:
            return value * scale
    return None

def resolve_spacing(
    width: int,
    height: int,
    item_size: int,
    band_count: int = 1,
    interleave: Interleave = Interleave.BAND,
    pixel_spacing: Optional[int] = None,
    line_spacing: Optional[int] = None,
    band_spacing: Optional[int] = None,
    pixel_stride: Optional[int] = None,
    line_stride: Optional[int] = None,
    band_stride: Optional[int] = None,
) -> Spacing:
    """
    Resolve the spacing triple for a transfer.

    Args:
        width, height: Buffer dimensions in elements.
        item_size: Element byte width.
        band_count: Number of bands in the buffer (1 for band-level I/O).
        interleave: Default layout for multi-band buffers.
        *_spacing: Byte overrides; None or 0 keeps the default.
        *_stride: Element overrides; take precedence over the byte form.

    Returns:
        Spacing: Fully resolved pixel, line and band spacing in bytes.
    """
    if width < 0 or height < 0 or band_count < 1 or item_size < 1:
        raise ContractViolation(
            f"invalid buffer geometry: width={width} height={height} bands={band_count} item_size={item_size}")
    pixel_interleaved = interleave is Interleave.PIXEL and band_count > 1

    pixel = _override('pixel', pixel_spacing, pixel_stride, item_size)
    if pixel is None:
        pixel = item_size * band_count if pixel_interleaved else item_size

    line = _override('line', line_spacing, line_stride, item_size)
    if line is None:
        line = width * pixel

    band = _override('band', band_spacing, band_stride, item_size)
    if band is None:
        band = item_size if pixel_interleaved else line * height

    return Spacing(pixel=pixel, line=line, band=band)

def required_bytes(spacing: Spacing, width: int, height: int, band_count: int, item_size: int) -> int:
    """Return the number of bytes the layout touches, 0 for an empty window."""
    if width == 0 or height == 0:
        return 0
    return ((band_count - 1) * spacing.band
            + (height - 1) * spacing.line
            + (width - 1) * spacing.pixel
            + item_size)

def check_capacity(spacing: Spacing, width: int, height: int, band_count: int, item_size: int, capacity: int) -> int:
    """
    Raise ContractViolation if the layout would reach past `capacity` bytes.

    Returns:
        int: The number of bytes the layout requires.
    """
    needed = required_bytes(spacing, width, height, band_count, item_size)
    if needed > capacity:
        raise ContractViolation(
            f"buffer too small: layout {width}x{height}x{band_count} with spacing "
            f"(pixel={spacing.pixel}, line={spacing.line}, band={spacing.band}) "
            f"needs {needed} bytes, buffer holds {capacity}")
    return needed
