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
Buffer Marshaler.

Translates a numpy array into what a GDAL I/O call needs: a raw address, the
GDAL element type and the element byte width. The returned flat view aliases
the caller's storage, so the array must not be resized while a call using it
is outstanding.
"""
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from osgeo import gdal

from gdalio.utils.exceptions import ContractViolation
from gdalio.utils.io_constants import ElementType, GDAL_TYPE_NAMES

_BY_DTYPE = {member.dtype: member for member in ElementType}


@dataclass(frozen=True)
class MarshaledBuffer:
    """A caller buffer resolved for a native call."""
    array: np.ndarray
    element_type: ElementType
    item_size: int
    length: int

    @property
    def address(self) -> int:
        return self.array.ctypes.data

    @property
    def nbytes(self) -> int:
        return self.length * self.item_size

    @property
    def gdal_type(self) -> int:
        return self.element_type.gdal_code


def element_type_for(dtype: Any) -> ElementType:
    """Map a numpy dtype (or anything numpy accepts as one) to an ElementType."""
    try:
        resolved = np.dtype(dtype)
    except TypeError as e:
        raise ContractViolation(f"unsupported buffer element type: {dtype!r}") from e
    member = _BY_DTYPE.get(resolved) if resolved.isnative else None
    if member is None:
        raise ContractViolation(f"unsupported buffer element type: {resolved}")
    return member

def dtype_for(element_type: ElementType) -> np.dtype:
    return element_type.dtype

def element_type_from_gdal(gdal_type: int) -> Optional[ElementType]:
    """Return the ElementType for a GDAL data type code, or None if it has no numpy twin."""
    for member in ElementType:
        try:
            if member.gdal_code == gdal_type:
                return member
        except AttributeError:
            # osgeo built against a GDAL without this type (e.g. GDT_Int8 before 3.7)
            continue
    return None

def marshal(buffer: Any, writable: bool = False) -> MarshaledBuffer:
    """
    Resolve a caller buffer into a flat typed view.

    Args:
        buffer: A C-contiguous numpy array of a supported element type.
        writable: True when the native call will write into the buffer.

    Returns:
        MarshaledBuffer: flat view, element type, item size and element count.

    Raises:
        ContractViolation: if the buffer is not a numpy array, is not
            contiguous, has an unsupported element type, or is read-only while
            `writable` is requested.
    """
    if not isinstance(buffer, np.ndarray):
        raise ContractViolation(f"buffer must be a numpy.ndarray, got {type(buffer).__name__}")
    element_type = element_type_for(buffer.dtype)
    if not buffer.flags.c_contiguous:
        raise ContractViolation("buffer must be C-contiguous")
    if writable and not buffer.flags.writeable:
        raise ContractViolation("buffer is read-only and cannot receive data")
    flat = buffer.reshape(-1)
    return MarshaledBuffer(
        array=flat,
        element_type=element_type,
        item_size=buffer.dtype.itemsize,
        length=flat.size,
    )

def supported_element_types():
    """Return the element types usable with the linked GDAL."""
    return [member for member in ElementType if hasattr(gdal, GDAL_TYPE_NAMES[member])]
