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
Read GDAL virtual files (any prefix GDAL serves, registered ones included)
from Python through an owning handle.
"""
import logging
import os
from pathlib import Path
from typing import Optional, Union

from osgeo import gdal

from gdalio.core.error_bridge import ErrorScope, promote_not_found
from gdalio.core.handles import HandleKind, OwnedHandle
from gdalio.utils.data_models import Diagnostic
from gdalio.utils.exceptions import GdalIOError, NativeError
from gdalio.utils.io_constants import CPLE_OPEN_FAILED, Severity
from gdalio.utils.options import CallOptions

logger = logging.getLogger(__name__)


class VSIFile(OwnedHandle):
    """Read-only handle on a GDAL virtual file."""
    kind = HandleKind.VSI_FILE

    def read(self, length: int) -> bytes:
        data = gdal.VSIFReadL(1, length, self.native)
        return data or b''

    def read_all(self) -> bytes:
        self.seek(0, os.SEEK_END)
        size = self.tell()
        self.seek(0)
        return self.read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET):
        if gdal.VSIFSeekL(self.native, offset, whence) != 0:
            raise NativeError(f"{self.name}: seek to {offset} failed")

    def tell(self) -> int:
        return gdal.VSIFTellL(self.native)

    def _release(self, native, options: Optional[CallOptions]):
        with ErrorScope.for_options(options) as scope:
            ret = scope.call(gdal.VSIFCloseL, native)
            if ret is not None and ret != 0:
                scope.fail()


def vsi_open(path: Union[str, Path], options: Optional[CallOptions] = None) -> VSIFile:
    """
    Open a virtual file for reading.

    Raises:
        NotFoundError: Nothing exists at `path`.
    """
    name = str(path)
    try:
        with ErrorScope.for_options(options) as scope:
            fp = scope.call(gdal.VSIFOpenL, name, 'rb')
            if fp is None:
                if not any(d.severity >= Severity.FAILURE for d in scope.diagnostics) \
                        and gdal.VSIStatL(name) is None:
                    scope.record(Diagnostic(Severity.FAILURE, CPLE_OPEN_FAILED, f"{name}: No such file or directory"))
                scope.fail()
    except GdalIOError as e:
        promoted = promote_not_found(e)
        if promoted is e:
            raise
        raise promoted from e
    if fp is None:
        raise NativeError(f"{name}: open failed")
    return VSIFile(fp, name=name)

def vsi_unlink(path: Union[str, Path], options: Optional[CallOptions] = None):
    name = str(path)
    with ErrorScope.for_options(options) as scope:
        ret = scope.call(gdal.Unlink, name)
        if ret is None or ret != 0:
            scope.fail()
