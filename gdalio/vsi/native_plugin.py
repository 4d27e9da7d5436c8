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
Native half of the VSI bridge.

Installs a GDAL filesystem plugin (`VSIInstallPluginHandler`) whose callbacks
are ctypes trampolines into a `VSIHandler`. The library is the `libgdal`
already loaded by `osgeo`, so the plugin lands in the same `VSIFileManager`
the bindings use.

GDAL-side buffering and caching are disabled (`nBufferSize = nCacheSize = 0`);
the handler does both on the Python side. Callbacks never let an exception
cross into C: failures are logged, reported with `CPLError` and turned into the
callback's failure value.

The ctypes callback objects are kept alive for the life of the process, since
GDAL holds on to their addresses and a prefix can never be unregistered.
"""
import ctypes
import ctypes.util
import logging
import os
import platform
import stat
import threading
from pathlib import Path
from typing import Any, List, Optional

from osgeo import gdal  # noqa: F401  (loads libgdal into the process)

from gdalio.utils.config_loader import config
from gdalio.utils.exceptions import GdalIOError, NativeError
from gdalio.utils.io_constants import CPLE_FILE_IO, CPLE_NOT_SUPPORTED, CPLE_OPEN_FAILED, Severity
from gdalio.vsi.handler import VSIHandler

logger = logging.getLogger(__name__)

VSI_STAT_SET_ERROR_FLAG = 0x8

c_vsi_offset = ctypes.c_uint64

STAT_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p, ctypes.c_int)
OPEN_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_void_p, ctypes.c_void_p, ctypes.c_char_p, ctypes.c_char_p)
TELL_CALLBACK = ctypes.CFUNCTYPE(c_vsi_offset, ctypes.c_void_p)
SEEK_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_void_p, c_vsi_offset, ctypes.c_int)
READ_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_size_t, ctypes.c_void_p, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_size_t)
READ_MULTI_RANGE_CALLBACK = ctypes.CFUNCTYPE(
    ctypes.c_int, ctypes.c_void_p, ctypes.c_int,
    ctypes.POINTER(ctypes.c_void_p), ctypes.POINTER(c_vsi_offset), ctypes.POINTER(ctypes.c_size_t))
EOF_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_void_p)
CLOSE_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_void_p)
SIBLING_FILES_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_void_p, ctypes.c_void_p, ctypes.c_char_p)


class VSIFilesystemPluginCallbacksStruct(ctypes.Structure):
    """Leading fields of GDAL's struct; GDAL allocates the full struct."""
    _fields_ = [
        ('pUserData', ctypes.c_void_p),
        ('stat', STAT_CALLBACK),
        ('unlink', ctypes.c_void_p),
        ('rename', ctypes.c_void_p),
        ('mkdir', ctypes.c_void_p),
        ('rmdir', ctypes.c_void_p),
        ('read_dir', ctypes.c_void_p),
        ('open', OPEN_CALLBACK),
        ('tell', TELL_CALLBACK),
        ('seek', SEEK_CALLBACK),
        ('read', READ_CALLBACK),
        ('read_multi_range', READ_MULTI_RANGE_CALLBACK),
        ('get_range_status', ctypes.c_void_p),
        ('eof', EOF_CALLBACK),
        ('write', ctypes.c_void_p),
        ('flush', ctypes.c_void_p),
        ('truncate', ctypes.c_void_p),
        ('close', CLOSE_CALLBACK),
        ('nBufferSize', ctypes.c_size_t),
        ('nCacheSize', ctypes.c_size_t),
        ('sibling_files', SIBLING_FILES_CALLBACK),
        ('advise_read', ctypes.c_void_p),
    ]

# (st_mode offset, st_mode type, st_size offset) of VSIStatBufL per platform
_STAT_LAYOUTS = {
    ('Linux', 'x86_64'): (24, ctypes.c_uint32, 48),
    ('Linux', 'aarch64'): (16, ctypes.c_uint32, 48),
    ('Darwin', 'x86_64'): (4, ctypes.c_uint16, 96),
    ('Darwin', 'arm64'): (4, ctypes.c_uint16, 96),
}

_lib: Optional[ctypes.CDLL] = None
_lib_lock = threading.Lock()
_keep_alive: List[Any] = []


# --- Library ---

def _mapped_gdal_library() -> Optional[str]:
    """Path of the libgdal mapped into this process, read from /proc/self/maps."""
    maps = Path('/proc/self/maps')
    if not maps.exists():
        return None
    for line in maps.read_text().splitlines():
        parts = line.split(None, 5)
        if len(parts) < 6:
            continue
        path = parts[5].strip()
        name = os.path.basename(path)
        if name.startswith('libgdal') and '.so' in name:
            return path
    return None

def find_gdal_library() -> str:
    configured = config.get('vsi.library_path')
    if configured:
        return configured
    path = _mapped_gdal_library() or ctypes.util.find_library('gdal')
    if not path:
        raise GdalIOError("could not locate the GDAL shared library; set vsi.library_path in config.toml")
    return path

def gdal_library() -> ctypes.CDLL:
    global _lib
    with _lib_lock:
        if _lib is None:
            path = find_gdal_library()
            lib = ctypes.CDLL(path)
            lib.VSIAllocFilesystemPluginCallbacksStruct.argtypes = []
            lib.VSIAllocFilesystemPluginCallbacksStruct.restype = ctypes.POINTER(VSIFilesystemPluginCallbacksStruct)
            lib.VSIInstallPluginHandler.argtypes = [ctypes.c_char_p, ctypes.POINTER(VSIFilesystemPluginCallbacksStruct)]
            lib.VSIInstallPluginHandler.restype = ctypes.c_int
            lib.VSICalloc.argtypes = [ctypes.c_size_t, ctypes.c_size_t]
            lib.VSICalloc.restype = ctypes.c_void_p
            lib.CPLError.restype = None
            logger.debug(f"Loaded GDAL library from {path}")
            _lib = lib
        return _lib

def emit_error(code: int, message: str):
    """Report a failure through GDAL's error machinery on the calling thread."""
    gdal_library().CPLError(ctypes.c_int(int(Severity.FAILURE)), ctypes.c_int(code), b"%s",
                            message.encode('utf-8', 'replace'))

def _decode(value: Optional[bytes]) -> str:
    return value.decode('utf-8', 'surrogateescape') if value else ''

def _fill_stat(buffer_address: int, size: int):
    layout = _STAT_LAYOUTS.get((platform.system(), platform.machine()))
    if layout is None:
        return
    mode_offset, mode_type, size_offset = layout
    mode_type.from_address(buffer_address + mode_offset).value = stat.S_IFREG | 0o444
    ctypes.c_int64.from_address(buffer_address + size_offset).value = size


# --- Plugin ---

class PluginBridge:
    """ctypes callbacks forwarding GDAL's plugin calls to one VSIHandler."""

    def __init__(self, handler: VSIHandler):
        self.handler = handler
        self._callbacks = {
            'stat': STAT_CALLBACK(self._stat),
            'open': OPEN_CALLBACK(self._open),
            'tell': TELL_CALLBACK(self._tell),
            'seek': SEEK_CALLBACK(self._seek),
            'read': READ_CALLBACK(self._read),
            'read_multi_range': READ_MULTI_RANGE_CALLBACK(self._read_multi_range),
            'eof': EOF_CALLBACK(self._eof),
            'close': CLOSE_CALLBACK(self._close),
            'sibling_files': SIBLING_FILES_CALLBACK(self._sibling_files),
        }

    def install(self):
        lib = gdal_library()
        callbacks = lib.VSIAllocFilesystemPluginCallbacksStruct()
        if not callbacks:
            raise NativeError("VSIAllocFilesystemPluginCallbacksStruct returned NULL")
        fields = callbacks.contents
        for name, callback in self._callbacks.items():
            setattr(fields, name, callback)
        fields.nBufferSize = 0
        fields.nCacheSize = 0
        _keep_alive.append((self, callbacks))
        ret = lib.VSIInstallPluginHandler(self.handler.prefix.encode('utf-8'), callbacks)
        if ret != 0:
            raise NativeError(f"VSIInstallPluginHandler failed for prefix '{self.handler.prefix}'")

    def _report(self, code: int, name: str, error: BaseException):
        logger.error(f"{self.handler.prefix}{name}: {error}")
        emit_error(code, f"{self.handler.prefix}{name}: {error}")

    # --- Callbacks ---

    def _stat(self, user_data, filename, stat_buffer, flags) -> int:
        name = _decode(filename)
        try:
            size = self.handler.stat(name)
        except FileNotFoundError:
            if flags & VSI_STAT_SET_ERROR_FLAG:
                emit_error(CPLE_OPEN_FAILED, f"{self.handler.prefix}{name}: No such file or directory")
            return -1
        except Exception as e:
            self._report(CPLE_FILE_IO, name, e)
            return -1
        if stat_buffer:
            _fill_stat(stat_buffer, size)
        return 0

    def _open(self, user_data, filename, access) -> Optional[int]:
        name = _decode(filename)
        try:
            return self.handler.open(name, _decode(access) or 'rb').file_id
        except FileNotFoundError:
            emit_error(CPLE_OPEN_FAILED, f"{self.handler.prefix}{name}: No such file or directory")
        except PermissionError as e:
            emit_error(CPLE_NOT_SUPPORTED, str(e))
        except Exception as e:
            self._report(CPLE_FILE_IO, name, e)
        return None

    def _tell(self, file_id) -> int:
        try:
            return self.handler.get(file_id).tell()
        except Exception as e:
            self._report(CPLE_FILE_IO, f"#{file_id}", e)
            return 0

    def _seek(self, file_id, offset, whence) -> int:
        try:
            self.handler.get(file_id).seek(offset, whence)
            return 0
        except Exception as e:
            self._report(CPLE_FILE_IO, f"#{file_id}", e)
            return -1

    def _read(self, file_id, buffer, size, count) -> int:
        if size == 0 or count == 0:
            return 0
        try:
            virtual_file = self.handler.get(file_id)
            data = virtual_file.read(size * count)
        except Exception as e:
            self._report(CPLE_FILE_IO, f"#{file_id}", e)
            return 0
        ctypes.memmove(buffer, data, len(data))
        # Whole items only, as fread reports; the position still moved past a partial item.
        return len(data) // size

    def _read_multi_range(self, file_id, count, data_pointers, offsets, sizes) -> int:
        ranges = [(int(offsets[i]), int(sizes[i])) for i in range(count)]
        try:
            chunks = self.handler.get(file_id).read_multi(ranges)
        except Exception as e:
            self._report(CPLE_FILE_IO, f"#{file_id}", e)
            return -1
        for i, chunk in enumerate(chunks):
            ctypes.memmove(data_pointers[i], chunk, len(chunk))
            if len(chunk) < ranges[i][1]:
                return -1
        return 0

    def _eof(self, file_id) -> int:
        try:
            return int(self.handler.get(file_id).eof())
        except Exception as e:
            self._report(CPLE_FILE_IO, f"#{file_id}", e)
            return 1

    def _close(self, file_id) -> int:
        try:
            self.handler.get(file_id).close()
            return 0
        except Exception as e:
            self._report(CPLE_FILE_IO, f"#{file_id}", e)
            return -1

    def _sibling_files(self, user_data, filename) -> Optional[int]:
        # An empty list tells GDAL not to look for sidecar files.
        try:
            return gdal_library().VSICalloc(1, ctypes.sizeof(ctypes.c_void_p))
        except Exception as e:
            logger.error(f"sibling_files failed for {_decode(filename)}: {e}")
            return None


def install_plugin(handler: VSIHandler) -> PluginBridge:
    """Install `handler` as GDAL's filesystem handler for its prefix."""
    bridge = PluginBridge(handler)
    bridge.install()
    logger.debug(f"Installed VSI plugin on {handler.prefix}")
    return bridge
