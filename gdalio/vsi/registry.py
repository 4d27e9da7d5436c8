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
Process-wide registration table for virtual file system prefixes.

A prefix is registered once and stays registered for the life of the process.
Registering a prefix twice, or a prefix GDAL already serves (such as
`/vsimem/`), raises `AlreadyRegisteredError`.

Example:
    >>> store = MemoryStore({'scene.tif': tiff_bytes})
    >>> register_backing_store('mem://', store, VSIHandlerOptions(strip_prefix=True))
    >>> ds = open_dataset('mem://scene.tif')
"""
import logging
import threading
from typing import Dict, List, Optional

from osgeo import gdal

from gdalio.core.error_bridge import ErrorScope
from gdalio.utils.exceptions import AlreadyRegisteredError, ContractViolation
from gdalio.utils.options import VSIHandlerOptions
from gdalio.vsi.handler import VSIHandler
from gdalio.vsi.native_plugin import install_plugin
from gdalio.vsi.stores import ByteRangeStore

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_handlers: Dict[str, VSIHandler] = {}


def register_backing_store(prefix: str, store: ByteRangeStore,
                           options: Optional[VSIHandlerOptions] = None) -> VSIHandler:
    """
    Serve `prefix` from `store`.

    Args:
        prefix: Scheme prefix such as 'mem://' or '/vsiapp/'.
        store: Object with `size(key)` and `read_at(key, offset, length)`;
            `read_at_multi(key, ranges)` is used when present.
        options: Prefix stripping, buffer and cache sizes, error handler.

    Returns:
        The handler serving the prefix.

    Raises:
        AlreadyRegisteredError: The prefix is already served.
    """
    if not prefix:
        raise ContractViolation("prefix must not be empty")
    if not callable(getattr(store, 'size', None)) or not callable(getattr(store, 'read_at', None)):
        raise ContractViolation(f"{type(store).__name__} does not provide size() and read_at()")
    options = options or VSIHandlerOptions()
    with _lock:
        if prefix in _handlers or prefix in (gdal.GetFileSystemsPrefixes() or []):
            raise AlreadyRegisteredError(f"a handler is already registered on prefix '{prefix}'")
        handler = VSIHandler(prefix, store, options)
        with ErrorScope.for_options(options):
            install_plugin(handler)
        _handlers[prefix] = handler
    logger.debug(
        f"Registered {type(store).__name__} on {prefix} (buffer={handler.buffer_size}, "
        f"cache={'off' if handler.cache is None else handler.cache.max_blocks}, multi_range={handler.multi_range})")
    return handler

def has_backing_store(prefix: str) -> bool:
    with _lock:
        return prefix in _handlers

def get_handler(prefix: str) -> Optional[VSIHandler]:
    with _lock:
        return _handlers.get(prefix)

def registered_prefixes() -> List[str]:
    with _lock:
        return sorted(_handlers)
