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
Virtual File System Handler.

Host-side half of the VSI bridge. A `VSIHandler` serves one registered prefix:
it opens `VirtualFile` objects on its backing store, keeps the table of open
files addressed by the integer ids GDAL holds, and routes every read through
the optional shared `BlockCache`.

Multi-range reads are coalesced (overlapping and adjacent ranges merged) and
sent to the store in one `read_at_multi` call when the store supports it, or
as individual `read_at` calls on a small thread pool when it does not. The
bytes returned to GDAL are the same either way.
"""
import itertools
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

from gdalio.utils.config_loader import config
from gdalio.utils.exceptions import BackingStoreError, ClosedHandleError
from gdalio.utils.io_constants import DEFAULT_VSI_BUFFER_SIZE, DEFAULT_VSI_CACHE_SIZE, DEFAULT_VSI_MAX_WORKERS
from gdalio.utils.options import VSIHandlerOptions
from gdalio.vsi.block_cache import BlockCache
from gdalio.vsi.stores import ByteRange, ByteRangeStore, supports_multi_range

logger = logging.getLogger(__name__)


def coalesce_ranges(ranges: Sequence[ByteRange]) -> Tuple[List[ByteRange], List[Tuple[int, int]]]:
    """
    Merge overlapping or adjacent byte ranges.

    Returns:
        The merged ranges sorted by offset, and for each input range its
        (merged index, offset inside the merged range).

    Example:
        >>> coalesce_ranges([(100, 10), (0, 50), (50, 10)])
        ([(0, 60), (100, 10)], [(1, 0), (0, 0), (0, 50)])
    """
    order = sorted(range(len(ranges)), key=lambda i: ranges[i][0])
    merged: List[ByteRange] = []
    placement: List[Tuple[int, int]] = [(0, 0)] * len(ranges)
    for i in order:
        offset, length = ranges[i]
        if merged and offset <= merged[-1][0] + merged[-1][1]:
            m_offset, m_length = merged[-1]
            merged[-1] = (m_offset, max(m_length, offset + length - m_offset))
        else:
            merged.append((offset, length))
        placement[i] = (len(merged) - 1, offset - merged[-1][0])
    return merged, placement


class VirtualFile:
    """
    One open virtual file: position, size, EOF flag and read-ahead buffer.

    GDAL may read the same file from several threads; all state is guarded by
    the file's lock.
    """

    def __init__(self, handler: 'VSIHandler', key: str, size: int):
        self.handler = handler
        self.key = key
        self.size = size
        self.file_id = 0
        self._pos = 0
        self._eof = False
        self._closed = False
        self._buffer = b''
        self._buffer_offset = 0
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self):
        if self._closed:
            raise ClosedHandleError(f"virtual file '{self.key}' is closed")

    def tell(self) -> int:
        with self._lock:
            return self._pos

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        with self._lock:
            self._check_open()
            if whence == os.SEEK_SET:
                pos = offset
            elif whence == os.SEEK_CUR:
                pos = self._pos + offset
            elif whence == os.SEEK_END:
                pos = self.size + offset
            else:
                raise ValueError(f"invalid whence: {whence}")
            if pos < 0:
                raise ValueError(f"negative seek position: {pos}")
            self._pos = pos
            self._eof = False
            return pos

    def eof(self) -> bool:
        with self._lock:
            return self._eof

    def read(self, length: int) -> bytes:
        """Read from the current position, setting EOF on a short read."""
        with self._lock:
            self._check_open()
            data = self._read_at(self._pos, length)
            self._pos += len(data)
            if len(data) < length:
                self._eof = True
            return data

    def read_at(self, offset: int, length: int) -> bytes:
        with self._lock:
            self._check_open()
            return self._read_at(offset, length)

    def _read_at(self, offset: int, length: int) -> bytes:
        if length <= 0 or offset >= self.size:
            return b''
        length = min(length, self.size - offset)
        buffer_end = self._buffer_offset + len(self._buffer)
        if self._buffer and self._buffer_offset <= offset and offset + length <= buffer_end:
            start = offset - self._buffer_offset
            return self._buffer[start:start + length]
        buffer_size = self.handler.buffer_size
        if buffer_size and length < buffer_size:
            self._buffer = self.handler.fetch(self.key, offset, min(buffer_size, self.size - offset))
            self._buffer_offset = offset
            return self._buffer[:length]
        return self.handler.fetch(self.key, offset, length)

    def read_multi(self, ranges: Sequence[ByteRange]) -> List[bytes]:
        """Read several ranges in one batch; ranges are clamped to the file size."""
        self._check_open()
        clamped = [(offset, max(0, min(length, self.size - offset))) for offset, length in ranges]
        return self.handler.fetch_multi(self.key, clamped)

    def close(self):
        with self._lock:
            if self._closed:
                raise ClosedHandleError(f"virtual file '{self.key}' was already closed")
            self._closed = True
            self._buffer = b''
        self.handler.release(self.file_id)


class VSIHandler:
    """Serves one registered prefix from a backing store."""

    def __init__(self, prefix: str, store: ByteRangeStore, options: Optional[VSIHandlerOptions] = None):
        options = options or VSIHandlerOptions()
        self.prefix = prefix
        self.store = store
        self.strip_prefix = options.strip_prefix
        self.buffer_size = self._setting(options.buffer_size, 'vsi.buffer_size', DEFAULT_VSI_BUFFER_SIZE)
        cache_size = self._setting(options.cache_size, 'vsi.cache_size', DEFAULT_VSI_CACHE_SIZE)
        self.max_workers = max(1, self._setting(options.max_workers, 'vsi.max_workers', DEFAULT_VSI_MAX_WORKERS))
        self.multi_range = supports_multi_range(store)
        if options.cache is not None:
            self.cache: Optional[BlockCache] = options.cache
        elif cache_size > 0:
            self.cache = BlockCache(self.buffer_size or DEFAULT_VSI_BUFFER_SIZE, cache_size)
        else:
            self.cache = None
        self._files: Dict[int, VirtualFile] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @staticmethod
    def _setting(value: Optional[int], key: str, default: int) -> int:
        if value is not None:
            return value
        return int(config.get(key, default))

    def store_key(self, name: str) -> str:
        """Key handed to the store for a name with the prefix already removed."""
        return name if self.strip_prefix else self.prefix + name

    # --- File table ---

    def stat(self, name: str) -> int:
        """Size of `name`; raises FileNotFoundError when the store has no such key."""
        return self.store.size(self.store_key(name))

    def open(self, name: str, access: str = 'rb') -> VirtualFile:
        """Open `name` (prefix removed) for reading."""
        if any(flag in access for flag in ('w', 'a', '+')):
            raise PermissionError(f"{self.prefix}{name}: virtual files are read-only")
        key = self.store_key(name)
        size = self.store.size(key)
        virtual_file = VirtualFile(self, key, size)
        with self._lock:
            virtual_file.file_id = next(self._ids)
            self._files[virtual_file.file_id] = virtual_file
        logger.debug(f"Opened {self.prefix}{name} ({size} bytes) as file #{virtual_file.file_id}")
        return virtual_file

    def get(self, file_id: int) -> VirtualFile:
        with self._lock:
            virtual_file = self._files.get(file_id)
        if virtual_file is None:
            raise ClosedHandleError(f"virtual file #{file_id} on {self.prefix} is not open")
        return virtual_file

    def release(self, file_id: int):
        with self._lock:
            self._files.pop(file_id, None)

    def open_file_count(self) -> int:
        with self._lock:
            return len(self._files)

    # --- Reads ---

    def fetch(self, key: str, offset: int, length: int) -> bytes:
        if length <= 0:
            return b''
        if self.cache is not None:
            return self.cache.read_ranges(self.prefix + key, [(offset, length)],
                                          lambda _k, ranges: self._read_ranges(key, ranges))[0]
        return self._read_one(key, offset, length)

    def fetch_multi(self, key: str, ranges: Sequence[ByteRange]) -> List[bytes]:
        merged, placement = coalesce_ranges(ranges)
        if self.cache is not None:
            chunks = self.cache.read_ranges(self.prefix + key, merged,
                                            lambda _k, rs: self._read_ranges(key, rs))
        else:
            chunks = self._read_ranges(key, merged)
        results = []
        for (offset, length), (index, start) in zip(ranges, placement):
            results.append(chunks[index][start:start + length])
        return results

    def _read_one(self, key: str, offset: int, length: int) -> bytes:
        data = self.store.read_at(key, offset, length)
        if data is None:
            raise BackingStoreError(f"{key}: store returned no data for range ({offset}, {length})")
        return bytes(data[:length])

    def _read_ranges(self, key: str, ranges: Sequence[ByteRange]) -> List[bytes]:
        """Load ranges from the store: one batched call when possible."""
        if len(ranges) == 1:
            return [self._read_one(key, *ranges[0])]
        if self.multi_range:
            chunks = list(self.store.read_at_multi(key, list(ranges)))
            if len(chunks) != len(ranges):
                raise BackingStoreError(
                    f"{key}: store returned {len(chunks)} chunks for {len(ranges)} ranges")
            return [bytes(chunk[:length]) for chunk, (_, length) in zip(chunks, ranges)]
        if self.max_workers == 1:
            return [self._read_one(key, offset, length) for offset, length in ranges]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(ranges))) as pool:
            return list(pool.map(lambda r: self._read_one(key, r[0], r[1]), ranges))
