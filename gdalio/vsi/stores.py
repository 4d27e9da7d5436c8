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
Backing Stores for the Virtual File System Bridge.

A backing store is anything that can report the size of an object and serve
byte ranges of it. Stores are called from GDAL worker threads and must be safe
for concurrent use.

Capabilities:
    ByteRangeStore: `size(key)` and `read_at(key, offset, length)`.
    MultiRangeStore: adds `read_at_multi(key, ranges)`, serving several
        ranges in one round trip.

Concrete stores:
    MemoryStore: objects held in a dict (batch-capable).
    FileStore: files below a local directory.
    HttpRangeStore: objects behind an HTTP server supporting Range requests.
"""
import logging
import os
import threading
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from gdalio.utils.exceptions import BackingStoreError

logger = logging.getLogger(__name__)

ByteRange = Tuple[int, int]


class ByteRangeStore(ABC):
    """Random-access, sized object store."""

    @abstractmethod
    def size(self, key: str) -> int:
        """Return the size of `key` in bytes; raise FileNotFoundError if absent."""

    @abstractmethod
    def read_at(self, key: str, offset: int, length: int) -> bytes:
        """Return up to `length` bytes of `key` starting at `offset`; fewer at end of data."""

class MultiRangeStore(ByteRangeStore):
    """Store able to serve several byte ranges of one object in a single call."""

    @abstractmethod
    def read_at_multi(self, key: str, ranges: Sequence[ByteRange]) -> List[bytes]:
        """Return one bytes object per (offset, length) range, in request order."""

def supports_multi_range(store: ByteRangeStore) -> bool:
    """True if the store can batch range reads."""
    return isinstance(store, MultiRangeStore) or callable(getattr(store, 'read_at_multi', None))


class MemoryStore(MultiRangeStore):
    """Objects kept in memory, keyed by name."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self._objects: Dict[str, bytes] = dict(objects or {})
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes):
        with self._lock:
            self._objects[key] = bytes(data)

    def delete(self, key: str):
        with self._lock:
            self._objects.pop(key, None)

    def _get(self, key: str) -> bytes:
        with self._lock:
            data = self._objects.get(key)
        if data is None:
            raise FileNotFoundError(key)
        return data

    def size(self, key: str) -> int:
        return len(self._get(key))

    def read_at(self, key: str, offset: int, length: int) -> bytes:
        data = self._get(key)
        return data[offset:offset + length]

    def read_at_multi(self, key: str, ranges: Sequence[ByteRange]) -> List[bytes]:
        data = self._get(key)
        return [data[offset:offset + length] for offset, length in ranges]


class FileStore(ByteRangeStore):
    """Files below `root`; keys are paths relative to it."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key.lstrip('/')).resolve()
        if self.root not in path.parents and path != self.root:
            raise FileNotFoundError(key)
        return path

    def size(self, key: str) -> int:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        return path.stat().st_size

    def read_at(self, key: str, offset: int, length: int) -> bytes:
        with open(self._path(key), 'rb') as f:
            f.seek(offset, os.SEEK_SET)
            return f.read(length)


class HttpRangeStore(ByteRangeStore):
    """
    Objects served over HTTP(S) with Range request support.

    Keys are appended to `base_url`. Each request is bounded by `timeout`
    seconds, which is the only way to bound a blocking GDAL call reading from a
    slow server.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'
        self.timeout = timeout
        self.headers = dict(headers or {})

    def _url(self, key: str) -> str:
        return urllib.parse.urljoin(self.base_url, urllib.parse.quote(key.lstrip('/')))

    def _open(self, request: urllib.request.Request):
        for name, value in self.headers.items():
            request.add_header(name, value)
        try:
            return urllib.request.urlopen(request, timeout=self.timeout)
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise FileNotFoundError(request.full_url) from e
            raise

    def size(self, key: str) -> int:
        url = self._url(key)
        with self._open(urllib.request.Request(url, method='HEAD')) as response:
            length = response.headers.get('Content-Length')
        if length is None:
            raise BackingStoreError(f"{url}: server did not report a content length")
        return int(length)

    def read_at(self, key: str, offset: int, length: int) -> bytes:
        if length <= 0:
            return b''
        url = self._url(key)
        request = urllib.request.Request(url, headers={'Range': f'bytes={offset}-{offset + length - 1}'})
        try:
            with self._open(request) as response:
                data = response.read()
                status = response.status
        except urllib.error.HTTPError as e:
            if e.code == 416:
                return b''
            raise
        if status == 200:
            # Server ignored the Range header and sent the whole object.
            return data[offset:offset + length]
        return data[:length]
