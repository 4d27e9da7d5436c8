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
Shared LRU byte-range cache.

Objects are split into fixed-size blocks keyed by (object key, block index).
A read for several byte ranges resolves the blocks it needs, serves the cached
ones, and asks its loader for the missing ones in a single call, one range per
run of contiguous missing blocks. Blocks another thread is already loading are
waited for rather than fetched twice.
"""
import logging
import threading
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

ByteRange = Tuple[int, int]
RangeLoader = Callable[[str, List[ByteRange]], List[bytes]]


def contiguous_runs(block_ids: Sequence[int]) -> List[Tuple[int, int]]:
    """Group sorted block indexes into (first, count) runs."""
    runs: List[Tuple[int, int]] = []
    for block_id in block_ids:
        if runs and runs[-1][0] + runs[-1][1] == block_id:
            first, count = runs[-1]
            runs[-1] = (first, count + 1)
        else:
            runs.append((block_id, 1))
    return runs


class BlockCache:
    """Thread-safe LRU cache of fixed-size blocks."""

    def __init__(self, block_size: int, capacity: int):
        """
        Args:
            block_size: Size of one block in bytes.
            capacity: Cache size in bytes; at least one block is always kept.
        """
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        self.block_size = block_size
        self.max_blocks = max(1, capacity // block_size)
        self._blocks: 'OrderedDict[Tuple[str, int], bytes]' = OrderedDict()
        self._pending: Dict[Tuple[str, int], threading.Event] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)

    def get(self, key: str, block_id: int) -> Optional[bytes]:
        with self._lock:
            return self._lookup((key, block_id))

    def add(self, key: str, block_id: int, data: bytes):
        with self._lock:
            self._store((key, block_id), data)

    def purge(self, key: Optional[str] = None):
        """Drop every block, or only the blocks of `key`."""
        with self._lock:
            if key is None:
                self._blocks.clear()
            else:
                for cache_key in [k for k in self._blocks if k[0] == key]:
                    del self._blocks[cache_key]

    def _lookup(self, cache_key: Tuple[str, int]) -> Optional[bytes]:
        data = self._blocks.get(cache_key)
        if data is not None:
            self._blocks.move_to_end(cache_key)
        return data

    def _store(self, cache_key: Tuple[str, int], data: bytes):
        self._blocks[cache_key] = data
        self._blocks.move_to_end(cache_key)
        while len(self._blocks) > self.max_blocks:
            self._blocks.popitem(last=False)

    def read_ranges(self, key: str, ranges: Sequence[ByteRange], loader: RangeLoader) -> List[bytes]:
        """
        Serve byte ranges of `key` through the cache.

        Args:
            key: Object key.
            ranges: (offset, length) pairs.
            loader: Called as `loader(key, ranges)` with block-aligned ranges for
                the missing blocks; returns one bytes object per range, short at
                end of data.
        """
        bs = self.block_size
        wanted = sorted({
            block_id
            for offset, length in ranges if length > 0
            for block_id in range(offset // bs, (offset + length - 1) // bs + 1)
        })
        blocks = self._fetch(key, wanted, loader)
        return [self._assemble(blocks, offset, length) for offset, length in ranges]

    def _fetch(self, key: str, block_ids: List[int], loader: RangeLoader) -> Dict[int, bytes]:
        found: Dict[int, bytes] = {}
        owned: List[int] = []
        waiting: Dict[int, threading.Event] = {}
        with self._lock:
            for block_id in block_ids:
                cache_key = (key, block_id)
                data = self._lookup(cache_key)
                if data is not None:
                    found[block_id] = data
                    self.hits += 1
                elif cache_key in self._pending:
                    waiting[block_id] = self._pending[cache_key]
                else:
                    self._pending[cache_key] = threading.Event()
                    owned.append(block_id)
                    self.misses += 1

        if owned:
            try:
                loaded = self._load(key, owned, loader)
                found.update(loaded)
                with self._lock:
                    for block_id, data in loaded.items():
                        self._store((key, block_id), data)
            finally:
                with self._lock:
                    for block_id in owned:
                        self._pending.pop((key, block_id)).set()

        for block_id, event in waiting.items():
            event.wait()
            data = self.get(key, block_id)
            if data is None:
                # The loading thread failed or the block was already evicted.
                data = self._load(key, [block_id], loader)[block_id]
                self.add(key, block_id, data)
            found[block_id] = data
        return found

    def _load(self, key: str, block_ids: List[int], loader: RangeLoader) -> Dict[int, bytes]:
        bs = self.block_size
        runs = contiguous_runs(block_ids)
        chunks = loader(key, [(first * bs, count * bs) for first, count in runs])
        loaded: Dict[int, bytes] = {}
        for (first, count), chunk in zip(runs, chunks):
            for i in range(count):
                loaded[first + i] = bytes(chunk[i * bs:(i + 1) * bs])
        return loaded

    def _assemble(self, blocks: Dict[int, bytes], offset: int, length: int) -> bytes:
        if length <= 0:
            return b''
        bs = self.block_size
        end = offset + length
        out = bytearray()
        for block_id in range(offset // bs, (end - 1) // bs + 1):
            block = blocks.get(block_id, b'')
            start = max(offset, block_id * bs) - block_id * bs
            stop = min(end, (block_id + 1) * bs) - block_id * bs
            out += block[start:stop]
            if len(block) < bs:
                break
        return bytes(out)
