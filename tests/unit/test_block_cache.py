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
Unit tests for the LRU block cache (gdalio.vsi.block_cache).
"""

import threading

import pytest

from gdalio.vsi.block_cache import BlockCache, contiguous_runs

DATA = bytes(range(256)) * 4  # 1024 bytes


class CountingLoader:
    """Range loader over DATA that records every batch it is asked for."""

    def __init__(self, data=DATA):
        self.data = data
        self.calls = []
        self.lock = threading.Lock()

    def __call__(self, key, ranges):
        with self.lock:
            self.calls.append(list(ranges))
        return [self.data[o:o + n] for o, n in ranges]


@pytest.mark.unit
class TestContiguousRuns:

    def test_runs(self):
        assert contiguous_runs([0, 1, 2, 5, 7, 8]) == [(0, 3), (5, 1), (7, 2)]

    def test_empty(self):
        assert contiguous_runs([]) == []


@pytest.mark.unit
class TestBlockCache:
    """Test LRU behavior and range assembly."""

    def test_capacity_in_blocks(self):
        assert BlockCache(64, 256).max_blocks == 4
        assert BlockCache(64, 10).max_blocks == 1

    def test_invalid_block_size(self):
        with pytest.raises(ValueError):
            BlockCache(0, 128)

    def test_lru_eviction(self):
        """Test that the least recently used block is evicted first."""
        cache = BlockCache(4, 8)
        cache.add('k', 0, b'aaaa')
        cache.add('k', 1, b'bbbb')
        assert cache.get('k', 0) == b'aaaa'
        cache.add('k', 2, b'cccc')

        assert cache.get('k', 1) is None
        assert cache.get('k', 0) == b'aaaa'
        assert len(cache) == 2

    def test_purge_by_key(self):
        cache = BlockCache(4, 64)
        cache.add('a', 0, b'aaaa')
        cache.add('b', 0, b'bbbb')
        cache.purge('a')
        assert cache.get('a', 0) is None
        assert cache.get('b', 0) == b'bbbb'
        cache.purge()
        assert len(cache) == 0

    def test_read_ranges_matches_data(self):
        cache = BlockCache(64, 1024)
        loader = CountingLoader()
        ranges = [(0, 10), (60, 10), (500, 300), (1000, 50)]

        chunks = cache.read_ranges('k', ranges, loader)

        assert chunks[0] == DATA[0:10]
        assert chunks[1] == DATA[60:70]
        assert chunks[2] == DATA[500:800]
        assert chunks[3] == DATA[1000:1024]  # short at end of data

    def test_missing_blocks_are_loaded_in_runs(self):
        """Test that contiguous missing blocks are fetched as one range."""
        cache = BlockCache(64, 1024)
        loader = CountingLoader()
        cache.read_ranges('k', [(0, 200)], loader)
        assert loader.calls == [[(0, 256)]]

        cache.read_ranges('k', [(0, 64), (256, 64), (448, 10)], loader)
        assert loader.calls[1] == [(256, 64), (448, 64)]
        assert cache.hits == 1
        assert cache.misses == 6

    def test_second_read_is_served_from_cache(self):
        cache = BlockCache(64, 1024)
        loader = CountingLoader()
        first = cache.read_ranges('k', [(100, 100)], loader)
        second = cache.read_ranges('k', [(100, 100)], loader)
        assert first == second
        assert len(loader.calls) == 1

    def test_keys_are_separate(self):
        cache = BlockCache(64, 1024)
        cache.read_ranges('a', [(0, 10)], CountingLoader(b'a' * 100))
        assert cache.read_ranges('b', [(0, 10)], CountingLoader(b'b' * 100)) == [b'b' * 10]

    def test_zero_length_range(self):
        cache = BlockCache(64, 1024)
        loader = CountingLoader()
        assert cache.read_ranges('k', [(10, 0)], loader) == [b'']
        assert loader.calls == []

    def test_loader_failure_releases_waiters(self):
        """Test that a failing load does not leave blocks marked in flight."""
        cache = BlockCache(64, 1024)

        def failing(key, ranges):
            raise IOError("store down")

        with pytest.raises(IOError):
            cache.read_ranges('k', [(0, 10)], failing)
        assert cache.read_ranges('k', [(0, 10)], CountingLoader()) == [DATA[:10]]

    def test_concurrent_readers_share_loads(self):
        """Test that concurrent readers of the same block load it once."""
        cache = BlockCache(64, 1024)
        gate = threading.Event()
        loader = CountingLoader()

        def slow(key, ranges):
            gate.wait(5)
            return loader(key, ranges)

        results = []
        threads = [threading.Thread(target=lambda: results.append(cache.read_ranges('k', [(0, 32)], slow)))
                   for _ in range(4)]
        for t in threads:
            t.start()
        gate.set()
        for t in threads:
            t.join()

        assert all(r == [DATA[:32]] for r in results)
        assert len(results) == 4
        assert len(loader.calls) == 1
