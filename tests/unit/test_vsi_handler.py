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
Unit tests for the Python half of the VSI bridge.

Covers range coalescing, the virtual file state machine, read-ahead
buffering, the block cache integration and the backing stores. No plugin
is installed here; see tests/integration/test_vsi_plugin.py for that.
"""

import ctypes
import os

import pytest

from tests.fixtures.instrumented_stores import InstrumentedMultiStore, InstrumentedStore

from gdalio.utils.exceptions import BackingStoreError, ClosedHandleError
from gdalio.utils.io_constants import CPLE_FILE_IO
from gdalio.utils.options import VSIHandlerOptions
from gdalio.vsi.block_cache import BlockCache
from gdalio.vsi.handler import VSIHandler, coalesce_ranges
from gdalio.vsi.native_plugin import PluginBridge
from gdalio.vsi.stores import FileStore, MemoryStore, supports_multi_range

PAYLOAD = bytes(range(256)) * 16  # 4096 bytes


def make_handler(store, **options):
    return VSIHandler('/vsiunit/', store, VSIHandlerOptions(strip_prefix=True, **options))


# =============================================================================
# Range coalescing
# =============================================================================

@pytest.mark.unit
@pytest.mark.vsi
class TestCoalesceRanges:

    def test_documented_example(self):
        merged, placement = coalesce_ranges([(100, 10), (0, 50), (50, 10)])
        assert merged == [(0, 60), (100, 10)]
        assert placement == [(1, 0), (0, 0), (0, 50)]

    def test_overlapping_ranges(self):
        merged, placement = coalesce_ranges([(0, 100), (50, 100), (10, 5)])
        assert merged == [(0, 150)]
        assert placement == [(0, 0), (0, 50), (0, 10)]

    def test_disjoint_ranges_stay_apart(self):
        merged, _ = coalesce_ranges([(0, 10), (11, 10)])
        assert merged == [(0, 10), (11, 10)]

    def test_empty(self):
        assert coalesce_ranges([]) == ([], [])


# =============================================================================
# Virtual files
# =============================================================================

@pytest.mark.unit
@pytest.mark.vsi
class TestVirtualFile:
    """Test position, EOF and read semantics of an open virtual file."""

    def test_sequential_reads(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        vf = handler.open('a.bin')

        assert vf.read(10) == PAYLOAD[:10]
        assert vf.tell() == 10
        assert vf.read(5) == PAYLOAD[10:15]
        assert not vf.eof()

    def test_short_read_sets_eof(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        vf = handler.open('a.bin')
        vf.seek(4090)

        assert vf.read(100) == PAYLOAD[4090:]
        assert vf.eof()
        assert vf.tell() == 4096

    def test_seek_clears_eof(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        vf = handler.open('a.bin')
        vf.seek(0, os.SEEK_END)
        assert vf.read(1) == b''
        assert vf.eof()
        vf.seek(-6, os.SEEK_CUR)
        assert not vf.eof()
        assert vf.tell() == 4090

    def test_seek_past_end_reads_nothing(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        vf = handler.open('a.bin')
        vf.seek(10000)
        assert vf.read(4) == b''

    def test_invalid_seek(self):
        vf = make_handler(MemoryStore({'a.bin': PAYLOAD})).open('a.bin')
        with pytest.raises(ValueError):
            vf.seek(-1)
        with pytest.raises(ValueError):
            vf.seek(0, 7)

    def test_double_close(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        vf = handler.open('a.bin')
        vf.close()
        assert handler.open_file_count() == 0
        with pytest.raises(ClosedHandleError):
            vf.close()
        with pytest.raises(ClosedHandleError):
            vf.read(1)
        with pytest.raises(ClosedHandleError):
            handler.get(vf.file_id)

    def test_file_ids_are_distinct(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        first, second = handler.open('a.bin'), handler.open('a.bin')
        assert first.file_id != second.file_id
        assert handler.get(second.file_id) is second
        assert handler.open_file_count() == 2

    def test_missing_key(self):
        with pytest.raises(FileNotFoundError):
            make_handler(MemoryStore()).open('missing.bin')

    def test_write_access_is_refused(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        for access in ('wb', 'r+b', 'ab'):
            with pytest.raises(PermissionError):
                handler.open('a.bin', access)

    def test_read_multi_clamps_to_size(self):
        vf = make_handler(MemoryStore({'a.bin': PAYLOAD})).open('a.bin')
        chunks = vf.read_multi([(0, 4), (4094, 10), (5000, 4)])
        assert chunks == [PAYLOAD[:4], PAYLOAD[4094:], b'']


# =============================================================================
# Buffering, caching and batching
# =============================================================================

@pytest.mark.unit
@pytest.mark.vsi
class TestHandlerReads:
    """Test that buffering, caching and batching never change the bytes returned."""

    def test_store_key(self):
        store = MemoryStore()
        assert VSIHandler('mem://', store, VSIHandlerOptions(strip_prefix=True)).store_key('a') == 'a'
        assert VSIHandler('mem://', store, VSIHandlerOptions(strip_prefix=False)).store_key('a') == 'mem://a'

    def test_settings_fall_back_to_config(self, config_override):
        config_override('vsi.buffer_size', 1024)
        config_override('vsi.cache_size', 0)
        handler = make_handler(MemoryStore())
        assert handler.buffer_size == 1024
        assert handler.cache is None

    def test_read_ahead_buffer(self):
        """Test that small sequential reads are served from one buffered fetch."""
        store = InstrumentedStore({'a.bin': PAYLOAD})
        vf = make_handler(store, buffer_size=1024, cache_size=0).open('a.bin')
        data = b''.join(vf.read(16) for _ in range(64))

        assert data == PAYLOAD[:1024]
        assert store.reads == [(0, 1024)]

    def test_large_reads_bypass_buffer(self):
        store = InstrumentedStore({'a.bin': PAYLOAD})
        vf = make_handler(store, buffer_size=256, cache_size=0).open('a.bin')
        assert vf.read(2000) == PAYLOAD[:2000]
        assert store.reads == [(0, 2000)]

    def test_no_buffer_no_cache(self):
        store = InstrumentedStore({'a.bin': PAYLOAD})
        vf = make_handler(store, buffer_size=0, cache_size=0).open('a.bin')
        vf.read(3)
        vf.read(3)
        assert store.reads == [(0, 3), (3, 3)]

    def test_cache_serves_repeated_reads(self):
        store = InstrumentedStore({'a.bin': PAYLOAD})
        handler = make_handler(store, buffer_size=0, cache=BlockCache(512, 4096))
        for _ in range(3):
            vf = handler.open('a.bin')
            assert vf.read(700) == PAYLOAD[:700]
            vf.close()
        assert store.reads == [(0, 1024)]

    def test_multi_range_store_gets_one_batch(self):
        """Test that a batch-capable store serves coalesced ranges in one call."""
        store = InstrumentedMultiStore({'a.bin': PAYLOAD})
        vf = make_handler(store, cache_size=0).open('a.bin')
        ranges = [(3000, 100), (0, 50), (50, 50), (1000, 10)]

        chunks = vf.read_multi(ranges)

        assert chunks == [PAYLOAD[o:o + n] for o, n in ranges]
        assert store.batches == [[(0, 100), (1000, 10), (3000, 100)]]
        assert store.reads == []

    def test_single_range_store_falls_back_to_parallel_reads(self):
        store = InstrumentedStore({'a.bin': PAYLOAD})
        vf = make_handler(store, cache_size=0, max_workers=4).open('a.bin')
        ranges = [(3000, 100), (0, 50), (1000, 10)]

        assert vf.read_multi(ranges) == [PAYLOAD[o:o + n] for o, n in ranges]
        assert sorted(store.reads) == [(0, 50), (1000, 10), (3000, 100)]

    def test_serial_reads_with_one_worker(self):
        store = InstrumentedStore({'a.bin': PAYLOAD})
        vf = make_handler(store, cache_size=0, max_workers=1).open('a.bin')
        vf.read_multi([(0, 10), (100, 10)])
        assert store.reads == [(0, 10), (100, 10)]

    def test_batching_is_transparent(self):
        """Test that every configuration returns the same bytes."""
        ranges = [(4000, 200), (17, 300), (100, 50), (2048, 1)]
        expected = [PAYLOAD[o:o + n] for o, n in ranges]
        configurations = [
            (InstrumentedStore, dict(cache_size=0, buffer_size=0)),
            (InstrumentedStore, dict(cache_size=2048, buffer_size=256)),
            (InstrumentedMultiStore, dict(cache_size=0)),
            (InstrumentedMultiStore, dict(cache_size=8192, buffer_size=512)),
        ]
        for store_cls, options in configurations:
            vf = make_handler(store_cls({'a.bin': PAYLOAD}), **options).open('a.bin')
            assert vf.read_multi(ranges) == expected, (store_cls.__name__, options)

    def test_store_returning_none(self):
        class BrokenStore(InstrumentedStore):
            def read_at(self, key, offset, length):
                return None

        vf = make_handler(BrokenStore({'a.bin': PAYLOAD}), cache_size=0, buffer_size=0).open('a.bin')
        with pytest.raises(BackingStoreError):
            vf.read(10)


# =============================================================================
# Stores
# =============================================================================

@pytest.mark.unit
@pytest.mark.vsi
class TestStores:

    def test_memory_store(self):
        store = MemoryStore({'a': b'hello'})
        store.put('b', b'world')
        assert store.size('b') == 5
        assert store.read_at('a', 1, 3) == b'ell'
        assert store.read_at_multi('a', [(0, 1), (4, 5)]) == [b'h', b'o']
        store.delete('a')
        with pytest.raises(FileNotFoundError):
            store.size('a')

    def test_file_store(self, tmp_path):
        (tmp_path / 'sub').mkdir()
        (tmp_path / 'sub' / 'data.bin').write_bytes(PAYLOAD)
        store = FileStore(tmp_path)

        assert store.size('sub/data.bin') == 4096
        assert store.size('/sub/data.bin') == 4096
        assert store.read_at('sub/data.bin', 4090, 100) == PAYLOAD[4090:]
        with pytest.raises(FileNotFoundError):
            store.size('sub/missing.bin')

    def test_file_store_stays_below_root(self, tmp_path):
        store = FileStore(tmp_path / 'root')
        with pytest.raises(FileNotFoundError):
            store.size('../outside.bin')

    def test_capabilities(self):
        assert supports_multi_range(MemoryStore())
        assert supports_multi_range(InstrumentedMultiStore({}))
        assert not supports_multi_range(InstrumentedStore({}))


# =============================================================================
# Plugin callbacks
# =============================================================================

@pytest.mark.unit
@pytest.mark.vsi
class TestPluginCallbacks:
    """Call the ctypes callbacks directly, without installing them in GDAL."""

    def test_short_read_reports_whole_items(self):
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD[:10]}), buffer_size=0, cache_size=0)
        bridge = PluginBridge(handler)
        virtual_file = handler.open('a.bin')
        buffer = ctypes.create_string_buffer(16)

        items = bridge._read(virtual_file.file_id, ctypes.addressof(buffer), 4, 4)

        assert items == 2
        assert virtual_file.tell() == 10
        assert buffer.raw[:10] == PAYLOAD[:10]

    def test_read_of_unknown_file_returns_zero(self, monkeypatch):
        reported = []
        handler = make_handler(MemoryStore({'a.bin': PAYLOAD}))
        bridge = PluginBridge(handler)
        monkeypatch.setattr(bridge, '_report', lambda code, name, error: reported.append(code))
        buffer = ctypes.create_string_buffer(8)

        assert bridge._read(999, ctypes.addressof(buffer), 1, 8) == 0
        assert reported == [CPLE_FILE_IO]
