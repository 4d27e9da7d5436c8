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
Pytest configuration and shared fixtures for the GDALIO test suite.

This module provides:
- Pytest configuration (GDAL error mode)
- Shared fixtures for datasets, raster files and VSI prefixes
- Test utility functions

Fixtures are organized by scope:
- session: Created once per test session (expensive setup)
- function: Created for each test function (default)

Example:
    >>> def test_using_fixture(mem_dataset):
    ...     '''Test using the mem_dataset fixture.'''
    ...     assert mem_dataset.band_count == 1
"""

import itertools
import uuid

import pytest
from osgeo import gdal, ogr, osr

# pythonpath is configured in pyproject.toml to include project root
from tests.fixtures.mock_raster_factory import MockRaster

from gdalio.core.dataset import Dataset
from gdalio.utils.config_loader import config as gdalio_config


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """
    Run GDAL with exceptions disabled.

    Every diagnostic then reaches the error scope's handler directly. Exception
    mode is covered by tests that enable it with `gdal.ExceptionMgr`.
    """
    gdal.DontUseExceptions()
    ogr.DontUseExceptions()
    osr.DontUseExceptions()


# =============================================================================
# Session-scope Fixtures (Created once per test session)
# =============================================================================

@pytest.fixture(scope="session")
def temp_dir(tmp_path_factory):
    """
    Create a temporary directory for the entire test session.

    Returns:
        Path: Path to temporary directory
    """
    return tmp_path_factory.mktemp("gdalio_tests")


_prefix_counter = itertools.count(1)


# =============================================================================
# Function-scope Fixtures (Created for each test)
# =============================================================================

@pytest.fixture
def unique_prefix():
    """
    Return a prefix never registered before in this process.

    Prefix registrations cannot be undone, so every test that registers a
    backing store needs a fresh one.

    Returns:
        str: A prefix of the form '/vsitest<N>_<hex>/'
    """
    return f"/vsitest{next(_prefix_counter)}_{uuid.uuid4().hex[:8]}/"


@pytest.fixture
def mock_raster():
    """
    Create a 16x16 single-band Byte raster holding the values 0..255.

    Returns:
        MockRaster: Configured mock raster
    """
    return MockRaster(width=16, height=16, bands=1, data_type=gdal.GDT_Byte)


@pytest.fixture
def mock_raster_multiband():
    """
    Create an 8x6 3-band Int16 raster.

    Returns:
        MockRaster: Configured mock raster with 3 bands
    """
    return MockRaster(width=8, height=6, bands=3, data_type=gdal.GDT_Int16)


@pytest.fixture
def mem_dataset(mock_raster):
    """
    Wrap an in-memory dataset built from `mock_raster` in an owning handle.

    The handle is closed at teardown unless the test closed it already.

    Returns:
        Dataset: Open dataset handle
    """
    ds = Dataset(mock_raster.to_gdal_dataset(), name='mem:mock_raster')
    yield ds
    if ds.is_open():
        ds.close()


@pytest.fixture
def mem_dataset_multiband(mock_raster_multiband):
    """
    Wrap an in-memory dataset built from `mock_raster_multiband`.

    Returns:
        Dataset: Open 3-band dataset handle
    """
    ds = Dataset(mock_raster_multiband.to_gdal_dataset(), name='mem:mock_raster_multiband')
    yield ds
    if ds.is_open():
        ds.close()


@pytest.fixture
def raster_file(tmp_path, mock_raster):
    """
    Write `mock_raster` to a GeoTIFF in a per-test directory.

    Returns:
        Path: Path to the GeoTIFF
    """
    return mock_raster.save_to_file(tmp_path / "ramp.tif")


@pytest.fixture
def config_override():
    """
    Set configuration values for one test and restore them afterwards.

    Example:
        >>> def test_cache_off(config_override):
        ...     config_override('vsi.cache_size', 0)
    """
    saved = []

    def _set(key, value):
        saved.append((key, gdalio_config.get(key)))
        gdalio_config.set(key, value)

    yield _set
    for key, value in reversed(saved):
        gdalio_config.set(key, value)


# =============================================================================
# Utility Functions
# =============================================================================

def collecting_handler(sink):
    """
    Build an error handler that records every diagnostic in `sink` and drops it.

    Args:
        sink: List receiving (severity, code, message) tuples.

    Returns:
        Callable usable as an ErrorHandler.
    """
    def handler(severity, code, message):
        sink.append((severity, code, message))
        return None
    return handler
