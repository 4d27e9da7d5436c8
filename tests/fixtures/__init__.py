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
Test fixtures and mock data factories for GDALIO tests.

This package contains:
- MockRaster: Factory for MEM datasets, GeoTIFF files and GeoTIFF bytes
"""

from tests.fixtures.mock_raster_factory import MockRaster

__all__ = ['MockRaster']
