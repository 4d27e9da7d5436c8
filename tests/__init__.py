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
GDAL I/O Bridge Test Suite.

This package contains tests for GDALIO components including:
- Unit tests for buffers, spacing, error capture, handles and the VSI layer
- Integration tests that run real GDAL drivers
- End-to-end tests for CLI commands
"""
