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
Unit tests for the configuration singleton.
"""

import pytest

from gdalio.utils.config_loader import Config, config


@pytest.mark.unit
class TestConfig:

    def test_singleton(self):
        assert Config() is config

    def test_packaged_defaults(self):
        assert config.get("vsi.buffer_size") == 65536
        assert config.get("vsi.cache_size") == 131072
        assert config.get("errors.promote_debug") is False

    def test_missing_key_default(self):
        assert config.get("vsi.no_such_key", 42) == 42
        assert config.get("no_section.key") is None

    def test_get_section(self):
        section = config.get_section("vsi")
        assert {"buffer_size", "cache_size", "max_workers", "library_path"} <= set(section)
        assert config.get_section("no_section") == {}

    def test_set_and_reload(self):
        config.set("vsi.buffer_size", 1024)
        try:
            assert config.get("vsi.buffer_size") == 1024
            config.reload()
            assert config.get("vsi.buffer_size") == 65536
        finally:
            config.reload()

    def test_override_fixture(self, config_override):
        config_override("logging.level", "DEBUG")
        assert config.get("logging.level") == "DEBUG"
