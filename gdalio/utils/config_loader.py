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
Configuration Management for the GDAL I/O Bridge.

This module provides a singleton configuration manager (`Config`) that loads,
parses, and provides access to settings from the package `config.toml` file.
It ensures that configuration values are loaded only once and are available
throughout the library.

Classes:
    Config: A singleton class for managing library-wide configuration.
"""
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class Config:
    """Singleton configuration manager"""
    _instance = None
    _config: Dict[str, Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_config()
        return cls._instance

    def _load_config(self):
        """Load configuration from config.toml"""
        config_path = Path(__file__).parent.parent / "config.toml"
        self._config = self._default_config()
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    loaded = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning(f"Could not load config.toml: {e}")
                return
            for section, values in loaded.items():
                if isinstance(values, dict):
                    self._config.setdefault(section, {}).update(values)
                else:
                    self._config[section] = values

    def _default_config(self) -> Dict[str, Any]:
        """Default configuration if config.toml doesn't exist"""
        return {
            "vsi": {
                "buffer_size": 64 * 1024,
                "cache_size": 128 * 1024,
                "max_workers": 8,
                "library_path": ""
            },
            "errors": {
                "promote_debug": False
            },
            "logging": {
                "level": "INFO",
                "file": ""
            }
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation

        Args:
            key: Configuration key in dot notation (e.g., "vsi.buffer_size")
            default: Default value if key is not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("vsi.buffer_size")
            65536
        """
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section

        Args:
            section: Section name (e.g., "vsi", "errors", "logging")

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def set(self, key: str, value: Any):
        """Set configuration value using dot notation

        Args:
            key: Configuration key in dot notation
            value: Value to set

        Note:
            This only modifies the in-memory configuration.
            Changes are not persisted to config.toml.
        """
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value

    def reload(self):
        """Reload configuration from config.toml"""
        self._load_config()

# Singleton instance
config = Config()
