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
Context Variable Management for GDALIO.

This module defines context variables using Python's `contextvars`. Each thread
(and each asyncio task) sees its own value, so a default error handler installed
by one caller never changes how diagnostics are classified for a call running
concurrently on another thread.
"""
from contextvars import ContextVar
from typing import Callable, Optional

# The error handler applied to calls that do not pass their own handler.
error_handler_context: ContextVar[Optional[Callable]] = ContextVar('error_handler', default=None)
