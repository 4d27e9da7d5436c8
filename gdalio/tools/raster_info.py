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
Raster Structure Reporting Tool.

This module powers the 'info' command: it opens a dataset and prints its size,
band count and, per band, the data type, block size, no-data value and number
of overviews.
"""

import logging
from typing import List

from gdalio.core.dataset import open_dataset
from gdalio.utils.options import OpenOptions
from gdalio.utils.script_arguments import InfoArguments

logger = logging.getLogger('raster_info')


def describe_dataset(path: str, shared: bool = False) -> List[str]:
    """Return the report lines for the dataset at `path`."""
    lines = []
    with open_dataset(path, OpenOptions(raster_only=True, shared=shared)) as ds:
        structure = ds.structure()
        lines.append(f"File: {path}")
        lines.append(f"Driver: {structure.driver}")
        lines.append(f"Size: {structure.size_x} x {structure.size_y}")
        lines.append(f"Bands: {structure.band_count}")
        for index, band in enumerate(ds.bands(), start=1):
            band_structure = structure.bands[index - 1]
            no_data = band.no_data()
            lines.append(
                f"Band {index}: type={band_structure.gdal_data_type} "
                f"block={band_structure.block_size_x}x{band_structure.block_size_y} "
                f"nodata={'none' if no_data is None else format(no_data, 'g')} "
                f"overviews={len(band.overviews())}")
    return lines

def raster_info(args: InfoArguments):
    """Main function for the info tool."""
    for line in describe_dataset(str(args.input_path), shared=args.shared):
        logger.info(line)
