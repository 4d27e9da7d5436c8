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
Band Histogram Tool.

This module powers the 'histogram' command: it computes the histogram of one
band, either with GDAL's default buckets for the band's data type or with an
explicit bucket count and range, and prints one line per bucket.
"""

import logging

from gdalio.core.dataset import open_dataset
from gdalio.utils.data_models import Histogram
from gdalio.utils.options import HistogramOptions, OpenOptions
from gdalio.utils.script_arguments import HistogramArguments

logger = logging.getLogger('compute_histogram')


def format_histogram(histogram: Histogram):
    """Yield one '[min, max): count' line per bucket."""
    for bucket in histogram:
        yield f"[{bucket.min:g}, {bucket.max:g}): {bucket.count}"

def compute_histogram(args: HistogramArguments) -> Histogram:
    """Main function for the histogram tool."""
    options = HistogramOptions(
        approximate=args.approximate,
        intervals=args.intervals,
        include_out_of_range=args.include_out_of_range,
    )
    with open_dataset(str(args.input_path), OpenOptions(raster_only=True, shared=args.shared)) as ds:
        histogram = ds.band(args.band).histogram(options)
    logger.debug(f"{len(histogram)} buckets over [{histogram.min:g}, {histogram.max:g}), {histogram.total()} samples")
    for line in format_histogram(histogram):
        logger.info(line)
    return histogram
