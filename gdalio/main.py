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
Command-line interface for the GDAL I/O Bridge (GDALIO).

This script provides the main entry point for the `gdalio` command,
parsing user arguments and dispatching them to the appropriate tool.
"""
import argparse
import logging
import sys
from osgeo import gdal
from gdalio.utils.log_helpers import setup_logger, shutdown_logger
from gdalio.utils.script_arguments import HistogramArguments, InfoArguments

def positive_int(value: str) -> int:
    """Validate that the value is a positive integer."""
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got '{value}'")
    if ivalue < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got '{ivalue}'")
    return ivalue

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='GDALIO',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='tool', help='Available tools')
    subparsers.required = True

    # --- Raster Info Tool ---
    info_parser = subparsers.add_parser(
        'info',
        help='Report the size, bands, block layout and overviews of a raster dataset.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    info_parser.add_argument('-i', '--input', required=True, dest='input_path', help='Path to the input raster dataset.')
    info_parser.add_argument('--shared', action='store_true', dest='shared', help='Open the dataset in shared mode.')
    info_parser.add_argument('-v', '--verbose', action='store_true', dest='verbose', help='Enable verbose logging.')

    # --- Histogram Tool ---
    histogram_parser = subparsers.add_parser(
        'histogram',
        help='Compute the histogram of one band of a raster dataset.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    histogram_parser.add_argument('-i', '--input', required=True, dest='input_path', help='Path to the input raster dataset.')
    histogram_parser.add_argument('-b', '--band', type=positive_int, default=1, dest='band', help='Band index (1-based).')
    histogram_parser.add_argument('--buckets', type=positive_int, dest='buckets', help='Number of buckets. Requires --min and --max.')
    histogram_parser.add_argument('--min', type=float, dest='min_value', help='Lower bound of the first bucket.')
    histogram_parser.add_argument('--max', type=float, dest='max_value', help='Upper bound of the last bucket.')
    histogram_parser.add_argument('--include-out-of-range', action='store_true', dest='include_out_of_range', help='Count values outside [min, max) in the edge buckets.')
    histogram_parser.add_argument('--approximate', action='store_true', dest='approximate', help='Allow computation from overviews or a subsample.')
    histogram_parser.add_argument('--shared', action='store_true', dest='shared', help='Open the dataset in shared mode.')
    histogram_parser.add_argument('-v', '--verbose', action='store_true', dest='verbose', help='Enable verbose logging.')
    return parser

def main(argv=None):
    """
    Main function to parse arguments and call the appropriate tool.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    tool = args.tool
    args_dict = vars(args)
    args_dict.pop('tool', None)

    # --- Logger Setup ---
    log_level = logging.DEBUG if args.verbose else None
    logger = setup_logger(level=log_level)
    gdal.UseExceptions()

    try:
        if tool == 'info':
            from gdalio.tools.raster_info import raster_info
            script_args = InfoArguments(**args_dict)
            raster_info(script_args)
        elif tool == 'histogram':
            from gdalio.tools.compute_histogram import compute_histogram
            script_args = HistogramArguments(**args_dict)
            compute_histogram(script_args)
    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}", exc_info=args.verbose)
        sys.exit(1)
    finally:
        shutdown_logger(logger)

if __name__ == "__main__":
    main()
