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
Custom Exceptions Module.

A centralized module for custom exceptions used throughout the GDAL I/O Bridge.

Contract violations (buffer too small, unsupported element type, a handle that
was never opened) derive from `AssertionError` and are not part of the
`GdalIOError` hierarchy: they indicate a programming error and are not meant to
be caught and retried.
"""
from typing import Iterator, List, Optional, Sequence, Type, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from gdalio.utils.data_models import Diagnostic

E = TypeVar('E', bound=BaseException)


class ContractViolation(AssertionError):
    """Raised when a caller breaks the calling contract of the binding."""
    pass

class GdalIOError(Exception):
    """Base exception for recoverable errors raised by the binding."""
    pass

class NativeError(GdalIOError):
    """An error built from a diagnostic emitted by GDAL during a call."""

    def __init__(self, message: str, diagnostic: Optional['Diagnostic'] = None):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic

    @property
    def code(self) -> Optional[int]:
        return self.diagnostic.code if self.diagnostic is not None else None

    @property
    def severity(self):
        return self.diagnostic.severity if self.diagnostic is not None else None

class NotFoundError(NativeError, FileNotFoundError):
    """GDAL could not find the requested file or virtual file key."""

    def __init__(self, message: str, diagnostic: Optional['Diagnostic'] = None):
        NativeError.__init__(self, message, diagnostic)

    def __str__(self) -> str:
        return self.message

class CombinedError(NativeError):
    """
    Several errors raised by a single call, kept in emission order.

    The message of a combined error is the newline-joined message of each
    constituent. Use `matches` or `find` to inspect constituents by type.
    """

    def __init__(self, errors: Sequence[BaseException]):
        self.errors: List[BaseException] = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def matches(self, error_type: Type[BaseException]) -> bool:
        """Return True if any constituent is an instance of `error_type`."""
        return self.find(error_type) is not None

    def find(self, error_type: Type[E]) -> Optional[E]:
        """Return the first constituent that is an instance of `error_type`."""
        for error in self.errors:
            if isinstance(error, error_type):
                return error
            if isinstance(error, CombinedError):
                nested = error.find(error_type)
                if nested is not None:
                    return nested
        return None

class ClosedHandleError(GdalIOError):
    """An owning handle was closed twice or used after it was closed."""
    pass

class InvalidatedHandleError(ClosedHandleError):
    """A band, mask, overview or layer was used after its dataset was closed."""
    pass

class UnsupportedResamplingError(GdalIOError):
    """The requested resampling algorithm is not available for this operation."""
    pass

class AlreadyRegisteredError(GdalIOError):
    """A virtual file system handler is already registered on the prefix."""
    pass

class BackingStoreError(GdalIOError):
    """A backing store failed to serve a size query or a byte-range read."""
    pass
