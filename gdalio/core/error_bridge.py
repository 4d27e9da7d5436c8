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
Error Bridge.

GDAL reports problems through a process-wide callback that receives a severity,
an error number and a message. This module scopes that callback to a single
call: `ErrorScope` pushes a handler on GDAL's thread-local handler stack on
entry, collects every diagnostic emitted while the call runs, restores the
previous handler (and any thread-local configuration options) on every exit
path, and finally raises one exception built from the collected diagnostics.

A handler is a callable `(severity, code, message) -> Optional[Exception]`.
Returning None drops the diagnostic; returning an exception makes it part of
the error raised for the call. Handler precedence, highest first:

1. the handler passed with the call's options,
2. the handler installed for the current context with `install_error_handler`,
3. `default_error_handler`.

The first one found classifies every diagnostic of the call on its own; handlers
are never chained.

Works with `gdal.UseExceptions()` both on and off: a RuntimeError raised by the
bindings inside `ErrorScope.call` becomes a FAILURE diagnostic of the scope.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from osgeo import gdal

from gdalio.utils.config_loader import config
from gdalio.utils.contexts import error_handler_context
from gdalio.utils.data_models import Diagnostic
from gdalio.utils.exceptions import CombinedError, NativeError, NotFoundError
from gdalio.utils.io_constants import CPLE_APP_DEFINED, CPLE_OPEN_FAILED, NOT_FOUND_MESSAGES, Severity
from gdalio.utils.options import CallOptions, ErrorHandler

logger = logging.getLogger(__name__)


# --- Classification ---

def error_from_diagnostic(diagnostic: Diagnostic) -> NativeError:
    """Build the exception matching a diagnostic; missing files become NotFoundError."""
    if (diagnostic.severity >= Severity.FAILURE
            and diagnostic.code == CPLE_OPEN_FAILED
            and any(text in diagnostic.message for text in NOT_FOUND_MESSAGES)):
        return NotFoundError(diagnostic.message, diagnostic)
    return NativeError(diagnostic.message, diagnostic)

def _severity(err_class: int) -> Severity:
    try:
        return Severity(err_class)
    except ValueError:
        return Severity.FAILURE


# --- Handlers ---

def default_error_handler(severity: Severity, code: int, message: str) -> Optional[Exception]:
    """Warnings and above are errors; debug messages go to the log."""
    if severity == Severity.DEBUG:
        if config.get("errors.promote_debug", False):
            return error_from_diagnostic(Diagnostic(severity, code, message))
        logger.debug(f"GDAL: {message}")
        return None
    if severity >= Severity.WARNING:
        return error_from_diagnostic(Diagnostic(severity, code, message))
    return None

def skip_warnings(severity: Severity, code: int, message: str) -> Optional[Exception]:
    """Only failures are errors; warnings and debug messages are dropped."""
    if severity >= Severity.FAILURE:
        return error_from_diagnostic(Diagnostic(severity, code, message))
    return None

def raise_all(severity: Severity, code: int, message: str) -> Optional[Exception]:
    """Every diagnostic, debug messages included, is an error."""
    if severity > Severity.NONE:
        return error_from_diagnostic(Diagnostic(severity, code, message))
    return None

def install_error_handler(handler: ErrorHandler) -> Callable[[], None]:
    """
    Make `handler` the default for calls made from the current context.

    The setting is local to the calling thread (and asyncio task). Calls that
    pass their own handler are not affected.

    Returns:
        A function restoring the previous default; call it exactly once.

    Example:
        >>> restore = install_error_handler(skip_warnings)
        >>> try:
        ...     band.read(0, 0, buf)
        ... finally:
        ...     restore()
    """
    token = error_handler_context.set(handler)

    def restore():
        error_handler_context.reset(token)

    return restore

def current_error_handler() -> ErrorHandler:
    return error_handler_context.get() or default_error_handler

def combine(errors: List[BaseException]) -> Optional[BaseException]:
    """Collapse collected errors: None, the single error, or a CombinedError."""
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    return CombinedError(errors)


# --- Scope ---

class ErrorScope:
    """
    Capture GDAL diagnostics for the duration of one call.

    Example:
        >>> with ErrorScope(options.error_handler, options.config) as scope:
        ...     ret = scope.call(band.Fill, 0.0)
        ...     if ret not in (None, gdal.CE_None):
        ...         scope.fail()
    """

    def __init__(self, handler: Optional[ErrorHandler] = None, config_options: Optional[Dict[str, str]] = None):
        self.handler: ErrorHandler = handler or current_error_handler()
        self._config_options = dict(config_options or {})
        self._saved_options: Dict[str, Optional[str]] = {}
        self.diagnostics: List[Diagnostic] = []
        self.errors: List[BaseException] = []
        self.failed = False

    @classmethod
    def for_options(cls, options: Optional[CallOptions]) -> 'ErrorScope':
        if options is None:
            return cls()
        return cls(options.error_handler, options.config)

    def __enter__(self) -> 'ErrorScope':
        for key, value in self._config_options.items():
            self._saved_options[key] = gdal.GetThreadLocalConfigOption(key, None)
            gdal.SetThreadLocalConfigOption(key, str(value))
        gdal.PushErrorHandler(self._on_diagnostic)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        gdal.PopErrorHandler()
        for key, previous in self._saved_options.items():
            gdal.SetThreadLocalConfigOption(key, previous)
        if exc_type is not None:
            return False
        error = self.resolve()
        if error is not None:
            raise error
        return False

    def _on_diagnostic(self, err_class: int, err_no: int, err_msg: str):
        # Called from C; exceptions must not escape.
        try:
            self.record(Diagnostic(_severity(err_class), err_no, err_msg or ''))
        except Exception as e:
            logger.error(f"Error handler raised while processing '{err_msg}': {e}", exc_info=True)

    def record(self, diagnostic: Diagnostic):
        """Pass one diagnostic through the handler, keeping emission order."""
        self.diagnostics.append(diagnostic)
        error = self.handler(diagnostic.severity, diagnostic.code, diagnostic.message)
        if error is not None:
            self.errors.append(error)

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run a GDAL binding call inside the scope.

        A RuntimeError raised by the bindings in exception mode is recorded as
        a FAILURE diagnostic (unless the same message was already captured) and
        the call is marked failed; None is returned in that case.
        """
        try:
            return func(*args, **kwargs)
        except RuntimeError as e:
            message = str(e) or 'unknown error'
            if not any(d.message == message and d.severity >= Severity.FAILURE for d in self.diagnostics):
                # The bindings leave the failed call's error number in place.
                code = gdal.GetLastErrorNo() or CPLE_APP_DEFINED
                self.record(Diagnostic(Severity.FAILURE, code, message))
            self.failed = True
            return None

    def fail(self):
        """Mark the native call as failed (e.g. from a CPLErr return code)."""
        self.failed = True

    def resolve(self) -> Optional[BaseException]:
        """Return the exception for the call, or None when it succeeded."""
        if self.failed and not any(d.severity >= Severity.FAILURE for d in self.diagnostics):
            self.errors.append(NativeError("unknown error", Diagnostic(Severity.FAILURE, CPLE_APP_DEFINED, "unknown error")))
        return combine(self.errors)


def promote_not_found(error: BaseException) -> BaseException:
    """Return a NotFoundError for a CombinedError containing one, else the error itself."""
    if isinstance(error, CombinedError) and error.matches(NotFoundError):
        promoted = NotFoundError(str(error), error.find(NotFoundError).diagnostic)
        promoted.__cause__ = error
        return promoted
    return error
