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
Handle Lifetime Manager.

Every GDAL object the binding hands out is wrapped in one of two kinds of
handle:

* `OwnedHandle` (datasets, spatial references, transforms, geometries, virtual
  files): owns the native object and moves OPEN -> CLOSED exactly once through
  `close()`. A second close raises `ClosedHandleError`, as does any use of the
  handle after it was closed.
* `AliasHandle` (bands, masks, overviews, layers): a weak reference into its
  owner. It has no close of its own and becomes invalid the moment the owner is
  closed; every forwarded call checks the owner first and raises
  `InvalidatedHandleError` instead of touching freed native memory.

Open owning handles are tracked in the process-wide `registry`, which is safe
to use from several threads.
"""
import itertools
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from gdalio.utils.exceptions import ClosedHandleError, ContractViolation, InvalidatedHandleError
from gdalio.utils.options import CallOptions

logger = logging.getLogger(__name__)


class HandleKind(Enum):
    """Kinds of owning handles."""
    DATASET = 'dataset'
    SPATIAL_REF = 'spatial reference'
    TRANSFORM = 'transform'
    GEOMETRY = 'geometry'
    VSI_FILE = 'virtual file'

class HandleState(Enum):
    UNOPENED = 'unopened'
    OPEN = 'open'
    CLOSED = 'closed'

@dataclass(frozen=True)
class HandleRecord:
    """Registry entry for one open owning handle."""
    handle_id: int
    kind: HandleKind
    name: str
    shared: bool
    thread_name: str


class HandleRegistry:
    """Lock-protected table of the owning handles currently open."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, HandleRecord] = {}
        self._ids = itertools.count(1)

    def register(self, kind: HandleKind, name: str = '', shared: bool = False) -> int:
        with self._lock:
            handle_id = next(self._ids)
            self._records[handle_id] = HandleRecord(
                handle_id=handle_id,
                kind=kind,
                name=name,
                shared=shared,
                thread_name=threading.current_thread().name,
            )
        logger.debug(f"Opened {kind.value} handle #{handle_id} {name}")
        return handle_id

    def release(self, handle_id: int) -> HandleRecord:
        with self._lock:
            record = self._records.pop(handle_id, None)
        if record is None:
            raise ClosedHandleError(f"handle #{handle_id} is not open")
        logger.debug(f"Closed {record.kind.value} handle #{handle_id} {record.name}")
        return record

    def is_open(self, handle_id: int) -> bool:
        with self._lock:
            return handle_id in self._records

    def open_handles(self, kind: Optional[HandleKind] = None) -> List[HandleRecord]:
        with self._lock:
            records = list(self._records.values())
        if kind is not None:
            records = [r for r in records if r.kind is kind]
        return records

    def shared_count(self, name: str) -> int:
        """Number of open shared dataset handles opened on `name`."""
        with self._lock:
            return sum(1 for r in self._records.values() if r.shared and r.name == name)

# Process-wide handle table
registry = HandleRegistry()


class OwnedHandle:
    """
    Base class for handles that own their native object.

    Subclasses set `kind` and override `_release` to free the native object;
    `_release` runs after the handle is already marked CLOSED, so a failing
    release still leaves the handle closed.
    """
    kind: HandleKind = HandleKind.DATASET

    def __init__(self, native: Any, name: str = '', shared: bool = False):
        if native is None:
            raise ContractViolation(f"cannot wrap a {self.kind.value} handle that was never opened")
        self._native = native
        self.name = name
        self.shared = shared
        self._lock = threading.Lock()
        self._state = HandleState.OPEN
        self.handle_id = registry.register(self.kind, name, shared)

    @property
    def state(self) -> HandleState:
        return self._state

    def is_open(self) -> bool:
        return self._state is HandleState.OPEN

    @property
    def native(self) -> Any:
        native = self._native
        if native is None:
            raise ClosedHandleError(f"{self.kind.value} handle '{self.name}' is closed")
        return native

    def close(self, options: Optional[CallOptions] = None):
        """Release the native object; raises ClosedHandleError if already closed."""
        with self._lock:
            if self._state is HandleState.CLOSED:
                raise ClosedHandleError(f"{self.kind.value} handle '{self.name}' was already closed")
            native = self._native
            self._native = None
            self._state = HandleState.CLOSED
        registry.release(self.handle_id)
        self._release(native, options)

    def _release(self, native: Any, options: Optional[CallOptions]):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.is_open():
            self.close()
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', state={self._state.value})"


class AliasHandle:
    """Weak handle whose validity is derived from its owner's state."""
    label = 'alias'

    def __init__(self, owner: OwnedHandle, native: Any):
        if native is None:
            raise ContractViolation(f"cannot wrap a {self.label} that does not exist")
        self._owner = owner
        self._native = native

    @property
    def owner(self) -> OwnedHandle:
        return self._owner

    def is_valid(self) -> bool:
        return self._owner.is_open()

    @property
    def native(self) -> Any:
        if not self._owner.is_open():
            raise InvalidatedHandleError(
                f"{self.label} belongs to {self._owner.kind.value} '{self._owner.name}', which is closed")
        return self._native

    def __repr__(self) -> str:
        state = 'valid' if self.is_valid() else 'invalidated'
        return f"{type(self).__name__}(owner='{self._owner.name}', {state})"
