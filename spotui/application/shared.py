from __future__ import annotations

import threading
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, FrozenSet, Iterator

from spotui.application.state import MUTATORS, ContextSearchState, State
from spotui.crosscutting.config import AppConfig, KeymapConfig
from spotui.domain.entities import KeySequence, ListState, TableState
from spotui.domain.errors import ReadOnlyStateError


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers take precedence: once a writer is waiting, new readers wait until it
    has finished.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


# Mutating methods per mutable type reachable from a State
_MUTATORS_BY_TYPE = {
    State: MUTATORS,
    ContextSearchState: frozenset(),
    TableState: frozenset({'select'}),
    ListState: frozenset({'select'}),
    KeySequence: frozenset({'push', 'clear'}),
    AppConfig: frozenset(),
    KeymapConfig: frozenset(),
}


def _read_only(value: Any) -> Any:
    """Return ``value`` as something that cannot be used to change the state."""
    if isinstance(value, list):
        return tuple(value)
    if isinstance(value, dict):
        return MappingProxyType(value)
    mutators = _MUTATORS_BY_TYPE.get(type(value))
    if mutators is not None:
        return ReadOnlyState(value, mutators)
    return value


class ReadOnlyState:
    """Read handle over a State, or over a mutable object nested in it.

    Attributes come back read-only all the way down: lists as tuples, dicts as
    mapping proxies, nested mutable objects wrapped in another handle.
    """

    __slots__ = ('_target', '_mutators')

    def __init__(self, target: Any, mutators: FrozenSet[str] = MUTATORS):
        object.__setattr__(self, '_target', target)
        object.__setattr__(self, '_mutators', mutators)

    def __getattr__(self, name: str) -> Any:
        if name in self._mutators:
            raise ReadOnlyStateError(f"'{name}' requires the write lock")
        return _read_only(getattr(self._target, name))

    def __setattr__(self, name: str, value: Any) -> None:
        raise ReadOnlyStateError(f"Cannot assign '{name}' through a read handle")

    def __delattr__(self, name: str) -> None:
        raise ReadOnlyStateError(f"Cannot delete '{name}' through a read handle")


class SharedState:
    """The single State of the process behind one reader-writer lock.

    The whole aggregate is locked as a unit.
    """

    def __init__(self, state: State = None):
        self._state = state if state is not None else State()
        self._lock = ReadWriteLock()

    @contextmanager
    def read(self) -> Iterator[ReadOnlyState]:
        self._lock.acquire_read()
        try:
            yield ReadOnlyState(self._state)
        finally:
            self._lock.release_read()

    @contextmanager
    def write(self) -> Iterator[State]:
        self._lock.acquire_write()
        try:
            yield self._state
        finally:
            self._lock.release_write()
