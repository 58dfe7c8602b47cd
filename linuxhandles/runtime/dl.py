"""Dynamic library handles and the symbols resolved from them."""

from __future__ import annotations

import ctypes
import os
import weakref
from typing import Iterable, Optional

from ..constants import DLOPEN_OPTIONS
from ..ffi import LIBC, register_native_declarations
from ..logging_config import get_logger
from .core import (
    HandleClosedError,
    HandleKind,
    InvalidOptionError,
    LoaderError,
    OpaqueHandle,
    expect_handle,
)

log = get_logger(__name__)

register_native_declarations(
    """
    dlopen(char_p, int) -> void_p
    dlsym(void_p, char_p) -> void_p
    dlclose(void_p) -> int
    dlerror() -> char_p
    """,
    replace=True,
)


class LoaderErrorState:
    """Process-wide record of the last dynamic-loader failure.

    Lifecycle: every loader operation in this module first calls
    :meth:`begin`, which drains the loader's own pending error and clears the
    stored message. A failing operation then calls :meth:`fail`, which stores
    the loader's message. :meth:`query` reads the message without clearing
    it; it stays valid only until the next loader operation overwrites it.
    There is one writer (the operation in progress) and readers must query
    right after the failing call.
    """

    def __init__(self) -> None:
        self._message: Optional[str] = None

    def begin(self) -> None:
        LIBC.call("dlerror")
        self._message = None

    def fail(self, fallback: str) -> str:
        raw = LIBC.call("dlerror")
        message = os.fsdecode(raw) if raw else fallback
        self._message = message
        log.debug("Loader error: %s", message)
        return message

    def record(self, message: Optional[str]) -> None:
        self._message = message

    def query(self) -> Optional[str]:
        return self._message


LOADER_ERROR = LoaderErrorState()


def last_error() -> Optional[str]:
    """Return the message of the most recent failing loader operation."""

    return LOADER_ERROR.query()


def parse_options(options: Iterable[str] | str) -> int:
    """OR the named ``dlopen`` options into a flag word.

    Unknown names raise :class:`InvalidOptionError`; nothing is loaded.
    """

    if isinstance(options, str):
        options = [options]
    flags = 0
    for name in options:
        if not isinstance(name, str) or name not in DLOPEN_OPTIONS:
            valid = ", ".join(DLOPEN_OPTIONS)
            raise InvalidOptionError(f"invalid option {name!r} (expected one of: {valid})")
        flags |= DLOPEN_OPTIONS[name]
    return flags


class Library(OpaqueHandle):
    """A handle returned by ``dlopen``.

    ``library[name]`` is shorthand for :meth:`symbol`.
    """

    kind = HandleKind.LIBRARY

    @staticmethod
    def _free_native(address: int) -> bool:
        return LIBC.call("dlclose", address) == 0

    def __init__(self, address: int, path: str, flags: int) -> None:
        super().__init__(address, path)
        self.flags = flags

    @classmethod
    def open(cls, path: str | os.PathLike, *options: str) -> "Library":
        flags = parse_options(options)
        path = os.fspath(path)
        LOADER_ERROR.begin()
        address = LIBC.call("dlopen", os.fsencode(path), flags)
        if not address:
            raise LoaderError(LOADER_ERROR.fail(f"{path}: cannot load library"))
        return cls(address, path, flags)

    def release(self) -> bool:
        """Close the library; only an explicit close updates the loader error.

        The finalizer frees through ``_free_native`` alone and leaves the
        loader error untouched.
        """

        if not self.is_live:
            return False
        LOADER_ERROR.begin()
        ok = super().release()
        if not ok:
            LOADER_ERROR.fail("dlclose failed")
        return ok

    def symbol(self, name: str) -> "Symbol":
        if not isinstance(name, str) or not name:
            raise TypeError("symbol name must be a non-empty string")
        address = self._require_live()
        LOADER_ERROR.begin()
        pointer = LIBC.call("dlsym", address, os.fsencode(name))
        if not pointer:
            raise LoaderError(LOADER_ERROR.fail(f"{name}: undefined symbol"))
        return Symbol(pointer, name, self)

    def __getitem__(self, name: str) -> "Symbol":
        return self.symbol(name)


class Symbol(OpaqueHandle):
    """Address of a symbol inside a :class:`Library`.

    The symbol holds only a weak reference to its library. Once the library
    is released or collected the symbol is no longer live and its address is
    refused. Function objects obtained earlier through :meth:`function` are
    not tracked; calling them after the library is gone is the caller's
    responsibility.
    """

    kind = HandleKind.SYMBOL

    def __init__(self, address: int, name: str, library: Library) -> None:
        super().__init__(address, name, parent=library)
        self._library = weakref.ref(library)

    @property
    def library(self) -> Optional[Library]:
        return self._library()

    @property
    def is_live(self) -> bool:
        library = self._library()
        return self._ref.is_live and library is not None and library.is_live

    def _require_live(self) -> int:
        address = self._ref.address
        library = self._library()
        if address is None or library is None or not library.is_live:
            raise HandleClosedError(self.kind, self.resource)
        return address

    @property
    def address(self) -> int:
        return self._require_live()

    def function(self, restype=ctypes.c_int, *argtypes):
        """Return a ctypes callable for this symbol."""

        prototype = ctypes.CFUNCTYPE(restype, *argtypes)
        return prototype(self._require_live())


def dlopen(path: str | os.PathLike, *options: str):
    """Open a library; return it or ``(None, diagnostic)``."""

    try:
        return Library.open(path, *options)
    except (InvalidOptionError, LoaderError) as exc:
        return None, str(exc)


def dlsym(library: Library, name: str):
    """Resolve *name*; return the symbol or ``(None, diagnostic)``."""

    try:
        return expect_handle(library, Library).symbol(name)
    except LoaderError as exc:
        return None, str(exc)


def dlclose(library: Library) -> bool:
    return expect_handle(library, Library).close()


def dlerror() -> Optional[str]:
    return last_error()


__all__ = [
    "LoaderErrorState",
    "LOADER_ERROR",
    "Library",
    "Symbol",
    "parse_options",
    "last_error",
    "dlopen",
    "dlsym",
    "dlclose",
    "dlerror",
]
