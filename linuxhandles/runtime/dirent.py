"""Directory streams over ``opendir``/``readdir``."""

from __future__ import annotations

import ctypes
import os
import sys
from dataclasses import dataclass
from typing import Any, Optional

from ..constants import DIRENT_HAS_OFFSET, DIRENT_TYPES, SPECIAL_DIRECTORY_NAMES
from ..ffi import LIBC, clear_errno, last_errno, register_native_declarations, register_native_type
from ..logging_config import get_logger
from .core import HandleKind, OpaqueHandle, expect_handle

log = get_logger(__name__)


if sys.platform == "darwin":

    class _Dirent(ctypes.Structure):
        _fields_ = [
            ("d_ino", ctypes.c_uint64),
            ("d_seekoff", ctypes.c_uint64),
            ("d_reclen", ctypes.c_uint16),
            ("d_namlen", ctypes.c_uint16),
            ("d_type", ctypes.c_uint8),
            ("d_name", ctypes.c_char * 1024),
        ]

else:

    class _Dirent(ctypes.Structure):
        _fields_ = [
            ("d_ino", ctypes.c_ulong),
            ("d_off", ctypes.c_long),
            ("d_reclen", ctypes.c_ushort),
            ("d_type", ctypes.c_ubyte),
            ("d_name", ctypes.c_char * 256),
        ]


register_native_type("dirent_p", ctypes.POINTER(_Dirent))
register_native_declarations(
    """
    opendir(char_p) -> void_p
    readdir(void_p) -> dirent_p
    telldir(void_p) -> long
    seekdir(void_p, long) -> void
    rewinddir(void_p) -> void
    closedir(void_p) -> int
    """,
    replace=True,
)


@dataclass(frozen=True)
class DirectoryEntry:
    """One ``struct dirent`` copied out of the stream."""

    ino: int
    reclen: int
    type: int
    name: str
    offset: Optional[int] = None

    @property
    def kind(self) -> str:
        return DIRENT_TYPES.get(self.type, "unknown")

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {"d_ino": self.ino}
        if self.offset is not None:
            record["d_off"] = self.offset
        record["d_reclen"] = self.reclen
        record["d_type"] = self.type
        record["d_name"] = self.name
        return record

    @classmethod
    def from_native(cls, native: _Dirent) -> "DirectoryEntry":
        return cls(
            ino=native.d_ino,
            reclen=native.d_reclen,
            type=native.d_type,
            name=os.fsdecode(native.d_name),
            offset=native.d_off if DIRENT_HAS_OFFSET else None,
        )


class DirectoryStream(OpaqueHandle):
    """An open ``DIR *``.

    Iterating yields :class:`DirectoryEntry` records until the end of the
    directory, after which :meth:`read` keeps returning ``None`` until
    :meth:`rewind`. ``.`` and ``..`` are skipped unless ``include_dots``.
    """

    kind = HandleKind.DIRECTORY

    @staticmethod
    def _free_native(address: int) -> bool:
        return LIBC.call("closedir", address) == 0

    def __init__(self, address: int, path: str, include_dots: bool = False) -> None:
        super().__init__(address, path)
        self.include_dots = include_dots

    @classmethod
    def open(cls, path: str | os.PathLike, include_dots: bool = False) -> "DirectoryStream":
        path = os.fspath(path)
        clear_errno()
        address = LIBC.call("opendir", os.fsencode(path))
        if not address:
            code = last_errno()
            log.debug("opendir(%r) failed: errno %s", path, code)
            raise OSError(code, os.strerror(code), path)
        return cls(address, path, include_dots)

    def read(self) -> Optional[DirectoryEntry]:
        address = self._require_live()
        while True:
            clear_errno()
            pointer = LIBC.call("readdir", address)
            if not pointer:
                code = last_errno()
                if code:
                    raise OSError(code, os.strerror(code), self.resource)
                return None
            entry = DirectoryEntry.from_native(pointer.contents)
            if self.include_dots or entry.name not in SPECIAL_DIRECTORY_NAMES:
                return entry

    def position(self) -> int:
        return LIBC.call("telldir", self._require_live())

    def seek(self, cursor: int) -> bool:
        if isinstance(cursor, bool) or not isinstance(cursor, int):
            raise TypeError(f"directory cursor must be an int, got {type(cursor).__name__}")
        LIBC.call("seekdir", self._require_live(), cursor)
        return True

    def rewind(self) -> None:
        LIBC.call("rewinddir", self._require_live())

    def __iter__(self):
        return self

    def __next__(self) -> DirectoryEntry:
        entry = self.read()
        if entry is None:
            raise StopIteration
        return entry

    def names(self) -> list[str]:
        """Read the remaining entries and return their names."""

        return [entry.name for entry in self]


def opendir(path: str | os.PathLike, include_dots: bool = False):
    """Open *path*; return the stream or ``(None, "<path>: <reason>")``."""

    try:
        return DirectoryStream.open(path, include_dots)
    except OSError as exc:
        return None, f"{os.fspath(path)}: {exc.strerror}"


def readdir(stream: DirectoryStream) -> Optional[DirectoryEntry]:
    return expect_handle(stream, DirectoryStream).read()


def telldir(stream: DirectoryStream) -> int:
    return expect_handle(stream, DirectoryStream).position()


def seekdir(stream: DirectoryStream, cursor: int) -> bool:
    return expect_handle(stream, DirectoryStream).seek(cursor)


def rewinddir(stream: DirectoryStream) -> None:
    expect_handle(stream, DirectoryStream).rewind()


def closedir(stream: DirectoryStream) -> bool:
    return expect_handle(stream, DirectoryStream).close()


__all__ = [
    "DirectoryEntry",
    "DirectoryStream",
    "opendir",
    "readdir",
    "telldir",
    "seekdir",
    "rewinddir",
    "closedir",
]
