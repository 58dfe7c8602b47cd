"""Readiness multiplexing with ``select(2)``.

The wait calls the C library directly instead of :func:`select.select`, which
retries transparently after ``EINTR``. Here an interrupted wait surfaces as
:class:`~linuxhandles.runtime.core.WaitInterrupted` and whether to wait again
is left to the caller.
"""

from __future__ import annotations

import ctypes
import errno
import os
from typing import NamedTuple, Optional, Union

from ..constants import FD_SETSIZE
from ..ffi import LIBC, clear_errno, last_errno, register_native_declarations, register_native_type
from ..logging_config import get_logger
from .core import WaitInterrupted
from .fdset import DescriptorSet, NativeFdSet

log = get_logger(__name__)


class _Timeval(ctypes.Structure):
    _fields_ = [("tv_sec", ctypes.c_long), ("tv_usec", ctypes.c_long)]


register_native_type("fd_set_p", ctypes.POINTER(NativeFdSet))
register_native_type("timeval_p", ctypes.POINTER(_Timeval))
register_native_declarations(
    "select(int, fd_set_p, fd_set_p, fd_set_p, timeval_p) -> int",
    replace=True,
)


class Timeout(NamedTuple):
    seconds: int
    microseconds: int = 0

    @classmethod
    def coerce(cls, value: Union["Timeout", tuple, int, None]) -> Optional["Timeout"]:
        """Normalize a timeout.

        ``None`` waits forever, ``(seconds, microseconds)`` bounds the wait and
        a bare int counts microseconds. Microseconds past one second carry
        into the seconds field.
        """

        if value is None:
            return None
        if isinstance(value, bool):
            raise TypeError("timeout must be a (seconds, microseconds) pair or an int")
        if isinstance(value, int):
            seconds, microseconds = 0, value
        elif isinstance(value, tuple) and len(value) == 2:
            seconds, microseconds = value
        else:
            raise TypeError("timeout must be a (seconds, microseconds) pair or an int")
        for part in (seconds, microseconds):
            if isinstance(part, bool) or not isinstance(part, int):
                raise TypeError("timeout fields must be ints")
            if part < 0:
                raise ValueError("timeout fields must not be negative")
        carry, microseconds = divmod(microseconds, 1_000_000)
        return cls(seconds + carry, microseconds)

    def to_native(self) -> _Timeval:
        return _Timeval(self.seconds, self.microseconds)


def wait(
    max_descriptor: int,
    read: Optional[DescriptorSet] = None,
    write: Optional[DescriptorSet] = None,
    error: Optional[DescriptorSet] = None,
    timeout: Union[Timeout, tuple, int, None] = None,
) -> int:
    """Wait until a descriptor below *max_descriptor* is ready.

    Returns the number of ready descriptors, ``0`` when the timeout expired.
    The given sets are rewritten in place to hold only the ready members.
    Raises :class:`WaitInterrupted` when a signal arrives first and
    :class:`OSError` for any other failure.
    """

    if isinstance(max_descriptor, bool) or not isinstance(max_descriptor, int):
        raise TypeError("max_descriptor must be an int")
    if not 0 <= max_descriptor <= FD_SETSIZE:
        raise ValueError(f"max_descriptor must lie in 0..{FD_SETSIZE}")
    sets = [read, write, error]
    for candidate in sets:
        if candidate is not None and not isinstance(candidate, DescriptorSet):
            raise TypeError(f"expected a DescriptorSet, got {type(candidate).__name__}")
    timeout = Timeout.coerce(timeout)

    natives = [s.to_native() if s is not None else None for s in sets]
    pointers = [ctypes.pointer(n) if n is not None else None for n in natives]
    timeval = ctypes.pointer(timeout.to_native()) if timeout is not None else None

    log.debug("select(%d, timeout=%s)", max_descriptor, timeout)
    clear_errno()
    ready = LIBC.call("select", max_descriptor, *pointers, timeval)
    if ready < 0:
        code = last_errno()
        if code == errno.EINTR:
            raise WaitInterrupted(code, "wait interrupted by signal")
        raise OSError(code, os.strerror(code))

    for candidate, native in zip(sets, natives):
        if candidate is not None:
            candidate.update_from_native(native)
    return ready


def select(nfds, readfds=None, writefds=None, errorfds=None, timeout=None) -> int:
    return wait(nfds, readfds, writefds, errorfds, timeout)


__all__ = ["Timeout", "wait", "select"]
