"""Descriptor sets: fixed-capacity bitmaps in the ``fd_set`` layout."""

from __future__ import annotations

import ctypes
import sys
from typing import Iterator

from ..constants import FD_SETSIZE
from .core import DescriptorRangeError

_MASK_TYPE = ctypes.c_int32 if sys.platform == "darwin" else ctypes.c_long
NFDBITS = 8 * ctypes.sizeof(_MASK_TYPE)


class NativeFdSet(ctypes.Structure):
    _fields_ = [("fds_bits", _MASK_TYPE * (FD_SETSIZE // NFDBITS))]


class DescriptorSet:
    """A set of descriptor numbers in ``0..FD_SETSIZE-1``.

    Plain value: no native resource is held, so sets may be copied, shared
    and dropped freely.
    """

    __slots__ = ("_bits",)

    capacity = FD_SETSIZE

    def __init__(self, descriptors=()):
        self._bits = 0
        for fd in descriptors:
            self.set(fd)

    def _check(self, fd) -> int:
        if isinstance(fd, bool) or not isinstance(fd, int):
            raise DescriptorRangeError(f"descriptor must be an int, got {type(fd).__name__}")
        if not 0 <= fd < self.capacity:
            raise DescriptorRangeError(
                f"descriptor {fd} outside 0..{self.capacity - 1}"
            )
        return fd

    def zero(self) -> None:
        self._bits = 0

    def set(self, fd: int) -> None:
        self._bits |= 1 << self._check(fd)

    def clear(self, fd: int) -> None:
        self._bits &= ~(1 << self._check(fd))

    def is_set(self, fd: int) -> bool:
        return bool(self._bits >> self._check(fd) & 1)

    def __contains__(self, fd) -> bool:
        try:
            return self.is_set(fd)
        except DescriptorRangeError:
            return False

    def __iter__(self) -> Iterator[int]:
        bits, fd = self._bits, 0
        while bits:
            if bits & 1:
                yield fd
            bits >>= 1
            fd += 1

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __bool__(self) -> bool:
        return self._bits != 0

    def __eq__(self, other):
        if not isinstance(other, DescriptorSet):
            return NotImplemented
        return self._bits == other._bits

    def copy(self) -> "DescriptorSet":
        clone = DescriptorSet()
        clone._bits = self._bits
        return clone

    __copy__ = copy

    def max_descriptor(self) -> int:
        """Highest member plus one, the ``nfds`` a wait on this set needs."""

        return self._bits.bit_length()

    def to_native(self) -> NativeFdSet:
        native = NativeFdSet()
        mask = (1 << NFDBITS) - 1
        for index in range(len(native.fds_bits)):
            word = (self._bits >> (index * NFDBITS)) & mask
            if word >= 1 << (NFDBITS - 1):
                word -= 1 << NFDBITS
            native.fds_bits[index] = word
        return native

    def update_from_native(self, native: NativeFdSet) -> None:
        mask = (1 << NFDBITS) - 1
        bits = 0
        for index, word in enumerate(native.fds_bits):
            bits |= (word & mask) << (index * NFDBITS)
        self._bits = bits

    @classmethod
    def from_native(cls, native: NativeFdSet) -> "DescriptorSet":
        result = cls()
        result.update_from_native(native)
        return result

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"DescriptorSet({list(self)!r})"


def fd_set(*descriptors: int) -> DescriptorSet:
    """Allocate a zeroed descriptor set, optionally with members."""

    return DescriptorSet(descriptors)


__all__ = ["DescriptorSet", "NativeFdSet", "NFDBITS", "fd_set"]
