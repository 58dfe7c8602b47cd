import copy

import pytest

from linuxhandles import FD_SETSIZE, DescriptorRangeError, DescriptorSet, fd_set
from linuxhandles.runtime.fdset import NFDBITS


@pytest.mark.parametrize("fd", [0, 1, 63, 64, 500, FD_SETSIZE - 1])
def test_zero_set_clear_cycle(fd):
    fds = fd_set()
    fds.zero()
    assert not fds.is_set(fd)
    fds.set(fd)
    assert fds.is_set(fd)
    fds.clear(fd)
    assert not fds.is_set(fd)


@pytest.mark.parametrize("bad", [-1, FD_SETSIZE, FD_SETSIZE + 10, "3", 2.0, True, None])
def test_out_of_range_descriptors_are_rejected(bad):
    fds = DescriptorSet()
    for operation in (fds.set, fds.clear, fds.is_set):
        with pytest.raises(DescriptorRangeError):
            operation(bad)
    assert bad not in fds


def test_range_error_is_an_index_error():
    with pytest.raises(IndexError):
        DescriptorSet().set(FD_SETSIZE)


def test_members_iteration_and_size():
    fds = fd_set(9, 2, 700)
    assert list(fds) == [2, 9, 700]
    assert len(fds) == 3
    assert 9 in fds
    assert 3 not in fds
    assert fds.max_descriptor() == 701
    assert bool(fds)

    fds.zero()
    assert list(fds) == []
    assert not fds
    assert fds.max_descriptor() == 0


def test_sets_are_independent_values():
    original = fd_set(1, 2)
    clone = original.copy()
    shallow = copy.copy(original)

    clone.set(3)
    shallow.clear(1)

    assert list(original) == [1, 2]
    assert list(clone) == [1, 2, 3]
    assert list(shallow) == [2]
    assert original == fd_set(2, 1)
    assert original != clone
    assert original.__eq__("not a set") is NotImplemented


def test_native_layout_matches_fd_set_macros():
    fds = fd_set(0, NFDBITS + 1, FD_SETSIZE - 1)
    native = fds.to_native()

    assert native.fds_bits[0] == 1
    assert native.fds_bits[1] == 1 << 1
    last_word = native.fds_bits[FD_SETSIZE // NFDBITS - 1]
    assert last_word & ((1 << NFDBITS) - 1) == 1 << (NFDBITS - 1)

    assert DescriptorSet.from_native(native) == fds
