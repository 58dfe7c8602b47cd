"""Release-once contract shared by every handle kind."""

import gc
import logging

import pytest

from linuxhandles import (
    HANDLE_REGISTRY,
    HandleClosedError,
    HandleKind,
    HandleKindError,
    NativeReference,
    OpaqueHandle,
    is_live,
    release,
)
from linuxhandles.runtime.core import expect_handle


class CountingHandle(OpaqueHandle):
    kind = HandleKind.DIRECTORY
    freed = []

    @staticmethod
    def _free_native(address):
        CountingHandle.freed.append(address)
        return True


class FailingHandle(OpaqueHandle):
    kind = HandleKind.LIBRARY

    @staticmethod
    def _free_native(address):
        raise RuntimeError("native release exploded")


@pytest.fixture(autouse=True)
def reset_counter():
    CountingHandle.freed = []
    yield


def test_release_twice_reports_success_then_failure():
    handle = CountingHandle(0x10, "first")

    assert handle.is_live
    assert handle.release() is True
    assert handle.release() is False
    assert not handle.is_live
    assert CountingHandle.freed == [0x10]


def test_operations_on_released_handle_raise_closed():
    handle = CountingHandle(0x11, "/tmp/x")
    handle.close()

    with pytest.raises(HandleClosedError, match="directory handle '/tmp/x' is closed") as info:
        handle._require_live()
    assert isinstance(info.value, ValueError)
    assert info.value.kind is HandleKind.DIRECTORY


def test_finalizer_after_explicit_release_makes_no_native_call():
    handle = CountingHandle(0x12)
    assert handle.release()

    handle._finalizer()
    assert CountingHandle.freed == [0x12]


def test_garbage_collection_releases_exactly_once():
    handle = CountingHandle(0x13)
    handle_id = handle.id
    del handle
    gc.collect()

    assert CountingHandle.freed == [0x13]
    assert handle_id not in HANDLE_REGISTRY.graph


def test_finalizer_swallows_native_errors(caplog):
    handle = FailingHandle(0x14)
    with caplog.at_level(logging.WARNING, logger="linuxhandles.runtime.core"):
        del handle
        gc.collect()
    assert any("native release exploded" in r.getMessage() for r in caplog.records)


def test_explicit_release_propagates_native_errors_once():
    handle = FailingHandle(0x15)
    with pytest.raises(RuntimeError):
        handle.release()
    assert not handle.is_live
    assert handle.release() is False


def test_with_block_releases_handle():
    with CountingHandle(0x16) as handle:
        assert handle.is_live
    assert not handle.is_live
    assert CountingHandle.freed == [0x16]

    with pytest.raises(HandleClosedError):
        with handle:
            pass


def test_native_reference_is_idempotent():
    calls = []
    ref = NativeReference(HandleKind.SYMBOL, 5, lambda address: calls.append(address) or True)
    assert ref.release() is True
    assert ref.release() is False
    assert ref.release_quietly() is False
    assert calls == [5]

    bare = NativeReference(HandleKind.SYMBOL, 6)
    assert bare.release() is True
    assert not bare.is_live


def test_module_helpers_validate_kind():
    handle = CountingHandle(0x17)
    assert is_live(handle)
    assert release(handle)
    assert not is_live(handle)
    assert not release(handle)

    with pytest.raises(HandleKindError):
        release("not a handle")
    with pytest.raises(TypeError, match="expected a directory handle"):
        expect_handle(FailingHandle(0x18), CountingHandle)


def test_registry_tracks_handle_state():
    handle = CountingHandle(0x19, "tracked")
    node = HANDLE_REGISTRY.graph.nodes[handle.id]
    assert node["kind"] == "directory"
    assert node["state"] == "live"
    assert handle.id in HANDLE_REGISTRY.live_handles("directory")

    handle.release()
    assert HANDLE_REGISTRY.graph.nodes[handle.id]["state"] == "released"
    assert handle.id not in HANDLE_REGISTRY.live_handles()


def test_release_succeeds_when_journal_cannot_be_written(tmp_path, settings):
    settings(journal_path=str(tmp_path))
    handle = CountingHandle(0x1A, "/srv")

    assert handle.release() is True
    assert handle.release() is False
    assert CountingHandle.freed == [0x1A]
