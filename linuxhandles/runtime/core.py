"""Opaque handles over native resources with a release-once contract."""

from __future__ import annotations

import itertools
import weakref
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from ..logging_config import get_logger
from .lifetimes import HANDLE_REGISTRY

log = get_logger(__name__)


class HandleKind(str, Enum):
    DIRECTORY = "directory"
    LIBRARY = "library"
    SYMBOL = "symbol"


class HandleError(Exception):
    """Base class for handle misuse detected before any native call."""


class HandleClosedError(HandleError, ValueError):
    """Operation attempted on a handle whose native reference was released."""

    def __init__(self, kind: HandleKind | str, resource: Any = None):
        self.kind = HandleKind(kind)
        self.resource = resource
        label = f"{self.kind.value} handle"
        if resource is not None:
            label += f" {resource!r}"
        super().__init__(f"{label} is closed")


class HandleKindError(HandleError, TypeError):
    """A handle of one kind was passed where another kind is required."""


class InvalidOptionError(HandleError, ValueError):
    """Unknown option name rejected before the native call."""


class DescriptorRangeError(HandleError, IndexError):
    """Descriptor number outside the capacity of a descriptor set."""


class LoaderError(OSError):
    """Failure reported by the dynamic loader through ``dlerror``."""


class WaitInterrupted(InterruptedError):
    """A readiness wait was interrupted by a signal before completing."""


class NativeReference:
    """Mutable cell shared by a handle and its finalizer.

    ``address`` of ``None`` means released. :meth:`release` clears the address
    before freeing it, so the native release routine runs at most once no
    matter how many callers reach it.
    """

    __slots__ = ("kind", "address", "_free", "__weakref__")

    def __init__(
        self,
        kind: HandleKind,
        address: Optional[int],
        free: Optional[Callable[[int], bool]] = None,
    ) -> None:
        self.kind = kind
        self.address = address
        self._free = free

    @property
    def is_live(self) -> bool:
        return self.address is not None

    def release(self) -> bool:
        address = self.address
        if address is None:
            return False
        self.address = None
        if self._free is None:
            return True
        return bool(self._free(address))

    def release_quietly(self) -> bool:
        try:
            return self.release()
        except Exception as exc:  # noqa: BLE001 - finalizers never raise
            log.warning("Finalizer failed to release %s handle: %s", self.kind.value, exc)
            return False

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        state = hex(self.address) if self.address is not None else "released"
        return f"<NativeReference {self.kind.value}:{state}>"


def _finalize(reference: NativeReference, handle_id: str) -> None:
    if reference.release_quietly():
        log.debug("Finalizer released %s", handle_id)
    HANDLE_REGISTRY.forget(handle_id)


_handle_ids = itertools.count(1)


class OpaqueHandle:
    """Native resource bound to an idempotent release.

    Subclasses set :attr:`kind` and provide a static ``_free_native(address)``
    that returns the native success flag. The finalizer holds only the
    :class:`NativeReference`, never the handle itself.
    """

    kind: HandleKind
    _free_native: Optional[Callable[[int], bool]] = None

    def __init__(
        self,
        address: int,
        resource: Any = None,
        *,
        parent: "OpaqueHandle | None" = None,
    ) -> None:
        self.id = f"{self.kind.value}-{next(_handle_ids)}"
        self.resource = resource
        self._ref = NativeReference(self.kind, address, type(self)._free_native)
        self._finalizer = weakref.finalize(self, _finalize, self._ref, self.id)
        HANDLE_REGISTRY.track(self, parent=parent.id if parent is not None else None)
        log.debug("Opened %s for %r", self.id, resource)

    @property
    def is_live(self) -> bool:
        return self._ref.is_live

    def release(self) -> bool:
        """Free the native resource; ``False`` when it was already released."""

        if not self._ref.is_live:
            return False
        ok = False
        try:
            ok = self._ref.release()
        finally:
            HANDLE_REGISTRY.mark_released(self.id, ok)
        log.debug("Released %s (ok=%s)", self.id, ok)
        return ok

    def close(self) -> bool:
        return self.release()

    def _require_live(self) -> int:
        address = self._ref.address
        if address is None:
            raise HandleClosedError(self.kind, self.resource)
        return address

    def __enter__(self):
        self._require_live()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        state = "live" if self.is_live else "closed"
        return f"<{type(self).__name__} {self.resource!r} {state}>"


H = TypeVar("H", bound=OpaqueHandle)


def expect_handle(value: Any, cls: type[H]) -> H:
    """Return *value* if it is a *cls* handle, else raise :class:`HandleKindError`."""

    if not isinstance(value, cls):
        expected = cls.kind.value if hasattr(cls, "kind") else cls.__name__
        raise HandleKindError(f"expected a {expected} handle, got {type(value).__name__}")
    return value


def release(handle: OpaqueHandle) -> bool:
    return expect_handle(handle, OpaqueHandle).release()


def is_live(handle: OpaqueHandle) -> bool:
    return expect_handle(handle, OpaqueHandle).is_live


__all__ = [
    "HandleKind",
    "HandleError",
    "HandleClosedError",
    "HandleKindError",
    "InvalidOptionError",
    "DescriptorRangeError",
    "LoaderError",
    "WaitInterrupted",
    "NativeReference",
    "OpaqueHandle",
    "expect_handle",
    "release",
    "is_live",
]
