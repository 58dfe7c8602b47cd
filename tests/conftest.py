"""Shared fixtures; also keeps the repository root importable."""

import ctypes.util
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from linuxhandles import LIBC, Settings, reset_settings  # noqa: E402


@pytest.fixture
def bindings(monkeypatch):
    """Let a test install fake native functions without leaking them."""

    monkeypatch.setattr(LIBC, "_bound", dict(LIBC._bound))
    return LIBC


@pytest.fixture
def settings():
    """Swap the process settings for the duration of a test."""

    def apply(**values):
        current = Settings(**values)
        reset_settings(current)
        return current

    yield apply
    reset_settings()


@pytest.fixture
def libc_path():
    path = ctypes.util.find_library("c")
    if path is None:
        pytest.skip("C library not locatable")
    return path
