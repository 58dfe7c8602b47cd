"""Environment-driven settings for the linuxhandles runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import DEFAULT_LOG_LEVEL, ENV_PREFIX


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    ``libc_path`` of ``None`` resolves native functions from the symbol scope
    of the running interpreter, which covers both libc and the dynamic loader.
    ``journal_path`` of ``None`` disables the handle event journal.
    """

    libc_path: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL
    journal_path: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def read(name):
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or None

        return cls(
            libc_path=read("LIBC"),
            log_level=(read("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
            journal_path=read("JOURNAL"),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings(settings: Settings | None = None) -> None:
    """Drop the cached settings, or replace them with *settings*."""

    global _settings
    _settings = settings


__all__ = ["Settings", "get_settings", "reset_settings"]
