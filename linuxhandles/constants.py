"""Shared constant values for the linuxhandles runtime."""

import os
import sys

HANDLE_KINDS = ["directory", "library", "symbol"]

KIND_COLORS = {
    "directory": "#8BC34A",
    "library": "#9575CD",
    "symbol": "#FFEB3B",
    "released": "#B0BEC5",
}

# dlopen() option names in the order the flag table is documented.
DLOPEN_OPTIONS = {
    "lazy": os.RTLD_LAZY,
    "now": os.RTLD_NOW,
    "global": os.RTLD_GLOBAL,
    "local": os.RTLD_LOCAL,
    "nodelete": os.RTLD_NODELETE,
    "noload": os.RTLD_NOLOAD,
}
if hasattr(os, "RTLD_DEEPBIND"):
    DLOPEN_OPTIONS["deepbind"] = os.RTLD_DEEPBIND

# Same value on Linux/glibc and Darwin.
FD_SETSIZE = 1024

# d_off is only part of struct dirent on Linux.
DIRENT_HAS_OFFSET = sys.platform.startswith("linux")

DIRENT_TYPES = {
    0: "unknown",
    1: "fifo",
    2: "chr",
    4: "dir",
    6: "blk",
    8: "reg",
    10: "lnk",
    12: "sock",
    14: "wht",
}

SPECIAL_DIRECTORY_NAMES = (".", "..")

ENV_PREFIX = "LINUXHANDLES_"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
JOURNAL_HISTORY_LIMIT = 10

__all__ = [
    "HANDLE_KINDS",
    "KIND_COLORS",
    "DLOPEN_OPTIONS",
    "FD_SETSIZE",
    "DIRENT_HAS_OFFSET",
    "DIRENT_TYPES",
    "SPECIAL_DIRECTORY_NAMES",
    "ENV_PREFIX",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_DATEFMT",
    "JOURNAL_HISTORY_LIMIT",
]
