"""Command-line interface for the linuxhandles runtime."""
from __future__ import annotations

import argparse
import sys

from ..logging_config import configure_logging
from .core import DescriptorRangeError, WaitInterrupted
from .dirent import opendir
from .dl import dlopen, dlsym
from .fdset import DescriptorSet
from .lifetimes import HANDLE_REGISTRY, show_journal
from .readiness import wait


def _parse_timeout(text):
    parts = [p.strip() for p in text.split(",")]
    if len(parts) > 2:
        raise argparse.ArgumentTypeError("timeout must be SEC or SEC,USEC")
    try:
        values = [int(p) for p in parts]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid timeout {text!r}") from exc
    if any(v < 0 for v in values):
        raise argparse.ArgumentTypeError("timeout must not be negative")
    return (values[0], values[1] if len(values) > 1 else 0)


def list_directory(path, include_dots=False):
    stream = opendir(path, include_dots)
    if isinstance(stream, tuple):
        print(f"✗ {stream[1]}")
        return 1
    with stream:
        for entry in stream:
            print(f"{entry.ino:>12}  {entry.kind:<7}  {entry.name}")
    return 0


def inspect_library(path, options, symbols, graphviz=None):
    library = dlopen(path, *options)
    if isinstance(library, tuple):
        print(f"✗ {library[1]}")
        return 1
    status = 0
    with library:
        print(f"Loaded {path} (flags={library.flags:#x})")
        for name in symbols:
            symbol = dlsym(library, name)
            if isinstance(symbol, tuple):
                print(f"  ✗ {symbol[1]}")
                status = 1
            else:
                print(f"  {name} @ {symbol.address:#x}")
        if graphviz:
            HANDLE_REGISTRY.export_graphviz(graphviz)
    return status


def wait_readable(descriptors, timeout=None):
    try:
        readable = DescriptorSet(descriptors)
    except DescriptorRangeError as exc:
        print(f"✗ {exc}")
        return 1
    try:
        ready = wait(readable.max_descriptor(), read=readable, timeout=timeout)
    except WaitInterrupted:
        print("✗ wait interrupted by signal")
        return 1
    if ready == 0:
        print("timeout: no descriptor ready")
    else:
        print(f"ready: {ready} {sorted(readable)}")
    return 0


def parse_args(args):
    argp = argparse.ArgumentParser(description="Native handle toolkit")

    argp.add_argument("--list", metavar="DIR", help="List a directory through a directory stream")
    argp.add_argument(
        "--all", action="store_true", help="Include '.' and '..' when listing"
    )
    argp.add_argument("--library", metavar="PATH", help="Load a shared library with dlopen")
    argp.add_argument(
        "--option",
        action="append",
        dest="options",
        default=[],
        help="dlopen option (lazy, now, global, local, nodelete, noload, deepbind)",
    )
    argp.add_argument(
        "--symbol",
        action="append",
        dest="symbols",
        default=[],
        help="Resolve a symbol in the loaded library",
    )
    argp.add_argument(
        "--wait-read",
        metavar="FD",
        type=int,
        action="append",
        dest="wait_read",
        default=[],
        help="Wait until the descriptor is readable",
    )
    argp.add_argument(
        "--timeout",
        type=_parse_timeout,
        metavar="SEC[,USEC]",
        help="Bound the readiness wait (default: wait forever)",
    )
    argp.add_argument(
        "--graphviz",
        metavar="OUTPUT",
        help="Export the library/symbol handle graph (.dot or an image suffix)",
    )
    argp.add_argument("--journal", action="store_true", help="Show the handle journal")
    argp.add_argument("--log-level", help="Logging level (default: LINUXHANDLES_LOG_LEVEL)")

    return argp.parse_args(args)


def main(args=None):
    params = parse_args(sys.argv[1:] if args is None else args)
    configure_logging(params.log_level)

    if params.journal:
        show_journal()
        return 0

    status = 0
    if params.list:
        status |= list_directory(params.list, params.all)
    if params.library:
        status |= inspect_library(
            params.library, params.options, params.symbols, params.graphviz
        )
    if params.wait_read:
        status |= wait_readable(params.wait_read, params.timeout)
    return status


__all__ = [
    "main",
    "parse_args",
    "list_directory",
    "inspect_library",
    "wait_readable",
]


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
