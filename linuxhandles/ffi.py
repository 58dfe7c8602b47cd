"""Native function declarations and their ctypes bindings."""

from dataclasses import dataclass
import ctypes
import json
import re

from .config import get_settings


NATIVE_TYPES = {
    "void": None,
    "int": ctypes.c_int,
    "long": ctypes.c_long,
    "size_t": ctypes.c_size_t,
    "char_p": ctypes.c_char_p,
    "void_p": ctypes.c_void_p,
}


def register_native_type(name, ctype):
    """Make *ctype* available to declarations under *name*."""

    name = (name or "").strip()
    if not name:
        raise ValueError("Native type requires a name")
    NATIVE_TYPES[name] = ctype


@dataclass
class NativeDeclaration:
    """Signature of a C function resolved from the C library."""

    name: str
    arg_types: list
    return_type: str = "void"

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValueError("Native declaration requires a name")
        self.arg_types = [a.strip() for a in (self.arg_types or []) if a.strip()]
        self.return_type = (self.return_type or "").strip() or "void"
        for type_name in self.arg_types + [self.return_type]:
            if type_name not in NATIVE_TYPES:
                raise ValueError(
                    f"Native declaration {self.name} uses unknown type: {type_name}"
                )
        if "void" in self.arg_types:
            raise ValueError(f"Native declaration {self.name} has a void argument")

    @property
    def arity(self):
        return len(self.arg_types)

    def ctypes_argtypes(self):
        return [NATIVE_TYPES[a] for a in self.arg_types]

    def ctypes_restype(self):
        return NATIVE_TYPES[self.return_type]

    def to_dict(self):
        return {
            "name": self.name,
            "arg_types": list(self.arg_types),
            "return_type": self.return_type,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError("Native declaration must be built from a mapping")
        arg_types = data.get("arg_types") or data.get("args") or []
        return_type = data.get("return_type") or data.get("returns")
        return cls(data.get("name"), arg_types, return_type)


NATIVE_REGISTRY = {}


NATIVE_SCHEMA_PATTERN = re.compile(
    r"^\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*"
    r"\((?P<args>[^)]*)\)\s*->\s*(?P<ret>[A-Za-z_][A-Za-z0-9_]*)\s*$"
)


def parse_native_schema(schema):
    """Parse ``name(type, ...) -> type`` lines into declarations."""

    if not schema:
        return []

    declarations = []
    for line in schema.splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        match = NATIVE_SCHEMA_PATTERN.match(entry)
        if not match:
            raise ValueError(f"Invalid native declaration: {entry}")
        args = match.group("args").strip()
        arg_types = [a.strip() for a in args.split(",") if a.strip()] if args else []
        declarations.append(
            NativeDeclaration(
                name=match.group("name"),
                arg_types=arg_types,
                return_type=match.group("ret"),
            )
        )
    return declarations


def _normalize_native_declarations(spec):
    if spec is None:
        return []
    if isinstance(spec, NativeDeclaration):
        return [spec]
    if isinstance(spec, str):
        trimmed = spec.strip()
        if not trimmed:
            return []
        if trimmed[0] in "[{":
            return _normalize_native_declarations(json.loads(trimmed))
        return parse_native_schema(trimmed)
    if isinstance(spec, dict):
        if "declarations" in spec and isinstance(spec["declarations"], list):
            return _normalize_native_declarations(spec["declarations"])
        return [NativeDeclaration.from_dict(spec)]
    if isinstance(spec, (list, tuple)):
        decls = []
        for item in spec:
            decls.extend(_normalize_native_declarations(item))
        return decls
    raise TypeError(f"Unsupported native declaration spec type: {type(spec)!r}")


def register_native_declarations(spec, *, reset=False, replace=False):
    """Register one or more native declarations in the global registry.

    Modules register their own schema at import time with ``replace=True`` so
    that reloading them is harmless.
    """

    if reset:
        NATIVE_REGISTRY.clear()
    for decl in _normalize_native_declarations(spec):
        if decl.name in NATIVE_REGISTRY and not replace:
            raise ValueError(f"Duplicate native declaration for {decl.name}")
        NATIVE_REGISTRY[decl.name] = decl


def clear_native_registry():
    NATIVE_REGISTRY.clear()


def get_registered_native_declarations():
    """Return a snapshot of the currently registered declarations."""

    return {name: decl for name, decl in NATIVE_REGISTRY.items()}


_FROM_SETTINGS = object()


class NativeBindings:
    """Lazily bound C functions, typed from the declaration registry."""

    def __init__(self, path=_FROM_SETTINGS):
        self._path = path
        self._library = None
        self._bound = {}

    @property
    def library(self):
        if self._library is None:
            path = get_settings().libc_path if self._path is _FROM_SETTINGS else self._path
            self._library = ctypes.CDLL(path, use_errno=True)
        return self._library

    def function(self, name):
        fn = self._bound.get(name)
        if fn is not None:
            return fn
        decl = NATIVE_REGISTRY.get(name)
        if decl is None:
            raise KeyError(f"No native declaration registered for {name}")
        fn = self.library[decl.name]
        fn.argtypes = decl.ctypes_argtypes()
        fn.restype = decl.ctypes_restype()
        self._bound[name] = fn
        return fn

    def call(self, name, *args):
        return self.function(name)(*args)

    def install(self, name, fn):
        """Replace the binding for *name* with any callable."""

        self._bound[name] = fn

    def reset(self):
        self._bound.clear()
        self._library = None


LIBC = NativeBindings()


def clear_errno():
    ctypes.set_errno(0)


def last_errno():
    return ctypes.get_errno()


__all__ = [
    "NATIVE_TYPES",
    "NATIVE_REGISTRY",
    "NativeDeclaration",
    "NativeBindings",
    "LIBC",
    "parse_native_schema",
    "register_native_type",
    "register_native_declarations",
    "clear_native_registry",
    "get_registered_native_declarations",
    "clear_errno",
    "last_errno",
]
