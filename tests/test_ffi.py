import ctypes
import json
import os

import pytest

from linuxhandles import ffi
from linuxhandles import (
    NativeBindings,
    NativeDeclaration,
    get_registered_native_declarations,
    parse_native_schema,
    register_native_declarations,
)


@pytest.fixture
def registry(monkeypatch):
    monkeypatch.setattr(ffi, "NATIVE_REGISTRY", {})
    return ffi


def test_parse_native_schema():
    decls = parse_native_schema("seekdir(void_p, long) -> void")
    assert len(decls) == 1
    decl = decls[0]
    assert decl.name == "seekdir"
    assert decl.arg_types == ["void_p", "long"]
    assert decl.return_type == "void"
    assert decl.arity == 2
    assert decl.ctypes_argtypes() == [ctypes.c_void_p, ctypes.c_long]
    assert decl.ctypes_restype() is None


def test_parse_native_schema_skips_comments_and_rejects_garbage():
    schema = """
    # loader entry points
    dlerror() -> char_p

    """
    decls = parse_native_schema(schema)
    assert [d.name for d in decls] == ["dlerror"]
    assert decls[0].arity == 0

    with pytest.raises(ValueError, match="Invalid native declaration"):
        parse_native_schema("opendir char_p -> void_p")


def test_declaration_rejects_unknown_and_void_arguments():
    with pytest.raises(ValueError, match="unknown type"):
        NativeDeclaration("f", ["quaternion"], "int")
    with pytest.raises(ValueError, match="void argument"):
        NativeDeclaration("f", ["void"], "int")
    with pytest.raises(ValueError, match="requires a name"):
        NativeDeclaration("  ", [], "int")


def test_register_native_type_extends_vocabulary(monkeypatch):
    monkeypatch.setattr(ffi, "NATIVE_TYPES", dict(ffi.NATIVE_TYPES))
    ffi.register_native_type("double", ctypes.c_double)
    decl = NativeDeclaration("fabs", ["double"], "double")
    assert decl.ctypes_restype() is ctypes.c_double
    with pytest.raises(ValueError):
        ffi.register_native_type("", ctypes.c_int)


def test_register_native_declarations_supports_various_spec_shapes(registry):
    inline = "getpid() -> int"
    wrapped = {"declarations": [{"name": "getppid", "args": [], "returns": "int"}]}
    decl = NativeDeclaration("close", ["int"], "int")
    blob = json.dumps([{"name": "dup", "arg_types": ["int"], "return_type": "int"}])

    register_native_declarations([inline, wrapped, decl, blob], reset=True)

    registered = get_registered_native_declarations()
    assert set(registered) == {"getpid", "getppid", "close", "dup"}
    assert registered["dup"].arity == 1
    assert registered["getppid"].to_dict() == {
        "name": "getppid",
        "arg_types": [],
        "return_type": "int",
    }


def test_register_native_declarations_rejects_duplicates_unless_replacing(registry):
    register_native_declarations("getpid() -> int")
    with pytest.raises(ValueError, match="Duplicate"):
        register_native_declarations("getpid() -> int")
    register_native_declarations("getpid() -> long", replace=True)
    assert registry.NATIVE_REGISTRY["getpid"].return_type == "long"

    with pytest.raises(TypeError):
        register_native_declarations(42)
    with pytest.raises(TypeError):
        NativeDeclaration.from_dict(["getpid"])


def test_bindings_resolve_declared_functions(registry):
    register_native_declarations("getpid() -> int")
    libc = NativeBindings(None)
    assert libc.call("getpid") == os.getpid()
    assert libc.function("getpid") is libc.function("getpid")

    with pytest.raises(KeyError):
        libc.function("not_declared")


def test_bindings_install_and_reset(registry):
    libc = NativeBindings(None)
    libc.install("getpid", lambda: 4242)
    assert libc.call("getpid") == 4242

    libc.reset()
    register_native_declarations("getpid() -> int")
    assert libc.call("getpid") == os.getpid()
