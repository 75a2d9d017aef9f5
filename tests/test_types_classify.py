from __future__ import annotations

import pytest

from gopybind.errors import UnsupportedTypeError
from gopybind.model import Package, Struct
from gopybind.types import c_quote, classify


def _pkg() -> Package:
    return Package(name="p", path="example.com/p", structs=(Struct(name="Point", id="p_Point"),))


def test_classify_scalars_parse_and_pack_codes():
    pkg = _pkg()
    assert (classify("int", pkg).parse_fmt, classify("int", pkg).pack_fmt) == ("L", "L")
    assert classify("int", pkg).ctype == "GoInt"
    assert classify("float64", pkg).parse_fmt == "d"
    assert classify("float32", pkg).ctype == "GoFloat32"
    assert classify("uint16", pkg).parse_fmt == "H"
    assert classify("byte", pkg).ctype == "GoUint8"
    assert classify("rune", pkg).ctype == "GoInt32"


def test_classify_bool_parses_through_int_and_fixes_up():
    info = classify("bool", _pkg())
    assert info.ctype == "GoUint8"
    assert info.parse_fmt == "p"
    assert info.parse_ctype == "int"
    assert info.needs_fixup
    assert info.convert(src="cgopy_ok", dst="c_ok") == "c_ok = (GoUint8)c_ok_arg;"
    assert info.pack_value("r") == "PyBool_FromLong(r)"


def test_classify_string_packs_pointer_and_length():
    info = classify("string", _pkg())
    assert info.ctype == "GoString"
    assert info.parse_fmt == "s"
    assert info.pack_fmt == "s#"
    assert info.pack_value("x") == "x.p, (Py_ssize_t)x.n"
    assert info.convert(src="a", dst="b") == "b = _cgopy_makegostring(a);"


def test_classify_struct_handle_packs_but_never_parses():
    for t in ("Point", "*Point"):
        info = classify(t, _pkg())
        assert info.kind == "handle"
        assert info.ctype == "GoPy_p_Point"
        assert not info.parseable
        assert info.pack_fmt == "N"
        assert info.pack_value("h") == 'PyCapsule_New(h, "p.Point", NULL)'


def test_classify_composites_need_a_wrapper_alias():
    pkg = _pkg()
    with pytest.raises(UnsupportedTypeError, match=r"only supported as a struct field"):
        classify("[]int", pkg)

    info = classify("map[string][]int", pkg, wrap_alias="GoPy_Bag_field_2")
    assert info.needs_wrap
    assert info.ctype == "GoPy_Bag_field_2"
    assert not info.parseable

    # Scalars never need the wrapper, even in a field context.
    assert not classify("int", pkg, wrap_alias="GoPy_Bag_field_1").needs_wrap


@pytest.mark.parametrize(
    "t",
    ["func(int) int", "chan int", "<-chan string", "error", "any", "interface{}", "[]func()", "map[string]error", "...int"],
)
def test_classify_rejects_unmappable_types(t):
    with pytest.raises(UnsupportedTypeError) as ei:
        classify(t, _pkg(), wrap_alias="GoPy_X_field_1")
    assert ei.value.go_type


def test_c_quote_escapes():
    assert c_quote('a "b"\n') == '"a \\"b\\"\\n"'
    assert c_quote("x\\y") == '"x\\\\y"'
    assert c_quote("é") == '"\\303\\251"'
