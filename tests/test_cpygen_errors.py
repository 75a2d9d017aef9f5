from __future__ import annotations

import pytest

from gopybind.cpygen import _BoundVar, generate
from gopybind.errors import GenerationError, GoPyBindError, UnsupportedTypeError
from gopybind.model import Package
from gopybind.types import classify


def _manifest():
    return {
        "name": "p",
        "structs": [
            {
                "name": "T",
                "fields": [
                    {"name": "Cb", "type": "func()"},
                    {"name": "N", "type": "int"},
                ],
                "methods": [
                    {"name": "Each", "params": ["func(int)"]},
                    {"name": "Len", "results": ["int"]},
                ],
            }
        ],
        "funcs": [
            {"name": "Apply", "params": ["func(int) int", "int"], "results": ["int"]},
            {"name": "Sum", "params": ["[]int"], "results": ["int"]},
            {"name": "Take", "params": ["*T"]},
            {"name": "Fail", "results": ["error"]},
            {"name": "Ok", "params": ["int"]},
        ],
    }


def test_unmappable_types_are_all_recorded_and_skipped():
    out = generate(Package.from_manifest(_manifest()))

    assert not out.ok
    entities = [e.entity for e in out.errors]
    assert entities == ["p.T.Cb", "p.T.Each", "p.Apply", "p.Sum", "p.Take", "p.Fail"]
    assert all(isinstance(e, UnsupportedTypeError) for e in out.errors)
    assert out.errors[0].go_type == "func()"

    # Skipped entities are absent from code and tables; the rest is still bound.
    assert "gopy_p_Apply" not in out.source
    assert "gopy_p_Sum" not in out.source
    assert "gopy_p_Take" not in out.source
    assert "gopy_p_T_Each" not in out.source
    assert "_gopy_p_T_getter_1" not in out.source
    assert "_gopy_p_T_getter_2" in out.impl
    assert '{"Len", (PyCFunction)gopy_p_T_Len, METH_NOARGS, ""},' in out.impl
    assert '{"Ok", gopy_p_Ok, METH_VARARGS, ""},' in out.impl


def test_raise_for_errors_aggregates_everything():
    out = generate(Package.from_manifest(_manifest()))
    with pytest.raises(GenerationError, match=r"6 generation error\(s\)") as ei:
        out.raise_for_errors()
    assert len(ei.value.errors) == 6
    assert "cannot be received from a Python argument" in str(ei.value)


def test_errors_are_deterministic():
    pkg = Package.from_manifest(_manifest())
    assert [str(e) for e in generate(pkg).errors] == [str(e) for e in generate(pkg).errors]


def test_clean_package_does_not_raise(shapes):
    generate(shapes).raise_for_errors()


def test_handle_parameter_has_no_parse_format(shapes):
    var = _BoundVar("h", classify("*Circle", shapes))
    with pytest.raises(GoPyBindError, match=r"\*Circle has no argument-parsing format"):
        var.get_arg_parse()
