from __future__ import annotations

import pytest

from gopybind.errors import ModelError
from gopybind.model import Package, Var


def test_from_manifest_builds_ids_and_receivers(shapes):
    assert shapes.name == "shapes"
    assert shapes.path == "example.com/shapes"

    circle = shapes.structs[0]
    assert circle.id == "shapes_Circle"
    assert [f.name for f in circle.fields] == ["Radius", "label"]
    assert [f.exported for f in circle.fields] == [True, False]

    area = circle.methods[0]
    assert area.id == "shapes_Circle_Area"
    assert area.is_method
    assert area.sig.recv == Var(name="this", type="*Circle")
    assert area.sig.results == (Var(name="", type="float64"),)

    add = shapes.funcs[0]
    assert add.id == "shapes_Add"
    assert not add.is_method
    assert [p.name for p in add.sig.params] == ["a", "b"]


def test_from_manifest_keeps_explicit_ids_and_exported_flag():
    pkg = Package.from_manifest(
        {
            "name": "p",
            "structs": [
                {
                    "name": "T",
                    "id": "p_T_1",
                    "fields": [{"name": "x", "type": "int", "exported": True}],
                }
            ],
            "funcs": [{"name": "F", "id": "p_F_2"}],
        }
    )
    assert pkg.path == "p"
    assert pkg.structs[0].id == "p_T_1"
    assert pkg.structs[0].fields[0].exported is True
    assert pkg.funcs[0].id == "p_F_2"
    assert pkg.lookup_struct("T") is pkg.structs[0]
    assert pkg.lookup_struct("U") is None


@pytest.mark.parametrize(
    "doc, match",
    [
        ([], r"must be an object"),
        ({"path": "x"}, r"missing or invalid 'name'"),
        ({"name": "p", "funcs": {}}, r"'funcs' must be a list"),
        ({"name": "p", "funcs": [{"name": "F", "params": [3]}]}, r"funcs\[0\]\.params\[0\]"),
        ({"name": "p", "structs": [{"name": "T", "fields": [{"name": "A"}]}]}, r"'type'"),
    ],
)
def test_from_manifest_rejects_malformed_documents(doc, match):
    with pytest.raises(ModelError, match=match):
        Package.from_manifest(doc)
