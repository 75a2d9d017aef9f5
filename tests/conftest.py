import pytest

from gopybind.model import Package


@pytest.fixture()
def shapes_manifest():
    return {
        "name": "shapes",
        "path": "example.com/shapes",
        "doc": "Package shapes computes areas.",
        "structs": [
            {
                "name": "Circle",
                "doc": "Circle is a round shape.",
                "fields": [
                    {"name": "Radius", "type": "float64"},
                    {"name": "label", "type": "string"},
                ],
                "methods": [
                    {"name": "Area", "params": [], "results": ["float64"], "doc": "Area returns the area."},
                ],
            }
        ],
        "funcs": [
            {
                "name": "Add",
                "params": [{"name": "a", "type": "int"}, {"name": "b", "type": "int"}],
                "results": ["int"],
                "doc": "Add returns a+b.",
            }
        ],
    }


@pytest.fixture()
def shapes(shapes_manifest):
    return Package.from_manifest(shapes_manifest)
