"""gopybind: generate CPython extension modules for Go packages."""

from __future__ import annotations

from . import errors
from .cpygen import GeneratedSource, GenOptions, generate
from .loader import load_package
from .model import Field, Func, Package, Signature, Struct, Var
from .types import TypeInfo, classify

__all__ = [
    "errors",
    "Field",
    "Func",
    "GeneratedSource",
    "GenOptions",
    "Package",
    "Signature",
    "Struct",
    "TypeInfo",
    "Var",
    "classify",
    "generate",
    "load_package",
]
