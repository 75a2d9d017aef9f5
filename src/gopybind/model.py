"""In-memory model of a resolved Go package surface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ModelError


@dataclass(frozen=True)
class Var:
    # Empty name means "unnamed"; the generator synthesizes one.
    name: str
    type: str


@dataclass(frozen=True)
class Signature:
    params: tuple[Var, ...] = ()
    results: tuple[Var, ...] = ()
    recv: Var | None = None


@dataclass(frozen=True)
class Func:
    name: str
    id: str
    sig: Signature
    doc: str = ""

    @property
    def is_method(self) -> bool:
        return self.sig.recv is not None


@dataclass(frozen=True)
class Field:
    name: str
    type: str
    exported: bool


@dataclass(frozen=True)
class Struct:
    name: str
    id: str
    fields: tuple[Field, ...] = ()
    methods: tuple[Func, ...] = ()
    doc: str = ""


@dataclass(frozen=True)
class Package:
    name: str
    path: str
    doc: str = ""
    structs: tuple[Struct, ...] = ()
    funcs: tuple[Func, ...] = ()

    def lookup_struct(self, name: str) -> Struct | None:
        for s in self.structs:
            if s.name == name:
                return s
        return None

    @classmethod
    def from_manifest(cls, doc: dict[str, Any]) -> "Package":
        """Build a package model from a manifest document.

        The document is produced by the type-resolution stage; see `load_package`
        for the on-disk forms.
        """
        if not isinstance(doc, dict):
            raise ModelError("package manifest must be an object")
        name = _req_str(doc, "name", where="package")
        path = doc.get("path") or name
        if not isinstance(path, str):
            raise ModelError("package: 'path' must be a string")
        pkg_doc = _opt_str(doc, "doc", where="package")

        structs: list[Struct] = []
        for i, raw in enumerate(_opt_list(doc, "structs", where="package")):
            structs.append(_struct_from_manifest(name, raw, where=f"structs[{i}]"))

        funcs: list[Func] = []
        for i, raw in enumerate(_opt_list(doc, "funcs", where="package")):
            where = f"funcs[{i}]"
            fname = _req_str(raw, "name", where=where)
            funcs.append(
                Func(
                    name=fname,
                    id=_opt_str(raw, "id", where=where) or f"{name}_{fname}",
                    sig=_sig_from_manifest(raw, recv=None, where=where),
                    doc=_opt_str(raw, "doc", where=where),
                )
            )

        return cls(name=name, path=path, doc=pkg_doc, structs=tuple(structs), funcs=tuple(funcs))


def _struct_from_manifest(pkg: str, raw: Any, *, where: str) -> Struct:
    name = _req_str(raw, "name", where=where)
    sid = _opt_str(raw, "id", where=where) or f"{pkg}_{name}"

    fields: list[Field] = []
    for i, f in enumerate(_opt_list(raw, "fields", where=where)):
        fwhere = f"{where}.fields[{i}]"
        fn = _req_str(f, "name", where=fwhere)
        ft = _req_str(f, "type", where=fwhere)
        exported = f.get("exported")
        if exported is None:
            exported = fn[:1].isupper()
        elif not isinstance(exported, bool):
            raise ModelError(f"{fwhere}: 'exported' must be a bool")
        fields.append(Field(name=fn, type=ft, exported=exported))

    # Methods bind through a pointer receiver to the struct's opaque handle.
    recv = Var(name="this", type=f"*{name}")
    methods: list[Func] = []
    for i, m in enumerate(_opt_list(raw, "methods", where=where)):
        mwhere = f"{where}.methods[{i}]"
        mname = _req_str(m, "name", where=mwhere)
        methods.append(
            Func(
                name=mname,
                id=_opt_str(m, "id", where=mwhere) or f"{pkg}_{name}_{mname}",
                sig=_sig_from_manifest(m, recv=recv, where=mwhere),
                doc=_opt_str(m, "doc", where=mwhere),
            )
        )

    return Struct(
        name=name,
        id=sid,
        fields=tuple(fields),
        methods=tuple(methods),
        doc=_opt_str(raw, "doc", where=where),
    )


def _sig_from_manifest(raw: dict[str, Any], *, recv: Var | None, where: str) -> Signature:
    params = _vars_from_manifest(_opt_list(raw, "params", where=where), where=f"{where}.params")
    results = _vars_from_manifest(_opt_list(raw, "results", where=where), where=f"{where}.results")
    return Signature(params=params, results=results, recv=recv)


def _vars_from_manifest(items: list[Any], *, where: str) -> tuple[Var, ...]:
    out: list[Var] = []
    for i, item in enumerate(items):
        if isinstance(item, str) and item.strip():
            out.append(Var(name="", type=item.strip()))
            continue
        if isinstance(item, dict):
            t = item.get("type")
            n = item.get("name", "")
            if isinstance(t, str) and t.strip() and isinstance(n, str):
                out.append(Var(name=n, type=t.strip()))
                continue
        raise ModelError(f"{where}[{i}]: expected a type string or {{name, type}} object")
    return tuple(out)


def _req_str(obj: Any, key: str, *, where: str) -> str:
    if not isinstance(obj, dict):
        raise ModelError(f"{where}: expected an object")
    v = obj.get(key)
    if not isinstance(v, str) or not v:
        raise ModelError(f"{where}: missing or invalid '{key}'")
    return v


def _opt_str(obj: dict[str, Any], key: str, *, where: str) -> str:
    v = obj.get(key)
    if v is None:
        return ""
    if not isinstance(v, str):
        raise ModelError(f"{where}: '{key}' must be a string")
    return v


def _opt_list(obj: Any, key: str, *, where: str) -> list[Any]:
    if not isinstance(obj, dict):
        raise ModelError(f"{where}: expected an object")
    v = obj.get(key)
    if v is None:
        return []
    if not isinstance(v, list):
        raise ModelError(f"{where}: '{key}' must be a list")
    return v
