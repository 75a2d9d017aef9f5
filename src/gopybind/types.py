"""Go type -> CPython argument-parsing / value-building format codes."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import UnsupportedTypeError
from .model import Package

# go type -> (cgo type, parse code, parse storage, pack code, pack expr)
_SCALARS: dict[str, tuple[str, str, str, str, str]] = {
    "bool": ("GoUint8", "p", "int", "N", "PyBool_FromLong({v})"),
    "int": ("GoInt", "L", "GoInt", "L", "(long long){v}"),
    "int8": ("GoInt8", "i", "int", "i", "(int){v}"),
    "int16": ("GoInt16", "h", "GoInt16", "h", "{v}"),
    "int32": ("GoInt32", "i", "GoInt32", "i", "{v}"),
    "int64": ("GoInt64", "L", "GoInt64", "L", "(long long){v}"),
    "uint": ("GoUint", "K", "GoUint", "K", "(unsigned long long){v}"),
    "uint8": ("GoUint8", "B", "GoUint8", "B", "{v}"),
    "uint16": ("GoUint16", "H", "GoUint16", "H", "{v}"),
    "uint32": ("GoUint32", "I", "GoUint32", "I", "{v}"),
    "uint64": ("GoUint64", "K", "GoUint64", "K", "(unsigned long long){v}"),
    "uintptr": ("GoUintptr", "K", "unsigned long long", "K", "(unsigned long long){v}"),
    "float32": ("GoFloat32", "f", "GoFloat32", "f", "{v}"),
    "float64": ("GoFloat64", "d", "GoFloat64", "d", "{v}"),
}

_ALIASES = {"byte": "uint8", "rune": "int32"}

_UNMAPPABLE_NAMES = {"error", "any", "unsafe.Pointer", "complex64", "complex128"}

_ARRAY_RE = re.compile(r"^\[(\d*)\]")
_IFACE_RE = re.compile(r"^interface\s*\{")


@dataclass(frozen=True)
class TypeInfo:
    """How one Go type crosses the extension ABI.

    `parse_fmt` is None when a value of this type can never be received from a
    Python argument. When `parse_ctype` differs from `ctype` the parsed storage
    is converted with `fixup` after every argument has been parsed.
    """

    kind: str
    go_type: str
    ctype: str
    parse_fmt: str | None
    parse_ctype: str | None
    pack_fmt: str
    pack_expr: str
    fixup: str | None = None
    needs_wrap: bool = False

    @property
    def parseable(self) -> bool:
        return self.parse_fmt is not None

    @property
    def needs_fixup(self) -> bool:
        return self.fixup is not None

    def pack_value(self, value: str) -> str:
        return self.pack_expr.format(v=value)

    def convert(self, *, src: str, dst: str) -> str:
        if self.fixup is None:
            return ""
        return self.fixup.format(src=src, dst=dst)


def classify(go_type: str, pkg: Package, *, wrap_alias: str | None = None) -> TypeInfo:
    """Map a Go type to its CPython ABI representation.

    Composite types (slices, arrays, maps, struct values in fields, foreign
    named types) are only representable behind a wrapper alias; pass
    `wrap_alias` when classifying a struct field. Raises UnsupportedTypeError
    when the type has no mapping.
    """
    t = go_type.strip()
    base = _ALIASES.get(t, t)

    scalar = _SCALARS.get(base)
    if scalar is not None:
        ctype, pfmt, pctype, kfmt, kexpr = scalar
        fixup = None
        if pctype != ctype:
            fixup = "{dst} = (" + ctype + "){src};"
        return TypeInfo(
            kind="scalar",
            go_type=t,
            ctype=ctype,
            parse_fmt=pfmt,
            parse_ctype=pctype,
            pack_fmt=kfmt,
            pack_expr=kexpr,
            fixup=fixup,
        )

    if base == "string":
        return TypeInfo(
            kind="string",
            go_type=t,
            ctype="GoString",
            parse_fmt="s",
            parse_ctype="const char*",
            pack_fmt="s#",
            pack_expr="{v}.p, (Py_ssize_t){v}.n",
            fixup="{dst} = _cgopy_makegostring({src});",
        )

    _check_mappable(t)

    if wrap_alias is None:
        st = pkg.lookup_struct(t.lstrip("*").strip()) if t.count("*") <= 1 else None
        if st is not None:
            return TypeInfo(
                kind="handle",
                go_type=t,
                ctype=f"GoPy_{st.id}",
                parse_fmt=None,
                parse_ctype=None,
                pack_fmt="N",
                pack_expr="PyCapsule_New({v}, " + c_quote(f"{pkg.name}.{st.name}") + ", NULL)",
            )
        raise UnsupportedTypeError(
            f"composite type {t} is only supported as a struct field",
            go_type=t,
        )

    return TypeInfo(
        kind="composite",
        go_type=t,
        ctype=wrap_alias,
        parse_fmt=None,
        parse_ctype=None,
        pack_fmt="N",
        pack_expr="PyCapsule_New({v}, " + c_quote(wrap_alias) + ", NULL)",
        needs_wrap=True,
    )


def _check_mappable(t: str) -> None:
    """Reject types that cannot cross the ABI in any form, recursing into composites."""
    t = t.strip()
    if not t:
        raise UnsupportedTypeError("empty type", go_type=t)
    if t in _UNMAPPABLE_NAMES:
        raise UnsupportedTypeError(f"unsupported type {t}", go_type=t)
    if t.startswith("..."):
        raise UnsupportedTypeError(f"variadic parameter {t} is not supported", go_type=t)
    if t.startswith("func(") or t.startswith("func ("):
        raise UnsupportedTypeError(f"function type {t} is not supported", go_type=t)
    if t.startswith("chan ") or t.startswith("chan<-") or t.startswith("<-chan"):
        raise UnsupportedTypeError(f"channel type {t} is not supported", go_type=t)
    if _IFACE_RE.match(t):
        raise UnsupportedTypeError(f"interface type {t} is not supported", go_type=t)
    if t.startswith("*"):
        _check_mappable(t[1:])
        return
    if t.startswith("[]"):
        _check_mappable(t[2:])
        return
    m = _ARRAY_RE.match(t)
    if m:
        _check_mappable(t[m.end() :])
        return
    if t.startswith("map["):
        key, value = _split_map(t)
        _check_mappable(key)
        _check_mappable(value)


def _split_map(t: str) -> tuple[str, str]:
    depth = 0
    for i in range(len("map"), len(t)):
        c = t[i]
        if c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth == 0:
                return t[len("map[") : i], t[i + 1 :]
    raise UnsupportedTypeError(f"malformed map type {t}", go_type=t)


def c_quote(s: str) -> str:
    """Return `s` as a C string literal."""
    out = ['"']
    for ch in s:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\{ord(ch):03o}")
        elif ord(ch) > 0x7F:
            # Octal escapes of the UTF-8 bytes keep the literal ASCII-only.
            out.extend(f"\\{b:03o}" for b in ch.encode("utf-8"))
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)
