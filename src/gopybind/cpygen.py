"""CPython extension-module generator for a Go package surface.

The generator walks an immutable `Package` once and writes two streams: a
declarations stream (preamble, handle/record types, prototypes) and a
definitions stream (wrapper bodies, lifecycle hooks, registration tables and
the module init routine). Types that cannot cross the ABI are recorded and the
affected entity is left out of every table; the pass never stops early.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path

from .errors import GenerationError, GoPyBindError, UnsupportedTypeError
from .model import Func, Package, Struct, Var
from .printer import Printer
from .types import TypeInfo, c_quote, classify

logger = logging.getLogger(__name__)

_PREAMBLE = """\
/*
  C stubs for package {name}.
  gopybind gen {path}

  File is generated by gopybind gen. Do not edit.
*/

#ifdef _POSIX_C_SOURCE
#undef _POSIX_C_SOURCE
#endif

#define PY_SSIZE_T_CLEAN
#include "Python.h"
#include "structmember.h"
#include <string.h>

// header exported from 'go tool cgo'
#include "{header}.h"

static inline GoString
_cgopy_makegostring(const char *s) {{
    GoString str = {{ s, (ptrdiff_t)strlen(s) }};
    return str;
}}

"""

_RET = "gopy_ret"
_THIS = "gopy_this"


@dataclass(frozen=True)
class GenOptions:
    # Base name of the cgo export header; defaults to the package name's base.
    header_name: str | None = None


@dataclass(frozen=True)
class GeneratedSource:
    package: str
    decl: str
    impl: str
    errors: tuple[UnsupportedTypeError, ...] = ()

    @property
    def source(self) -> str:
        return self.decl + self.impl

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def file_name(self) -> str:
        return f"{self.package}.c"

    def raise_for_errors(self) -> None:
        if self.errors:
            raise GenerationError(self.errors)

    def write(self, out_dir: Path) -> Path:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        out_file = out_dir / self.file_name
        out_file.write_text(self.source, encoding="utf-8")
        return out_file


@dataclass(frozen=True)
class _BoundVar:
    name: str
    info: TypeInfo

    @property
    def cname(self) -> str:
        return f"c_{self.name}"

    @property
    def storage(self) -> str:
        # Where PyArg_* writes; differs from cname when a fix-up follows.
        if self.info.needs_fixup:
            return f"cgopy_{self.name}"
        return self.cname

    def gen_decl(self, p: Printer) -> None:
        p.printf(f"{self.info.ctype} {self.cname};\n")
        if self.info.needs_fixup:
            p.printf(f"{self.info.parse_ctype} {self.storage};\n")

    def get_arg_parse(self) -> tuple[str, str]:
        if self.info.parse_fmt is None:
            raise GoPyBindError(f"{self.info.go_type} has no argument-parsing format")
        return self.info.parse_fmt, f"&{self.storage}"

    def gen_func_preamble(self, p: Printer) -> None:
        if self.info.needs_fixup:
            p.printf(self.info.convert(src=self.storage, dst=self.cname) + "\n")


@dataclass(frozen=True)
class _BoundSig:
    recv: _BoundVar | None
    params: tuple[_BoundVar, ...]
    results: tuple[TypeInfo, ...]


def generate(pkg: Package, opts: GenOptions | None = None) -> GeneratedSource:
    """Generate the C extension source for `pkg`.

    Always returns the (possibly partial) source together with every recorded
    error; call `raise_for_errors()` to fail on any of them.
    """
    return _CPyGen(pkg, opts or GenOptions()).gen()


class _CPyGen:
    def __init__(self, pkg: Package, opts: GenOptions) -> None:
        self.pkg = pkg
        self.opts = opts
        self.decl = Printer()
        self.impl = Printer()
        self.errors: list[UnsupportedTypeError] = []

    def gen(self) -> GeneratedSource:
        logger.debug("generating bindings for package %s (%s)", self.pkg.name, self.pkg.path)
        self.gen_preamble()

        for s in self.pkg.structs:
            self.gen_struct(s)

        bound = [f for f in self.pkg.funcs if self.gen_func(f)]

        self.gen_module_methods(bound)
        self.gen_module_init()

        if self.errors:
            logger.warning(
                "package %s: %d binding error(s); affected entities were skipped",
                self.pkg.name,
                len(self.errors),
            )
        return GeneratedSource(
            package=self.pkg.name,
            decl=self.decl.getvalue(),
            impl=self.impl.getvalue(),
            errors=tuple(self.errors),
        )

    # -- errors ---------------------------------------------------------------

    def _record(self, entity: str, err: UnsupportedTypeError, what: str) -> None:
        e = UnsupportedTypeError(f"{entity}: {what}: {err}", entity=entity, go_type=err.go_type)
        logger.warning("%s", e)
        self.errors.append(e)

    # -- preamble ---------------------------------------------------------------

    def gen_preamble(self) -> None:
        n = self.pkg.name
        header = self.opts.header_name or posixpath.basename(n)
        self.decl.printf(_PREAMBLE.format(name=n, path=self.pkg.path, header=header))

    # -- signatures -------------------------------------------------------------

    def bind_signature(self, entity: str, fn: Func) -> _BoundSig | None:
        """Classify every var of `fn`; None when any of them is unmappable."""
        sig = fn.sig
        failed = False

        recv = None
        if sig.recv is not None:
            try:
                recv = _BoundVar("gopy_this", classify(sig.recv.type, self.pkg))
            except UnsupportedTypeError as e:
                self._record(entity, e, f"receiver {sig.recv.type}")
                failed = True

        params: list[_BoundVar] = []
        for i, v in enumerate(sig.params):
            name = _var_name(v, f"arg{i}")
            try:
                info = classify(v.type, self.pkg)
            except UnsupportedTypeError as e:
                self._record(entity, e, f"parameter {name}")
                failed = True
                continue
            if not info.parseable:
                err = UnsupportedTypeError(
                    f"{v.type} cannot be received from a Python argument", go_type=v.type
                )
                self._record(entity, err, f"parameter {name}")
                failed = True
                continue
            params.append(_BoundVar(name, info))

        results: list[TypeInfo] = []
        for i, v in enumerate(sig.results):
            try:
                results.append(classify(v.type, self.pkg))
            except UnsupportedTypeError as e:
                self._record(entity, e, f"result {_var_name(v, f'gopy_{i}')}")
                failed = True

        if failed:
            return None
        return _BoundSig(recv=recv, params=tuple(params), results=tuple(results))

    # -- functions --------------------------------------------------------------

    def gen_func(self, fn: Func) -> bool:
        entity = f"{self.pkg.name}.{fn.name}"
        bsig = self.bind_signature(entity, fn)
        if bsig is None:
            return False
        logger.debug("binding function %s as gopy_%s", entity, fn.id)

        self.decl.printf(f"/* pythonization of: {entity} */\n")
        self.decl.printf(f"static PyObject*\ngopy_{fn.id}(PyObject *self, PyObject *args);\n\n")

        self.impl.printf(f"/* pythonization of: {entity} */\n")
        self.impl.printf(f"static PyObject*\ngopy_{fn.id}(PyObject *self, PyObject *args) {{\n")
        self.impl.indent()
        self.gen_func_body(fn.id, bsig, recv_struct=None)
        self.impl.outdent()
        self.impl.printf("}\n\n")
        return True

    def gen_func_body(self, fid: str, bsig: _BoundSig, *, recv_struct: Struct | None) -> None:
        p = self.impl
        func_args: list[str] = []

        if bsig.recv is not None:
            p.printf(f"{bsig.recv.info.ctype} {_THIS};\n")
            func_args.append(_THIS)

        for arg in bsig.params:
            arg.gen_decl(p)
            func_args.append(arg.cname)

        res = bsig.results
        if len(res) == 1:
            p.printf(f"{res[0].ctype} {_RET};\n")
        elif len(res) > 1:
            p.printf(f"struct {fid}_return {_RET};\n")

        p.printf("\n")

        if bsig.recv is not None and recv_struct is not None:
            p.printf(f"{_THIS} = ((_gopy_{recv_struct.id}*)self)->cgopy;\n\n")

        if bsig.params:
            formats: list[str] = []
            addrs: list[str] = []
            for arg in bsig.params:
                pyfmt, addr = arg.get_arg_parse()
                formats.append(pyfmt)
                addrs.append(addr)
            p.printf(f"if (!PyArg_ParseTuple(args, {c_quote(''.join(formats))}, {', '.join(addrs)})) {{\n")
            p.indent()
            p.printf("return NULL;\n")
            p.outdent()
            p.printf("}\n\n")

            if any(arg.info.needs_fixup for arg in bsig.params):
                for arg in bsig.params:
                    arg.gen_func_preamble(p)
                p.printf("\n")

        if res:
            p.printf(f"{_RET} = ")
        p.printf(f"GoPy_{fid}({', '.join(func_args)});\n\n")

        if not res:
            p.printf("Py_RETURN_NONE;\n")
            return

        if len(res) == 1:
            formats = [res[0].pack_fmt]
            values = [res[0].pack_value(_RET)]
        else:
            formats = [r.pack_fmt for r in res]
            values = [r.pack_value(f"{_RET}.r{i}") for i, r in enumerate(res)]
        p.printf(f"return Py_BuildValue({c_quote(''.join(formats))}, {', '.join(values)});\n")

    # -- structs ----------------------------------------------------------------

    def gen_struct(self, s: Struct) -> None:
        pkgname = self.pkg.name
        logger.debug("binding struct %s.%s as _gopy_%s", pkgname, s.name, s.id)

        self.decl.printf(f"/* --- decls for struct {pkgname}.{s.name} --- */\n")
        self.decl.printf(f"typedef void* GoPy_{s.id};\n\n")
        self.decl.printf(f"/* type for struct {pkgname}.{s.name}\n */\ntypedef struct {{\n")
        self.decl.indent()
        self.decl.printf("PyObject_HEAD\n")
        self.decl.printf(f"GoPy_{s.id} cgopy; /* unsafe.Pointer to {s.id} */\n")
        self.decl.outdent()
        self.decl.printf(f"}} _gopy_{s.id};\n\n\n")

        self.impl.printf(f"/* --- impl for {pkgname}.{s.name} */\n\n")

        self.gen_struct_dealloc(s)
        self.gen_struct_new(s)
        self.gen_struct_init(s)
        self.gen_struct_members(s)
        self.gen_struct_methods(s)
        self.gen_struct_type(s)

    def gen_struct_dealloc(self, s: Struct) -> None:
        hdr = f"/* tp_dealloc for {self.pkg.name}.{s.name} */\n"
        proto = f"static void\n_gopy_{s.id}_dealloc(_gopy_{s.id} *self)"
        self.decl.printf(hdr + proto + ";\n")

        self.impl.printf(hdr + proto + " {\n")
        self.impl.indent()
        self.impl.printf("Py_TYPE(self)->tp_free((PyObject*)self);\n")
        self.impl.outdent()
        self.impl.printf("}\n\n")

    def gen_struct_new(self, s: Struct) -> None:
        proto = f"static PyObject*\n_gopy_{s.id}_new(PyTypeObject *type, PyObject *args, PyObject *kwds)"
        self.decl.printf(f"/* tp_new for {self.pkg.name}.{s.name} */\n{proto};\n")

        self.impl.printf(f"/* tp_new */\n{proto} {{\n")
        self.impl.indent()
        self.impl.printf(f"_gopy_{s.id} *self;\n")
        self.impl.printf(f"self = (_gopy_{s.id} *)type->tp_alloc(type, 0);\n")
        self.impl.printf("if (self == NULL) {\n")
        self.impl.indent()
        self.impl.printf("return NULL;\n")
        self.impl.outdent()
        self.impl.printf("}\n")
        self.impl.printf(f"self->cgopy = GoPy_{s.id}_new();\n")
        self.impl.printf("return (PyObject*)self;\n")
        self.impl.outdent()
        self.impl.printf("}\n\n")

    def gen_struct_init(self, s: Struct) -> None:
        proto = f"static int\n_gopy_{s.id}_init(_gopy_{s.id} *self, PyObject *args, PyObject *kwds)"
        self.decl.printf(f"/* tp_init for {self.pkg.name}.{s.name} */\n{proto};\n")

        self.impl.printf(f"/* tp_init */\n{proto} {{\n")
        self.impl.indent()
        self.impl.printf("return 0;\n")
        self.impl.outdent()
        self.impl.printf("}\n\n")

    def gen_struct_members(self, s: Struct) -> None:
        pkgname = self.pkg.name
        bound: list[tuple[int, str]] = []

        self.decl.printf(f"/* tp_getset for {pkgname}.{s.name} */\n")
        for i, f in enumerate(s.fields, start=1):
            if not f.exported:
                continue
            alias = f"GoPy_{s.name}_field_{i}"
            try:
                info = classify(f.type, self.pkg, wrap_alias=alias)
            except UnsupportedTypeError as e:
                self._record(f"{pkgname}.{s.name}.{f.name}", e, "field")
                continue
            if info.needs_wrap:
                self.decl.printf(f"typedef void* {alias}; /* {f.type} */\n")
            self.gen_getter(s, i, f.name, info)
            self.gen_setter(s, i, f.name, info)
            bound.append((i, f.name))

        self.impl.printf(f"/* tp_getset for {pkgname}.{s.name} */\n")
        self.impl.printf(f"static PyGetSetDef _gopy_{s.id}_getsets[] = {{\n")
        self.impl.indent()
        for i, name in bound:
            self.impl.printf(
                f"{{{c_quote(name)}, "
                f"(getter)_gopy_{s.id}_getter_{i}, "
                f"(setter)_gopy_{s.id}_setter_{i}, "
                f"{c_quote('doc for ' + name)}, NULL}},\n"
            )
        self.impl.printf("{NULL} /* Sentinel */\n")
        self.impl.outdent()
        self.impl.printf("};\n\n")

    def gen_getter(self, s: Struct, i: int, name: str, info: TypeInfo) -> None:
        self.decl.printf(
            f"static PyObject*\n_gopy_{s.id}_getter_{i}(_gopy_{s.id} *self, void *closure); /* {name} */\n"
        )
        self.impl.printf(
            f"static PyObject*\n_gopy_{s.id}_getter_{i}(_gopy_{s.id} *self, void *closure) /* {name} */ {{\n"
        )
        self.impl.indent()
        self.impl.printf(f"{info.ctype} ret = GoPy_{s.id}_getter_{i}(self->cgopy);\n")
        self.impl.printf(f"return Py_BuildValue({c_quote(info.pack_fmt)}, {info.pack_value('ret')});\n")
        self.impl.outdent()
        self.impl.printf("}\n\n")

    def gen_setter(self, s: Struct, i: int, name: str, info: TypeInfo) -> None:
        proto = f"static int\n_gopy_{s.id}_setter_{i}(_gopy_{s.id} *self, PyObject *value, void *closure)"
        self.decl.printf(proto + ";\n")

        p = self.impl
        p.printf(proto + " {\n")
        p.indent()
        if not info.parseable:
            p.printf(
                f"PyErr_SetString(PyExc_AttributeError, {c_quote(f'field {name} is read-only')});\n"
            )
            p.printf("return -1;\n")
            p.outdent()
            p.printf("}\n\n")
            return

        v = _BoundVar("value", info)
        v.gen_decl(p)
        p.printf("\n")
        p.printf("if (value == NULL) {\n")
        p.indent()
        p.printf(f"PyErr_SetString(PyExc_TypeError, {c_quote(f'cannot delete the {name} attribute')});\n")
        p.printf("return -1;\n")
        p.outdent()
        p.printf("}\n")
        pyfmt, addr = v.get_arg_parse()
        p.printf(f"if (!PyArg_Parse(value, {c_quote(pyfmt)}, {addr})) {{\n")
        p.indent()
        p.printf("return -1;\n")
        p.outdent()
        p.printf("}\n")
        v.gen_func_preamble(p)
        p.printf(f"GoPy_{s.id}_setter_{i}(self->cgopy, {v.cname});\n")
        p.printf("return 0;\n")
        p.outdent()
        p.printf("}\n\n")

    def gen_struct_methods(self, s: Struct) -> None:
        pkgname = self.pkg.name
        self.decl.printf(f"/* methods for {pkgname}.{s.name} */\n\n")

        bound: list[tuple[Func, str]] = []
        for m in s.methods:
            flags = self.gen_method(s, m)
            if flags is not None:
                bound.append((m, flags))

        self.impl.printf(f"static PyMethodDef _gopy_{s.id}_methods[] = {{\n")
        self.impl.indent()
        for m, flags in bound:
            self.impl.printf(
                f"{{{c_quote(m.name)}, (PyCFunction)gopy_{m.id}, {flags}, {c_quote(m.doc)}}},\n"
            )
        self.impl.printf("{NULL} /* sentinel */\n")
        self.impl.outdent()
        self.impl.printf("};\n\n")

    def gen_method(self, s: Struct, fn: Func) -> str | None:
        """Emit one method wrapper; returns its calling convention, None if skipped."""
        entity = f"{self.pkg.name}.{s.name}.{fn.name}"
        bsig = self.bind_signature(entity, fn)
        if bsig is None:
            return None
        logger.debug("binding method %s as gopy_%s", entity, fn.id)

        hdr = f"/* wrapper of {entity} */\n"
        proto = f"static PyObject*\ngopy_{fn.id}(PyObject *self, PyObject *args)"
        self.decl.printf(hdr + proto + ";\n")

        self.impl.printf(hdr + proto + " {\n")
        self.impl.indent()
        self.gen_func_body(fn.id, bsig, recv_struct=s)
        self.impl.outdent()
        self.impl.printf("}\n\n")

        if bsig.params:
            return "METH_VARARGS"
        return "METH_NOARGS"

    def gen_struct_type(self, s: Struct) -> None:
        p = self.impl
        sid = s.id
        p.printf(f"static PyTypeObject _gopy_{sid}Type = {{\n")
        p.indent()
        p.printf("PyVarObject_HEAD_INIT(NULL, 0)\n")
        p.printf(f"{c_quote(f'{self.pkg.name}.{s.name}')},\t/*tp_name*/\n")
        p.printf(f"sizeof(_gopy_{sid}),\t/*tp_basicsize*/\n")
        p.printf("0,\t/*tp_itemsize*/\n")
        p.printf(f"(destructor)_gopy_{sid}_dealloc,\t/*tp_dealloc*/\n")
        for slot in (
            "tp_vectorcall_offset",
            "tp_getattr",
            "tp_setattr",
            "tp_as_async",
            "tp_repr",
            "tp_as_number",
            "tp_as_sequence",
            "tp_as_mapping",
            "tp_hash",
            "tp_call",
            "tp_str",
            "tp_getattro",
            "tp_setattro",
            "tp_as_buffer",
        ):
            p.printf(f"0,\t/*{slot}*/\n")
        p.printf("Py_TPFLAGS_DEFAULT,\t/*tp_flags*/\n")
        p.printf(f"{c_quote(s.doc)},\t/* tp_doc */\n")
        for slot in ("tp_traverse", "tp_clear", "tp_richcompare", "tp_weaklistoffset", "tp_iter", "tp_iternext"):
            p.printf(f"0,\t/* {slot} */\n")
        p.printf(f"_gopy_{sid}_methods,\t/* tp_methods */\n")
        p.printf("0,\t/* tp_members */\n")
        p.printf(f"_gopy_{sid}_getsets,\t/* tp_getset */\n")
        for slot in ("tp_base", "tp_dict", "tp_descr_get", "tp_descr_set", "tp_dictoffset"):
            p.printf(f"0,\t/* {slot} */\n")
        p.printf(f"(initproc)_gopy_{sid}_init,\t/* tp_init */\n")
        p.printf("0,\t/* tp_alloc */\n")
        p.printf(f"_gopy_{sid}_new,\t/* tp_new */\n")
        p.outdent()
        p.printf("};\n\n")

    # -- module -----------------------------------------------------------------

    def gen_module_methods(self, funcs: list[Func]) -> None:
        p = self.impl
        name = self.pkg.name
        p.printf(f"static PyMethodDef cpy_{name}_methods[] = {{\n")
        p.indent()
        for f in funcs:
            p.printf(f"{{{c_quote(f.name)}, gopy_{f.id}, METH_VARARGS, {c_quote(f.doc)}}},\n")
        p.printf("{NULL, NULL, 0, NULL}        /* Sentinel */\n")
        p.outdent()
        p.printf("};\n\n")

    def gen_module_init(self) -> None:
        p = self.impl
        name = self.pkg.name

        p.printf(f"static struct PyModuleDef cpy_{name}_module = {{\n")
        p.indent()
        p.printf("PyModuleDef_HEAD_INIT,\n")
        p.printf(f"{c_quote(name)},\n")
        p.printf(f"{c_quote(self.pkg.doc)},\n")
        p.printf("-1,\n")
        p.printf(f"cpy_{name}_methods,\n")
        p.outdent()
        p.printf("};\n\n")

        p.printf(f"PyMODINIT_FUNC\nPyInit_{name}(void)\n{{\n")
        p.indent()
        p.printf("PyObject *module = NULL;\n\n")
        for s in self.pkg.structs:
            p.printf(f"if (PyType_Ready(&_gopy_{s.id}Type) < 0) {{ return NULL; }}\n")
        p.printf(f"\nmodule = PyModule_Create(&cpy_{name}_module);\n")
        p.printf("if (module == NULL) { return NULL; }\n\n")
        for s in self.pkg.structs:
            p.printf(f"Py_INCREF(&_gopy_{s.id}Type);\n")
            p.printf(
                f"if (PyModule_AddObject(module, {c_quote(s.name)}, (PyObject*)&_gopy_{s.id}Type) < 0) {{\n"
            )
            p.indent()
            p.printf(f"Py_DECREF(&_gopy_{s.id}Type);\n")
            p.printf("Py_DECREF(module);\n")
            p.printf("return NULL;\n")
            p.outdent()
            p.printf("}\n\n")
        p.printf("return module;\n")
        p.outdent()
        p.printf("}\n")


def _var_name(v: Var, default: str) -> str:
    return v.name or default
