"""Type expression rendering and resolution.

A type expression is a tagged union selected by the ``Sum`` oneof. The
resolver handles the shapes that can describe a serializable field:

* ``interned`` (first generation) or ``interned_type`` (second): an index
  into the package type table. A constructor found there resolves to its
  declaration name; anything else resolves to its rendered form.
* ``con``: reference to a declared type, resolved to its declaration name.
* ``var``: a type variable, resolved to its name.
* ``prim`` / ``builtin``: a primitive, resolved to ``prim:<NAME>``.
* ``syn``: a synonym, resolved to ``syn_<Name>``.

Every other shape raises :class:`~damlmodel.errors.UnsupportedTypeShape`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .diagnostics import DiagnosticLog
from .errors import IndexOutOfRange, UnsupportedTypeShape
from .interning import InternTable
from .ir import enum_value_name
from .normalize import normalize_type

MAX_RENDER_DEPTH = 64

UNKNOWN_CON_TYPE = "unknown_con_type"
CON_WITHOUT_TYCON = "con_without_tycon"
UNNAMED_VAR = "unnamed_var"
SYN_UNKNOWN = "syn_unknown"
SYN_WITHOUT_NAME = "syn_without_name"

PRIMITIVE_SHAPES = ("prim", "builtin")
INTERNED_SHAPES = ("interned", "interned_type")


@dataclass(frozen=True)
class ResolvedType:
    """Outcome of resolving one type expression.

    ``tag`` is the resolved name before normalization, ``canonical`` the
    normalized tag and ``raw`` the rendered expression kept for diagnostics.
    """

    tag: str
    canonical: str
    raw: str


def _safe(resolve, fallback: str) -> str:
    try:
        value = resolve()
    except IndexOutOfRange:
        return fallback
    return value if value else fallback


def _with_args(head: str, args, table: InternTable, depth: int) -> str:
    if not len(args):
        return head
    rendered = ", ".join(render_type(table, arg, depth + 1) for arg in args)
    return f"{head}({rendered})"


def render_type(table: InternTable, type_, depth: int = 0) -> str:
    """Render ``type_`` as a compact diagnostic string. Never raises."""

    if type_ is None:
        return "none"
    if depth > MAX_RENDER_DEPTH:
        return "..."
    shape = type_.WhichOneof("Sum")
    if shape in PRIMITIVE_SHAPES:
        primitive = getattr(type_, shape)
        return _with_args(f"prim:{enum_value_name(primitive, shape)}", primitive.args, table, depth)
    if shape == "con":
        con = type_.con
        name = _safe(lambda: table.declaration(con.tycon, "name"), "?") if con.HasField("tycon") else "?"
        return _with_args(f"con:{name}", con.args, table, depth)
    if shape == "var":
        var = type_.var
        return _with_args(f"var:{_safe(lambda: table.text(var, 'var'), '?')}", var.args, table, depth)
    if shape == "syn":
        syn = type_.syn
        name = _safe(lambda: table.declaration(syn.tysyn, "name"), "?") if syn.HasField("tysyn") else "?"
        return _with_args(f"syn:{name}", syn.args, table, depth)
    if shape == "nat":
        return f"nat:{type_.nat}"
    if shape == "tapp":
        lhs = render_type(table, type_.tapp.lhs, depth + 1)
        rhs = render_type(table, type_.tapp.rhs, depth + 1)
        return f"tapp({lhs}, {rhs})"
    if shape in INTERNED_SHAPES:
        index = getattr(type_, shape)
        try:
            target = table.type(index)
        except IndexOutOfRange:
            return f"interned:{index}?"
        return render_type(table, target, depth + 1)
    if shape in ("forall", "struct"):
        return shape
    return "unset"


class TypeResolver:
    """Resolve field-level type expressions of either IR generation."""

    def __init__(self, table: InternTable, sink: Optional[DiagnosticLog] = None):
        self.table = table
        self.sink = sink

    def render(self, type_) -> str:
        return render_type(self.table, type_)

    def resolve(self, type_, declaration: Optional[str] = None) -> ResolvedType:
        tag = self._tag(type_)
        return ResolvedType(
            tag=tag,
            canonical=normalize_type(tag, self.sink, declaration),
            raw=render_type(self.table, type_),
        )

    def _tag(self, type_) -> str:
        shape = type_.WhichOneof("Sum")
        if shape in INTERNED_SHAPES:
            entry = self.table.type(getattr(type_, shape))
            if entry.WhichOneof("Sum") == "con":
                return self._con_tag(entry.con)
            return render_type(self.table, entry)
        if shape == "con":
            return self._con_tag(type_.con)
        if shape == "var":
            return self.table.text(type_.var, "var") or UNNAMED_VAR
        if shape in PRIMITIVE_SHAPES:
            return render_type(self.table, type_)
        if shape == "syn":
            if not type_.syn.HasField("tysyn"):
                return SYN_WITHOUT_NAME
            name = self.table.declaration(type_.syn.tysyn, "name")
            return f"syn_{name}" if name else SYN_UNKNOWN
        raise UnsupportedTypeShape(shape or "")

    def _con_tag(self, con) -> str:
        if not con.HasField("tycon"):
            return CON_WITHOUT_TYCON
        return self.table.declaration(con.tycon, "name") or UNKNOWN_CON_TYPE


__all__ = [
    "CON_WITHOUT_TYCON",
    "ResolvedType",
    "SYN_UNKNOWN",
    "SYN_WITHOUT_NAME",
    "TypeResolver",
    "UNKNOWN_CON_TYPE",
    "UNNAMED_VAR",
    "render_type",
]
