"""Read-only view over a package's interning tables.

Identifiers in the IR are stored once per package and referenced by index.
:class:`InternTable` snapshots the tables of one decoded package and resolves
indices against them, raising :class:`~damlmodel.errors.IndexOutOfRange`
instead of wrapping around or returning garbage. The table is passed
explicitly to every resolver, so independent walks can share it freely.

Both IR generations name their fields after a common stem: an inline value is
``<stem>_str`` or ``<stem>_dname`` and an interned one is
``<stem>_interned_str`` or ``<stem>_interned_dname``. The first generation
selects between the two with a oneof named after the stem. :meth:`text` and
:meth:`dotted` understand both layouts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from .errors import IndexOutOfRange


def _check(table: str, index: int, size: int) -> None:
    if index < 0 or index >= size:
        raise IndexOutOfRange(table, index, size)


@dataclass(frozen=True)
class InternTable:
    strings: Tuple[str, ...] = ()
    dotted_names: Tuple[Tuple[int, ...], ...] = ()
    types: Tuple[Any, ...] = ()
    exprs: Tuple[Any, ...] = ()

    @classmethod
    def from_package(cls, package) -> "InternTable":
        fields = package.DESCRIPTOR.fields_by_name
        return cls(
            strings=tuple(package.interned_strings),
            dotted_names=tuple(tuple(item.segments_interned_str) for item in package.interned_dotted_names),
            types=tuple(package.interned_types) if "interned_types" in fields else (),
            exprs=tuple(package.interned_exprs) if "interned_exprs" in fields else (),
        )

    @property
    def is_empty(self) -> bool:
        return not self.strings

    # ------------------------------------------------------------------
    # Index resolution
    # ------------------------------------------------------------------
    def string(self, index: int) -> str:
        _check("string", index, len(self.strings))
        return self.strings[index]

    def dotted_name(self, index: int) -> List[str]:
        _check("dotted_name", index, len(self.dotted_names))
        return [self.string(segment) for segment in self.dotted_names[index]]

    def name(self, index: int) -> str:
        """Declaration name: the last segment of the dotted name at ``index``."""

        segments = self.dotted_name(index)
        return segments[-1] if segments else ""

    def module_name(self, index: int) -> str:
        return ".".join(self.dotted_name(index))

    def type(self, index: int):
        _check("type", index, len(self.types))
        return self.types[index]

    def expr(self, index: int):
        _check("expr", index, len(self.exprs))
        return self.exprs[index]

    # ------------------------------------------------------------------
    # Inline-or-interned fields
    # ------------------------------------------------------------------
    def text(self, holder, stem: str) -> Optional[str]:
        """Resolve the ``<stem>_str`` / ``<stem>_interned_str`` pair of ``holder``.

        Returns ``None`` when the holder carries neither.
        """

        inline, interned = f"{stem}_str", f"{stem}_interned_str"
        selected = _selected(holder, stem, inline, interned)
        if selected == inline:
            return getattr(holder, inline)
        if selected == interned:
            return self.string(getattr(holder, interned))
        return None

    def dotted(self, holder, stem: str) -> Optional[List[str]]:
        """Resolve the ``<stem>_dname`` / ``<stem>_interned_dname`` pair of ``holder``."""

        inline, interned = f"{stem}_dname", f"{stem}_interned_dname"
        selected = _selected(holder, stem, inline, interned)
        if selected == inline:
            return list(getattr(holder, inline).segments)
        if selected == interned:
            return self.dotted_name(getattr(holder, interned))
        return None

    def declaration(self, holder, stem: str) -> Optional[str]:
        segments = self.dotted(holder, stem)
        if segments is None:
            return None
        return segments[-1] if segments else ""


def _selected(holder, stem: str, inline: str, interned: str) -> Optional[str]:
    descriptor = holder.DESCRIPTOR
    if stem in descriptor.oneofs_by_name:
        return holder.WhichOneof(stem)
    fields = descriptor.fields_by_name
    if interned in fields:
        return interned
    if inline in fields:
        return inline
    return None


def join(segments: Sequence[str]) -> str:
    return ".".join(segments)


__all__ = ["InternTable", "join"]
