"""Structural interpretation of template key expressions.

A key expression is never evaluated. The interpreter only collects the names
it mentions so the key can be matched against the template's fields:

* variable reference: the variable name
* record projection: the projected field, then whatever the projected
  record mentions
* record construction: the name of every constructed field, in order; the
  field expressions are not visited
* application: the function position, then every argument
* interned expression: whatever the referenced expression mentions

Any other shape contributes nothing.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .errors import DamlModelError
from .interning import InternTable
from .model import Field

DEFAULT_MAX_DEPTH = 256


class KeyExpressionInterpreter:
    def __init__(self, table: InternTable, max_depth: int = DEFAULT_MAX_DEPTH):
        self.table = table
        self.max_depth = max_depth

    def extract(self, expr) -> List[str]:
        """Names referenced by ``expr`` in evaluation order; duplicates are kept."""

        if expr is None:
            return []
        return self._extract(expr, 0)

    def _extract(self, expr, depth: int) -> List[str]:
        if depth > self.max_depth:
            raise DamlModelError(
                f"key expression nested deeper than {self.max_depth}",
                {"max_depth": self.max_depth},
            )
        shape = expr.WhichOneof("Sum")
        if shape == "var_interned_str":
            return [self.table.string(expr.var_interned_str)]
        if shape == "var_str":
            return [expr.var_str]
        if shape == "rec_proj":
            projection = expr.rec_proj
            names = [self.table.text(projection, "field") or ""]
            if projection.HasField("record"):
                names.extend(self._extract(projection.record, depth + 1))
            return names
        if shape == "rec_con":
            return [self.table.text(item, "field") or "" for item in expr.rec_con.fields]
        if shape == "app":
            application = expr.app
            names: List[str] = []
            if application.HasField("fun"):
                names.extend(self._extract(application.fun, depth + 1))
            for argument in application.args:
                names.extend(self._extract(argument, depth + 1))
            return names
        if shape == "interned_expr":
            return self._extract(self.table.expr(expr.interned_expr), depth + 1)
        return []


def select_key_field(names: Sequence[str], fields: Sequence[Field], key_type: str) -> Tuple[str, bool]:
    """Pick the single field reported as a template's key.

    The first referenced name that is a field of the template with the key's
    canonical type wins. Otherwise the first declared field is used and
    ``fell_back`` is true; this heuristic can pick the wrong field for
    composite keys. Without fields the name is empty and ``fell_back`` is
    true as well.
    """

    by_name = {}
    for item in fields:
        by_name.setdefault(item.name, item)
    for name in names:
        candidate: Optional[Field] = by_name.get(name)
        if candidate is not None and candidate.type == key_type:
            return candidate.name, False
    if fields:
        return fields[0].name, True
    return "", True


__all__ = ["DEFAULT_MAX_DEPTH", "KeyExpressionInterpreter", "select_key_field"]
