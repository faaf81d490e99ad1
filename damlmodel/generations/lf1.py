"""Walker for first-generation (``daml_lf_1``) payloads.

Names in this generation may be carried inline or interned, and keys come in
two flavours: a ``complex_key`` expression, and the legacy ``key``
projection syntax which is reported and otherwise ignored.
"""

from __future__ import annotations

from typing import List, Optional

from ..diagnostics import DiagnosticLog
from ..interning import join
from ..walker import ModuleWalker


class LF1Walker(ModuleWalker):
    generation = "daml_lf_1"
    major = 1

    def module_name(self, module) -> str:
        return join(self.table.dotted(module, "name") or [])

    def template_name(self, template) -> Optional[str]:
        return self.table.declaration(template, "tycon")

    def interface_name(self, interface) -> Optional[str]:
        return self.table.name(interface.tycon_interned_dname)

    def data_type_name(self, data_type) -> Optional[str]:
        return self.table.declaration(data_type, "name")

    def field_name(self, field_with_type) -> Optional[str]:
        return self.table.text(field_with_type, "field")

    def choice_name(self, choice) -> Optional[str]:
        return self.table.text(choice, "name")

    def enum_constructors(self, data_type) -> List[str]:
        constructors = data_type.enum
        if len(constructors.constructors_interned_str):
            return [self.table.string(index) for index in constructors.constructors_interned_str]
        return list(constructors.constructors_str)

    def key_expression(self, key, sink: DiagnosticLog, owner: str):
        form = key.WhichOneof("key_expr")
        if form == "complex_key":
            return key.complex_key
        if form == "key":
            sink.info("legacy_key_expression", f"legacy key syntax of {owner} is not interpreted", owner)
        return None


__all__ = ["LF1Walker"]
