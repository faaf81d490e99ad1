"""Walker for second-generation (``daml_lf_2``) payloads.

Every identifier is interned. Key expressions may themselves be interned;
the key interpreter follows those through the package expression table.
"""

from __future__ import annotations

from typing import List, Optional

from ..diagnostics import DiagnosticLog
from ..walker import ModuleWalker


class LF2Walker(ModuleWalker):
    generation = "daml_lf_2"
    major = 2

    def module_name(self, module) -> str:
        return self.table.module_name(module.name_interned_dname)

    def template_name(self, template) -> Optional[str]:
        return self.table.name(template.tycon_interned_dname)

    def interface_name(self, interface) -> Optional[str]:
        return self.table.name(interface.tycon_interned_dname)

    def data_type_name(self, data_type) -> Optional[str]:
        return self.table.name(data_type.name_interned_dname)

    def field_name(self, field_with_type) -> Optional[str]:
        return self.table.string(field_with_type.field_interned_str)

    def choice_name(self, choice) -> Optional[str]:
        return self.table.string(choice.name_interned_str)

    def enum_constructors(self, data_type) -> List[str]:
        return [self.table.string(index) for index in data_type.enum.constructors_interned_str]

    def key_expression(self, key, sink: DiagnosticLog, owner: str):
        if key.HasField("key_expr"):
            return key.key_expr
        return None


__all__ = ["LF2Walker"]
