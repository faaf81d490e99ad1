"""Extraction of structured types from one module of a decoded package.

:class:`ModuleWalker` runs three passes over a module, in this order:

1. templates, each joined with the record of the same name that backs it
2. interfaces and their choices
3. serializable data types not captured by the first two passes

Recoverable failures never escape :meth:`ModuleWalker.walk`. They become
diagnostics and the affected declaration is marked ``incomplete``. The
accessors that differ between IR generations are implemented by the
subclasses in :mod:`damlmodel.generations`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from .diagnostics import Diagnostic, DiagnosticLog
from .errors import DamlModelError, IndexOutOfRange, MissingTypeInformation, UnsupportedTypeShape
from .interning import InternTable
from .keys import DEFAULT_MAX_DEPTH, KeyExpressionInterpreter, select_key_field
from .model import Choice, Field, KeyInfo, StructuredType
from .normalize import normalize_type
from .types import TypeResolver

logger = structlog.get_logger(__name__)

RECORD = "record"
VARIANT = "variant"
ENUM = "enum"
INTERFACE = "interface"


def error_code(error: Exception) -> str:
    """Diagnostic code reported for a recoverable decode error."""
    if isinstance(error, IndexOutOfRange):
        return "index_out_of_range"
    if isinstance(error, UnsupportedTypeShape):
        return "unsupported_type_shape"
    if isinstance(error, MissingTypeInformation):
        return error.code
    return "decode_error"


@dataclass
class ModuleModel:
    """Declarations extracted from one module, grouped by kind."""

    name: str
    templates: Dict[str, StructuredType] = field(default_factory=dict)
    interfaces: Dict[str, StructuredType] = field(default_factory=dict)
    data_types: Dict[str, StructuredType] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    skipped: bool = False

    def declarations(self) -> Iterable[StructuredType]:
        yield from self.templates.values()
        yield from self.interfaces.values()
        yield from self.data_types.values()


@dataclass
class _Scope:
    module: object
    name: str
    sink: DiagnosticLog
    resolver: TypeResolver
    keys: KeyExpressionInterpreter


class ModuleWalker:
    """Walk the modules of one decoded package payload."""

    generation: str = ""
    major: int = 0

    def __init__(self, package, max_expression_depth: int = DEFAULT_MAX_DEPTH):
        self.package = package
        self.table = InternTable.from_package(package)
        self.max_expression_depth = max_expression_depth

    # ------------------------------------------------------------------
    # Generation specific accessors
    # ------------------------------------------------------------------
    def module_name(self, module) -> str:
        raise NotImplementedError

    def template_name(self, template) -> Optional[str]:
        raise NotImplementedError

    def interface_name(self, interface) -> Optional[str]:
        raise NotImplementedError

    def data_type_name(self, data_type) -> Optional[str]:
        raise NotImplementedError

    def field_name(self, field_with_type) -> Optional[str]:
        raise NotImplementedError

    def choice_name(self, choice) -> Optional[str]:
        raise NotImplementedError

    def enum_constructors(self, data_type) -> List[str]:
        raise NotImplementedError

    def key_expression(self, key, sink: DiagnosticLog, owner: str):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Package level
    # ------------------------------------------------------------------
    @property
    def modules(self) -> List[object]:
        return list(self.package.modules)

    def package_metadata(self) -> Tuple[str, str]:
        """Package name and version recorded in the IR, empty when absent."""
        if not self.package.HasField("metadata"):
            return "", ""
        metadata = self.package.metadata
        try:
            return self.table.string(metadata.name_interned_str), self.table.string(metadata.version_interned_str)
        except IndexOutOfRange as exc:
            logger.warning("package_metadata_unresolved", error=exc.message)
            return "", ""

    def walk(self, module) -> ModuleModel:
        sink = DiagnosticLog()
        try:
            name = self.module_name(module)
        except IndexOutOfRange as exc:
            name = ""
            sink.warning("index_out_of_range", f"module name unresolved: {exc.message}")
        sink.module = name
        result = ModuleModel(name=name)

        if self.table.is_empty:
            sink.warning("empty_string_table", "module skipped: the package string table is empty")
            result.skipped = True
            result.diagnostics = sink.to_list()
            return result

        scope = _Scope(
            module=module,
            name=name,
            sink=sink,
            resolver=TypeResolver(self.table, sink),
            keys=KeyExpressionInterpreter(self.table, self.max_expression_depth),
        )
        self._templates_pass(scope, result)
        self._interfaces_pass(scope, result)
        self._data_types_pass(scope, result)
        result.diagnostics = sink.to_list()
        logger.debug(
            "module_walked",
            module=name,
            generation=self.generation,
            templates=len(result.templates),
            interfaces=len(result.interfaces),
            data_types=len(result.data_types),
            diagnostics=len(result.diagnostics),
        )
        return result

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def _declared_name(self, scope: _Scope, accessor, declaration, kind: str) -> Optional[str]:
        try:
            name = accessor(declaration)
        except IndexOutOfRange as exc:
            scope.sink.warning("index_out_of_range", f"{kind} skipped: {exc.message}")
            return None
        if not name:
            scope.sink.warning("unnamed_declaration", f"{kind} skipped: it has no name")
            return None
        return name

    def _templates_pass(self, scope: _Scope, result: ModuleModel) -> None:
        for template in scope.module.templates:
            name = self._declared_name(scope, self.template_name, template, "template")
            if name is None:
                continue
            if name in result.templates:
                scope.sink.warning("duplicate_declaration", f"template {name} declared twice; keeping the first", name)
                continue
            result.templates[name] = self._template(scope, template, name)

    def _interfaces_pass(self, scope: _Scope, result: ModuleModel) -> None:
        for interface in scope.module.interfaces:
            name = self._declared_name(scope, self.interface_name, interface, "interface")
            if name is None:
                continue
            if name in result.interfaces or name in result.templates:
                scope.sink.warning("duplicate_declaration", f"interface {name} already declared; keeping the first", name)
                continue
            choices, complete = self._choices(scope, interface.choices, name)
            if interface.HasField("view"):
                scope.sink.info(
                    "interface_view_skipped",
                    f"view {scope.resolver.render(interface.view)} of interface {name} is not extracted",
                    name,
                )
            result.interfaces[name] = StructuredType.interface(
                name, choices, module=scope.name, incomplete=not complete
            )

    def _data_types_pass(self, scope: _Scope, result: ModuleModel) -> None:
        for data_type in scope.module.data_types:
            if not data_type.serializable:
                continue
            name = self._declared_name(scope, self.data_type_name, data_type, "data type")
            if name is None:
                continue
            if name in result.templates or name in result.interfaces:
                continue
            if name in result.data_types:
                scope.sink.warning("duplicate_declaration", f"data type {name} declared twice; keeping the first", name)
                continue
            structured = self._data_type(scope, data_type, name)
            if structured is not None:
                result.data_types[name] = structured

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------
    def _find_data_type(self, scope: _Scope, name: str):
        for data_type in scope.module.data_types:
            try:
                if self.data_type_name(data_type) == name:
                    return data_type
            except IndexOutOfRange:
                continue
        return None

    def _template(self, scope: _Scope, template, name: str) -> StructuredType:
        fields: List[Field] = []
        complete = True
        backing = self._find_data_type(scope, name)
        if backing is None:
            scope.sink.warning("template_without_record", f"no data type backs template {name}", name)
            complete = False
        elif backing.WhichOneof("DataCons") != RECORD:
            scope.sink.warning(
                "template_not_record",
                f"template {name} is backed by a {backing.WhichOneof('DataCons') or 'shapeless'} data type",
                name,
            )
            complete = False
        else:
            fields, complete = self._fields(scope, backing.record.fields, name)

        choices, choices_complete = self._choices(scope, template.choices, name)
        key = None
        key_complete = True
        if template.HasField("key"):
            key, key_complete = self._key(scope, template.key, fields, name)
        return StructuredType.template(
            name,
            fields,
            choices,
            key,
            module=scope.name,
            incomplete=not (complete and choices_complete and key_complete),
        )

    def _data_type(self, scope: _Scope, data_type, name: str) -> Optional[StructuredType]:
        shape = data_type.WhichOneof("DataCons")
        if shape == RECORD:
            fields, complete = self._fields(scope, data_type.record.fields, name)
            return StructuredType.record(name, fields, module=scope.name, incomplete=not complete)
        if shape == VARIANT:
            constructors, complete = self._fields(scope, data_type.variant.fields, name, optional=True)
            return StructuredType.variant(name, constructors, module=scope.name, incomplete=not complete)
        if shape == ENUM:
            try:
                constructors = self.enum_constructors(data_type)
            except IndexOutOfRange as exc:
                scope.sink.warning("index_out_of_range", f"enum {name} skipped: {exc.message}", name)
                return None
            return StructuredType.enum(name, constructors, module=scope.name)
        if shape == INTERFACE:
            scope.sink.warning(
                "interface_without_definition", f"interface-shaped data type {name} has no interface declaration", name
            )
            return StructuredType.interface(name, module=scope.name, incomplete=True)
        scope.sink.warning(
            "unknown_data_constructor", f"data type {name} has an unrecognised constructor shape and was skipped", name
        )
        return None

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------
    def _fields(self, scope: _Scope, items, owner: str, optional: bool = False) -> Tuple[List[Field], bool]:
        fields: List[Field] = []
        complete = True
        for item in items:
            try:
                field_name = self.field_name(item)
            except IndexOutOfRange as exc:
                scope.sink.warning("index_out_of_range", f"field of {owner} dropped: {exc.message}", owner)
                complete = False
                continue
            if not field_name:
                scope.sink.warning("unnamed_field", f"unnamed field of {owner} dropped", owner)
                complete = False
                continue
            type_ = item.type if item.HasField("type") else None
            try:
                if type_ is None:
                    raise MissingTypeInformation(f"field {owner}.{field_name} has no type", {"field": field_name})
                resolved = scope.resolver.resolve(type_, owner)
            except DamlModelError as exc:
                scope.sink.warning(
                    error_code(exc), f"type of field {owner}.{field_name} unresolved: {exc.message}", owner
                )
                fields.append(Field(field_name, "", scope.resolver.render(type_), optional))
                complete = False
                continue
            fields.append(Field(field_name, resolved.canonical, resolved.raw, optional))
        return fields, complete

    def _choices(self, scope: _Scope, items, owner: str) -> Tuple[List[Choice], bool]:
        choices: List[Choice] = []
        seen = set()
        complete = True
        for item in items:
            try:
                choice_name = self.choice_name(item)
            except IndexOutOfRange as exc:
                scope.sink.warning("index_out_of_range", f"choice of {owner} dropped: {exc.message}", owner)
                complete = False
                continue
            if not choice_name:
                scope.sink.warning("unnamed_choice", f"unnamed choice of {owner} dropped", owner)
                complete = False
                continue
            if choice_name in seen:
                scope.sink.warning("duplicate_choice", f"choice {owner}.{choice_name} declared twice", owner)
                continue
            seen.add(choice_name)

            arg_type = None
            if item.HasField("arg_binder") and item.arg_binder.HasField("type"):
                arg_type = item.arg_binder.type
            arg_tag, arg_complete = self._choice_type(scope, arg_type, owner, choice_name, "argument")
            ret_type = item.ret_type if item.HasField("ret_type") else None
            ret_tag, ret_complete = self._choice_type(scope, ret_type, owner, choice_name, "return")
            complete = complete and arg_complete and ret_complete
            choices.append(Choice(choice_name, bool(item.consuming), arg_tag, ret_tag))
        return choices, complete

    def _choice_type(self, scope: _Scope, type_, owner: str, choice: str, role: str) -> Tuple[str, bool]:
        try:
            if type_ is None:
                raise MissingTypeInformation(
                    f"choice {owner}.{choice} has no {role} type",
                    {"choice": choice, "role": role},
                    code="missing_choice_type",
                )
            return scope.resolver.resolve(type_, owner).canonical, True
        except DamlModelError as exc:
            scope.sink.warning(
                error_code(exc), f"{role} type of choice {owner}.{choice} unresolved: {exc.message}", owner
            )
            return "", False

    def _key(self, scope: _Scope, key, fields: List[Field], owner: str) -> Tuple[KeyInfo, bool]:
        complete = True
        key_type, raw_type = "", "none"
        try:
            if not key.HasField("type"):
                raise MissingTypeInformation(f"key of {owner} has no type", {"template": owner})
            resolved = scope.resolver.resolve(key.type, owner)
            key_type, raw_type = resolved.canonical, resolved.raw
        except MissingTypeInformation as exc:
            scope.sink.warning(error_code(exc), exc.message, owner)
            complete = False
        except DamlModelError as exc:
            scope.sink.warning(error_code(exc), f"key type of {owner} unresolved: {exc.message}", owner)
            raw_type = scope.resolver.render(key.type)
            key_type = normalize_type(raw_type, scope.sink, owner)
            complete = False

        try:
            names = scope.keys.extract(self.key_expression(key, scope.sink, owner))
        except DamlModelError as exc:
            scope.sink.warning("key_expression_unresolved", f"key expression of {owner} skipped: {exc.message}", owner)
            names = []

        field_name, fell_back = select_key_field(names, fields, key_type)
        if fell_back and field_name:
            scope.sink.warning(
                "key_field_fallback",
                f"no key field of {owner} matches type {key_type or '<unknown>'}; using first field {field_name}",
                owner,
            )
        elif fell_back:
            scope.sink.warning("key_field_unresolved", f"template {owner} declares a key but has no fields", owner)
        return KeyInfo(field_name, key_type, raw_type, tuple(names)), complete


__all__ = ["ModuleModel", "ModuleWalker", "error_code"]
