"""Normalized, encoding-independent model of a decoded package.

The model is the only contract exposed to consumers such as code emitters:

``TypeKind.RECORD``
    A record; templates are records with ``is_template`` set and carry
    choices and an optional key.

``TypeKind.VARIANT``
    A tagged union. Each constructor is a :class:`Field` with
    ``is_optional`` set because at most one payload is present.

``TypeKind.ENUM``
    Payload-free constructors, exposed both as ``constructors`` and as
    string-typed fields.

``TypeKind.INTERFACE``
    An interface declaration carrying only choices.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class TypeKind(Enum):
    """Shapes a structured type can take."""

    RECORD = "record"
    VARIANT = "variant"
    ENUM = "enum"
    INTERFACE = "interface"


@dataclass(frozen=True)
class Field:
    name: str
    type: str
    raw_type: str = ""
    is_optional: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "raw_type": self.raw_type,
            "is_optional": self.is_optional,
        }


@dataclass(frozen=True)
class Choice:
    name: str
    is_consuming: bool = False
    arg_type: str = ""
    return_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_consuming": self.is_consuming,
            "arg_type": self.arg_type,
            "return_type": self.return_type,
        }


@dataclass(frozen=True)
class KeyInfo:
    """Primary key of a template.

    ``field_name`` is a single representative field chosen by
    :func:`damlmodel.keys.select_key_field`; ``key_fields`` keeps every name
    the key expression referenced, in evaluation order.
    """

    field_name: str
    type: str
    raw_type: str = ""
    key_fields: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field_name": self.field_name,
            "type": self.type,
            "raw_type": self.raw_type,
            "key_fields": list(self.key_fields),
        }


@dataclass(frozen=True)
class StructuredType:
    name: str
    kind: TypeKind
    fields: Tuple[Field, ...] = ()
    constructors: Tuple[str, ...] = ()
    choices: Tuple[Choice, ...] = ()
    key: Optional[KeyInfo] = None
    is_template: bool = False
    module: str = ""
    incomplete: bool = False

    @classmethod
    def record(cls, name: str, fields=(), module: str = "", incomplete: bool = False) -> "StructuredType":
        return cls(name, TypeKind.RECORD, fields=tuple(fields), module=module, incomplete=incomplete)

    @classmethod
    def template(
        cls,
        name: str,
        fields=(),
        choices=(),
        key: Optional[KeyInfo] = None,
        module: str = "",
        incomplete: bool = False,
    ) -> "StructuredType":
        return cls(
            name,
            TypeKind.RECORD,
            fields=tuple(fields),
            choices=tuple(choices),
            key=key,
            is_template=True,
            module=module,
            incomplete=incomplete,
        )

    @classmethod
    def variant(cls, name: str, constructors=(), module: str = "", incomplete: bool = False) -> "StructuredType":
        constructors = tuple(constructors)
        return cls(
            name,
            TypeKind.VARIANT,
            fields=constructors,
            constructors=tuple(item.name for item in constructors),
            module=module,
            incomplete=incomplete,
        )

    @classmethod
    def enum(cls, name: str, constructors=(), module: str = "") -> "StructuredType":
        constructors = tuple(constructors)
        fields = tuple(Field(name=item, type="string", raw_type="enum") for item in constructors)
        return cls(name, TypeKind.ENUM, fields=fields, constructors=constructors, module=module)

    @classmethod
    def interface(cls, name: str, choices=(), module: str = "", incomplete: bool = False) -> "StructuredType":
        return cls(name, TypeKind.INTERFACE, choices=tuple(choices), module=module, incomplete=incomplete)

    @property
    def is_interface(self) -> bool:
        return self.kind is TypeKind.INTERFACE

    def field_names(self) -> List[str]:
        return [item.name for item in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "kind": self.kind.value,
            "is_template": self.is_template,
            "module": self.module,
            "fields": [item.to_dict() for item in self.fields],
        }
        if self.kind is TypeKind.ENUM or self.kind is TypeKind.VARIANT:
            data["constructors"] = list(self.constructors)
        if self.is_template or self.kind is TypeKind.INTERFACE:
            data["choices"] = [item.to_dict() for item in self.choices]
        if self.is_template:
            data["key"] = self.key.to_dict() if self.key is not None else None
        if self.incomplete:
            data["incomplete"] = True
        return data


@dataclass(frozen=True)
class PackageMetadata:
    name: str = ""
    version: str = ""
    sdk_version: str = ""
    created_by: str = ""
    created_at: Optional[str] = None
    dependencies: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "sdk_version": self.sdk_version,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "dependencies": list(self.dependencies),
        }


@dataclass
class Package:
    """Declarations of one decoded archive keyed by declaration name.

    ``structs`` preserves merge order: templates, then interfaces, then plain
    data types, each in module declaration order.
    """

    package_id: str
    lf_version: str = ""
    metadata: PackageMetadata = field(default_factory=PackageMetadata)
    structs: Dict[str, StructuredType] = field(default_factory=dict)

    def __iter__(self) -> Iterator[StructuredType]:
        return iter(self.structs.values())

    def __len__(self) -> int:
        return len(self.structs)

    def __contains__(self, name: object) -> bool:
        return name in self.structs

    def __getitem__(self, name: str) -> StructuredType:
        return self.structs[name]

    def get(self, name: str) -> Optional[StructuredType]:
        return self.structs.get(name)

    def templates(self) -> List[StructuredType]:
        return [item for item in self.structs.values() if item.is_template]

    def interfaces(self) -> List[StructuredType]:
        return [item for item in self.structs.values() if item.kind is TypeKind.INTERFACE]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_id": self.package_id,
            "lf_version": self.lf_version,
            "metadata": self.metadata.to_dict(),
            "structs": {name: item.to_dict() for name, item in self.structs.items()},
        }


__all__ = [
    "Choice",
    "Field",
    "KeyInfo",
    "Package",
    "PackageMetadata",
    "StructuredType",
    "TypeKind",
]
