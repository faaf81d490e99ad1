"""Protocol buffer message classes for the archive envelope and both IR generations.

The classes come from the generated DAML-LF bindings distributed with
``dazl``. The envelope selects a generation whose package is carried as
serialized bytes; :data:`PACKAGE_CLASSES` maps each generation to the class
that parses them.
"""

from __future__ import annotations

from typing import Dict

from dazl._gen.com.digitalasset.daml.lf.archive import daml_lf1_pb2, daml_lf2_pb2
from dazl._gen.com.digitalasset.daml.lf.archive.daml_lf_pb2 import Archive, ArchivePayload, HashFunction

LF1Package = daml_lf1_pb2.Package
LF1Module = daml_lf1_pb2.Module
LF1Type = daml_lf1_pb2.Type
LF1Expr = daml_lf1_pb2.Expr

LF2Package = daml_lf2_pb2.Package
LF2Module = daml_lf2_pb2.Module
LF2Type = daml_lf2_pb2.Type
LF2Expr = daml_lf2_pb2.Expr

PACKAGE_CLASSES: Dict[str, type] = {
    "daml_lf_1": LF1Package,
    "daml_lf_2": LF2Package,
}


def enum_value_name(message, field: str) -> str:
    """Name of the enum value held by ``message.<field>``; unknown numbers render as ``UNKNOWN_<n>``."""

    number = getattr(message, field)
    value = message.DESCRIPTOR.fields_by_name[field].enum_type.values_by_number.get(number)
    return value.name if value is not None else f"UNKNOWN_{number}"


__all__ = [
    "Archive",
    "ArchivePayload",
    "HashFunction",
    "LF1Expr",
    "LF1Module",
    "LF1Package",
    "LF1Type",
    "LF2Expr",
    "LF2Module",
    "LF2Package",
    "LF2Type",
    "PACKAGE_CLASSES",
    "daml_lf1_pb2",
    "daml_lf2_pb2",
    "enum_value_name",
]
