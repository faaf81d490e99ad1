"""Mapping of rendered type strings onto canonical type tags."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from .diagnostics import DiagnosticLog

ENUM_TAG = "enum"
STRING_TAG = "string"

CANONICAL_TAGS: Dict[str, str] = {
    "prim:PARTY": "PARTY",
    "prim:TEXT": "TEXT",
    "prim:INT64": "INT64",
    "prim:BOOL": "BOOL",
    "prim:DECIMAL": "DECIMAL",
    "prim:NUMERIC": "NUMERIC",
    "prim:DATE": "DATE",
    "prim:TIMESTAMP": "TIMESTAMP",
    "prim:UNIT": "UNIT",
    "prim:LIST": "LIST",
    "prim:MAP": "MAP",
    "prim:OPTIONAL": "OPTIONAL",
    "prim:CONTRACT_ID": "CONTRACT_ID",
    "prim:GENMAP": "GENMAP",
    "prim:TEXTMAP": "TEXTMAP",
    "prim:BIGNUMERIC": "BIGNUMERIC",
    "prim:ROUNDING_MODE": "ROUNDING_MODE",
    "prim:ANY": "ANY",
}


def _find_marker(raw: str) -> Optional[Tuple[int, str]]:
    best: Optional[Tuple[int, str]] = None
    for marker in CANONICAL_TAGS:
        position = raw.find(marker)
        if position < 0:
            continue
        # Outermost constructor first; on a shared start the longer marker
        # wins so ``prim:TEXTMAP`` is not read as ``prim:TEXT``.
        if best is None or position < best[0] or (position == best[0] and len(marker) > len(best[1])):
            best = (position, marker)
    return best


def normalize_type(
    raw: str,
    sink: Optional[DiagnosticLog] = None,
    declaration: Optional[str] = None,
) -> str:
    """Return the canonical tag for ``raw``.

    Declaration names and other unrecognised tags are returned unchanged and,
    when ``sink`` is given, reported with code ``unnormalized_type``.
    """

    if raw == ENUM_TAG:
        return STRING_TAG
    found = _find_marker(raw)
    if found is not None:
        return CANONICAL_TAGS[found[1]]
    if sink is not None:
        sink.info("unnormalized_type", f"type {raw!r} has no canonical tag", declaration)
    return raw


def is_canonical(tag: str) -> bool:
    return tag == STRING_TAG or tag in CANONICAL_TAGS.values()


__all__ = ["CANONICAL_TAGS", "ENUM_TAG", "STRING_TAG", "is_canonical", "normalize_type"]
