import pytest

from damlmodel.diagnostics import DiagnosticLog, Severity
from damlmodel.normalize import CANONICAL_TAGS, is_canonical, normalize_type


@pytest.mark.parametrize("marker,tag", sorted(CANONICAL_TAGS.items()))
def test_every_marker_maps_to_its_tag(marker: str, tag: str) -> None:
    assert normalize_type(marker) == tag


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("prim:LIST(prim:PARTY)", "LIST"),
        ("prim:OPTIONAL(prim:CONTRACT_ID(con:Iou))", "OPTIONAL"),
        ("prim:TEXTMAP(prim:TEXT)", "TEXTMAP"),
        ("prim:TEXT", "TEXT"),
        ("prim:GENMAP(prim:TEXT, prim:INT64)", "GENMAP"),
        ("prim:BIGNUMERIC", "BIGNUMERIC"),
        ("prim:NUMERIC(nat:10)", "NUMERIC"),
    ],
)
def test_outermost_constructor_wins(raw: str, expected: str) -> None:
    assert normalize_type(raw) == expected


def test_enum_literal_becomes_string() -> None:
    assert normalize_type("enum") == "string"
    assert is_canonical("string")


def test_unknown_tags_pass_through_and_are_reported() -> None:
    sink = DiagnosticLog(module="Main", emit=False)
    assert normalize_type("Pair", sink, "Holder") == "Pair"
    (diagnostic,) = sink.to_list()
    assert diagnostic.code == "unnormalized_type"
    assert diagnostic.severity is Severity.INFO
    assert diagnostic.declaration == "Holder"
    assert diagnostic.module == "Main"


def test_known_tags_are_not_reported() -> None:
    sink = DiagnosticLog(emit=False)
    normalize_type("prim:PARTY", sink)
    assert len(sink) == 0
    assert not is_canonical("Pair")
