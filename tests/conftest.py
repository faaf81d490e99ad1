import hashlib
from typing import Dict, List, Optional, Sequence

import pytest
import structlog
from google.protobuf.json_format import ParseDict

from damlmodel.config import DecoderSettings
from damlmodel.ir import Archive, ArchivePayload, LF1Package, LF2Package


def pytest_configure(config) -> None:
    config.addinivalue_line("markers", "property: hypothesis driven property tests")


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class Interner:
    """Collects interned strings and dotted names while a test package is assembled."""

    def __init__(self, *strings: str) -> None:
        self.strings: List[str] = [""]
        self.dotted: List[List[int]] = []
        for text in strings:
            self.s(text)

    def s(self, text: str) -> int:
        if text in self.strings:
            return self.strings.index(text)
        self.strings.append(text)
        return len(self.strings) - 1

    def d(self, *segments: str) -> int:
        indices = [self.s(segment) for segment in segments]
        if indices in self.dotted:
            return self.dotted.index(indices)
        self.dotted.append(indices)
        return len(self.dotted) - 1

    def tables(self) -> Dict[str, object]:
        return {
            "interned_strings": list(self.strings),
            "interned_dotted_names": [{"segments_interned_str": list(item)} for item in self.dotted],
        }


# ----------------------------------------------------------------------
# Type shorthands (shared by both generations where the shape allows)
# ----------------------------------------------------------------------
def lf2_builtin(name: str, *args: dict) -> dict:
    body: Dict[str, object] = {"builtin": name}
    if args:
        body["args"] = list(args)
    return {"builtin": body}


def lf1_prim(name: str, *args: dict) -> dict:
    body: Dict[str, object] = {"prim": name}
    if args:
        body["args"] = list(args)
    return {"prim": body}


def con(interner: Interner, module: str, name: str) -> dict:
    return {
        "con": {
            "tycon": {
                "module": {"module_name_interned_dname": interner.d(module)},
                "name_interned_dname": interner.d(module, name),
            }
        }
    }


# ----------------------------------------------------------------------
# Package and archive assembly
# ----------------------------------------------------------------------
def lf2_package(
    interner: Interner,
    modules: Sequence[dict],
    interned_types: Sequence[dict] = (),
    interned_exprs: Sequence[dict] = (),
    metadata: Optional[dict] = None,
):
    body: Dict[str, object] = {"modules": list(modules), **interner.tables()}
    if interned_types:
        body["interned_types"] = list(interned_types)
    if interned_exprs:
        body["interned_exprs"] = list(interned_exprs)
    if metadata is not None:
        body["metadata"] = metadata
    return ParseDict(body, LF2Package())


def lf1_package(interner: Interner, modules: Sequence[dict], interned_types: Sequence[dict] = (), metadata=None):
    body: Dict[str, object] = {"modules": list(modules), **interner.tables()}
    if interned_types:
        body["interned_types"] = list(interned_types)
    if metadata is not None:
        body["metadata"] = metadata
    return ParseDict(body, LF1Package())


def make_archive(package, generation: str = "daml_lf_2", minor: str = "1", digest: Optional[str] = None) -> bytes:
    payload = ArchivePayload(minor=minor, **{generation: package.SerializeToString()})
    raw = payload.SerializeToString()
    return make_archive_from_payload(raw, digest)


def make_archive_from_payload(raw: bytes, digest: Optional[str] = None) -> bytes:
    if digest is None:
        digest = hashlib.sha256(raw).hexdigest()
    return Archive(payload=raw, hash=digest).SerializeToString()


# ----------------------------------------------------------------------
# Scenario packages
# ----------------------------------------------------------------------
def pair_module_lf2(interner: Interner, key_expr: Optional[dict] = None) -> dict:
    """Template ``Pair{a: Party, b: Text}`` with a consuming ``Accept`` choice keyed on ``a``."""

    unit = lf2_builtin("UNIT")
    if key_expr is None:
        key_expr = {"var_interned_str": interner.s("a")}
    return {
        "name_interned_dname": interner.d("Main"),
        "data_types": [
            {
                "name_interned_dname": interner.d("Main", "Pair"),
                "record": {
                    "fields": [
                        {"field_interned_str": interner.s("a"), "type": lf2_builtin("PARTY")},
                        {"field_interned_str": interner.s("b"), "type": lf2_builtin("TEXT")},
                    ]
                },
                "serializable": True,
            }
        ],
        "templates": [
            {
                "tycon_interned_dname": interner.d("Main", "Pair"),
                "param_interned_str": interner.s("this"),
                "choices": [
                    {
                        "name_interned_str": interner.s("Accept"),
                        "consuming": True,
                        "arg_binder": {"var_interned_str": interner.s("arg"), "type": unit},
                        "ret_type": unit,
                    }
                ],
                "key": {"type": lf2_builtin("PARTY"), "key_expr": key_expr},
            }
        ],
    }


def address_module_lf2(interner: Interner) -> dict:
    def record(name: str, *fields: str) -> dict:
        return {
            "name_interned_dname": interner.d("Addresses", name),
            "record": {
                "fields": [
                    {"field_interned_str": interner.s(item), "type": lf2_builtin("TEXT")} for item in fields
                ]
            },
            "serializable": True,
        }

    return {
        "name_interned_dname": interner.d("Addresses"),
        "data_types": [
            record("USAddress", "street", "zip"),
            record("UKAddress", "street", "postcode"),
            {
                "name_interned_dname": interner.d("Addresses", "Address"),
                "variant": {
                    "fields": [
                        {"field_interned_str": interner.s("US"), "type": con(interner, "Addresses", "USAddress")},
                        {"field_interned_str": interner.s("UK"), "type": con(interner, "Addresses", "UKAddress")},
                    ]
                },
                "serializable": True,
            },
        ],
    }


@pytest.fixture
def interner() -> Interner:
    return Interner()


@pytest.fixture
def settings() -> DecoderSettings:
    return DecoderSettings(max_workers=1, deadline_seconds=None, verify_hash=False)
