from conftest import (
    Interner,
    address_module_lf2,
    con,
    lf2_builtin,
    lf2_package,
    make_archive,
    pair_module_lf2,
)
from damlmodel.decoder import decode_archive
from damlmodel.generations import LF2Walker
from damlmodel.ir import LF2Package
from damlmodel.model import Choice, Field, KeyInfo, TypeKind
from damlmodel.walker import ModuleModel


def _walk(interner: Interner, module: dict, **package_kwargs) -> ModuleModel:
    package = lf2_package(interner, [module], **package_kwargs)
    return LF2Walker(package).walk(package.modules[0])


def _choice(interner: Interner, name: str, consuming: bool = True, ret: bool = True) -> dict:
    body = {
        "name_interned_str": interner.s(name),
        "consuming": consuming,
        "arg_binder": {"var_interned_str": interner.s("arg"), "type": lf2_builtin("UNIT")},
    }
    if ret:
        body["ret_type"] = lf2_builtin("UNIT")
    return body


def _record(interner: Interner, module: str, name: str, **fields: str) -> dict:
    return {
        "name_interned_dname": interner.d(module, name),
        "record": {
            "fields": [
                {"field_interned_str": interner.s(field), "type": lf2_builtin(builtin)}
                for field, builtin in fields.items()
            ]
        },
        "serializable": True,
    }


def test_pair_template(interner: Interner, settings) -> None:
    module = pair_module_lf2(interner)
    package = lf2_package(
        interner,
        [module],
        metadata={"name_interned_str": interner.s("pairs"), "version_interned_str": interner.s("1.0.0")},
    )
    decoded = decode_archive(make_archive(package, minor="1"), settings=settings)

    assert decoded.package.lf_version == "2.1"
    assert decoded.package.metadata.name == "pairs"
    assert decoded.package.metadata.version == "1.0.0"
    assert list(decoded.package.structs) == ["Pair"]
    pair = decoded.package["Pair"]
    assert pair.is_template
    assert pair.kind is TypeKind.RECORD
    assert pair.module == "Main"
    assert pair.fields == (Field("a", "PARTY", "prim:PARTY"), Field("b", "TEXT", "prim:TEXT"))
    assert pair.choices == (Choice("Accept", True, "UNIT", "UNIT"),)
    assert pair.key == KeyInfo("a", "PARTY", "prim:PARTY", ("a",))
    assert not pair.incomplete
    assert decoded.diagnostics == []


def test_variant_constructors_are_optional_fields(interner: Interner) -> None:
    model = _walk(interner, address_module_lf2(interner))

    assert list(model.data_types) == ["USAddress", "UKAddress", "Address"]
    address = model.data_types["Address"]
    assert address.kind is TypeKind.VARIANT
    assert address.constructors == ("US", "UK")
    assert address.fields == (
        Field("US", "USAddress", "con:USAddress", True),
        Field("UK", "UKAddress", "con:UKAddress", True),
    )
    assert model.data_types["USAddress"].field_names() == ["street", "zip"]
    unnormalized = [entry for entry in model.diagnostics if entry.code == "unnormalized_type"]
    assert [entry.declaration for entry in unnormalized] == ["Address", "Address"]


def test_enum_constructors_become_string_fields(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Colours"),
        "data_types": [
            {
                "name_interned_dname": interner.d("Colours", "Colour"),
                "enum": {"constructors_interned_str": [interner.s("Red"), interner.s("Green")]},
                "serializable": True,
            }
        ],
    }
    colour = _walk(interner, module).data_types["Colour"]
    assert colour.kind is TypeKind.ENUM
    assert colour.constructors == ("Red", "Green")
    assert colour.fields == (Field("Red", "string", "enum"), Field("Green", "string", "enum"))


def test_unknown_data_constructor_is_skipped(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Main"),
        "data_types": [
            {"name_interned_dname": interner.d("Main", "Mystery"), "serializable": True},
            _record(interner, "Main", "Known", owner="PARTY"),
        ],
    }
    model = _walk(interner, module)
    assert list(model.data_types) == ["Known"]
    (diagnostic,) = model.diagnostics
    assert diagnostic.code == "unknown_data_constructor"
    assert diagnostic.declaration == "Mystery"
    assert diagnostic.module == "Main"


def test_non_serializable_data_types_are_excluded(interner: Interner) -> None:
    hidden = _record(interner, "Main", "Internal", count="INT64")
    hidden["serializable"] = False
    module = {"name_interned_dname": interner.d("Main"), "data_types": [hidden]}
    model = _walk(interner, module)
    assert model.data_types == {}
    assert model.diagnostics == []


def test_template_without_record(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Main"),
        "templates": [{"tycon_interned_dname": interner.d("Main", "Orphan"), "choices": [_choice(interner, "Archive")]}],
    }
    model = _walk(interner, module)
    orphan = model.templates["Orphan"]
    assert orphan.fields == ()
    assert orphan.choices == (Choice("Archive", True, "UNIT", "UNIT"),)
    assert orphan.incomplete
    assert [entry.code for entry in model.diagnostics] == ["template_without_record"]


def test_template_backed_by_variant(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Main"),
        "data_types": [
            {
                "name_interned_dname": interner.d("Main", "Odd"),
                "variant": {"fields": [{"field_interned_str": interner.s("A"), "type": lf2_builtin("UNIT")}]},
                "serializable": True,
            }
        ],
        "templates": [{"tycon_interned_dname": interner.d("Main", "Odd")}],
    }
    model = _walk(interner, module)
    assert model.templates["Odd"].incomplete
    assert "Odd" not in model.data_types
    assert model.diagnostics[0].code == "template_not_record"


def test_out_of_range_type_index_marks_declaration_incomplete(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Main"),
        "data_types": [
            {
                "name_interned_dname": interner.d("Main", "Broken"),
                "record": {
                    "fields": [
                        {"field_interned_str": interner.s("ok"), "type": lf2_builtin("TEXT")},
                        {"field_interned_str": interner.s("bad"), "type": {"interned_type": 99}},
                        {"field_interned_str": interner.s("untyped")},
                    ]
                },
                "serializable": True,
            }
        ],
    }
    model = _walk(interner, module)
    broken = model.data_types["Broken"]
    assert broken.incomplete
    assert broken.fields == (
        Field("ok", "TEXT", "prim:TEXT"),
        Field("bad", "", "interned:99?"),
        Field("untyped", "", "none"),
    )
    assert [entry.code for entry in model.diagnostics] == ["index_out_of_range", "missing_type_information"]


def test_out_of_range_field_name_drops_the_field(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Main"),
        "data_types": [
            {
                "name_interned_dname": interner.d("Main", "Lossy"),
                "record": {
                    "fields": [
                        {"field_interned_str": 500, "type": lf2_builtin("TEXT")},
                        {"field_interned_str": 0, "type": lf2_builtin("TEXT")},
                        {"field_interned_str": interner.s("kept"), "type": lf2_builtin("TEXT")},
                    ]
                },
                "serializable": True,
            }
        ],
    }
    model = _walk(interner, module)
    assert model.data_types["Lossy"].field_names() == ["kept"]
    assert model.data_types["Lossy"].incomplete
    assert [entry.code for entry in model.diagnostics] == ["index_out_of_range", "unnamed_field"]


def test_choice_problems(interner: Interner) -> None:
    module = pair_module_lf2(interner)
    choices = module["templates"][0]["choices"]
    choices.append(_choice(interner, "Accept", consuming=False))
    choices.append(_choice(interner, "Peek", consuming=False, ret=False))
    model = _walk(interner, module)

    pair = model.templates["Pair"]
    assert pair.choices == (Choice("Accept", True, "UNIT", "UNIT"), Choice("Peek", False, "UNIT", ""))
    assert pair.incomplete
    assert [entry.code for entry in model.diagnostics] == ["duplicate_choice", "missing_choice_type"]


def test_interface_with_view(interner: Interner) -> None:
    module = {
        "name_interned_dname": interner.d("Main"),
        "interfaces": [
            {
                "tycon_interned_dname": interner.d("Main", "Asset"),
                "choices": [_choice(interner, "Transfer")],
                "view": con(interner, "Main", "AssetView"),
            }
        ],
        "data_types": [
            {"name_interned_dname": interner.d("Main", "Asset"), "interface": {}, "serializable": True},
            {"name_interned_dname": interner.d("Main", "Token"), "interface": {}, "serializable": True},
        ],
    }
    model = _walk(interner, module)

    asset = model.interfaces["Asset"]
    assert asset.is_interface
    assert asset.choices == (Choice("Transfer", True, "UNIT", "UNIT"),)
    assert not asset.incomplete
    assert "Asset" not in model.data_types
    token = model.data_types["Token"]
    assert token.kind is TypeKind.INTERFACE
    assert token.incomplete
    assert [entry.code for entry in model.diagnostics] == ["interface_view_skipped", "interface_without_definition"]
    assert model.diagnostics[0].severity.value == "info"
    assert "con:AssetView" in model.diagnostics[0].message


def test_key_falls_back_to_first_field(interner: Interner) -> None:
    module = pair_module_lf2(interner, key_expr={"var_interned_str": interner.s("c")})
    model = _walk(interner, module)
    pair = model.templates["Pair"]
    assert pair.key == KeyInfo("a", "PARTY", "prim:PARTY", ("c",))
    assert not pair.incomplete
    assert [entry.code for entry in model.diagnostics] == ["key_field_fallback"]


def test_key_through_interned_projection(interner: Interner) -> None:
    projection = {"rec_proj": {"field_interned_str": interner.s("a"), "record": {"var_interned_str": interner.s("this")}}}
    module = pair_module_lf2(interner, key_expr={"interned_expr": 0})
    model = _walk(interner, module, interned_exprs=[projection])
    assert model.templates["Pair"].key.key_fields == ("a", "this")
    assert model.templates["Pair"].key.field_name == "a"


def test_unresolvable_key_expression(interner: Interner) -> None:
    module = pair_module_lf2(interner, key_expr={"interned_expr": 3})
    model = _walk(interner, module)
    assert model.templates["Pair"].key.key_fields == ()
    assert [entry.code for entry in model.diagnostics] == ["key_expression_unresolved", "key_field_fallback"]


def test_duplicate_and_unnamed_declarations(interner: Interner) -> None:
    first = _record(interner, "Main", "Twice", a="TEXT")
    second = _record(interner, "Main", "Twice", b="INT64")
    unnamed = _record(interner, "Main", "Nameless", c="TEXT")
    unnamed["name_interned_dname"] = interner.d()
    module = {"name_interned_dname": interner.d("Main"), "data_types": [first, second, unnamed]}
    model = _walk(interner, module)
    assert model.data_types["Twice"].field_names() == ["a"]
    assert [entry.code for entry in model.diagnostics] == ["duplicate_declaration", "unnamed_declaration"]


def test_empty_string_table_skips_module() -> None:
    package = LF2Package()
    package.modules.add()
    model = LF2Walker(package).walk(package.modules[0])
    assert model.skipped
    assert model.templates == model.interfaces == model.data_types == {}
    assert "empty_string_table" in [entry.code for entry in model.diagnostics]


def test_name_collision_across_modules(interner: Interner, settings) -> None:
    other = {
        "name_interned_dname": interner.d("Other"),
        "data_types": [_record(interner, "Other", "Pair", x="INT64")],
    }
    main = pair_module_lf2(interner)
    decoded = decode_archive(make_archive(lf2_package(interner, [other, main])), settings=settings)

    pair = decoded.package["Pair"]
    assert pair.is_template
    assert pair.module == "Main"
    (collision,) = decoded.by_code("name_collision")
    assert collision.module == "Other"
    assert collision.declaration == "Pair"


def test_key_without_type_is_reported(interner: Interner) -> None:
    module = pair_module_lf2(interner)
    del module["templates"][0]["key"]["type"]
    model = _walk(interner, module)

    pair = model.templates["Pair"]
    assert pair.incomplete
    assert pair.key == KeyInfo("a", "", "none", ("a",))
    assert [entry.code for entry in model.diagnostics] == ["missing_type_information", "key_field_fallback"]
    assert model.diagnostics[0].message == "key of Pair has no type"


def test_missing_type_messages(interner: Interner) -> None:
    module = pair_module_lf2(interner)
    module["data_types"][0]["record"]["fields"][1].pop("type")
    module["templates"][0]["choices"][0].pop("ret_type")
    model = _walk(interner, module)

    messages = {entry.code: entry.message for entry in model.diagnostics}
    assert messages["missing_type_information"] == "type of field Pair.b unresolved: field Pair.b has no type"
    assert messages["missing_choice_type"] == (
        "return type of choice Pair.Accept unresolved: choice Pair.Accept has no return type"
    )
    assert model.templates["Pair"].fields[1] == Field("b", "", "none")
