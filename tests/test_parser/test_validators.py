"""Tests for name and type validation.

Covers:
- Property names: each rejection reason, check order, suggestions
- Entity names: denylist, casing, duplicates against existing entities
- validate_name totality over arbitrary strings
- Type normalisation and validation, including generics and arrays
- parse_properties for the ``Name:Type,...`` syntax
- validate_entity_definition as a whole-entity check
"""

from __future__ import annotations

import pytest

from archigen.exceptions import DuplicateEntity, InvalidName, InvalidType, NameRejection
from archigen.parser.models import EntityDefinition, PropertyDefinition
from archigen.parser.validators import (
    SUGGESTED_TYPES,
    is_valid_identifier,
    is_valid_type,
    normalize_type,
    parse_properties,
    split_top_level,
    validate_entity_definition,
    validate_entity_name,
    validate_name,
    validate_property_name,
    validate_type,
)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


def _reason(func, *args, **kwargs) -> NameRejection:
    with pytest.raises(InvalidName) as exc_info:
        func(*args, **kwargs)
    return exc_info.value.reason


# ---------------------------------------------------------------------------
# Property names
# ---------------------------------------------------------------------------


class TestValidatePropertyName:
    @pytest.mark.parametrize("name", ["Name", "UnitPrice", "Is_Active", "Line2"])
    def test_accepts_pascal_identifiers(self, name):
        assert validate_property_name(name) == name

    @pytest.mark.parametrize(
        "name, reason",
        [
            ("", NameRejection.EMPTY),
            ("   ", NameRejection.EMPTY),
            ("2Fast", NameRejection.ILLEGAL_CHARACTER),
            ("Unit-Price", NameRejection.ILLEGAL_CHARACTER),
            ("Unit Price", NameRejection.ILLEGAL_CHARACTER),
            ("class", NameRejection.RESERVED_KEYWORD),
            ("Namespace", NameRejection.RESERVED_KEYWORD),
            ("id", NameRejection.DENYLIST),
            ("Value", NameRejection.DENYLIST),
            ("price", NameRejection.CASING),
        ],
    )
    def test_rejections(self, name, reason):
        assert _reason(validate_property_name, name) is reason

    def test_casing_suggestion(self):
        with pytest.raises(InvalidName) as exc_info:
            validate_property_name("unitPrice")
        assert exc_info.value.suggestion == "UnitPrice"
        assert "UnitPrice" in str(exc_info.value)

    def test_collision_with_entity_name(self):
        assert _reason(validate_property_name, "Product", "Product") is NameRejection.COLLISION

    def test_collision_is_case_insensitive(self):
        assert _reason(validate_property_name, "Product", "product") is NameRejection.COLLISION

    def test_error_carries_value(self):
        with pytest.raises(InvalidName) as exc_info:
            validate_property_name("Unit-Price")
        assert exc_info.value.value == "Unit-Price"


# ---------------------------------------------------------------------------
# Entity names
# ---------------------------------------------------------------------------


class TestValidateEntityName:
    def test_accepts(self):
        assert validate_entity_name("Product", ["User"]) == "Product"

    @pytest.mark.parametrize(
        "name, reason",
        [
            ("", NameRejection.EMPTY),
            ("Order Item", NameRejection.ILLEGAL_CHARACTER),
            ("event", NameRejection.RESERVED_KEYWORD),
            ("Item", NameRejection.DENYLIST),
            ("Repository", NameRejection.DENYLIST),
            ("product", NameRejection.CASING),
        ],
    )
    def test_rejections(self, name, reason):
        assert _reason(validate_entity_name, name) is reason

    def test_duplicate_entity(self):
        with pytest.raises(DuplicateEntity) as exc_info:
            validate_entity_name("User", ["User", "Product"])
        assert exc_info.value.existing == "User"
        assert exc_info.value.reason is NameRejection.COLLISION

    def test_duplicate_is_case_insensitive(self):
        with pytest.raises(DuplicateEntity):
            validate_entity_name("USER", ["User"])


# ---------------------------------------------------------------------------
# validate_name
# ---------------------------------------------------------------------------


class TestValidateName:
    def test_spec_examples(self):
        assert _reason(validate_name, "id") is NameRejection.DENYLIST
        assert _reason(validate_name, "class") is NameRejection.RESERVED_KEYWORD

    def test_entity_context(self):
        assert _reason(validate_name, "Item", "entity") is NameRejection.DENYLIST
        with pytest.raises(DuplicateEntity):
            validate_name("User", "entity", existing_entities=["User"])

    def test_property_context_with_entity(self):
        assert _reason(validate_name, "Order", entity_name="Order") is NameRejection.COLLISION

    def test_unknown_context(self):
        with pytest.raises(ValueError):
            validate_name("Name", "method")

    @pytest.mark.parametrize(
        "value",
        [
            "", " ", "\t\n", "a", "A", "_", "__init__", "9", "Ä", "ñame", "Name!", "名前",
            "x" * 500, "Name\x00", "IsActive", "public", "object", "Ünïcode", "$Name", "@class",
        ],
    )
    def test_totality(self, value):
        for context in ("property", "entity"):
            try:
                validate_name(value, context)
            except InvalidName as exc:
                assert exc.reason in set(NameRejection)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


class TestNormalizeType:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("string", "string"),
            ("String", "string"),
            ("Int32", "int"),
            ("boolean", "bool"),
            ("datetime?", "DateTime?"),
            ("GUID", "Guid"),
            ("list<Order>", "List<Order>"),
            ("ienumerable<OrderLine>", "IEnumerable<OrderLine>"),
            ("dictionary<string, int>", "Dictionary<string, int>"),
            ("Money", "Money"),
        ],
    )
    def test_table(self, raw, expected):
        assert normalize_type(raw) == expected


class TestValidateType:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("string", "string"),
            ("string?", "string?"),
            ("decimal", "decimal"),
            ("bool?", "bool?"),
            ("DateOnly", "DateOnly"),
            ("int[]", "int[]"),
            ("List<string>", "List<string>"),
            ("HashSet<Guid>", "HashSet<Guid>"),
            ("Address", "Address"),
        ],
    )
    def test_accepts(self, raw, expected):
        assert validate_type(raw) == expected

    @pytest.mark.parametrize("raw", ["sting", "", "  ", "my type", "123", "money[]"])
    def test_rejects(self, raw):
        with pytest.raises(InvalidType):
            validate_type(raw)

    def test_message_lists_valid_examples(self):
        with pytest.raises(InvalidType) as exc_info:
            validate_type("sting")
        message = str(exc_info.value)
        assert "sting" in message
        for example in SUGGESTED_TYPES:
            assert example in message
        assert "string?" in message

    def test_is_valid_type_on_normalised_input(self):
        assert is_valid_type("DateTime?")
        assert not is_valid_type("datetime")


class TestIdentifierHelpers:
    @pytest.mark.parametrize("name, expected", [
        ("Name", True), ("_name", True), ("n4me", True), ("4name", False), ("na-me", False), ("", False),
    ])
    def test_is_valid_identifier(self, name, expected):
        assert is_valid_identifier(name) is expected


# ---------------------------------------------------------------------------
# parse_properties
# ---------------------------------------------------------------------------


class TestParseProperties:
    def test_product_spec(self):
        props = parse_properties("Name:string,Price:decimal,IsActive:bool?")
        assert props == (
            PropertyDefinition(name="Name", declared_type="string"),
            PropertyDefinition(name="Price", declared_type="decimal"),
            PropertyDefinition(name="IsActive", declared_type="bool?"),
        )

    def test_default_type_is_string(self):
        assert parse_properties("Title")[0].declared_type == "string"

    def test_types_are_normalised(self):
        assert parse_properties("CreatedOn:datetime?")[0].declared_type == "DateTime?"

    def test_names_stored_in_pascal_case(self):
        props = parse_properties("Is_Active:bool,SKU:string")
        assert [p.name for p in props] == ["IsActive", "Sku"]

    def test_names_colliding_after_pascal_case_rejected(self):
        with pytest.raises(InvalidName) as exc_info:
            parse_properties("Is_Active:bool,IsActive:bool?")
        assert exc_info.value.reason is NameRejection.COLLISION

    def test_pascal_form_is_validated(self):
        with pytest.raises(InvalidName) as exc_info:
            parse_properties("Class_:string")
        assert exc_info.value.reason is NameRejection.RESERVED_KEYWORD

    def test_whitespace_tolerated(self):
        props = parse_properties(" Name : string , Price : decimal ")
        assert [p.name for p in props] == ["Name", "Price"]

    def test_generic_types_keep_their_commas(self):
        props = parse_properties("Scores:Dictionary<string, int>,Name:string")
        assert [p.declared_type for p in props] == ["Dictionary<string, int>", "string"]

    @pytest.mark.parametrize("spec", [None, "", "   "])
    def test_empty_spec(self, spec):
        assert parse_properties(spec) == ()

    def test_duplicate_names_rejected(self):
        with pytest.raises(InvalidName) as exc_info:
            parse_properties("Name:string,Name:string?")
        assert exc_info.value.reason is NameRejection.COLLISION

    def test_invalid_type(self):
        with pytest.raises(InvalidType):
            parse_properties("Name:sting")

    def test_collision_with_entity(self):
        assert _reason(parse_properties, "Product:string", "Product") is NameRejection.COLLISION


class TestSplitTopLevel:
    def test_plain(self):
        assert split_top_level("a,b,c") == ["a", "b", "c"]

    def test_nested_generics(self):
        assert split_top_level("A:Dictionary<string, List<int>>,B:int") == [
            "A:Dictionary<string, List<int>>",
            "B:int",
        ]

    def test_drops_empty_parts(self):
        assert split_top_level("a,,b,") == ["a", "b"]


# ---------------------------------------------------------------------------
# validate_entity_definition
# ---------------------------------------------------------------------------


class TestValidateEntityDefinition:
    def test_valid(self):
        entity = EntityDefinition(
            name="Product",
            properties=(PropertyDefinition(name="Name", declared_type="string"),),
        )
        assert validate_entity_definition(entity, ["User"]) is entity

    def test_duplicate_properties(self):
        entity = EntityDefinition(
            name="Product",
            properties=(
                PropertyDefinition(name="Name", declared_type="string"),
                PropertyDefinition(name="Name", declared_type="string?"),
            ),
        )
        assert _reason(validate_entity_definition, entity) is NameRejection.COLLISION

    def test_existing_entity(self):
        with pytest.raises(DuplicateEntity):
            validate_entity_definition(EntityDefinition(name="User"), ["User"])

    def test_invalid_property_type(self):
        entity = EntityDefinition(
            name="Product",
            properties=(PropertyDefinition(name="Name", declared_type="sting"),),
        )
        with pytest.raises(InvalidType):
            validate_entity_definition(entity)
