"""Tests for the entity source parser.

Covers:
- Class name and identifier type extraction
- Auto-property extraction, including nullable, array and generic types
- Base-class properties being skipped
- Missing files and files without a class
- Round trip: rendering an entity and parsing it back yields the same entity
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from archigen.exceptions import MissingDependency, ParseError
from archigen.parser.entity_parser import (
    BASE_PROPERTIES,
    extract_id_type,
    parse_entity,
    parse_entity_source,
)
from archigen.parser.models import EntityDefinition, PropertyDefinition
from archigen.parser.validators import parse_properties
from archigen.scaffolder.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

PRODUCT_SOURCE = textwrap.dedent("""\
    using Core.Persistence.Repositories;

    namespace Shop.Domain.Entities;

    public class Product : Entity<Guid>
    {
        public string Name { get; set; }
        public decimal Price { get; set; }
        public bool? IsActive { get; set; }

        public Product()
        {
            Name = string.Empty;
        }
    }
""")


def _render_entity(entity: EntityDefinition) -> str:
    return TemplateRenderer().render(
        "entity.cs.j2",
        {
            "project": "Shop",
            "name": entity.pascal_name,
            "id_type": entity.id_type,
            "props": list(entity.properties),
        },
    )


# ---------------------------------------------------------------------------
# parse_entity_source
# ---------------------------------------------------------------------------


class TestParseEntitySource:
    def test_class_name_and_id_type(self):
        entity = parse_entity_source(PRODUCT_SOURCE)
        assert entity.name == "Product"
        assert entity.id_type == "Guid"

    def test_properties_in_order(self):
        entity = parse_entity_source(PRODUCT_SOURCE)
        assert [(p.name, p.declared_type) for p in entity.properties] == [
            ("Name", "string"),
            ("Price", "decimal"),
            ("IsActive", "bool?"),
        ]

    def test_base_properties_are_skipped(self):
        source = textwrap.dedent("""\
            public class Order : Entity<int>
            {
                public int Id { get; set; }
                public DateTime CreatedDate { get; set; }
                public DateTime? UpdatedDate { get; set; }
                public DateTime? DeletedDate { get; set; }
                public string Number { get; set; }
            }
        """)
        entity = parse_entity_source(source)
        assert entity.property_names() == ["Number"]
        assert "Id" in BASE_PROPERTIES

    def test_array_and_generic_types(self):
        source = textwrap.dedent("""\
            public class Basket : Entity<int>
            {
                public string[] Tags { get; set; }
                public List<int> Quantities { get; set; }
                public Dictionary<string, decimal> Prices { get; set; }
            }
        """)
        entity = parse_entity_source(source)
        assert [p.declared_type for p in entity.properties] == [
            "string[]",
            "List<int>",
            "Dictionary<string, decimal>",
        ]

    def test_methods_and_fields_are_ignored(self):
        source = textwrap.dedent("""\
            public class Invoice : Entity<long>
            {
                private readonly decimal _rate;
                public string Code { get; set; }
                public decimal Total => _rate * 2;
                public void Recalculate() { }
            }
        """)
        entity = parse_entity_source(source)
        assert entity.id_type == "long"
        assert entity.property_names() == ["Code"]

    def test_non_generic_base_defaults_to_int(self):
        entity = parse_entity_source("public class Tag : BaseEntity\n{\n}\n")
        assert entity.id_type == "int"
        assert entity.properties == ()

    def test_no_class_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            parse_entity_source("namespace Shop;\n", source="Broken.cs")
        assert exc_info.value.path == "Broken.cs"

    def test_class_without_base_is_not_recognised(self):
        with pytest.raises(ParseError):
            parse_entity_source("public class Loose\n{\n}\n")

    def test_duplicate_declarations_pass_through(self):
        source = textwrap.dedent("""\
            public class Item : Entity<int>
            {
                public string Name { get; set; }
                public string Name { get; set; }
            }
        """)
        assert parse_entity_source(source).property_names() == ["Name", "Name"]


# ---------------------------------------------------------------------------
# parse_entity
# ---------------------------------------------------------------------------


class TestParseEntity:
    def test_reads_file(self, tmp_path: Path):
        path = tmp_path / "Product.cs"
        path.write_text(PRODUCT_SOURCE, encoding="utf-8")
        entity = parse_entity(path)
        assert entity.name == "Product"
        assert len(entity.properties) == 3

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(MissingDependency) as exc_info:
            parse_entity(tmp_path / "Nope.cs")
        assert exc_info.value.path.endswith("Nope.cs")


# ---------------------------------------------------------------------------
# extract_id_type
# ---------------------------------------------------------------------------


class TestExtractIdType:
    @pytest.mark.parametrize(
        "base, expected",
        [
            ("Entity<int>", "int"),
            ("Entity<Guid>", "Guid"),
            ("Entity< long >", "long"),
            ("Entity<>", "int"),
            ("BaseEntity", "int"),
            ("Entity<string>, IAggregateRoot", "string"),
        ],
    )
    def test_table(self, base, expected):
        assert extract_id_type(base) == expected


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


class TestRoundTrip:
    @pytest.mark.parametrize(
        "entity",
        [
            EntityDefinition(
                name="Product",
                properties=(
                    PropertyDefinition(name="Name", declared_type="string"),
                    PropertyDefinition(name="Price", declared_type="decimal"),
                    PropertyDefinition(name="IsActive", declared_type="bool?"),
                ),
            ),
            EntityDefinition(
                name="Shipment",
                id_type="Guid",
                properties=(
                    PropertyDefinition(name="TrackingCode", declared_type="string?"),
                    PropertyDefinition(name="ShippedAt", declared_type="DateTime?"),
                    PropertyDefinition(name="Labels", declared_type="List<string>"),
                    PropertyDefinition(name="Weights", declared_type="Dictionary<string, double>"),
                    PropertyDefinition(name="Photos", declared_type="byte[]"),
                ),
            ),
            EntityDefinition(name="Marker", id_type="long"),
        ],
        ids=["product", "shipment", "no-properties"],
    )
    def test_render_then_parse(self, entity: EntityDefinition):
        parsed = parse_entity_source(_render_entity(entity))
        assert parsed == entity

    @pytest.mark.parametrize(
        "spec, names",
        [
            ("Is_Active:bool,Name:string", ["IsActive", "Name"]),
            ("SKU:string,Price:decimal", ["Sku", "Price"]),
        ],
    )
    def test_parsed_properties_survive_rendering(self, spec, names):
        entity = EntityDefinition(name="Product", properties=parse_properties(spec))
        assert [prop.name for prop in entity.properties] == names

        parsed = parse_entity_source(_render_entity(entity))
        assert parsed == entity
