"""Tests for the shared single-line code conventions."""

from __future__ import annotations

import pytest

from archigen.scaffolder.conventions import (
    configuration_line,
    needs_custom_mapping,
    validation_rule,
)

pytestmark = pytest.mark.unit


class TestValidationRule:
    @pytest.mark.parametrize(
        "prop_type, tail",
        [
            ("string", ".NotEmpty().MinimumLength(1).MaximumLength(100);"),
            ("string?", ".MaximumLength(100);"),
            ("int", ".GreaterThan(0);"),
            ("decimal", ".GreaterThan(0);"),
            ("DateTime", ".NotEmpty();"),
            ("Guid", ".NotEmpty();"),
            ("DateTime?", ".NotNull();"),
            ("List<string>", ".NotNull();"),
            ("byte[]", ".NotNull();"),
            ("Address", ".NotNull();"),
        ],
    )
    def test_rule_table(self, prop_type, tail):
        assert validation_rule("Field", prop_type) == f"        RuleFor(command => command.Field){tail}"

    def test_bool_is_commented(self):
        rule = validation_rule("IsActive", "bool?")
        assert rule == "        // RuleFor(command => command.IsActive) - Boolean validation if needed;"

    def test_nullable_numeric_is_commented(self):
        assert validation_rule("Stock", "int?").lstrip().startswith("//")

    def test_custom_max_length(self):
        assert validation_rule("Code", "string?", max_length=12).endswith(".MaximumLength(12);")


class TestNeedsCustomMapping:
    @pytest.mark.parametrize("prop_type", ["DateTime", "DateOnly?", "decimal", "Money", "List<int>"])
    def test_flagged(self, prop_type):
        assert needs_custom_mapping(prop_type) is True

    @pytest.mark.parametrize("prop_type", ["string", "string?", "int", "bool?", "Guid"])
    def test_not_flagged(self, prop_type):
        assert needs_custom_mapping(prop_type) is False


class TestConfigurationLine:
    def test_required(self):
        assert configuration_line("product", "Name", False) == (
            '        builder.Property(product => product.Name).HasColumnName("Name").IsRequired();'
        )

    def test_nullable(self):
        assert configuration_line("u", "Bio", True) == (
            '        builder.Property(u => u.Bio).HasColumnName("Bio");'
        )
