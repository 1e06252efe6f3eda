"""Single-line code conventions shared by the generator and the property adder.

Both the full CRUD render and the add-property flow must emit identical
lines for the same property, otherwise a property added later would look
different from one generated up front.  The type tables below are fixed
heuristics; keep them stable so generated output stays predictable.
"""

from __future__ import annotations

DEFAULT_MAX_LENGTH = 100

_NUMERIC_TYPES = frozenset({"int", "long", "decimal", "double", "float"})
_NOT_EMPTY_TYPES = frozenset({"DateTime", "DateOnly", "TimeOnly", "Guid"})
_NOT_NULL_WHEN_NULLABLE = frozenset({"DateTime", "Guid"})

# Types AutoMapper converts without help; anything else gets a notice.
_AUTO_MAPPED_TYPES = frozenset({"guid", "string", "int", "long", "bool", "double", "float"})
_CUSTOM_MAPPED_TYPES = frozenset({"datetime", "dateonly", "timeonly", "decimal"})


def validation_rule(
    property_name: str,
    property_type: str,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> str:
    """FluentValidation rule line (indented for a validator constructor).

    >>> validation_rule("Name", "string")
    '        RuleFor(command => command.Name).NotEmpty().MinimumLength(1).MaximumLength(100);'
    >>> validation_rule("Description", "string?")
    '        RuleFor(command => command.Description).MaximumLength(100);'
    """
    nullable = property_type.endswith("?")
    base = property_type.rstrip("?").strip()
    target = f"RuleFor(command => command.{property_name})"

    if base.endswith("[]") or ("<" in base and base.endswith(">")):
        return f"        {target}.NotNull();"

    if base == "string":
        if nullable:
            return f"        {target}.MaximumLength({max_length});"
        return f"        {target}.NotEmpty().MinimumLength(1).MaximumLength({max_length});"

    if base in _NUMERIC_TYPES and not nullable:
        return f"        {target}.GreaterThan(0);"

    if base == "bool":
        return f"        // {target} - Boolean validation if needed;"

    if base in _NOT_EMPTY_TYPES and not nullable:
        return f"        {target}.NotEmpty();"

    if base in _NOT_NULL_WHEN_NULLABLE and nullable:
        return f"        {target}.NotNull();"

    if not nullable:
        return f"        {target}.NotNull();"

    return f"        // {target} - Add validation if needed;"


def needs_custom_mapping(property_type: str) -> bool:
    """Whether AutoMapper may need an explicit member map for this type.

    Date/time types and ``decimal`` are flagged, as is every unknown type.
    """
    base = property_type.rstrip("?").lower()
    if base in _CUSTOM_MAPPED_TYPES:
        return True
    return base not in _AUTO_MAPPED_TYPES


def configuration_line(lambda_var: str, property_name: str, nullable: bool) -> str:
    """EF Core ``builder.Property(...)`` mapping line for one column."""
    required = "" if nullable else ".IsRequired()"
    return (
        f"        builder.Property({lambda_var} => {lambda_var}.{property_name})"
        f'.HasColumnName("{property_name}"){required};'
    )
