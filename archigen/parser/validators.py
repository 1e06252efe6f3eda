"""Name and type validation for entities and properties.

Every check here runs before any file is touched.  Each failure raises a
typed error whose message names the offending value and, where one exists,
suggests a corrected form.
"""

from __future__ import annotations

from typing import Iterable

from ..exceptions import DuplicateEntity, InvalidName, InvalidType, NameRejection
from ..utils import to_pascal_case
from .models import EntityDefinition, PropertyDefinition

# ---------------------------------------------------------------------------
# Reference tables
# ---------------------------------------------------------------------------

CSHARP_KEYWORDS = frozenset({
    "abstract", "as", "base", "bool", "break", "byte", "case", "catch", "char", "checked",
    "class", "const", "continue", "decimal", "default", "delegate", "do", "double", "else",
    "enum", "event", "explicit", "extern", "false", "finally", "fixed", "float", "for",
    "foreach", "goto", "if", "implicit", "in", "int", "interface", "internal", "is", "lock",
    "long", "namespace", "new", "null", "object", "operator", "out", "override", "params",
    "private", "protected", "public", "readonly", "ref", "return", "sbyte", "sealed",
    "short", "sizeof", "stackalloc", "static", "string", "struct", "switch", "this",
    "throw", "true", "try", "typeof", "uint", "ulong", "unchecked", "unsafe", "ushort",
    "using", "virtual", "void", "volatile", "while",
})

# Compared case-insensitively.
PROPERTY_DENYLIST = frozenset({
    "string", "int", "bool", "double", "float", "decimal", "long", "short", "byte",
    "char", "object",
    "id", "entity", "model", "class", "type", "value", "data",
    "property", "field", "variable",
})

ENTITY_DENYLIST = frozenset({
    "string", "int", "bool", "double", "float", "decimal", "long", "short", "byte",
    "char", "object", "datetime", "guid", "list", "array", "dictionary", "collection",
    "entity", "model", "class", "type", "data", "item", "record", "row", "table",
    "database", "repository", "service", "controller", "manager", "handler",
})

PRIMITIVE_TYPES = frozenset({
    "string", "int", "long", "decimal", "double", "float", "bool",
    "DateTime", "DateOnly", "TimeOnly", "Guid", "byte", "short", "char", "object",
})

GENERIC_WRAPPERS = frozenset({
    "List", "IList", "ICollection", "IEnumerable", "HashSet", "ISet",
    "Dictionary", "IDictionary", "KeyValuePair",
})

SUGGESTED_TYPES = (
    "string", "int", "long", "decimal", "double", "float", "bool",
    "DateTime", "DateOnly", "TimeOnly", "Guid",
)

_TYPE_ALIASES = {
    "string": "string",
    "system.string": "string",
    "int": "int",
    "int32": "int",
    "system.int32": "int",
    "long": "long",
    "int64": "long",
    "bool": "bool",
    "boolean": "bool",
    "double": "double",
    "float": "float",
    "decimal": "decimal",
    "datetime": "DateTime",
    "dateonly": "DateOnly",
    "timeonly": "TimeOnly",
    "guid": "Guid",
    "byte": "byte",
    "short": "short",
    "int16": "short",
    "char": "char",
    "object": "object",
}

_GENERIC_PREFIXES = (
    ("list<", "List<"),
    ("ilist<", "IList<"),
    ("icollection<", "ICollection<"),
    ("ienumerable<", "IEnumerable<"),
    ("dictionary<", "Dictionary<"),
    ("idictionary<", "IDictionary<"),
)

DEFAULT_PROPERTY_TYPE = "string"


# ---------------------------------------------------------------------------
# Identifier helpers
# ---------------------------------------------------------------------------

def is_valid_identifier(name: str) -> bool:
    """Letter or underscore first, then letters, digits or underscores."""
    if not name:
        return False
    if not (name[0].isalpha() or name[0] == "_"):
        return False
    return all(ch.isalnum() or ch == "_" for ch in name[1:])


def is_reserved_keyword(name: str) -> bool:
    return name.lower() in CSHARP_KEYWORDS


# ---------------------------------------------------------------------------
# Name validation
# ---------------------------------------------------------------------------

def validate_property_name(name: str, entity_name: str | None = None) -> str:
    """Validate a property name and return it unchanged.

    Raises:
        InvalidName: With ``reason`` set to the first failed check.
    """
    if name is None or not name.strip():
        raise InvalidName("", NameRejection.EMPTY, "Property name cannot be empty.")

    if not is_valid_identifier(name):
        raise InvalidName(
            name,
            NameRejection.ILLEGAL_CHARACTER,
            f"Property name '{name}' is not a valid C# identifier. "
            "Use PascalCase and start with a letter.",
        )

    if is_reserved_keyword(name):
        raise InvalidName(
            name,
            NameRejection.RESERVED_KEYWORD,
            f"Property name '{name}' is a reserved C# keyword. Please choose a different name.",
        )

    if name.lower() in PROPERTY_DENYLIST:
        raise InvalidName(
            name,
            NameRejection.DENYLIST,
            f"Property name '{name}' is inappropriate or conflicts with common .NET "
            "types/keywords. Please choose a more descriptive name.",
        )

    if not name[0].isupper():
        suggestion = name[0].upper() + name[1:]
        raise InvalidName(
            name,
            NameRejection.CASING,
            f"Property name '{name}' must follow PascalCase convention and start with "
            f"an uppercase letter. Did you mean '{suggestion}'?",
            suggestion=suggestion,
        )

    if entity_name and name.lower() == entity_name.lower():
        raise InvalidName(
            name,
            NameRejection.COLLISION,
            f"Property name '{name}' cannot be the same as entity name '{entity_name}'. "
            "Please choose a different property name.",
        )

    return name


def validate_entity_name(name: str, existing_entities: Iterable[str] = ()) -> str:
    """Validate a new entity name against the C# rules and existing entities.

    Raises:
        DuplicateEntity: If *name* matches an existing entity case-insensitively.
        InvalidName: For every other rejection.
    """
    if name is None or not name.strip():
        raise InvalidName("", NameRejection.EMPTY, "Entity name cannot be empty.")

    if not is_valid_identifier(name):
        raise InvalidName(
            name,
            NameRejection.ILLEGAL_CHARACTER,
            f"Entity name '{name}' is not a valid C# identifier. "
            "Use PascalCase and start with a letter.",
        )

    if is_reserved_keyword(name):
        raise InvalidName(
            name,
            NameRejection.RESERVED_KEYWORD,
            f"Entity name '{name}' is a reserved C# keyword. Please choose a different name.",
        )

    if name.lower() in ENTITY_DENYLIST:
        raise InvalidName(
            name,
            NameRejection.DENYLIST,
            f"Entity name '{name}' is inappropriate or conflicts with common .NET types. "
            "Please choose a more descriptive name.",
        )

    if not name[0].isupper():
        suggestion = name[0].upper() + name[1:]
        raise InvalidName(
            name,
            NameRejection.CASING,
            f"Entity name '{name}' must be PascalCase. Did you mean '{suggestion}'?",
            suggestion=suggestion,
        )

    for existing in existing_entities:
        if existing.lower() == name.lower():
            raise DuplicateEntity(name, existing)

    return name


def validate_name(
    name: str,
    context: str = "property",
    *,
    entity_name: str | None = None,
    existing_entities: Iterable[str] = (),
) -> str:
    """Dispatch to the property or entity validator.

    Args:
        name: The candidate identifier.
        context: ``"property"`` or ``"entity"``.
        entity_name: Owning entity, for the property/entity collision check.
        existing_entities: Known entities, for the entity collision check.
    """
    if context == "entity":
        return validate_entity_name(name, existing_entities)
    if context == "property":
        return validate_property_name(name, entity_name)
    raise ValueError(f"Unknown validation context '{context}'")


# ---------------------------------------------------------------------------
# Type validation
# ---------------------------------------------------------------------------

def normalize_type(type_name: str) -> str:
    """Map common aliases to canonical casing, keeping a trailing ``?``.

    Unknown names are returned unchanged so custom types pass through.

    >>> normalize_type("datetime?")
    'DateTime?'
    >>> normalize_type("Int32")
    'int'
    """
    nullable = type_name.endswith("?")
    base = type_name.rstrip("?") if nullable else type_name
    lowered = base.lower()

    normalized = _TYPE_ALIASES.get(lowered)
    if normalized is None:
        normalized = base
        for prefix, canonical in _GENERIC_PREFIXES:
            if lowered.startswith(prefix):
                normalized = canonical + base[len(prefix):]
                break

    return f"{normalized}?" if nullable else normalized


def is_valid_type(type_name: str) -> bool:
    """Whether *type_name* (already normalised) is an accepted property type."""
    base = type_name.rstrip("?").strip()
    if not base:
        return False

    if base in PRIMITIVE_TYPES:
        return True

    if base.endswith("[]"):
        return is_valid_type(base[:-2])

    if "<" in base and base.endswith(">"):
        if base[: base.index("<")] in GENERIC_WRAPPERS:
            return True

    return is_valid_identifier(base) and base[0].isupper()


def validate_type(type_name: str) -> str:
    """Normalise and validate *type_name*, returning the canonical form.

    Raises:
        InvalidType: If the type is empty or not recognised.
    """
    if type_name is None or not type_name.strip():
        raise InvalidType("", "Property type cannot be empty.")

    normalized = normalize_type(type_name.strip())
    if not is_valid_type(normalized):
        raise InvalidType(
            type_name,
            f"Property type '{type_name}' is not valid. Use proper casing like: "
            f"{', '.join(SUGGESTED_TYPES)}. Add '?' for nullable types "
            "(e.g., 'string?', 'int?').",
        )
    return normalized


# ---------------------------------------------------------------------------
# Property lists
# ---------------------------------------------------------------------------

def split_top_level(value: str, separator: str = ",") -> list[str]:
    """Split on *separator* outside of ``<...>`` so generic types stay whole."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in value:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth = max(depth - 1, 0)
        if ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def parse_properties(
    spec: str | None,
    entity_name: str | None = None,
) -> tuple[PropertyDefinition, ...]:
    """Parse ``"Name:string,Price:decimal"`` into validated properties.

    A missing type defaults to ``string``.  Types are returned normalised and
    names in the PascalCase form the generated C# declares (``Is_Active`` ->
    ``IsActive``, ``SKU`` -> ``Sku``).

    Raises:
        InvalidName: On a bad or repeated property name.
        InvalidType: On an unrecognised type.
    """
    if spec is None or not spec.strip():
        return ()

    properties: list[PropertyDefinition] = []
    seen: dict[str, str] = {}
    for part in split_top_level(spec):
        name, _, declared_type = part.partition(":")
        name = name.strip()
        declared_type = declared_type.strip() or DEFAULT_PROPERTY_TYPE

        validate_property_name(name, entity_name)
        name = validate_property_name(to_pascal_case(name), entity_name)
        normalized = validate_type(declared_type)

        key = name.lower()
        if key in seen:
            raise InvalidName(
                name,
                NameRejection.COLLISION,
                f"Property '{name}' is declared more than once (first as '{seen[key]}').",
            )
        seen[key] = name
        properties.append(PropertyDefinition(name=name, declared_type=normalized))

    return tuple(properties)


def validate_entity_definition(
    entity: EntityDefinition,
    existing_entities: Iterable[str] = (),
) -> EntityDefinition:
    """Check a freshly authored entity as a whole.

    Validates the entity name, every property name and type, and that no two
    properties share a name.  Returns *entity* unchanged.
    """
    validate_entity_name(entity.name, existing_entities)

    seen: set[str] = set()
    for prop in entity.properties:
        validate_property_name(prop.name, entity.name)
        validate_type(prop.declared_type)
        key = prop.pascal_name.lower()
        if key in seen:
            raise InvalidName(
                prop.name,
                NameRejection.COLLISION,
                f"Property '{prop.name}' is declared more than once in '{entity.name}'.",
            )
        seen.add(key)
    return entity
