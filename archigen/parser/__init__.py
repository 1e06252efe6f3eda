"""archigen entity parser and validators.

Recovers structured entity definitions from generated C# source and checks
user-supplied names and types before anything is written.

Usage::

    from archigen.parser import parse_entity, parse_properties

    entity = parse_entity("project/Shop.Domain/Entities/Product.cs")
    print(entity.name, entity.id_type)
    for prop in entity.properties:
        print(prop.name, prop.declared_type)

    props = parse_properties("Name:string,Price:decimal,IsActive:bool?")
"""

from archigen.parser.entity_parser import parse_entity, parse_entity_source
from archigen.parser.models import (
    EntityDefinition,
    GenerationOptions,
    ProjectLayout,
    PropertyDefinition,
)
from archigen.parser.validators import (
    normalize_type,
    parse_properties,
    validate_entity_definition,
    validate_entity_name,
    validate_name,
    validate_property_name,
    validate_type,
)

__all__ = [
    "parse_entity",
    "parse_entity_source",
    "EntityDefinition",
    "GenerationOptions",
    "ProjectLayout",
    "PropertyDefinition",
    "normalize_type",
    "parse_properties",
    "validate_entity_definition",
    "validate_entity_name",
    "validate_name",
    "validate_property_name",
    "validate_type",
]
