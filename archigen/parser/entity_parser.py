"""Recover an :class:`EntityDefinition` from a generated entity source file.

This is pattern matching over the narrow dialect archigen itself emits, not
a C# parser.  The accepted shapes are:

* the first ``class <Name> : <Base>`` declaration, where ``<Base>`` may carry
  a generic argument naming the identifier type (``Entity<Guid>``);
* single-line auto-properties ``public <Type> <Name> { get; set; }``, where
  ``<Type>`` may contain ``?``, ``[]`` and one level of generic arguments.

Anything else in the file is ignored.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..exceptions import MissingDependency, ParseError
from .models import EntityDefinition, PropertyDefinition

DEFAULT_ID_TYPE = "int"

# Supplied by the common Entity<TId> base class, never user data.
BASE_PROPERTIES = frozenset({"Id", "CreatedDate", "UpdatedDate", "DeletedDate"})

_CLASS_RE = re.compile(r"class\s+(?P<name>\w+)\s*:\s*(?P<base>[^\r\n{]+)")
_PROPERTY_RE = re.compile(
    r"public\s+(?P<type>[\w?\[\]<>,\s]+)\s+(?P<name>\w+)\s*\{\s*get;\s*set;\s*\}"
)
_WHITESPACE_RE = re.compile(r"\s+")


def parse_entity(path: str | Path) -> EntityDefinition:
    """Parse the entity class stored at *path*.

    Raises:
        MissingDependency: If the file does not exist.
        ParseError: If no ``class X : Base`` declaration is found.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise MissingDependency(file_path, f"Entity file not found: {file_path}")
    return parse_entity_source(file_path.read_text(encoding="utf-8"), source=file_path)


def parse_entity_source(text: str, source: str | Path = "<string>") -> EntityDefinition:
    """Parse entity source *text*; *source* is only used in error messages."""
    class_match = _CLASS_RE.search(text)
    if class_match is None:
        raise ParseError(source, f"Could not locate class definition in '{source}'.")

    name = class_match.group("name")
    id_type = extract_id_type(class_match.group("base").strip())

    properties = []
    for match in _PROPERTY_RE.finditer(text):
        prop = PropertyDefinition(
            name=match.group("name"),
            declared_type=_normalize_spacing(match.group("type")),
        )
        if prop.pascal_name in BASE_PROPERTIES:
            continue
        properties.append(prop)

    return EntityDefinition(name=name, id_type=id_type, properties=tuple(properties))


def extract_id_type(base_clause: str) -> str:
    """Text between the first ``<`` and the first ``>`` of *base_clause*.

    >>> extract_id_type("Entity<Guid>")
    'Guid'
    >>> extract_id_type("BaseEntity")
    'int'
    """
    start = base_clause.find("<")
    end = base_clause.find(">")
    if start >= 0 and end > start:
        return base_clause[start + 1:end].strip() or DEFAULT_ID_TYPE
    return DEFAULT_ID_TYPE


def _normalize_spacing(type_text: str) -> str:
    # A type split across lines collapses to single spaces.
    return _WHITESPACE_RE.sub(" ", type_text.strip())
