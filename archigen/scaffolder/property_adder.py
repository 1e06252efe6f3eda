"""Add one property to an entity whose CRUD slice already exists.

The entity file is edited first; if that fails nothing else is touched.
Each dependent artifact (commands, responses, the list DTO, the EF mapping
and the validators) is then extended independently and gets its own line in
the returned :class:`PropertyUpdateReport`.  Files that need no edit, such
as the mapping profile or the controller, are reported as notices.

Usage::

    from archigen.scaffolder import add_property

    report = add_property(layout, "Product", "Description", "string?")
    for result in report.results:
        print(result.artifact, result.status.value, result.message)
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

from ..exceptions import ArchigenError, MissingDependency, NoInsertionPoint
from ..parser.models import EntityDefinition, ProjectLayout, PropertyDefinition
from ..parser.validators import split_top_level, validate_property_name, validate_type
from ..utils import read_lines, to_pascal_case, write_lines
from .conventions import (
    DEFAULT_MAX_LENGTH,
    configuration_line,
    needs_custom_mapping,
    validation_rule,
)
from .results import ArtifactStatus, PropertyUpdateReport

# ---------------------------------------------------------------------------
# Line shapes
# ---------------------------------------------------------------------------

_AUTO_PROPERTY_RE = re.compile(r"^\s*public\s+.+\{\s*get;\s*set;\s*\}")
_MEMBER_MODIFIERS = ("public", "private", "protected")
_HANDLER_CLASS_RE = re.compile(r"\bclass\s+\w+Handler\b.*\bIRequestHandler\b")
_CONFIG_LAMBDA_RE = re.compile(r"builder\.Property\(\s*(\w+)\s*=>")
_CONFIG_TAIL_MARKERS = ("HasQueryFilter", "HasMany", "HasBaseType")

DEFAULT_LAMBDA_VAR = "u"


class CtorMode:
    """How a parameterless constructor initialises a new property."""
    ENTITY = "entity"
    COMMAND = "command"
    RESPONSE = "response"


# ---------------------------------------------------------------------------
# Insertion points
# ---------------------------------------------------------------------------


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _is_constructor_shaped(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("public ") and "(" in stripped and ")" in stripped


def _is_method_shaped(line: str) -> bool:
    stripped = line.strip()
    return (
        stripped.startswith(_MEMBER_MODIFIERS)
        and "(" in stripped
        and ")" in stripped
        and "=>" not in stripped
    )


def find_insertion_point(lines: Sequence[str], path: str | Path | None = None) -> int:
    """Index at which a new auto-property declaration should be inserted.

    Preference order: right after the last ``public ... { get; set; }``
    line, else before the first constructor-shaped line, else before the
    first method-shaped line.

    Raises:
        NoInsertionPoint: If none of the three shapes occurs.
    """
    last_property = -1
    for index, line in enumerate(lines):
        if _AUTO_PROPERTY_RE.match(line):
            last_property = index
    if last_property != -1:
        return last_property + 1

    for index, line in enumerate(lines):
        if _is_constructor_shaped(line):
            return index

    for index, line in enumerate(lines):
        if _is_method_shaped(line):
            return index

    raise NoInsertionPoint(path, "no property, constructor or method declaration found")


def insert_declaration(lines: list[str], declaration: str, path: str | Path | None = None) -> None:
    """Insert *declaration* (unindented) at :func:`find_insertion_point`."""
    index = find_insertion_point(lines, path)
    after_property = index > 0 and _AUTO_PROPERTY_RE.match(lines[index - 1])
    if after_property:
        lines.insert(index, _indent_of(lines[index - 1]) + declaration)
    else:
        lines[index:index] = [_indent_of(lines[index]) + declaration, ""]


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def _closing_brace(lines: Sequence[str], start: int) -> tuple[int, int] | None:
    """``(open_index, close_index)`` of the brace block starting at/after *start*."""
    depth = 0
    opened = -1
    for index in range(start, len(lines)):
        for char in lines[index]:
            if char == "{":
                if depth == 0:
                    opened = index
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0 and opened != -1:
                    return opened, index
    return None


def _handler_spans(lines: Sequence[str]) -> list[tuple[int, int]]:
    spans = []
    for index, line in enumerate(lines):
        if _HANDLER_CLASS_RE.search(line):
            block = _closing_brace(lines, index)
            if block is not None:
                spans.append((index, block[1]))
    return spans


def _parameterless_init(prop: PropertyDefinition, mode: str) -> str | None:
    if prop.is_string:
        return "string.Empty"
    if mode == CtorMode.COMMAND and prop.is_nullable:
        return "null"
    return None


def update_constructors(
    lines: list[str],
    class_name: str,
    prop: PropertyDefinition,
    mode: str,
) -> bool:
    """Thread *prop* through every constructor of *class_name* in *lines*.

    Parameterless constructors get a default initialisation where *mode*
    calls for one.  Parameterised constructors get ``<type> <camel>``
    appended to their signature and an assignment before the closing
    brace.  Constructors inside a nested ``...Handler : IRequestHandler``
    class are never touched.  Edits happen in place; returns whether any
    line changed.
    """
    ctor_re = re.compile(rf"^\s*public\s+{re.escape(class_name)}\s*\(")
    skipped = _handler_spans(lines)

    def in_handler(index: int) -> bool:
        return any(start <= index <= end for start, end in skipped)

    ctor_lines = [
        index for index, line in enumerate(lines)
        if ctor_re.match(line) and not in_handler(index)
    ]

    changed = False
    # Bottom-up so earlier indices stay valid while lines are inserted
    for index in reversed(ctor_lines):
        block = _closing_brace(lines, index)
        if block is None or block[0] == block[1]:
            continue
        _, close = block
        body_indent = _indent_of(lines[close]) + "    "

        signature = lines[index]
        open_paren = signature.index("(")
        close_paren = signature.rfind(")")
        if close_paren < open_paren:
            continue
        params = signature[open_paren + 1:close_paren].strip()

        if not params:
            value = _parameterless_init(prop, mode)
            if value is None:
                continue
            assignment = f"{prop.pascal_name} = {value};"
        else:
            if prop.parameter not in split_top_level(params):
                lines[index] = f"{signature[:close_paren]}, {prop.parameter}{signature[close_paren:]}"
                changed = True
            assignment = f"{prop.pascal_name} = {prop.camel_name};"

        body = lines[index + 1:close]
        if any(line.strip() == assignment for line in body):
            continue
        lines.insert(close, body_indent + assignment)
        changed = True

    return changed


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


def add_property(
    layout: ProjectLayout,
    entity_name: str,
    property_name: str,
    property_type: str,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> PropertyUpdateReport:
    """Add ``property_name: property_type`` to an existing entity and its slice.

    Raises:
        InvalidName: If the property name is rejected.
        InvalidType: If the type is not recognised.
        MissingDependency: If the entity file does not exist.
    """
    entity_name = to_pascal_case(entity_name)
    validate_property_name(property_name, entity_name)
    property_name = validate_property_name(to_pascal_case(property_name), entity_name)
    normalized_type = validate_type(property_type)
    prop = PropertyDefinition(name=property_name, declared_type=normalized_type)

    report = PropertyUpdateReport(
        entity=entity_name,
        property_name=prop.pascal_name,
        property_type=normalized_type,
    )

    entity_path = layout.entities_path / f"{entity_name}.cs"
    if not entity_path.is_file():
        raise MissingDependency(entity_path, f"Entity file not found: {entity_path}")

    entity_status = _extend_class_file(report, entity_path, entity_name, prop, CtorMode.ENTITY)
    if entity_status is not ArtifactStatus.UPDATED:
        return report

    entity = EntityDefinition(name=entity_name)
    feature_root = layout.feature_root(entity)
    if not feature_root.is_dir():
        report.add(
            f"Features/{entity.plural_pascal}",
            ArtifactStatus.SKIPPED,
            feature_root,
            "feature folder not found; application artifacts were not updated",
        )
    else:
        _update_application(report, feature_root, entity_name, prop, max_length)

    _update_configuration(report, layout, entity_name, prop)
    _add_notices(report, layout, entity, prop)
    return report


def _declares(text: str, prop: PropertyDefinition) -> bool:
    """Whether *text* already has an auto-property with this exact type and name."""
    pattern = rf"public\s+{re.escape(prop.declared_type)}\s+{re.escape(prop.pascal_name)}\s*\{{"
    return re.search(pattern, text) is not None


def _extend_class_file(
    report: PropertyUpdateReport,
    path: Path,
    class_name: str,
    prop: PropertyDefinition,
    mode: str,
) -> ArtifactStatus:
    """Add the declaration and constructor wiring to one class file."""
    if not path.is_file():
        report.add(path.stem, ArtifactStatus.SKIPPED, path, "file not found")
        return ArtifactStatus.SKIPPED

    try:
        if _declares(path.read_text(encoding="utf-8"), prop):
            report.add(path.stem, ArtifactStatus.ALREADY_PRESENT, path, "property already declared")
            return ArtifactStatus.ALREADY_PRESENT

        lines = read_lines(path)
        insert_declaration(lines, prop.declaration.strip(), path)
        update_constructors(lines, class_name, prop, mode)
        write_lines(path, lines)
    except (ArchigenError, OSError) as exc:
        report.add(path.stem, ArtifactStatus.FAILED, path, str(exc))
        return ArtifactStatus.FAILED

    report.add(path.stem, ArtifactStatus.UPDATED, path)
    return ArtifactStatus.UPDATED


def _update_application(
    report: PropertyUpdateReport,
    feature_root: Path,
    name: str,
    prop: PropertyDefinition,
    max_length: int,
) -> None:
    commands = feature_root / "Commands"
    queries = feature_root / "Queries"

    targets = [
        (commands / "Create" / f"Create{name}Command.cs", CtorMode.COMMAND),
        (commands / "Update" / f"Update{name}Command.cs", CtorMode.COMMAND),
        (commands / "Create" / f"Created{name}Response.cs", CtorMode.RESPONSE),
        (commands / "Update" / f"Updated{name}Response.cs", CtorMode.RESPONSE),
        (queries / "GetById" / f"GetById{name}Response.cs", CtorMode.RESPONSE),
        (queries / "GetList" / f"GetList{name}ListItemDto.cs", CtorMode.RESPONSE),
    ]
    for path, mode in targets:
        _extend_class_file(report, path, path.stem, prop, mode)

    for operation in ("Create", "Update"):
        validator = commands / operation / f"{operation}{name}CommandValidator.cs"
        _add_validation_rule(report, validator, prop, max_length)

    profile = feature_root / "Profiles" / "MappingProfiles.cs"
    if not profile.is_file():
        report.add(profile.stem, ArtifactStatus.SKIPPED, profile, "file not found")
    elif needs_custom_mapping(prop.declared_type):
        report.add(
            profile.stem,
            ArtifactStatus.NOTICE,
            profile,
            f"'{prop.declared_type}' may need a custom ForMember mapping for {prop.pascal_name}",
        )
    else:
        report.add(profile.stem, ArtifactStatus.NOTICE, profile, "mapping handled automatically")


def _add_validation_rule(
    report: PropertyUpdateReport,
    path: Path,
    prop: PropertyDefinition,
    max_length: int,
) -> None:
    if not path.is_file():
        report.add(path.stem, ArtifactStatus.SKIPPED, path, "file not found")
        return

    try:
        lines = read_lines(path)
        if any(f"RuleFor(command => command.{prop.pascal_name})" in line for line in lines):
            report.add(path.stem, ArtifactStatus.ALREADY_PRESENT, path, "rule already present")
            return

        rule = validation_rule(prop.pascal_name, prop.declared_type, max_length)
        last_rule = -1
        for index, line in enumerate(lines):
            if line.strip().startswith("RuleFor("):
                last_rule = index

        if last_rule != -1:
            lines.insert(last_rule + 1, rule)
        else:
            ctor_re = re.compile(rf"^\s*public\s+{re.escape(path.stem)}\s*\(")
            ctor = next((i for i, line in enumerate(lines) if ctor_re.match(line)), -1)
            block = _closing_brace(lines, ctor) if ctor != -1 else None
            if block is None:
                raise NoInsertionPoint(path, "validator constructor not found")
            lines.insert(block[1], rule)
        write_lines(path, lines)
    except (ArchigenError, OSError) as exc:
        report.add(path.stem, ArtifactStatus.FAILED, path, str(exc))
        return

    report.add(path.stem, ArtifactStatus.UPDATED, path)


def _update_configuration(
    report: PropertyUpdateReport,
    layout: ProjectLayout,
    name: str,
    prop: PropertyDefinition,
) -> None:
    path = layout.persistence_path / "EntityConfigurations" / f"{name}Configuration.cs"
    if not path.is_file():
        report.add(path.stem, ArtifactStatus.SKIPPED, path, "file not found")
        return

    try:
        lines = read_lines(path)
        existing = re.compile(rf"builder\.Property\(\s*\w+\s*=>\s*\w+\.{re.escape(prop.pascal_name)}\)")
        if any(existing.search(line) for line in lines):
            report.add(path.stem, ArtifactStatus.ALREADY_PRESENT, path, "column already mapped")
            return

        lambda_var = DEFAULT_LAMBDA_VAR
        for line in lines:
            match = _CONFIG_LAMBDA_RE.search(line)
            if match:
                lambda_var = match.group(1)
                break

        index = next(
            (i for i, line in enumerate(lines) if any(m in line for m in _CONFIG_TAIL_MARKERS)),
            -1,
        )
        if index != -1:
            while index > 0 and not lines[index - 1].strip():
                index -= 1
        else:
            last = -1
            for i, line in enumerate(lines):
                if "builder.Property(" in line:
                    last = i
            if last == -1:
                raise NoInsertionPoint(path, "no builder.Property mapping found")
            index = last + 1

        lines.insert(index, configuration_line(lambda_var, prop.pascal_name, prop.is_nullable))
        write_lines(path, lines)
    except (ArchigenError, OSError) as exc:
        report.add(path.stem, ArtifactStatus.FAILED, path, str(exc))
        return

    report.add(path.stem, ArtifactStatus.UPDATED, path)


def _add_notices(
    report: PropertyUpdateReport,
    layout: ProjectLayout,
    entity: EntityDefinition,
    prop: PropertyDefinition,
) -> None:
    name, plural = entity.pascal_name, entity.plural_pascal
    report.add(
        f"{name}BusinessRules",
        ArtifactStatus.NOTICE,
        layout.feature_root(entity) / "Rules" / f"{name}BusinessRules.cs",
        f"add business rules for {prop.pascal_name} if needed",
    )
    report.add(
        f"{plural}Controller",
        ArtifactStatus.NOTICE,
        layout.web_api_path / "Controllers" / f"{plural}Controller.cs",
        "no change required; the endpoints bind the updated commands",
    )
    report.add(
        "DbContext",
        ArtifactStatus.NOTICE,
        layout.persistence_path / "Contexts",
        f"no change required; add a migration for the new {prop.pascal_name} column",
    )
