"""CRUD scaffolding orchestrator.

Takes a ``ProjectLayout`` and ``GenerationOptions`` and writes a complete
vertical slice for one entity into an existing solution: domain entity,
EF Core mapping, repository, CQRS commands and queries, responses,
validators, business rules, service, AutoMapper profile and controller.
Afterwards the composition-root files (DI registrations, the DbContext and,
optionally, the operation-claim seeding) are patched in place.

Every step is idempotent, so running the generator twice with the same
inputs leaves the tree byte-for-byte identical.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Any, Callable

from jinja2 import TemplateError

from ..exceptions import (
    ArchigenError,
    GenerationError,
    MarkerNotFound,
    MissingDependency,
)
from ..parser.entity_parser import parse_entity
from ..parser.models import EntityDefinition, GenerationOptions, ProjectLayout
from ..parser.validators import (
    validate_entity_definition,
    validate_entity_name,
    validate_property_name,
    validate_type,
)
from ..utils import read_lines, to_pascal_case, write_lines
from .conventions import DEFAULT_MAX_LENGTH, validation_rule
from .patcher import (
    add_import_if_missing,
    find_marker,
    insert_before_marker,
    insert_block_before_marker,
)
from .results import ArtifactResult, ArtifactStatus, GenerationReport
from .templates import TemplateRenderer
from .writer import ArtifactWriter, OverwritePredicate, contains_any


# ---------------------------------------------------------------------------
# Composition-root markers
# ---------------------------------------------------------------------------

SERVICES_RETURN_MARKER = "return services;"
OPERATION_CLAIMS_RETURN_MARKER = "return featureOperationClaims;"

_DBSET_PREFIX = "public DbSet"


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class CrudGenerator:
    """Renders and patches every artifact of one entity's CRUD slice.

    Given validated options, ``generate`` produces:
    - the domain entity (only when it does not exist yet)
    - persistence: entity configuration, repository interface and class,
      DI registration and the ``DbSet`` on the DbContext
    - application: commands, queries, responses, DTO, validators,
      constants, locale resources, business rules and mapping profile
    - a service interface and manager with their DI registration
    - a Web API controller
    - operation-claim seeding when security is enabled
    """

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        writer: ArtifactWriter | None = None,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.writer = writer or ArtifactWriter()
        self.max_length = max_length

    # -- Public API --------------------------------------------------------

    def generate(self, layout: ProjectLayout, options: GenerationOptions) -> GenerationReport:
        """Generate the CRUD slice described by *options* inside *layout*.

        Validation happens before anything is written.  After that, each
        artifact is handled independently: a failure is recorded in the
        report and the remaining artifacts still run.

        Raises:
            InvalidName: On a bad entity or property name.
            InvalidType: On an unrecognised property or id type.
            MissingDependency: If the Domain layer does not exist.
            GenerationError: If the entity is new and no properties were given.
        """
        entity_name = self._validate(layout, options)
        report = GenerationReport(entity=entity_name)

        # 1. Ensure the domain entity exists (parsed or freshly rendered)
        entity = self._ensure_entity(layout, options, entity_name, report)
        context = self._build_context(layout, entity, options)

        # 2. Persistence layer
        self._step(report, f"{entity_name}Configuration", lambda: self._entity_configuration(layout, context))
        self._step(report, f"I{entity_name}Repository", lambda: self._repository_interface(layout, context))
        self._step(report, f"{entity_name}Repository", lambda: self._repository(layout, context))
        self._step(report, "PersistenceServiceRegistration", lambda: self._register_repository(layout, context))
        self._step(report, options.db_context_name, lambda: self._update_db_context(layout, context))

        # 3. Application layer
        feature_root = layout.feature_root(entity)
        for label, action in self._feature_steps(feature_root, context):
            self._step(report, label, action)

        # 4. Services
        for label, action in self._service_steps(layout, context):
            self._step(report, label, action)

        # 5. Web API
        self._step(report, f"{entity.plural_pascal}Controller", lambda: self._controller(layout, context))

        # 6. Operation claims
        if options.enable_security:
            self._step(report, "OperationClaimConfiguration", lambda: self._seed_operation_claims(layout, context))

        return report

    # -- Validation --------------------------------------------------------

    def _validate(self, layout: ProjectLayout, options: GenerationOptions) -> str:
        raw_name = options.entity_name
        entity_name = to_pascal_case(raw_name) if raw_name.strip() else raw_name
        entity_exists = (layout.entities_path / f"{entity_name}.cs").exists()

        if entity_exists:
            validate_entity_name(entity_name)
            for prop in options.properties:
                validate_property_name(prop.name, entity_name)
                validate_type(prop.declared_type)
        else:
            candidate = EntityDefinition(
                name=entity_name,
                id_type=options.id_type,
                properties=options.properties,
            )
            validate_entity_definition(candidate, layout.existing_entities())

        validate_type(options.id_type)

        if not layout.layer_exists("Domain"):
            raise MissingDependency(
                layout.domain_path,
                f"Domain layer not found at '{layout.domain_path}'.",
            )
        return entity_name

    # -- Entity --------------------------------------------------------------

    def _ensure_entity(
        self,
        layout: ProjectLayout,
        options: GenerationOptions,
        entity_name: str,
        report: GenerationReport,
    ) -> EntityDefinition:
        entity_path = layout.entities_path / f"{entity_name}.cs"
        if entity_path.exists():
            entity = parse_entity(entity_path)
            report.add(entity_name, ArtifactStatus.UNCHANGED, entity_path, "existing entity parsed")
            return entity

        if not options.properties:
            raise GenerationError(
                entity_name,
                "Entity does not exist yet. Provide properties to create a new domain entity.",
            )

        entity = EntityDefinition(
            name=entity_name,
            id_type=validate_type(options.id_type),
            properties=options.properties,
        )
        content = self.renderer.render(
            "entity.cs.j2",
            self._build_context(layout, entity, options),
        )
        report.record(self.writer.write(entity_path, content, artifact=entity_name))
        report.entity_created = True
        return entity

    # -- Context -------------------------------------------------------------

    @staticmethod
    def _build_context(
        layout: ProjectLayout,
        entity: EntityDefinition,
        options: GenerationOptions,
    ) -> dict[str, Any]:
        """Template variables shared by every artifact."""
        return {
            "project": layout.project_name,
            "name": entity.pascal_name,
            "camel": entity.camel_name,
            "plural": entity.plural_pascal,
            "plural_camel": entity.plural_camel,
            "lv": entity.lower_name,
            "id_type": entity.id_type,
            "props": list(entity.properties),
            "security": options.enable_security,
            "db_context": options.db_context_name,
        }

    # -- Step runner ---------------------------------------------------------

    @staticmethod
    def _step(
        report: GenerationReport,
        artifact: str,
        action: Callable[[], ArtifactResult | list[ArtifactResult]],
    ) -> None:
        """Run one artifact action, recording a failure instead of raising."""
        try:
            outcome = action()
        except (ArchigenError, OSError, TemplateError) as exc:
            error = GenerationError(artifact, str(exc))
            error.__cause__ = exc
            report.add(artifact, ArtifactStatus.FAILED, message=str(error))
            return

        if isinstance(outcome, list):
            for result in outcome:
                report.record(result)
        else:
            report.record(outcome)

    def _render_to(
        self,
        path: Path,
        template: str,
        context: dict[str, Any],
        should_overwrite: OverwritePredicate | None = None,
        **extra: Any,
    ) -> ArtifactResult:
        content = self.renderer.render(template, {**context, **extra})
        return self.writer.write(path, content, should_overwrite)

    # -- Persistence ---------------------------------------------------------

    def _entity_configuration(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        path = layout.persistence_path / "EntityConfigurations" / f"{ctx['name']}Configuration.cs"
        return self._render_to(path, "entity_configuration.cs.j2", ctx)

    def _repository_interface(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        project, name = ctx["project"], ctx["name"]
        path = layout.application_path / "Services" / "Repositories" / f"I{name}Repository.cs"
        stale = contains_any(
            "global::",
            f"IAsyncRepository<{project}.Domain.Entities.{name}",
            f"IRepository<{project}.Domain.Entities.{name}",
            f"IAsyncRepository<{name},",
            f"IRepository<{name},",
        )
        return self._render_to(path, "repository_interface.cs.j2", ctx, stale)

    def _repository(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        project, name = ctx["project"], ctx["name"]
        path = layout.persistence_path / "Repositories" / f"{name}Repository.cs"
        stale = contains_any(
            "global::",
            f"EfRepositoryBase<{project}.Domain.Entities.{name}",
            f"EfRepositoryBase<{name}, {ctx['id_type']}",
        )
        return self._render_to(path, "repository.cs.j2", ctx, stale)

    def _register_repository(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        project, name = ctx["project"], ctx["name"]
        path = layout.persistence_path / "PersistenceServiceRegistration.cs"
        if not path.exists():
            return _missing(path, "repository registration was not added")

        changed = _replace_lines(
            path,
            f"using {project}.Persistence.Repositories.Repositories;",
            f"using {project}.Persistence.Repositories;",
        )
        changed |= add_import_if_missing(path, f"using {project}.Application.Services.Repositories;")
        changed |= add_import_if_missing(path, f"using {project}.Persistence.Repositories;")
        changed |= insert_before_marker(
            path,
            SERVICES_RETURN_MARKER,
            f"        services.AddScoped<I{name}Repository, {name}Repository>();",
        )
        return _patched(path, changed)

    def _update_db_context(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        project, name, plural = ctx["project"], ctx["name"], ctx["plural"]
        path = layout.persistence_path / "Contexts" / f"{ctx['db_context']}.cs"
        if not path.exists():
            return _missing(path, "DbSet was not added")

        changed = add_import_if_missing(path, f"using {project}.Domain.Entities;")
        lines = read_lines(path)
        wanted = f"    public DbSet<{name}> {plural} {{ get; set; }}"
        normalized = normalize_db_sets(lines, project, name, plural, wanted)
        if normalized != lines:
            write_lines(path, normalized)
            changed = True
        return _patched(path, changed)

    # -- Application ---------------------------------------------------------

    def _feature_steps(
        self,
        root: Path,
        ctx: dict[str, Any],
    ) -> list[tuple[str, Callable[[], ArtifactResult | list[ArtifactResult]]]]:
        name, plural = ctx["name"], ctx["plural"]
        commands = root / "Commands"
        queries = root / "Queries"
        constants = root / "Constants"
        locales = root / "Resources" / "Locales"
        locale_stem = ctx["plural_camel"].lower()
        props = ctx["props"]

        create_rules = [validation_rule(p.pascal_name, p.declared_type, self.max_length) for p in props]
        update_rules = ["        RuleFor(command => command.Id).NotEmpty();", *create_rules]

        steps: list[tuple[str, Callable[[], ArtifactResult | list[ArtifactResult]]]] = [
            (f"Create{name}Command", lambda: self._render_to(
                commands / "Create" / f"Create{name}Command.cs",
                "create_command.cs.j2", ctx, operation="Create")),
            (f"Created{name}Response", lambda: self._render_to(
                commands / "Create" / f"Created{name}Response.cs",
                "response.cs.j2", ctx, contains_any("Commands.Creates"),
                class_name=f"Created{name}Response", namespace_suffix="Commands.Create")),
            (f"Update{name}Command", lambda: self._render_to(
                commands / "Update" / f"Update{name}Command.cs",
                "update_command.cs.j2", ctx, operation="Update")),
            (f"Updated{name}Response", lambda: self._render_to(
                commands / "Update" / f"Updated{name}Response.cs",
                "response.cs.j2", ctx, contains_any("Commands.Updates"),
                class_name=f"Updated{name}Response", namespace_suffix="Commands.Update")),
            (f"Delete{name}Command", lambda: self._render_to(
                commands / "Delete" / f"Delete{name}Command.cs",
                "delete_command.cs.j2", ctx, operation="Delete")),
            (f"Deleted{name}Response", lambda: self._render_to(
                commands / "Delete" / f"Deleted{name}Response.cs",
                "deleted_response.cs.j2", ctx)),
            (f"GetById{name}Query", lambda: self._render_to(
                queries / "GetById" / f"GetById{name}Query.cs",
                "get_by_id_query.cs.j2", ctx)),
            (f"GetById{name}Response", lambda: self._render_to(
                queries / "GetById" / f"GetById{name}Response.cs",
                "response.cs.j2", ctx,
                class_name=f"GetById{name}Response", namespace_suffix="Queries.GetById")),
            (f"GetList{name}Query", lambda: self._render_to(
                queries / "GetList" / f"GetList{name}Query.cs",
                "get_list_query.cs.j2", ctx)),
            (f"GetList{name}ListItemDto", lambda: self._render_to(
                queries / "GetList" / f"GetList{name}ListItemDto.cs",
                "list_item_dto.cs.j2", ctx)),
            (f"Create{name}CommandValidator", lambda: self._render_to(
                commands / "Create" / f"Create{name}CommandValidator.cs",
                "command_validator.cs.j2", ctx, operation="Create", rules=create_rules)),
            (f"Update{name}CommandValidator", lambda: self._render_to(
                commands / "Update" / f"Update{name}CommandValidator.cs",
                "command_validator.cs.j2", ctx, operation="Update", rules=update_rules)),
            (f"{plural}Messages", lambda: self._render_to(
                constants / f"{plural}Messages.cs", "messages.cs.j2", ctx)),
        ]

        if ctx["security"]:
            steps.append((f"{plural}OperationClaims", lambda: self._render_to(
                constants / f"{plural}OperationClaims.cs", "operation_claims.cs.j2", ctx)))

        steps.extend([
            (f"{locale_stem}.en", lambda: self._render_to(
                locales / f"{locale_stem}.en.yaml", "locale.en.yaml.j2", ctx)),
            (f"{locale_stem}.tr", lambda: self._render_to(
                locales / f"{locale_stem}.tr.yaml", "locale.tr.yaml.j2", ctx)),
            (f"{name}BusinessRules", lambda: self._render_to(
                root / "Rules" / f"{name}BusinessRules.cs",
                "business_rules.cs.j2", ctx, contains_any("Core.CrossCuttingConcerns.Exceptions"))),
            ("MappingProfiles", lambda: self._render_to(
                root / "Profiles" / "MappingProfiles.cs", "mapping_profiles.cs.j2", ctx)),
        ])
        return steps

    # -- Services ------------------------------------------------------------

    def _service_steps(
        self,
        layout: ProjectLayout,
        ctx: dict[str, Any],
    ) -> list[tuple[str, Callable[[], ArtifactResult | list[ArtifactResult]]]]:
        project, name, plural = ctx["project"], ctx["name"], ctx["plural"]
        services_root = layout.application_path / "Services"
        legacy_dir = services_root / plural
        service_dir = services_root / f"{plural}Service"
        stale = contains_any("global::", f"namespace {project}.Application.Services.{plural};")

        return [
            (f"{plural}Service", lambda: migrate_legacy_service_folder(legacy_dir, service_dir)),
            (f"I{name}Service", lambda: self._render_to(
                service_dir / f"I{name}Service.cs", "service_interface.cs.j2", ctx, stale)),
            (f"{name}Manager", lambda: self._render_to(
                service_dir / f"{name}Manager.cs", "service_manager.cs.j2", ctx, stale)),
            (f"{plural}", lambda: remove_obsolete_legacy_folder(legacy_dir, service_dir)),
            ("ApplicationServiceRegistration", lambda: self._register_service(layout, ctx)),
        ]

    def _register_service(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        project, name, plural = ctx["project"], ctx["name"], ctx["plural"]
        path = layout.application_path / "ApplicationServiceRegistration.cs"
        if not path.exists():
            return _missing(path, "service registration was not added")

        changed = _remove_lines(path, f"using {project}.Application.Services.{plural};")
        changed |= add_import_if_missing(path, f"using {project}.Application.Services.{plural}Service;")
        changed |= add_import_if_missing(path, f"using {project}.Application.Services.Repositories;")
        changed |= insert_before_marker(
            path,
            SERVICES_RETURN_MARKER,
            f"        services.AddScoped<I{name}Service, {name}Manager>();",
        )
        return _patched(path, changed)

    # -- Web API -------------------------------------------------------------

    def _controller(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        path = layout.web_api_path / "Controllers" / f"{ctx['plural']}Controller.cs"
        return self._render_to(path, "controller.cs.j2", ctx)

    # -- Security ------------------------------------------------------------

    def _seed_operation_claims(self, layout: ProjectLayout, ctx: dict[str, Any]) -> ArtifactResult:
        project, plural = ctx["project"], ctx["plural"]
        path = layout.persistence_path / "EntityConfigurations" / "OperationClaimConfiguration.cs"
        if not path.exists():
            return _missing(path, "operation claims were not seeded")

        lines = read_lines(path)
        if any(f"region {plural}" in line for line in lines):
            return ArtifactResult(
                artifact=path.stem,
                path=str(path),
                status=ArtifactStatus.UNCHANGED,
                message=f"region {plural} already present",
            )
        if find_marker(lines, OPERATION_CLAIMS_RETURN_MARKER, last=True) == -1:
            raise MarkerNotFound(OPERATION_CLAIMS_RETURN_MARKER, path)

        add_import_if_missing(path, f"using {project}.Application.Features.{plural}.Constants;")
        block = self.renderer.render("operation_claims_region.j2", ctx).splitlines()
        insert_block_before_marker(path, OPERATION_CLAIMS_RETURN_MARKER, block, last=True)
        return _patched(path, True)


# ---------------------------------------------------------------------------
# DbContext normalisation
# ---------------------------------------------------------------------------


def normalize_db_sets(
    lines: list[str],
    project: str,
    name: str,
    plural: str,
    wanted: str,
) -> list[str]:
    """Leave exactly one ``DbSet`` line for *name* in a DbContext.

    Fully-qualified declarations and every other line declaring the same
    ``DbSet`` property are removed, then *wanted* is placed after the last
    remaining ``DbSet`` line (or after the last opening brace when there is
    none).  The result is returned; *lines* is not modified.
    """
    qualified = re.compile(rf"DbSet<\s*(global::)?{re.escape(project)}\.Domain\.Entities\.{re.escape(name)}\s*>")
    short = re.compile(rf"DbSet<\s*{re.escape(name)}\s*>\s+{re.escape(plural)}\b")

    kept = [
        line for line in lines
        if not qualified.search(line) and not (short.search(line) and line != wanted)
    ]

    # Keep the first wanted line in place and drop any later copies
    result: list[str] = []
    for line in kept:
        if line == wanted and wanted in result:
            continue
        result.append(line)
    if wanted in result:
        return result

    anchor = find_marker(result, _DBSET_PREFIX, last=True)
    if anchor == -1:
        anchor = find_marker(result, "{", last=True)
    result.insert(anchor + 1, wanted)
    return result


# ---------------------------------------------------------------------------
# Legacy service folder
# ---------------------------------------------------------------------------


def migrate_legacy_service_folder(legacy_dir: Path, service_dir: Path) -> ArtifactResult:
    """Rename ``Services/<Plural>`` to ``Services/<Plural>Service`` once."""
    if legacy_dir.is_dir() and not service_dir.exists():
        legacy_dir.rename(service_dir)
        return ArtifactResult(
            artifact=service_dir.name,
            path=str(service_dir),
            status=ArtifactStatus.UPDATED,
            message=f"moved from '{legacy_dir.name}'",
        )
    service_dir.mkdir(parents=True, exist_ok=True)
    return ArtifactResult(artifact=service_dir.name, path=str(service_dir), status=ArtifactStatus.UNCHANGED)


def remove_obsolete_legacy_folder(legacy_dir: Path, service_dir: Path) -> ArtifactResult:
    """Delete the legacy service folder when it only holds superseded copies.

    A file counts as superseded when a file of the same name exists in the
    new folder.  Anything else keeps the legacy folder on disk.
    """
    if not legacy_dir.is_dir():
        return ArtifactResult(artifact=legacy_dir.name, path=str(legacy_dir), status=ArtifactStatus.UNCHANGED)

    leftovers = [
        path for path in legacy_dir.rglob("*")
        if path.is_file() and not (service_dir / path.relative_to(legacy_dir)).exists()
    ]
    if leftovers:
        return ArtifactResult(
            artifact=legacy_dir.name,
            path=str(legacy_dir),
            status=ArtifactStatus.SKIPPED,
            message=f"legacy folder kept: {len(leftovers)} file(s) have no replacement",
        )

    shutil.rmtree(legacy_dir)
    return ArtifactResult(
        artifact=legacy_dir.name,
        path=str(legacy_dir),
        status=ArtifactStatus.UPDATED,
        message="removed obsolete legacy folder",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _replace_lines(path: Path, old: str, new: str) -> bool:
    lines = read_lines(path)
    updated = [new if line.strip() == old else line for line in lines]
    if updated == lines:
        return False
    # Collapse duplicates the replacement may have produced
    deduped: list[str] = []
    for line in updated:
        if line == new and new in deduped:
            continue
        deduped.append(line)
    write_lines(path, deduped)
    return True


def _remove_lines(path: Path, unwanted: str) -> bool:
    lines = read_lines(path)
    kept = [line for line in lines if line.strip() != unwanted]
    if len(kept) == len(lines):
        return False
    write_lines(path, kept)
    return True


def _patched(path: Path, changed: bool) -> ArtifactResult:
    status = ArtifactStatus.UPDATED if changed else ArtifactStatus.UNCHANGED
    return ArtifactResult(artifact=path.stem, path=str(path), status=status)


def _missing(path: Path, consequence: str) -> ArtifactResult:
    return ArtifactResult(
        artifact=path.stem,
        path=str(path),
        status=ArtifactStatus.SKIPPED,
        message=f"'{path.name}' not found; {consequence}",
    )
