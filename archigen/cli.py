"""Command-line entry point for archigen.

Every subcommand is a thin wrapper: it resolves configuration, calls into
:mod:`archigen.parser` / :mod:`archigen.scaffolder`, and renders the
returned report with Rich.  Any :class:`ArchigenError` is printed and turns
into exit status 1.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from rich.markup import escape
from rich.table import Table

from .config import ArchigenConfig
from .exceptions import ArchigenError, InvalidInput, MissingDependency
from .parser import GenerationOptions, ProjectLayout, parse_entity, parse_properties
from .parser.models import LAYERS
from .scaffolder import CrudGenerator, add_property, instantiate_project
from .scaffolder.project_template import (
    diagnose_database_error,
    find_db_contexts,
    find_project_file,
    migration_commands,
)
from .scaffolder.results import ArtifactStatus, GenerationReport, PropertyUpdateReport
from .scaffolder.templates import TemplateRenderer
from .utils import (
    console,
    print_error,
    print_header,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)

_STATUS_STYLES = {
    ArtifactStatus.CREATED: "green",
    ArtifactStatus.UPDATED: "cyan",
    ArtifactStatus.UNCHANGED: "dim",
    ArtifactStatus.ALREADY_PRESENT: "dim",
    ArtifactStatus.SKIPPED: "yellow",
    ArtifactStatus.NOTICE: "magenta",
    ArtifactStatus.FAILED: "bold red",
}


# ---------------------------------------------------------------------------
# Report rendering
# ---------------------------------------------------------------------------


def print_report(report: GenerationReport | PropertyUpdateReport, title: str) -> None:
    """Render a generation or property report as a Rich table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Artifact", no_wrap=True)
    table.add_column("Status")
    table.add_column("Details", style="dim")

    for result in report.results:
        style = _STATUS_STYLES.get(result.status, "")
        label = f"[{style}]{result.status.value}[/{style}]"
        table.add_row(escape(result.artifact), label, escape(result.message))

    console.print(table)
    summary = ", ".join(f"{count} {status}" for status, count in report.summary().items())
    console.print(f"[dim]{summary}[/dim]")
    console.print()


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_parse_entity(args: argparse.Namespace) -> int:
    entity = parse_entity(args.file)
    data = {"Entity": entity.name, "Id type": entity.id_type}
    for prop in entity.properties:
        data[prop.name] = prop.declared_type
    print_summary_table(data, title=f"Entity {entity.name}")
    return 0


def _cmd_layout(args: argparse.Namespace) -> int:
    layout = ProjectLayout.create(args.root, args.project)
    table = Table(title=f"Layout of {layout.project_name}", header_style="bold cyan")
    table.add_column("Layer", no_wrap=True)
    table.add_column("Path")
    table.add_column("Exists")
    for layer in LAYERS:
        exists = layout.layer_exists(layer)
        table.add_row(layer, escape(str(layout.layer_path(layer))), "[green]yes[/green]" if exists else "[red]no[/red]")
    console.print(table)
    return 0 if all(layout.layer_exists(layer) for layer in LAYERS) else 1


def _cmd_crud(args: argparse.Namespace) -> int:
    config = ArchigenConfig.discover(Path(args.solution) if args.solution else None)
    layout = ProjectLayout.create(config.solution_root, args.project)
    properties = parse_properties(args.props, entity_name=args.entity)

    options = GenerationOptions(
        project_name=layout.project_name,
        entity_name=args.entity,
        db_context_name=args.dbcontext or config.db_context_name,
        id_type=args.id or config.id_type,
        properties=properties,
        enable_security=args.secure or config.enable_security,
    )

    generator = CrudGenerator(
        renderer=TemplateRenderer(),
        max_length=config.validation_max_length,
    )
    print_header(f"CRUD {options.entity_name}")
    report = generator.generate(layout, options)
    print_report(report, title=f"{report.entity} artifacts")

    if not report.succeeded:
        print_error(f"{report.failed} artifact(s) failed.")
        return 1
    print_success(f"CRUD for {report.entity} is up to date ({report.changed} file(s) changed).")
    return 0


def _cmd_add_property(args: argparse.Namespace) -> int:
    config = ArchigenConfig.discover(Path(args.solution) if args.solution else None)
    layout = ProjectLayout.create(config.solution_root, args.project)

    report = add_property(
        layout,
        args.entity,
        args.name,
        args.type,
        max_length=config.validation_max_length,
    )
    print_report(report, title=f"{report.entity}.{report.property_name} ({report.property_type})")

    if not report.succeeded:
        print_error(f"{report.failed} file(s) could not be updated.")
        return 1
    print_info("Remember to add a migration for the new column.")
    return 0


def _cmd_new(args: argparse.Namespace) -> int:
    config = ArchigenConfig.from_env()
    template_root = args.template or config.template_dir
    destination = Path(args.output) if args.output else Path.cwd() / args.project

    target = instantiate_project(args.project, destination, template_root, overwrite=args.force)
    print_success(f"Solution created at {target}")

    if args.no_restore:
        print_info("Skipped restore. Run `dotnet restore` and `dotnet build` when ready.")
        return 0

    restore = run_command(target, ["dotnet", "restore"])
    if not restore.success:
        print_warning("dotnet restore failed; fix the errors above and run it again.")
        return 1

    solution = next(iter(sorted(target.glob("*.sln"))), None)
    build_cmd = ["dotnet", "build"] + ([solution.name] if solution else [])
    build = run_command(target, build_cmd)
    if not build.success:
        print_warning("dotnet build failed; the solution was created but does not compile yet.")
        return 1
    print_success("Restore and build succeeded.")
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    root = Path(args.solution) if args.solution else Path.cwd()
    persistence = find_project_file(root, "Persistence")
    if persistence is None:
        raise MissingDependency(root, "No Persistence project found under the solution root.")
    startup = find_project_file(root, "WebAPI")
    if startup is None:
        raise MissingDependency(root, "No WebAPI project found under the solution root.")

    contexts = find_db_contexts(persistence.parent)
    if args.context:
        context = args.context
    elif len(contexts) == 1:
        context = contexts[0]
    elif not contexts:
        raise MissingDependency(persistence.parent, "No DbContext classes found in the Persistence project.")
    else:
        raise InvalidInput(
            f"Multiple DbContext classes found ({', '.join(contexts)}); choose one with --context."
        )

    print_info(f"Using DbContext: {context}")
    add_cmd, *update_cmds = migration_commands(
        args.name, context, persistence, startup, update_database=not args.no_update
    )

    result = run_command(root, add_cmd)
    if not result.success:
        print_error(f"Migration '{args.name}' could not be created.")
        return 1
    print_success(f"Migration '{args.name}' created.")

    for command in update_cmds:
        result = run_command(root, command)
        if not result.success:
            print_error("Database update failed.")
            print_warning(diagnose_database_error(result.stderr))
            return 1
        print_success("Database updated.")
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archigen",
        description="archigen -- CRUD scaffolding for layered .NET solutions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  archigen crud Shop Product --props \"Name:string,Price:decimal,IsActive:bool?\"\n"
            "  archigen add-property Shop Product Description \"string?\"\n"
            "  archigen new Shop --output ./shop\n"
            "  archigen migrate AddProduct --solution ./shop\n"
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse-entity", help="Show the properties of an entity file")
    p.add_argument("file", help="Path to the entity .cs file")
    p.set_defaults(func=_cmd_parse_entity)

    p = sub.add_parser("layout", help="Show the layer paths of a solution")
    p.add_argument("root", help="Solution root directory")
    p.add_argument("project", help="Project name")
    p.set_defaults(func=_cmd_layout)

    p = sub.add_parser("crud", help="Generate a CRUD slice for an entity")
    p.add_argument("project", help="Project name")
    p.add_argument("entity", help="Entity name")
    p.add_argument("--solution", "-s", default=None, help="Solution root (default: current directory)")
    p.add_argument("--props", "-p", default=None, help='Properties, e.g. "Name:string,Price:decimal"')
    p.add_argument("--dbcontext", default=None, help="DbContext class name (default: BaseDbContext)")
    p.add_argument("--id", default=None, help="Identifier type (default: int)")
    p.add_argument("--secure", action="store_true", help="Generate operation claims and secured requests")
    p.set_defaults(func=_cmd_crud)

    p = sub.add_parser("add-property", help="Add a property to an existing entity")
    p.add_argument("project", help="Project name")
    p.add_argument("entity", help="Entity name")
    p.add_argument("name", help="Property name (PascalCase)")
    p.add_argument("type", help="Property type, e.g. string? or decimal")
    p.add_argument("--solution", "-s", default=None, help="Solution root (default: current directory)")
    p.set_defaults(func=_cmd_add_property)

    p = sub.add_parser("new", help="Create a new solution from the template")
    p.add_argument("project", help="Solution name")
    p.add_argument("--output", "-o", default=None, help="Destination (default: ./<project>)")
    p.add_argument("--force", action="store_true", help="Write into an existing destination")
    p.add_argument("--template", default=None, help="Template directory (default: auto-detect)")
    p.add_argument("--no-restore", action="store_true", help="Skip dotnet restore and build")
    p.set_defaults(func=_cmd_new)

    p = sub.add_parser("migrate", help="Add an EF Core migration and update the database")
    p.add_argument("name", help="Migration name, e.g. AddProductEntity")
    p.add_argument("--solution", "-s", default=None, help="Solution root (default: current directory)")
    p.add_argument("--context", default=None, help="DbContext to migrate (required if several exist)")
    p.add_argument("--no-update", action="store_true", help="Only add the migration")
    p.set_defaults(func=_cmd_migrate)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for the ``archigen`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        code = args.func(args)
    except ArchigenError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
