"""New-solution instantiation and EF Core migration helpers.

A solution template is a directory tree whose projects are named
``Project.<Layer>``.  :func:`instantiate_project` copies it to a destination
while renaming ``Project`` to the new solution name, in paths and in file
contents.  Substitution is scoped per file type so that solution-file
keywords and ``launchSettings.json`` values that happen to contain the word
``Project`` survive untouched.
"""

from __future__ import annotations

import os
import re
import shutil
import uuid
from pathlib import Path

from ..exceptions import InvalidInput, MissingDependency
from ..utils import to_pascal_case, write_text_atomic

TEMPLATE_DIR_NAME = "template"
PLACEHOLDER = "Project"

# Visual Studio's solution-folder project type; it must never be regenerated.
SOLUTION_FOLDER_TYPE_GUID = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"

TEXT_EXTENSIONS = frozenset({
    ".sln", ".csproj", ".cs", ".json", ".md", ".yml", ".yaml", ".editorconfig",
    ".gitattributes", ".gitignore", ".txt", ".props", ".targets", ".http",
})

_LAYER_NAMES = ("Application", "Domain", "Infrastructure", "Persistence", "WebAPI")
_GUID_RE = re.compile(
    r"\{[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\}"
)
_DB_CONTEXT_MARKERS = (": DbContext", ":DbContext")

_MAX_PARENT_LEVELS = 6


# ---------------------------------------------------------------------------
# Template discovery
# ---------------------------------------------------------------------------


def find_template_root(start: str | Path | None = None) -> Path | None:
    """Locate the ``template`` directory.

    Looked up, in order: next to *start* (the installed package by
    default), in each of up to six parent directories, then in the current
    working directory.  Returns ``None`` when none exists.
    """
    base = Path(start) if start is not None else Path(__file__).resolve().parent.parent
    candidate = base / TEMPLATE_DIR_NAME
    if candidate.is_dir():
        return candidate

    directory = base
    for _ in range(_MAX_PARENT_LEVELS):
        probe = directory / TEMPLATE_DIR_NAME
        if probe.is_dir():
            return probe
        if directory.parent == directory:
            break
        directory = directory.parent

    cwd_probe = Path.cwd() / TEMPLATE_DIR_NAME
    if cwd_probe.is_dir():
        return cwd_probe
    return None


# ---------------------------------------------------------------------------
# Content substitution
# ---------------------------------------------------------------------------


def _file_kind(path: Path) -> str:
    """Extension used for dispatch; dotfiles such as ``.gitignore`` are their own kind."""
    if path.suffix:
        return path.suffix.lower()
    if path.name.startswith("."):
        return path.name.lower()
    return ""


def _replace_layer_names(content: str, project_name: str, extra: tuple[str, ...] = ()) -> str:
    for layer in (*_LAYER_NAMES, *extra):
        content = re.sub(
            rf"\b{PLACEHOLDER}\.{layer}\b",
            f"{project_name}.{layer}",
            content,
            flags=re.IGNORECASE,
        )
    return content


def regenerate_guids(content: str, guid_map: dict[str, str]) -> str:
    """Give every project GUID in a solution file a fresh value.

    The same old GUID always maps to the same new one through *guid_map*,
    so cross-references inside the file stay consistent.
    """
    def _replace(match: re.Match[str]) -> str:
        old = match.group(0)
        if old.upper() == SOLUTION_FOLDER_TYPE_GUID:
            return old
        if old not in guid_map:
            guid_map[old] = "{" + str(uuid.uuid4()).upper() + "}"
        return guid_map[old]

    return _GUID_RE.sub(_replace, content)


def transform_solution(content: str, project_name: str, guid_map: dict[str, str]) -> str:
    """Rename projects and project paths in a ``.sln`` file."""
    content = _replace_layer_names(content, project_name)
    content = regenerate_guids(content, guid_map)
    if os.sep == "/":
        content = content.replace("\\", "/")
    return content


def transform_project_file(content: str, project_name: str) -> str:
    """Rename layer references and assembly names in a ``.csproj`` file."""
    content = _replace_layer_names(content, project_name, extra=("Core",))
    content = re.sub(rf"<AssemblyName>{PLACEHOLDER}\b", f"<AssemblyName>{project_name}", content, flags=re.IGNORECASE)
    content = re.sub(rf"<RootNamespace>{PLACEHOLDER}\b", f"<RootNamespace>{project_name}", content, flags=re.IGNORECASE)
    return content


def transform_content(path: Path, content: str, project_name: str, guid_map: dict[str, str]) -> str:
    """Apply the substitution rules for *path*'s file type to *content*."""
    kind = _file_kind(path)
    if kind == ".sln":
        return transform_solution(content, project_name, guid_map)
    if kind == ".csproj":
        return transform_project_file(content, project_name)
    if kind == ".json":
        return _replace_layer_names(content, project_name, extra=("Core",))
    return content.replace(PLACEHOLDER, project_name)


# ---------------------------------------------------------------------------
# Instantiation
# ---------------------------------------------------------------------------


def instantiate_project(
    project_name: str,
    destination: str | Path,
    template_root: str | Path | None = None,
    overwrite: bool = False,
) -> Path:
    """Copy the solution template to *destination* as *project_name*.

    Args:
        project_name: New solution name; PascalCased before use.
        destination: Directory to create.  It must not exist unless
            *overwrite* is true.
        template_root: Template directory; located with
            :func:`find_template_root` when omitted.
        overwrite: Write into an existing destination, replacing files.

    Returns:
        The destination directory.

    Raises:
        MissingDependency: If no template directory can be found.
        InvalidInput: If *destination* exists and *overwrite* is false.
    """
    name = to_pascal_case(project_name)
    root = Path(template_root) if template_root is not None else find_template_root()
    if root is None or not root.is_dir():
        raise MissingDependency(
            root or TEMPLATE_DIR_NAME,
            f"Could not locate '{TEMPLATE_DIR_NAME}' folder. Ensure it is bundled "
            "with archigen or available in the repository.",
        )

    target = Path(destination)
    if target.exists() and not overwrite:
        raise InvalidInput(f"Destination '{target}' already exists. Use --force to replace it.")
    target.mkdir(parents=True, exist_ok=True)

    guid_map: dict[str, str] = {}
    for source in sorted(root.rglob("*")):
        relative = source.relative_to(root)
        parts = [part.replace(PLACEHOLDER, name) for part in relative.parts]
        if source.is_file() and relative.name == f"{TEMPLATE_DIR_NAME}.sln":
            parts[-1] = f"{name}.sln"
        dest = target.joinpath(*parts)

        if source.is_dir():
            dest.mkdir(parents=True, exist_ok=True)
            continue

        dest.parent.mkdir(parents=True, exist_ok=True)
        if _file_kind(source) in TEXT_EXTENSIONS:
            content = source.read_text(encoding="utf-8-sig")
            write_text_atomic(dest, transform_content(source, content, name, guid_map))
        else:
            shutil.copyfile(source, dest)

    return target


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


def find_project_file(solution_root: str | Path, layer: str) -> Path | None:
    """First ``*.csproj`` under *solution_root* whose file name mentions *layer*."""
    matches = sorted(
        path for path in Path(solution_root).rglob("*.csproj") if layer in path.name
    )
    return matches[0] if matches else None


def find_db_contexts(persistence_dir: str | Path) -> list[str]:
    """Names of ``DbContext`` subclasses in a Persistence project.

    Scans ``Contexts/*.cs`` and then the project root (non-recursively).
    Only files whose stem ends in ``Context`` and whose text declares a
    ``: DbContext`` base count.
    """
    root = Path(persistence_dir)
    found: list[str] = []
    for directory in (root / "Contexts", root):
        if not directory.is_dir():
            continue
        for path in sorted(directory.glob("*.cs")):
            if not path.stem.endswith("Context") or path.stem in found:
                continue
            text = path.read_text(encoding="utf-8")
            if any(marker in text for marker in _DB_CONTEXT_MARKERS):
                found.append(path.stem)
    return found


def migration_commands(
    migration_name: str,
    db_context: str,
    persistence_project: str | Path,
    startup_project: str | Path,
    update_database: bool = True,
) -> list[list[str]]:
    """``dotnet ef`` invocations that add a migration and optionally apply it."""
    if not migration_name or not migration_name.strip():
        raise InvalidInput("Migration name is required.")

    scope = [
        "--context", db_context,
        "--project", str(persistence_project),
        "--startup-project", str(startup_project),
    ]
    commands = [["dotnet", "ef", "migrations", "add", migration_name.strip(), *scope]]
    if update_database:
        commands.append(["dotnet", "ef", "database", "update", *scope])
    return commands


def diagnose_database_error(stderr: str) -> str:
    """A hint for the most likely cause of a failed ``database update``."""
    error = stderr.lower()
    if any(word in error for word in ("connection", "server", "timeout", "network")):
        return (
            "Check the database connection string in appsettings.json and make sure "
            "the database server is running and reachable."
        )
    if any(word in error for word in ("login", "authentication", "password", "user")):
        return "Check the database credentials in appsettings.json."
    if "database" in error and "exist" in error:
        return "The target database does not exist. Create it or fix the database name."
    return "Check the database connection and try again."
