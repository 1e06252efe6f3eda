"""Pydantic v2 models describing an entity and the solution it lives in.

These are the only in-memory structures that flow between the parser, the
validators and the scaffolder.  All of them are frozen: once built they are
never mutated, and a changed entity is represented by re-parsing its file.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvalidInput, MissingDependency
from ..utils import to_camel_case, to_pascal_case, to_plural


# ---------------------------------------------------------------------------
# Entity models
# ---------------------------------------------------------------------------

class PropertyDefinition(BaseModel):
    """A single ``public <Type> <Name> { get; set; }`` member."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Property name as declared")
    declared_type: str = Field(..., min_length=1, description="C# type, e.g. 'decimal' or 'string?'")

    @property
    def pascal_name(self) -> str:
        return to_pascal_case(self.name)

    @property
    def camel_name(self) -> str:
        return to_camel_case(self.name)

    @property
    def is_nullable(self) -> bool:
        return self.declared_type.endswith("?")

    @property
    def base_type(self) -> str:
        """Declared type with the trailing nullability marker removed."""
        return self.declared_type.rstrip("?")

    @property
    def is_string(self) -> bool:
        return self.base_type.lower() == "string"

    @property
    def parameter(self) -> str:
        """Constructor parameter form, e.g. ``decimal price``."""
        return f"{self.declared_type} {self.camel_name}"

    @property
    def declaration(self) -> str:
        """The auto-property line as emitted into generated classes."""
        return f"    public {self.declared_type} {self.pascal_name} {{ get; set; }}"


class EntityDefinition(BaseModel):
    """A domain entity: name, identifier type and ordered properties.

    Uniqueness of property names is checked by
    :func:`archigen.parser.validators.validate_entity_definition`, not here,
    so that a parsed file with duplicate declarations still loads.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    id_type: str = Field(default="int", min_length=1)
    properties: tuple[PropertyDefinition, ...] = Field(default_factory=tuple)

    @property
    def pascal_name(self) -> str:
        return to_pascal_case(self.name)

    @property
    def camel_name(self) -> str:
        return to_camel_case(self.name)

    @property
    def plural_pascal(self) -> str:
        return to_plural(self.pascal_name)

    @property
    def plural_camel(self) -> str:
        return to_plural(self.camel_name)

    @property
    def lower_name(self) -> str:
        """Lambda parameter name used in EF mapping configuration."""
        return self.pascal_name.lower()

    def property_names(self) -> list[str]:
        return [prop.pascal_name for prop in self.properties]


# ---------------------------------------------------------------------------
# Solution layout
# ---------------------------------------------------------------------------

LAYERS = ("Application", "Domain", "Infrastructure", "Persistence", "WebAPI")


class ProjectLayout(BaseModel):
    """Absolute paths to each architectural layer of a generated solution.

    The expected tree is::

        <solution_root>/
            core/
            project/
                <Name>.Application/
                <Name>.Domain/
                <Name>.Infrastructure/
                <Name>.Persistence/
                <Name>.WebAPI/

    Build instances with :meth:`create`, which normalises both inputs.
    """
    model_config = ConfigDict(frozen=True)

    solution_root: Path
    project_name: str = Field(..., min_length=1)

    @classmethod
    def create(cls, solution_root: str | Path, project_name: str) -> "ProjectLayout":
        """Resolve *solution_root* and PascalCase *project_name*.

        Raises:
            InvalidInput: If either argument is blank.
            MissingDependency: If the solution root directory does not exist.
        """
        if solution_root is None or not str(solution_root).strip():
            raise InvalidInput("Solution root cannot be empty.")
        if project_name is None or not project_name.strip():
            raise InvalidInput("Project name cannot be empty.")

        root = Path(solution_root)
        if not root.is_dir():
            raise MissingDependency(root, f"Solution root '{solution_root}' was not found.")
        return cls(solution_root=root.resolve(), project_name=to_pascal_case(project_name))

    # -- Derived paths -------------------------------------------------------

    @property
    def core_root(self) -> Path:
        return self.solution_root / "core"

    @property
    def project_root(self) -> Path:
        return self.solution_root / "project"

    @property
    def application_path(self) -> Path:
        return self.project_root / f"{self.project_name}.Application"

    @property
    def domain_path(self) -> Path:
        return self.project_root / f"{self.project_name}.Domain"

    @property
    def infrastructure_path(self) -> Path:
        return self.project_root / f"{self.project_name}.Infrastructure"

    @property
    def persistence_path(self) -> Path:
        return self.project_root / f"{self.project_name}.Persistence"

    @property
    def web_api_path(self) -> Path:
        return self.project_root / f"{self.project_name}.WebAPI"

    @property
    def entities_path(self) -> Path:
        return self.domain_path / "Entities"

    def feature_root(self, entity: EntityDefinition) -> Path:
        """``<Application>/Features/<Plural>`` for *entity*."""
        return self.application_path / "Features" / entity.plural_pascal

    def layer_path(self, layer_name: str) -> Path:
        """Path of one layer by name (``Application``, ``Domain``, ...)."""
        paths = {
            "Application": self.application_path,
            "Domain": self.domain_path,
            "Infrastructure": self.infrastructure_path,
            "Persistence": self.persistence_path,
            "WebAPI": self.web_api_path,
        }
        try:
            return paths[layer_name]
        except KeyError:
            raise InvalidInput(f"Unknown layer '{layer_name}'") from None

    def layer_exists(self, layer_name: str) -> bool:
        return self.layer_path(layer_name).is_dir()

    def existing_entities(self) -> list[str]:
        """Names of the entity classes already present under ``Domain/Entities``."""
        if not self.entities_path.is_dir():
            return []
        return sorted(path.stem for path in self.entities_path.glob("*.cs"))


# ---------------------------------------------------------------------------
# Generation options
# ---------------------------------------------------------------------------

class GenerationOptions(BaseModel):
    """Everything one CRUD generation run needs besides the layout."""
    model_config = ConfigDict(frozen=True)

    project_name: str = Field(..., min_length=1)
    entity_name: str = Field(..., min_length=1)
    db_context_name: str = Field(default="BaseDbContext", min_length=1)
    id_type: str = Field(default="int", min_length=1)
    properties: tuple[PropertyDefinition, ...] = Field(default_factory=tuple)
    enable_security: bool = Field(default=False)
