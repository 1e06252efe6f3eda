"""archigen scaffolder -- writes and patches C# artifacts for one entity.

Renders a complete CRUD slice (entity, EF mapping, repository, commands,
queries, validators, service, controller) into an existing solution, patches
the DI registrations and the DbContext, and can later add a property to an
entity that was generated earlier.

Quick usage::

    from archigen.parser import GenerationOptions, ProjectLayout, parse_properties
    from archigen.scaffolder import CrudGenerator, add_property

    layout = ProjectLayout.create("/src/shop", "Shop")
    options = GenerationOptions(
        project_name="Shop",
        entity_name="Product",
        properties=parse_properties("Name:string,Price:decimal,IsActive:bool?"),
    )
    report = CrudGenerator().generate(layout, options)

    add_property(layout, "Product", "Description", "string?")
"""

from archigen.scaffolder.generator import CrudGenerator
from archigen.scaffolder.patcher import (
    add_import_if_missing,
    contains_sequence,
    insert_after_marker,
    insert_before_marker,
    insert_block_before_marker,
)
from archigen.scaffolder.project_template import (
    find_db_contexts,
    find_template_root,
    instantiate_project,
    migration_commands,
)
from archigen.scaffolder.property_adder import add_property, find_insertion_point
from archigen.scaffolder.results import (
    ArtifactResult,
    ArtifactStatus,
    GenerationReport,
    PropertyUpdateReport,
)
from archigen.scaffolder.templates import TemplateRenderer
from archigen.scaffolder.writer import ArtifactWriter

__all__ = [
    "CrudGenerator",
    "add_import_if_missing",
    "contains_sequence",
    "insert_after_marker",
    "insert_before_marker",
    "insert_block_before_marker",
    "find_db_contexts",
    "find_template_root",
    "instantiate_project",
    "migration_commands",
    "add_property",
    "find_insertion_point",
    "ArtifactResult",
    "ArtifactStatus",
    "GenerationReport",
    "PropertyUpdateReport",
    "TemplateRenderer",
    "ArtifactWriter",
]
