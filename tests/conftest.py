"""Shared pytest fixtures for the archigen test suite.

Provides reusable fixtures for:
- A fake solution tree with every layer and the composition-root files
- A resolved ``ProjectLayout`` over that tree
- The canonical ``Product`` generation options
- A solution on which the Product CRUD slice has already been generated
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from archigen.parser.models import GenerationOptions, ProjectLayout, PropertyDefinition
from archigen.scaffolder.generator import CrudGenerator
from archigen.scaffolder.results import GenerationReport
from archigen.scaffolder.templates import TemplateRenderer

PROJECT = "Shop"


# ---------------------------------------------------------------------------
# Composition-root file contents
# ---------------------------------------------------------------------------

PERSISTENCE_REGISTRATION = textwrap.dedent("""\
    using Microsoft.EntityFrameworkCore;
    using Microsoft.Extensions.Configuration;
    using Microsoft.Extensions.DependencyInjection;
    using Shop.Persistence.Contexts;

    namespace Shop.Persistence;

    public static class PersistenceServiceRegistration
    {
        public static IServiceCollection AddPersistenceServices(this IServiceCollection services, IConfiguration configuration)
        {
            services.AddDbContext<BaseDbContext>(options => options.UseInMemoryDatabase("Shop"));

            return services;
        }
    }
""")

APPLICATION_REGISTRATION = textwrap.dedent("""\
    using System.Reflection;
    using Microsoft.Extensions.DependencyInjection;

    namespace Shop.Application;

    public static class ApplicationServiceRegistration
    {
        public static IServiceCollection AddApplicationServices(this IServiceCollection services)
        {
            services.AddAutoMapper(Assembly.GetExecutingAssembly());

            return services;
        }
    }
""")

DB_CONTEXT = textwrap.dedent("""\
    using Microsoft.EntityFrameworkCore;

    namespace Shop.Persistence.Contexts;

    public class BaseDbContext : DbContext
    {
        public DbSet<User> Users { get; set; }

        public BaseDbContext(DbContextOptions options) : base(options) { }
    }
""")

OPERATION_CLAIM_CONFIGURATION = textwrap.dedent("""\
    using Microsoft.EntityFrameworkCore;
    using Microsoft.EntityFrameworkCore.Metadata.Builders;
    using Shop.Domain.Entities;

    namespace Shop.Persistence.EntityConfigurations;

    public class OperationClaimConfiguration : IEntityTypeConfiguration<OperationClaim>
    {
        public void Configure(EntityTypeBuilder<OperationClaim> builder)
        {
            builder.HasData(getSeeds());
        }

        private IEnumerable<OperationClaim> getFeatureOperationClaims(int initialId)
        {
            int lastId = initialId;
            List<OperationClaim> featureOperationClaims = new();

            return featureOperationClaims;
        }
    }
""")

USER_ENTITY = textwrap.dedent("""\
    using Core.Persistence.Repositories;

    namespace Shop.Domain.Entities;

    public class User : Entity<int>
    {
        public string Email { get; set; }

        public User()
        {
            Email = string.Empty;
        }
    }
""")


# ---------------------------------------------------------------------------
# Solution tree
# ---------------------------------------------------------------------------


@pytest.fixture
def solution_root(tmp_path: Path) -> Path:
    """A minimal solution tree for project ``Shop`` (auto-cleanup)."""
    root = tmp_path / "shop"
    project = root / "project"
    (root / "core").mkdir(parents=True)

    for layer in ("Application", "Domain", "Infrastructure", "Persistence", "WebAPI"):
        (project / f"{PROJECT}.{layer}").mkdir(parents=True)

    persistence = project / f"{PROJECT}.Persistence"
    application = project / f"{PROJECT}.Application"
    domain = project / f"{PROJECT}.Domain"

    (persistence / "PersistenceServiceRegistration.cs").write_text(PERSISTENCE_REGISTRATION, encoding="utf-8")
    (persistence / "Contexts").mkdir()
    (persistence / "Contexts" / "BaseDbContext.cs").write_text(DB_CONTEXT, encoding="utf-8")
    (persistence / "EntityConfigurations").mkdir()
    (persistence / "EntityConfigurations" / "OperationClaimConfiguration.cs").write_text(
        OPERATION_CLAIM_CONFIGURATION, encoding="utf-8"
    )
    (application / "ApplicationServiceRegistration.cs").write_text(APPLICATION_REGISTRATION, encoding="utf-8")
    (domain / "Entities").mkdir()
    (domain / "Entities" / "User.cs").write_text(USER_ENTITY, encoding="utf-8")

    yield root


@pytest.fixture
def layout(solution_root: Path) -> ProjectLayout:
    return ProjectLayout.create(solution_root, PROJECT)


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


# ---------------------------------------------------------------------------
# Generation inputs
# ---------------------------------------------------------------------------


@pytest.fixture
def product_properties() -> tuple[PropertyDefinition, ...]:
    return (
        PropertyDefinition(name="Name", declared_type="string"),
        PropertyDefinition(name="Price", declared_type="decimal"),
        PropertyDefinition(name="IsActive", declared_type="bool?"),
    )


@pytest.fixture
def product_options(product_properties: tuple[PropertyDefinition, ...]) -> GenerationOptions:
    return GenerationOptions(
        project_name=PROJECT,
        entity_name="Product",
        properties=product_properties,
    )


@pytest.fixture
def generated_product(layout: ProjectLayout, product_options: GenerationOptions) -> GenerationReport:
    """Run the Product CRUD generation once and return its report."""
    return CrudGenerator().generate(layout, product_options)


def snapshot(root: Path) -> dict[str, bytes]:
    """Every file under *root* keyed by relative path."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }
