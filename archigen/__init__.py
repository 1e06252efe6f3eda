"""archigen -- CRUD scaffolding for layered .NET solutions.

Parses generated entity files, renders a full vertical slice (entity, EF
configuration, repository, CQRS commands and queries, DTOs, validators,
business rules, service, mapping profile, controller) from Jinja2 templates,
and patches existing composition-root files without duplicating content.
"""

__version__ = "0.4.0"
