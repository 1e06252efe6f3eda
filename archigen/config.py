"""archigen configuration.

Typed defaults for a generation run.  Settings use a Pydantic v2 model so
they are validated at construction time and can be serialised to/from JSON
or read from environment variables.  CLI flags take precedence over any
value loaded here.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

CONFIG_FILE_NAME = ".archigen.json"

_TRUTHY = {"1", "true", "yes", "on"}


class ArchigenConfig(BaseModel):
    """Defaults shared by every archigen command.

    Instances are usually created once by the CLI (environment first, then
    an ``.archigen.json`` next to the solution if one exists) and passed down
    as explicit values; the generation core never reads configuration itself.
    """

    solution_root: Path = Field(default=Path("."))
    db_context_name: str = Field(default="BaseDbContext", min_length=1)
    id_type: str = Field(default="int", min_length=1)
    enable_security: bool = Field(default=False)
    template_dir: Path | None = Field(
        default=None, description="Project template root used by `archigen new`"
    )
    validation_max_length: int = Field(
        default=100, ge=1, description="Upper bound used in generated string rules"
    )

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        """Location of the per-solution config file."""
        return self.solution_root / CONFIG_FILE_NAME

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<solution_root>/.archigen.json``.

        Returns:
            The path the file was written to.
        """
        target = path or self.config_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "ArchigenConfig":
        """Load a previously saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "ArchigenConfig":
        """Build an ``ArchigenConfig`` from environment variables.

        Recognised variables (all optional):
            ARCHIGEN_SOLUTION_ROOT, ARCHIGEN_DB_CONTEXT, ARCHIGEN_ID_TYPE,
            ARCHIGEN_ENABLE_SECURITY, ARCHIGEN_TEMPLATE_DIR.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("ARCHIGEN_SOLUTION_ROOT"):
            kwargs["solution_root"] = Path(os.environ["ARCHIGEN_SOLUTION_ROOT"])
        if os.environ.get("ARCHIGEN_DB_CONTEXT"):
            kwargs["db_context_name"] = os.environ["ARCHIGEN_DB_CONTEXT"]
        if os.environ.get("ARCHIGEN_ID_TYPE"):
            kwargs["id_type"] = os.environ["ARCHIGEN_ID_TYPE"]
        if os.environ.get("ARCHIGEN_ENABLE_SECURITY"):
            kwargs["enable_security"] = (
                os.environ["ARCHIGEN_ENABLE_SECURITY"].strip().lower() in _TRUTHY
            )
        if os.environ.get("ARCHIGEN_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["ARCHIGEN_TEMPLATE_DIR"])
        return cls(**kwargs)

    @classmethod
    def discover(cls, solution_root: Path | None = None) -> "ArchigenConfig":
        """Environment defaults, overlaid by ``.archigen.json`` when present.

        The file is looked up in *solution_root* (or the environment's
        solution root).  Values saved in the file win over the environment.
        """
        base = cls.from_env()
        root = solution_root or base.solution_root
        config_file = Path(root) / CONFIG_FILE_NAME
        if not config_file.is_file():
            return base.model_copy(update={"solution_root": Path(root)})
        loaded = cls.load(config_file)
        return loaded.model_copy(update={"solution_root": Path(root)})
