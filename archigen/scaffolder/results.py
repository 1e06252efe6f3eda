"""Report models returned by the generator and the property orchestrator.

Generation never prints; it returns one of these reports and lets the
caller decide how to present it.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, computed_field


class ArtifactStatus(str, Enum):
    """What happened to a single file."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    ALREADY_PRESENT = "already_present"
    SKIPPED = "skipped"
    NOTICE = "notice"
    FAILED = "failed"


class ArtifactResult(BaseModel):
    """Outcome for one generated or patched file."""

    artifact: str = Field(..., description="Short artifact label, e.g. 'CreateProductCommand'")
    path: str = Field(default="", description="File the outcome refers to")
    status: ArtifactStatus = Field(...)
    message: str = Field(default="", description="Reason for SKIPPED / FAILED / NOTICE")


class _Report(BaseModel):
    results: list[ArtifactResult] = Field(default_factory=list)

    def add(
        self,
        artifact: str,
        status: ArtifactStatus,
        path: str | object = "",
        message: str = "",
    ) -> ArtifactResult:
        result = ArtifactResult(artifact=artifact, path=str(path), status=status, message=message)
        self.results.append(result)
        return result

    def record(self, result: ArtifactResult) -> ArtifactResult:
        self.results.append(result)
        return result

    def by_status(self, status: ArtifactStatus) -> list[ArtifactResult]:
        return [r for r in self.results if r.status == status]

    def for_artifact(self, artifact: str) -> ArtifactResult | None:
        """The last result recorded for *artifact*, if any."""
        for result in reversed(self.results):
            if result.artifact == artifact:
                return result
        return None

    @computed_field  # type: ignore[misc]
    @property
    def failed(self) -> int:
        return len(self.by_status(ArtifactStatus.FAILED))

    @computed_field  # type: ignore[misc]
    @property
    def changed(self) -> int:
        """Files created or updated."""
        return len(self.by_status(ArtifactStatus.CREATED)) + len(
            self.by_status(ArtifactStatus.UPDATED)
        )

    @computed_field  # type: ignore[misc]
    @property
    def succeeded(self) -> bool:
        return self.failed == 0

    def summary(self) -> dict[str, int]:
        """Count of results per status, in enum order, omitting zeros."""
        counts: dict[str, int] = {}
        for status in ArtifactStatus:
            n = len(self.by_status(status))
            if n:
                counts[status.value] = n
        return counts


class GenerationReport(_Report):
    """Artifact-by-artifact outcome of one CRUD generation run."""

    entity: str = Field(default="")
    entity_created: bool = Field(default=False, description="True when the entity file was rendered fresh")


class PropertyUpdateReport(_Report):
    """Per-file outcome of adding one property to an existing entity."""

    entity: str = Field(default="")
    property_name: str = Field(default="")
    property_type: str = Field(default="")
