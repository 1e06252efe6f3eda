"""Idempotent artifact writing.

A rendered artifact is written only when it is missing, or when the file on
disk differs and the artifact's staleness predicate proves the old content
came from a previous, known-bad generation.  Hand-edited files that no
predicate recognises are left alone.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from ..utils import write_text_atomic
from .results import ArtifactResult, ArtifactStatus

OverwritePredicate = Callable[[str], bool]


def contains_any(*markers: str) -> OverwritePredicate:
    """Predicate that is true when the existing text contains any marker."""
    def _predicate(existing: str) -> bool:
        return any(marker in existing for marker in markers)
    return _predicate


class ArtifactWriter:
    """Writes rendered artifacts with byte-for-byte change detection."""

    def write(
        self,
        path: str | Path,
        content: str,
        should_overwrite: OverwritePredicate | None = None,
        artifact: str | None = None,
    ) -> ArtifactResult:
        """Write *content* to *path* unless that would be redundant or unsafe.

        Args:
            path: Target file.  Parent directories are created as needed.
            content: Freshly rendered text.
            should_overwrite: Called with the existing text when it differs
                from *content*.  ``None`` means the file is written once and
                never touched again.
            artifact: Label used in the result; defaults to the file stem.

        Returns:
            ``CREATED``, ``UNCHANGED``, ``UPDATED`` or ``SKIPPED``.
        """
        target = Path(path)
        label = artifact or target.stem

        if not target.exists():
            write_text_atomic(target, content)
            return ArtifactResult(artifact=label, path=str(target), status=ArtifactStatus.CREATED)

        existing_bytes = target.read_bytes()
        if existing_bytes == content.encode("utf-8"):
            return ArtifactResult(artifact=label, path=str(target), status=ArtifactStatus.UNCHANGED)

        if should_overwrite is None:
            return ArtifactResult(
                artifact=label,
                path=str(target),
                status=ArtifactStatus.SKIPPED,
                message="exists; written once and never overwritten",
            )

        existing = existing_bytes.decode("utf-8", errors="replace")
        if should_overwrite(existing):
            write_text_atomic(target, content)
            return ArtifactResult(
                artifact=label,
                path=str(target),
                status=ArtifactStatus.UPDATED,
                message="replaced stale generated content",
            )

        return ArtifactResult(
            artifact=label,
            path=str(target),
            status=ArtifactStatus.SKIPPED,
            message="exists with local changes",
        )
