"""Exception hierarchy shared by the parser, validators and scaffolder.

Every error carries the offending value or path as an attribute so callers
can build their own reports, and a message that names it directly.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ArchigenError(Exception):
    """Base class for every error raised by archigen."""


class InvalidInput(ArchigenError, ValueError):
    """Raised when a required string argument is missing or blank."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class NameRejection(str, Enum):
    """Why a property or entity name was rejected."""
    EMPTY = "empty"
    CASING = "casing"
    RESERVED_KEYWORD = "reserved_keyword"
    ILLEGAL_CHARACTER = "illegal_character"
    COLLISION = "collision"
    DENYLIST = "denylist"


class InvalidName(ArchigenError):
    """Raised when a property or entity name fails validation."""

    def __init__(
        self,
        value: str,
        reason: NameRejection,
        message: str,
        suggestion: str | None = None,
    ) -> None:
        self.value = value
        self.reason = reason
        self.suggestion = suggestion
        super().__init__(message)


class DuplicateEntity(InvalidName):
    """Raised when a new entity name collides with an existing entity."""

    def __init__(self, value: str, existing: str) -> None:
        self.existing = existing
        super().__init__(
            value,
            NameRejection.COLLISION,
            f"Entity '{value}' already exists (as '{existing}'). "
            "Please choose a different name.",
        )


class InvalidType(ArchigenError):
    """Raised when a property type is not recognised."""

    def __init__(self, value: str, message: str) -> None:
        self.value = value
        super().__init__(message)


# ---------------------------------------------------------------------------
# Parsing and patching
# ---------------------------------------------------------------------------


class ParseError(ArchigenError):
    """Raised when an entity file does not contain a recognisable class."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(message)


class MarkerNotFound(ArchigenError):
    """Raised when a patch marker does not occur in the target file."""

    def __init__(self, marker: str, path: str | Path) -> None:
        self.marker = marker
        self.path = str(path)
        super().__init__(f"Marker '{marker}' not found in {path}.")


class NoInsertionPoint(ArchigenError):
    """Raised when no safe place to add a member can be found in a class."""

    def __init__(self, path: str | Path | None = None, detail: str = "") -> None:
        self.path = str(path) if path is not None else None
        where = f" in {path}" if path is not None else ""
        message = f"Could not find a suitable insertion point{where}"
        if detail:
            message += f": {detail}"
        super().__init__(message + ".")


class MissingDependency(ArchigenError):
    """Raised when a required directory or file is absent."""

    def __init__(self, path: str | Path, message: str | None = None) -> None:
        self.path = str(path)
        super().__init__(message or f"Required path not found: {path}")


class GenerationError(ArchigenError):
    """Raised (or recorded) when producing a single artifact fails."""

    def __init__(self, artifact: str, message: str) -> None:
        self.artifact = artifact
        super().__init__(f"{artifact}: {message}")
