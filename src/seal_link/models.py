"""Data models for seal-link."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal


@dataclass(frozen=True)
class FileReference:
    """Pointer to an uploaded file entity. A version of None links the latest version."""

    id: str
    version: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "version": self.version}


@dataclass
class ExternalEntity:
    """Represents a Seal entity.

    Only reference fields are kept in ``fields``; other field types are dropped
    when the API response is parsed.
    """

    id: str
    title: str = ""
    template_id: str | None = None
    version: int | None = None
    fields: dict[str, list[FileReference]] = field(default_factory=dict)

    def references(self, field_name: str) -> list[FileReference]:
        """Return the references currently stored in a field, or an empty list."""
        return list(self.fields.get(field_name, []))


@dataclass
class ChangeSet:
    """Represents the change-set a Seal entity belongs to."""

    index: str
    id: str = ""
    name: str = ""
    status: Literal["OPEN", "IN_REVIEW", "CLOSED"] | None = None
    description: str | None = None
    entity_refs: list[FileReference] = field(default_factory=list)


@dataclass(frozen=True)
class ArchiveOutcome:
    entity_id: str
    status: Literal["success", "failed", "skipped"]
    error: str | None = None


@dataclass(frozen=True)
class FileFailure:
    path: Path
    stage: Literal["upload", "change-set"]
    error: str


@dataclass
class ProcessResult:
    """Accumulated outcome of a batch of uploads."""

    references: list[FileReference] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def failed(self) -> bool:
        """True when failures left no usable reference at all."""
        return not self.references and bool(self.failures)
