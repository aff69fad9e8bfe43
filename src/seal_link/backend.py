"""Backend interface for the change-management platform."""

from abc import ABC, abstractmethod
from pathlib import Path

from seal_link.models import ArchiveOutcome, ChangeSet, ExternalEntity, FileReference


class Backend(ABC):
    """Abstract base class for platform backends.

    Methods raise ``ApiError`` on failure except ``get_file_version`` and
    ``archive_entity``, which are best-effort and report failure through their
    return value.
    """

    @abstractmethod
    def search_entities(self, title_contains: str) -> list[ExternalEntity]:
        """Search entities whose title contains a substring."""
        pass

    @abstractmethod
    def get_entity(self, entity_id: str) -> ExternalEntity:
        """Read an entity by ID."""
        pass

    @abstractmethod
    def get_change_set(self, entity_id: str) -> ChangeSet:
        """Get the change-set an entity belongs to."""
        pass

    def get_change_set_index(self, entity_id: str) -> str:
        """Get the index of the change-set an entity belongs to."""
        return self.get_change_set(entity_id).index

    @abstractmethod
    def add_to_change_set(self, entity_id: str, change_set_index: str) -> None:
        """Add an entity to a change-set."""
        pass

    @abstractmethod
    def upload_file(self, path: Path, remote_name: str, file_type_title: str) -> str:
        """Upload a local file as a new file entity and return its ID."""
        pass

    @abstractmethod
    def get_file_version(self, file_id: str) -> int | None:
        """Get the version of a file entity, or None when it cannot be determined."""
        pass

    @abstractmethod
    def patch_reference_field(self, entity_id: str, field_name: str, references: list[FileReference]) -> None:
        """Replace the value of a reference field."""
        pass

    @abstractmethod
    def archive_entity(self, entity_id: str) -> ArchiveOutcome:
        """Archive an entity."""
        pass
