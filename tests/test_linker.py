"""Tests for archiving previous references and linking new ones."""

import threading

import pytest
import structlog
from fakes import FakeBackend

from seal_link.errors import ApiError
from seal_link.linker import archive_references, link_references
from seal_link.models import ArchiveOutcome, ExternalEntity, FileReference


def entity_with(field_name: str, references: list[FileReference]) -> ExternalEntity:
    return ExternalEntity(id="e1", title="Release #42", template_id="tpl-change", fields={field_name: references})


def test_link_replaces_and_archives_previous(fake_backend: FakeBackend) -> None:
    """Test the old reference is archived before the field is replaced."""
    entity = entity_with("Code Snapshot", [FileReference("f1", 1)])

    outcomes = link_references(fake_backend, entity, "Code Snapshot", [FileReference("f2", 3)])

    assert outcomes == [ArchiveOutcome(entity_id="f1", status="success")]
    assert fake_backend.patches == [("e1", "Code Snapshot", [FileReference("f2", 3)])]
    names = fake_backend.call_names()
    assert names.index("archive_entity") < names.index("patch_reference_field")


def test_link_payload_is_exactly_new_references(fake_backend: FakeBackend) -> None:
    """Test existing [A] with new [B, C] patches exactly [B, C]."""
    entity = entity_with("Release Artifact(s)", [FileReference("A", 1)])

    link_references(fake_backend, entity, "Release Artifact(s)", [FileReference("B", 1), FileReference("C", None)])

    assert fake_backend.patches[0][2] == [FileReference("B", 1), FileReference("C", None)]
    assert ("archive_entity", "A") in fake_backend.calls


def test_link_without_previous_references(fake_backend: FakeBackend) -> None:
    """Test a field absent from the entity skips archival."""
    entity = ExternalEntity(id="e1")

    outcomes = link_references(fake_backend, entity, "Code Snapshot", [FileReference("f2", 3)])

    assert outcomes == []
    assert fake_backend.call_names() == ["get_entity", "patch_reference_field"]


def test_link_continues_after_archive_failures(fake_backend: FakeBackend) -> None:
    """Test archive failures do not prevent the patch."""
    entity = entity_with("Code Snapshot", [FileReference("f1", 1), FileReference("f0", 2)])
    fake_backend.fail_archives.add("f1")

    outcomes = link_references(fake_backend, entity, "Code Snapshot", [FileReference("f2", 3)])

    assert [outcome.status for outcome in outcomes] == ["failed", "success"]
    assert len(fake_backend.patches) == 1


def test_link_with_no_new_references(fake_backend: FakeBackend) -> None:
    """Test linking nothing leaves the entity untouched."""
    entity = entity_with("Code Snapshot", [FileReference("f1", 1)])

    assert link_references(fake_backend, entity, "Code Snapshot", []) == []
    assert fake_backend.calls == []


def test_link_failure_propagates(fake_backend: FakeBackend) -> None:
    """Test a failed patch is raised after archival."""
    entity = entity_with("Code Snapshot", [FileReference("f1", 1)])
    fake_backend.fail_patch = True

    with pytest.raises(ApiError):
        link_references(fake_backend, entity, "Code Snapshot", [FileReference("f2", 3)])

    assert ("archive_entity", "f1") in fake_backend.calls


def test_archive_skips_invalid_reference(fake_backend: FakeBackend) -> None:
    """Test a reference without id is skipped."""
    outcomes = archive_references(fake_backend, [FileReference(""), FileReference("f1", 1)])

    assert outcomes[0].status == "skipped"
    assert outcomes[1] == ArchiveOutcome(entity_id="f1", status="success")
    assert fake_backend.calls == [("archive_entity", "f1")]


def test_archive_converts_exceptions(fake_backend: FakeBackend, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test an exception escaping the backend becomes a failed outcome."""

    def boom(entity_id: str) -> ArchiveOutcome:
        raise RuntimeError("socket closed")

    monkeypatch.setattr(fake_backend, "archive_entity", boom)

    outcomes = archive_references(fake_backend, [FileReference("f1", 1)])

    assert outcomes == [ArchiveOutcome(entity_id="f1", status="failed", error="socket closed")]


def test_archive_runs_concurrently(fake_backend: FakeBackend, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test archive calls are in flight at the same time."""
    barrier = threading.Barrier(3, timeout=5)

    def archive(entity_id: str) -> ArchiveOutcome:
        barrier.wait()
        return ArchiveOutcome(entity_id=entity_id, status="success")

    monkeypatch.setattr(fake_backend, "archive_entity", archive)

    outcomes = archive_references(fake_backend, [FileReference("f1"), FileReference("f2"), FileReference("f3")])

    assert [outcome.entity_id for outcome in outcomes] == ["f1", "f2", "f3"]
    assert all(outcome.status == "success" for outcome in outcomes)


def test_link_reads_current_field_values(fake_backend: FakeBackend) -> None:
    """Test references missing from a search summary are archived from the entity itself."""
    summary = ExternalEntity(id="e1", title="Release #42", template_id="tpl-change")
    fake_backend.entities["e1"] = entity_with("Code Snapshot", [FileReference("old", 4)])

    outcomes = link_references(fake_backend, summary, "Code Snapshot", [FileReference("f2", 3)])

    assert outcomes == [ArchiveOutcome(entity_id="old", status="success")]
    assert fake_backend.call_names() == ["get_entity", "archive_entity", "patch_reference_field"]


def test_link_ignores_stale_references(fake_backend: FakeBackend) -> None:
    """Test references removed since the search are not archived."""
    stale = entity_with("Code Snapshot", [FileReference("gone", 1)])
    fake_backend.entities["e1"] = entity_with("Code Snapshot", [FileReference("f1", 2)])

    link_references(fake_backend, stale, "Code Snapshot", [FileReference("f2", 3)])

    assert ("archive_entity", "f1") in fake_backend.calls
    assert ("archive_entity", "gone") not in fake_backend.calls


def test_link_falls_back_when_entity_read_fails(fake_backend: FakeBackend) -> None:
    """Test a failed re-read archives the references already known."""
    entity = entity_with("Code Snapshot", [FileReference("f1", 1)])

    link_references(fake_backend, entity, "Code Snapshot", [FileReference("f2", 3)])

    assert fake_backend.call_names() == ["get_entity", "archive_entity", "patch_reference_field"]
    assert ("archive_entity", "f1") in fake_backend.calls


def test_archive_keeps_bound_log_context(fake_backend: FakeBackend, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test archive workers see the context variables bound by the caller."""
    seen: list[dict] = []

    def archive(entity_id: str) -> ArchiveOutcome:
        seen.append(structlog.contextvars.get_contextvars())
        return ArchiveOutcome(entity_id=entity_id, status="success")

    monkeypatch.setattr(fake_backend, "archive_entity", archive)

    with structlog.contextvars.bound_contextvars(phase="link-snapshot"):
        archive_references(fake_backend, [FileReference("f1"), FileReference("f2")])

    assert [context.get("phase") for context in seen] == ["link-snapshot", "link-snapshot"]
