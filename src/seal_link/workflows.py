"""Snapshot and artifact upload runs: resolve, upload, link."""

import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import structlog

from seal_link.archive import create_archive
from seal_link.backend import Backend
from seal_link.context import PullRequestContext
from seal_link.discovery import find_files
from seal_link.errors import ProcessingError
from seal_link.linker import link_references
from seal_link.models import FileFailure, FileReference
from seal_link.processor import UploadPlan, plan_artifact_uploads, process_uploads
from seal_link.resolver import resolve_entity
from seal_link.settings import ArtifactSettings, SnapshotSettings

logger = structlog.get_logger()


@dataclass
class RunResult:
    status: Literal["linked", "noop"]
    entity_id: str | None = None
    references: list[FileReference] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)


@contextmanager
def phase(name: str) -> Iterator[None]:
    """Bind ``phase`` to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(phase=name):
        logger.info("Phase started")
        yield
        logger.info("Phase finished")


def _timestamp_ms(now: float | None) -> int:
    return int((time.time() if now is None else now) * 1000)


def run_snapshot(
    backend: Backend,
    settings: SnapshotSettings,
    context: PullRequestContext,
    now: float | None = None,
) -> RunResult:
    """Archive the workspace, upload it and link it to the pull request's entity."""
    with phase("find-entity"):
        entity = resolve_entity(backend, context.pr_number, settings.template_id)

    with phase("get-change-set"):
        change_set_index = backend.get_change_set_index(entity.id)

    with tempfile.TemporaryDirectory(prefix="codebase-snapshot-") as snapshot_dir:
        logger.debug("Created temporary directory", path=snapshot_dir)

        with phase("create-archive"):
            base_name = f"{context.repo_name}-PR{context.pr_number}-{_timestamp_ms(now)}"
            archive_path = create_archive(
                context.workspace,
                Path(snapshot_dir),
                base_name,
                archive_type=settings.archive_type,
                exclude_patterns=settings.exclude_patterns,
            )

        with phase("upload-snapshot"):
            plan = UploadPlan(path=archive_path, remote_name=archive_path.name, display_name=archive_path.name)
            result = process_uploads(backend, [plan], settings.file_type_title, change_set_index)
            if result.failed:
                raise ProcessingError(f"Snapshot upload failed: {result.failures[0].error}")

    with phase("link-snapshot"):
        link_references(backend, entity, settings.field_name, result.references)

    logger.info("Codebase snapshot linked", entity_id=entity.id, file_id=result.references[0].id)
    return RunResult(status="linked", entity_id=entity.id, references=result.references)


def run_upload_artifacts(
    backend: Backend,
    settings: ArtifactSettings,
    context: PullRequestContext,
    now: float | None = None,
) -> RunResult:
    """Upload every artifact matching the configured patterns and link them to the pull request's entity."""
    with phase("find-artifacts"):
        if not settings.patterns:
            logger.warning("No artifact patterns provided")
            return RunResult(status="noop")

        files = find_files(context.workspace, settings.patterns)
        if not files:
            logger.info("No artifact files matched, nothing to upload", patterns=list(settings.patterns))
            return RunResult(status="noop")

    with phase("find-entity"):
        entity = resolve_entity(backend, context.pr_number, settings.template_id)

    with phase("get-change-set"):
        change_set_index = backend.get_change_set_index(entity.id)

    with phase("process-artifacts"):
        plans = plan_artifact_uploads(files, context, _timestamp_ms(now))
        result = process_uploads(backend, plans, settings.file_type_title, change_set_index)

    if result.failed:
        raise ProcessingError(f"{result.failure_count} of {len(plans)} artifact(s) failed to process")
    if result.failures:
        logger.warning(
            "Some artifacts failed, linking the rest",
            failed=result.failure_count,
            total=len(plans),
            files=[str(failure.path) for failure in result.failures],
        )

    with phase("link-artifacts"):
        link_references(backend, entity, settings.field_name, result.references)

    logger.info("Artifacts linked", entity_id=entity.id, linked=len(result.references), failed=result.failure_count)
    return RunResult(status="linked", entity_id=entity.id, references=result.references, failures=result.failures)
