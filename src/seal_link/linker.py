"""Replace the references on the resolved entity, archiving the old ones first."""

import contextvars
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import structlog

from seal_link.backend import Backend
from seal_link.errors import ApiError
from seal_link.models import ArchiveOutcome, ExternalEntity, FileReference

logger = structlog.get_logger()

MAX_ARCHIVE_WORKERS = 8


def _archive_one(backend: Backend, ref: FileReference) -> ArchiveOutcome:
    if not ref.id:
        logger.warning("Skipping invalid file reference", reference=ref)
        return ArchiveOutcome(entity_id="", status="skipped", error="missing id")
    try:
        return backend.archive_entity(ref.id)
    except Exception as e:
        logger.error("Archiving raised", entity_id=ref.id, error=str(e))
        return ArchiveOutcome(entity_id=ref.id, status="failed", error=str(e))


def archive_references(
    backend: Backend, references: Sequence[FileReference], max_workers: int = MAX_ARCHIVE_WORKERS
) -> list[ArchiveOutcome]:
    """Archive all references concurrently and wait for every outcome.

    Outcomes are returned in input order. No single failure is raised.
    """
    if not references:
        logger.info("No existing file references, skipping archival")
        return []

    logger.info("Archiving existing file references", count=len(references))
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(references)))) as executor:
        # One context copy per task: a Context cannot be entered by two threads at once
        futures = [executor.submit(contextvars.copy_context().run, _archive_one, backend, ref) for ref in references]
        outcomes = [future.result() for future in futures]

    failed = [outcome.entity_id for outcome in outcomes if outcome.status == "failed"]
    if failed:
        logger.warning("Some references could not be archived", failed=failed)
    logger.info(
        "Archival finished",
        archived=sum(1 for outcome in outcomes if outcome.status == "success"),
        failed=len(failed),
    )
    return outcomes


def current_references(backend: Backend, entity: ExternalEntity, field_name: str) -> list[FileReference]:
    """Re-read the entity and return the references its field holds now.

    Search results may omit field values and go stale while files upload, so
    the entity is fetched again. If that read fails, the references known from
    ``entity`` are used instead.
    """
    try:
        fresh = backend.get_entity(entity.id)
    except ApiError as e:
        logger.warning(
            "Could not re-read entity, archiving references from search result",
            entity_id=entity.id,
            error=str(e),
        )
        return entity.references(field_name)
    return fresh.references(field_name)


def link_references(
    backend: Backend,
    entity: ExternalEntity,
    field_name: str,
    references: Sequence[FileReference],
    max_workers: int = MAX_ARCHIVE_WORKERS,
) -> list[ArchiveOutcome]:
    """Archive the references ``field_name`` holds now and replace them with ``references``.

    Archival is best-effort; the field patch runs once after all archive calls
    have settled and raises ``LinkError`` on failure.

    Returns:
        The archive outcome for each previous reference
    """
    if not references:
        logger.warning("No file references provided, skipping linking", entity_id=entity.id, field_name=field_name)
        return []

    previous = current_references(backend, entity, field_name)
    logger.info("Linking references", entity_id=entity.id, field_name=field_name, previous=len(previous), new=len(references))

    outcomes = archive_references(backend, previous, max_workers=max_workers)
    backend.patch_reference_field(entity.id, field_name, list(references))
    return outcomes
