"""Upload files, add them to the change-set and collect references."""

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from seal_link.backend import Backend
from seal_link.context import PullRequestContext
from seal_link.errors import ApiError
from seal_link.models import FileFailure, FileReference, ProcessResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class UploadPlan:
    """A local file and the name it gets on Seal."""

    path: Path
    remote_name: str
    display_name: str


def plan_artifact_uploads(files: Sequence[Path], context: PullRequestContext, timestamp: int) -> list[UploadPlan]:
    """Assign each artifact a remote name unique within the run.

    Names follow ``artifact-<basename>-PR<number>-<timestamp>``; files sharing a
    basename get a ``-<n>`` suffix after the first one.
    """
    plans = []
    seen: dict[str, int] = {}
    for path in files:
        path = Path(path)
        remote_name = f"artifact-{path.name}-PR{context.pr_number}-{timestamp}"
        count = seen.get(remote_name, 0)
        seen[remote_name] = count + 1
        if count:
            remote_name = f"{remote_name}-{count + 1}"

        try:
            display_name = os.path.relpath(path, context.workspace)
        except ValueError:
            display_name = str(path)
        plans.append(UploadPlan(path=path, remote_name=remote_name, display_name=display_name))
    return plans


def process_uploads(
    backend: Backend,
    plans: Sequence[UploadPlan],
    file_type_title: str,
    change_set_index: str | None = None,
) -> ProcessResult:
    """Upload every planned file independently.

    A failed upload or change-set addition is recorded and the remaining files
    are still processed. Version lookup never fails a file.
    """
    result = ProcessResult()
    for plan in plans:
        logger.info("Processing file", file=plan.display_name, remote_name=plan.remote_name)

        try:
            file_id = backend.upload_file(plan.path, plan.remote_name, file_type_title)
        except (ApiError, OSError) as e:
            logger.error("Upload failed", file=plan.display_name, error=str(e))
            result.failures.append(FileFailure(path=plan.path, stage="upload", error=str(e)))
            continue

        if change_set_index is not None:
            try:
                backend.add_to_change_set(file_id, change_set_index)
            except ApiError as e:
                logger.error("Adding to change-set failed", file=plan.display_name, file_id=file_id, error=str(e))
                result.failures.append(FileFailure(path=plan.path, stage="change-set", error=str(e)))
                continue

        version = backend.get_file_version(file_id)
        result.references.append(FileReference(id=file_id, version=version))
        logger.info("File processed", file=plan.display_name, file_id=file_id, version=version)

    logger.info("Finished processing", succeeded=len(result.references), failed=result.failure_count)
    return result
