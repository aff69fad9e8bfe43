"""CLI for seal-link."""

import os
import sys
from collections.abc import Callable, Mapping
from typing import Annotated, Any, Literal

import structlog
from cyclopts import App, Parameter

from seal_link.backends import SealBackend
from seal_link.config_commands import config_app
from seal_link.context import get_pull_request_context
from seal_link.errors import SealLinkError
from seal_link.settings import CommonSettings, load_artifact_settings, load_snapshot_settings
from seal_link.workflows import RunResult, run_snapshot, run_upload_artifacts

logger = structlog.get_logger()

app = App(
    help="seal-link - link CI artifacts to Seal change records by pull request number",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def annotate_failure(message: str, environ: Mapping[str, str] | None = None) -> None:
    """Emit a GitHub Actions error annotation when running inside Actions."""
    environ = os.environ if environ is None else environ
    if environ.get("GITHUB_ACTIONS") != "true":
        return
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::error::{escaped}")


def execute(
    label: str,
    load_settings: Callable[[], CommonSettings],
    workflow: Callable[..., RunResult],
    environ: Mapping[str, str] | None = None,
) -> int:
    """Run a workflow for the current pull request and return the process exit code."""
    context = get_pull_request_context(environ)
    if context is None:
        print(f"{label}: not running for a pull request, skipping.")
        return 0

    logger.info("Running for pull request", pr_number=context.pr_number, workspace=str(context.workspace))
    try:
        settings = load_settings()
        with SealBackend(settings.api_base_url, settings.api_token) as backend:
            result = workflow(backend, settings, context)
    except (SealLinkError, ValueError) as e:
        logger.error("Run failed", action=label, error=str(e))
        annotate_failure(f"{label} failed: {e}", environ)
        print(f"❌ {label} failed: {e}")
        return 1

    if result.status == "noop":
        print(f"{label}: nothing to upload.")
    elif result.failures:
        print(
            f"⚠️ {label} completed: linked {len(result.references)} file(s) to entity {result.entity_id}, "
            f"{len(result.failures)} file(s) failed."
        )
    else:
        print(f"✅ {label} completed: linked {len(result.references)} file(s) to entity {result.entity_id}.")
    return 0


def _overrides(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@app.command
def snapshot(
    api_token: str | None = None,
    api_base_url: str | None = None,
    template_id: str | None = None,
    field_name: str | None = None,
    file_type_title: str | None = None,
    archive_type: Literal["zip", "tar"] | None = None,
    exclude_patterns: str | None = None,
) -> None:
    """Archive the workspace and link the snapshot to the pull request's Seal entity.

    Args:
        api_token: Seal API token
        api_base_url: Seal API base URL
        template_id: Template ID of the target change control entity
        field_name: Reference field receiving the snapshot
        file_type_title: File type assigned to the uploaded archive
        archive_type: Archive format
        exclude_patterns: Space separated glob patterns to leave out of the archive
    """
    overrides = _overrides(
        api_token=api_token,
        api_base_url=api_base_url,
        template_id=template_id,
        field_name=field_name,
        file_type_title=file_type_title,
        archive_type=archive_type,
        exclude_patterns=exclude_patterns,
    )
    exit_code = execute("Codebase snapshot", lambda: load_snapshot_settings(overrides), run_snapshot)
    if exit_code:
        sys.exit(exit_code)


@app.command(name="upload-artifacts")
def upload_artifacts(
    api_token: str | None = None,
    api_base_url: str | None = None,
    template_id: str | None = None,
    field_name: str | None = None,
    file_type_title: str | None = None,
    patterns: str | None = None,
) -> None:
    """Upload files matching glob patterns and link them to the pull request's Seal entity.

    Args:
        api_token: Seal API token
        api_base_url: Seal API base URL
        template_id: Template ID of the target change control entity
        field_name: Reference field receiving the artifacts
        file_type_title: File type assigned to the uploaded files
        patterns: Space separated glob patterns, relative to the workspace
    """
    overrides = _overrides(
        api_token=api_token,
        api_base_url=api_base_url,
        template_id=template_id,
        field_name=field_name,
        file_type_title=file_type_title,
        patterns=patterns,
    )
    exit_code = execute("Upload artifacts", lambda: load_artifact_settings(overrides), run_upload_artifacts)
    if exit_code:
        sys.exit(exit_code)


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
