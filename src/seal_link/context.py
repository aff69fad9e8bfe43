"""Pull request context extracted from the GitHub Actions environment."""

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")


@dataclass(frozen=True)
class PullRequestContext:
    repo_owner: str
    repo_name: str
    pr_number: int
    pr_title: str
    head_ref: str
    base_ref: str
    commit_sha: str
    workspace: Path


def is_pull_request_event(environ: Mapping[str, str]) -> bool:
    return environ.get("GITHUB_EVENT_NAME", "") in PULL_REQUEST_EVENTS


def _load_event_payload(event_path: str | None) -> dict[str, Any]:
    if not event_path:
        return {}
    try:
        with open(event_path, "r") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Failed to read event payload", event_path=event_path, error=str(e))
        return {}
    return payload if isinstance(payload, dict) else {}


def get_pull_request_context(environ: Mapping[str, str] | None = None) -> PullRequestContext | None:
    """Build the pull request context, or return None when not running for a pull request.

    Args:
        environ: Environment mapping, defaults to ``os.environ``
    """
    environ = os.environ if environ is None else environ

    if not is_pull_request_event(environ):
        logger.info("Not running for a pull request event", event_name=environ.get("GITHUB_EVENT_NAME"))
        return None

    payload = _load_event_payload(environ.get("GITHUB_EVENT_PATH"))
    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        logger.warning("Pull request event without pull_request payload")
        return None

    pr_number = pull_request.get("number") or payload.get("number")
    head_ref = (pull_request.get("head") or {}).get("ref")
    base_ref = (pull_request.get("base") or {}).get("ref")
    workspace = environ.get("GITHUB_WORKSPACE")
    owner, _, repo_name = environ.get("GITHUB_REPOSITORY", "").partition("/")

    if not isinstance(pr_number, int) or not head_ref or not base_ref or not workspace:
        logger.warning(
            "Missing essential pull request context",
            pr_number=pr_number,
            head_ref=head_ref,
            base_ref=base_ref,
            workspace=workspace,
        )
        return None

    context = PullRequestContext(
        repo_owner=owner,
        repo_name=repo_name,
        pr_number=pr_number,
        pr_title=pull_request.get("title") or "",
        head_ref=head_ref,
        base_ref=base_ref,
        commit_sha=environ.get("GITHUB_SHA", ""),
        workspace=Path(workspace),
    )
    logger.info("Pull request context", pr_number=context.pr_number, pr_title=context.pr_title)
    logger.debug("Full pull request context", context=context)
    return context
