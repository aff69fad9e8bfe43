"""Tests for pull request context extraction."""

import json
from pathlib import Path

import pytest

from seal_link.context import get_pull_request_context, is_pull_request_event


@pytest.fixture
def event_file(tmp_path: Path) -> Path:
    """Write a pull_request event payload."""
    path = tmp_path / "event.json"
    path.write_text(
        json.dumps(
            {
                "number": 42,
                "pull_request": {
                    "number": 42,
                    "title": "Add widgets",
                    "head": {"ref": "feature/widgets"},
                    "base": {"ref": "main"},
                },
            }
        )
    )
    return path


@pytest.fixture
def environ(event_file: Path, tmp_path: Path) -> dict[str, str]:
    return {
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_EVENT_PATH": str(event_file),
        "GITHUB_REPOSITORY": "acme/widgets",
        "GITHUB_SHA": "abc123",
        "GITHUB_WORKSPACE": str(tmp_path),
    }


def test_pull_request_context(environ: dict[str, str], tmp_path: Path) -> None:
    """Test a complete pull request event yields a context."""
    context = get_pull_request_context(environ)

    assert context is not None
    assert context.pr_number == 42
    assert context.pr_title == "Add widgets"
    assert context.repo_owner == "acme"
    assert context.repo_name == "widgets"
    assert context.head_ref == "feature/widgets"
    assert context.base_ref == "main"
    assert context.commit_sha == "abc123"
    assert context.workspace == tmp_path


def test_pull_request_target_event(environ: dict[str, str]) -> None:
    """Test pull_request_target counts as a pull request event."""
    environ["GITHUB_EVENT_NAME"] = "pull_request_target"
    assert is_pull_request_event(environ)
    assert get_pull_request_context(environ) is not None


def test_push_event_has_no_context(environ: dict[str, str]) -> None:
    """Test non pull request events return None."""
    environ["GITHUB_EVENT_NAME"] = "push"
    assert get_pull_request_context(environ) is None


def test_empty_environment_has_no_context() -> None:
    """Test running outside of Actions returns None."""
    assert get_pull_request_context({}) is None


def test_missing_workspace(environ: dict[str, str]) -> None:
    """Test a missing workspace returns None."""
    del environ["GITHUB_WORKSPACE"]
    assert get_pull_request_context(environ) is None


def test_missing_pull_request_payload(environ: dict[str, str], event_file: Path) -> None:
    """Test a payload without pull_request returns None."""
    event_file.write_text(json.dumps({"number": 42}))
    assert get_pull_request_context(environ) is None


def test_unreadable_event_file(environ: dict[str, str], tmp_path: Path) -> None:
    """Test a missing event file returns None."""
    environ["GITHUB_EVENT_PATH"] = str(tmp_path / "missing.json")
    assert get_pull_request_context(environ) is None
