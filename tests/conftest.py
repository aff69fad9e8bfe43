"""Shared fixtures."""

from pathlib import Path

import pytest
from fakes import FakeBackend

from seal_link.context import PullRequestContext
from seal_link.models import ChangeSet


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Create an in-memory backend with a change-set for entity e1."""
    backend = FakeBackend()
    backend.change_sets["e1"] = ChangeSet(index="CS-7", id="cs-1", name="Release", status="OPEN")
    return backend


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a small workspace with sources, build output and a .git directory."""
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.py").write_text("print('hello')\n")
    (root / "build").mkdir()
    (root / "build" / "report.xml").write_text("<testsuite/>\n")
    (root / "build" / "coverage.xml").write_text("<coverage/>\n")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / ".env.example").write_text("KEY=value\n")
    return root


@pytest.fixture
def pr_context(workspace: Path) -> PullRequestContext:
    """Create a pull request context rooted at the test workspace."""
    return PullRequestContext(
        repo_owner="acme",
        repo_name="widgets",
        pr_number=42,
        pr_title="Add widgets",
        head_ref="feature/widgets",
        base_ref="main",
        commit_sha="abc123",
        workspace=workspace,
    )
