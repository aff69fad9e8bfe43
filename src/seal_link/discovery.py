"""Find artifact files in the workspace from glob patterns."""

import glob
import os
from collections.abc import Sequence
from pathlib import Path

import structlog

logger = structlog.get_logger()


def _expand(workspace: Path, pattern: str) -> set[Path]:
    matches = set()
    for match in glob.glob(os.path.join(workspace, pattern), recursive=True, include_hidden=True):
        path = Path(match)
        if path.is_dir():
            # A matched directory stands for every file below it
            matches.update(child for child in path.rglob("*") if child.is_file())
        elif path.is_file():
            matches.add(path)
    return matches


def find_files(workspace: Path, patterns: Sequence[str]) -> list[Path]:
    """Return the sorted, de-duplicated files matching ``patterns``.

    Patterns are relative to ``workspace`` and support ``**``. A pattern
    starting with ``!`` removes its matches from the result.
    """
    workspace = Path(workspace)
    included: set[Path] = set()
    excluded: set[Path] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded |= _expand(workspace, pattern[1:])
        else:
            included |= _expand(workspace, pattern)

    files = sorted(included - excluded)
    logger.info("Found files", count=len(files), patterns=list(patterns))
    for path in files:
        logger.debug("Found file", path=os.path.relpath(path, workspace))
    return files
