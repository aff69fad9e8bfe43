"""Create a compressed snapshot of a workspace."""

import os
import tarfile
import zipfile
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path

import structlog

from seal_link.errors import ArchiveError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ArchiveFormat:
    name: str
    extension: str


ARCHIVE_FORMATS = {
    "zip": ArchiveFormat(name="zip", extension="zip"),
    "tar": ArchiveFormat(name="tar", extension="tar.gz"),
}


def get_archive_format(archive_type: str) -> ArchiveFormat:
    try:
        return ARCHIVE_FORMATS[archive_type]
    except KeyError:
        raise ValueError(f"Unsupported archive type: {archive_type}. Supported types are 'zip' and 'tar'.") from None


def _pattern_variants(pattern: str) -> Iterator[str]:
    """Yield the pattern and each form with a leading ``**/`` dropped, so ``**/`` also matches zero directories."""
    yield pattern
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        yield pattern


def _is_excluded(relative: str, patterns: Sequence[str], is_dir: bool = False) -> bool:
    for pattern in patterns:
        for variant in _pattern_variants(pattern):
            if fnmatch(relative, variant):
                return True
            if is_dir and fnmatch(relative + "/", variant):
                return True
    return False


def iter_workspace_files(source_dir: Path, exclude_patterns: Sequence[str] = ()) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, relative_posix_path)`` for every file to archive, dotfiles included."""
    for root, dirs, files in os.walk(source_dir):
        root_path = Path(root)
        kept_dirs = []
        for name in sorted(dirs):
            relative = (root_path / name).relative_to(source_dir).as_posix()
            if _is_excluded(relative, exclude_patterns, is_dir=True):
                logger.debug("Excluding directory", path=relative)
            else:
                kept_dirs.append(name)
        dirs[:] = kept_dirs

        for name in sorted(files):
            path = root_path / name
            relative = path.relative_to(source_dir).as_posix()
            if _is_excluded(relative, exclude_patterns):
                continue
            if not path.exists():
                logger.warning("Skipping missing file", path=relative)
                continue
            yield path, relative


def create_archive(
    source_dir: Path,
    dest_dir: Path,
    base_name: str,
    archive_type: str = "zip",
    exclude_patterns: Sequence[str] = (),
) -> Path:
    """Archive ``source_dir`` into ``dest_dir/<base_name>.<ext>``.

    Args:
        source_dir: Directory to archive
        dest_dir: Directory receiving the archive, must not be inside ``source_dir``
        base_name: Archive file name without extension
        archive_type: ``zip`` or ``tar`` (gzip compressed)
        exclude_patterns: fnmatch patterns on paths relative to ``source_dir``

    Returns:
        Path of the created archive
    """
    archive_format = get_archive_format(archive_type)
    source_dir = Path(source_dir)
    archive_path = Path(dest_dir) / f"{base_name}.{archive_format.extension}"
    logger.info(
        "Creating archive",
        archive_type=archive_format.name,
        archive_path=str(archive_path),
        exclude_patterns=list(exclude_patterns) or None,
    )

    count = 0
    try:
        if archive_format.name == "zip":
            with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
                for path, relative in iter_workspace_files(source_dir, exclude_patterns):
                    archive.write(path, relative)
                    count += 1
        else:
            with tarfile.open(archive_path, "w:gz", compresslevel=9) as archive:
                for path, relative in iter_workspace_files(source_dir, exclude_patterns):
                    archive.add(path, arcname=relative, recursive=False)
                    count += 1
    except OSError as e:
        raise ArchiveError(f"Archiving failed: {e}") from e

    size = archive_path.stat().st_size
    if count == 0 or size == 0:
        raise ArchiveError(f"Created archive is empty: {archive_path}")

    logger.info("Archive created", archive=archive_path.name, files=count, size_bytes=size)
    return archive_path
