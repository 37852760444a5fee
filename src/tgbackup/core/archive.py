"""Extraction of export archives into a scratch directory next to the archive."""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)


def extraction_dir(archive_path: Path) -> Path:
    archive_path = Path(archive_path)
    return archive_path.parent / f"_extracted_{archive_path.stem}"


def extract_archive(archive_path: Path) -> Path:
    """Unpack a .zip export and return the directory holding its contents.

    A stale extraction directory is replaced. When the archive wraps everything
    in a single top-level folder, that folder is returned instead.
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise ArchiveError(f"Archive not found: {archive_path}")
    if archive_path.suffix.lower() != ".zip":
        raise ArchiveError(f"Expected a .zip file: {archive_path}")

    target = extraction_dir(archive_path)
    try:
        if target.exists():
            shutil.rmtree(target)
        target.mkdir(parents=True)
    except OSError as e:
        raise ArchiveError(f"Cannot prepare extraction directory {target}: {e.strerror or e}") from e

    try:
        shutil.unpack_archive(str(archive_path), str(target), format="zip")
    except (shutil.ReadError, OSError, ValueError) as e:
        shutil.rmtree(target, ignore_errors=True)
        raise ArchiveError(f"Failed to extract {archive_path.name}: {e}") from e

    entries = [p for p in target.iterdir() if not p.name.startswith("__MACOSX")]
    dirs = [p for p in entries if p.is_dir()]
    files = [p for p in entries if p.is_file()]
    logger.info("Extracted archive", extra={"archive": str(archive_path), "target": str(target)})
    if len(dirs) == 1 and not files:
        return dirs[0]
    return target


def cleanup_extracted(archive_path: Path) -> None:
    """Remove the extraction directory; safe to call when nothing was extracted."""
    target = extraction_dir(archive_path)
    if target.exists():
        shutil.rmtree(target, ignore_errors=True)


@contextmanager
def extracted_archive(archive_path: Path) -> Iterator[Path]:
    try:
        yield extract_archive(archive_path)
    finally:
        cleanup_extracted(archive_path)
