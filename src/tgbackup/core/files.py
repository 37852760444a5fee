"""Filesystem helpers: the upload size ceiling, media type dispatch and folder walking."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .exceptions import InputError

# Telegram Bot API upload limit
MAX_FILE_SIZE = 50 * 1024 * 1024

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"}
VIDEO_EXTENSIONS = {".mp4", ".mkv", ".avi", ".mov", ".3gp", ".wmv"}

PHOTO = "photo"
VIDEO = "video"
DOCUMENT = "document"


def get_media_type(path: Path | str) -> str:
    """Return "photo", "video" or "document" based on the file extension."""
    ext = Path(path).suffix.lower()
    if ext in IMAGE_EXTENSIONS:
        return PHOTO
    if ext in VIDEO_EXTENSIONS:
        return VIDEO
    return DOCUMENT


def get_file_size(path: Path | str) -> int:
    return Path(path).stat().st_size


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.1f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.1f} MB"
    return f"{size / 1024 ** 3:.1f} GB"


def clean_path(raw: str) -> Path:
    """Normalize a path typed or dragged into a terminal (quotes, escaped spaces, ~)."""
    cleaned = raw.replace("'", "").replace('"', "").replace("\\ ", " ").strip()
    return Path(os.path.expanduser(cleaned))


@dataclass
class FolderEntry:
    relative_path: str
    files: List[Path] = field(default_factory=list)


def build_folder_tree(root: Path) -> List[FolderEntry]:
    """Walk root depth-first; one entry per directory that directly holds files.

    Files and subdirectories are visited in name order. The root itself is
    labelled with its own name.
    """
    root = Path(root)
    entries: List[FolderEntry] = []

    def walk(directory: Path) -> None:
        try:
            items = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise InputError(f"Cannot read folder {directory}: {e.strerror or e}") from e
        files = [p for p in items if p.is_file()]
        dirs = [p for p in items if p.is_dir()]
        rel = directory.relative_to(root).as_posix()
        if files:
            entries.append(FolderEntry(relative_path=root.name if rel == "." else rel, files=files))
        for d in dirs:
            walk(d)

    walk(root)
    return entries
