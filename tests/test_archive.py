"""Tests for export archive extraction."""

import sys
import zipfile
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tgbackup.core.archive import (
    cleanup_extracted,
    extract_archive,
    extracted_archive,
    extraction_dir,
)
from tgbackup.core.exceptions import ArchiveError, InputError


def _zip(path: Path, members: dict) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def test_flat_archive_extracts_into_scratch_dir(tmp_path):
    archive = _zip(tmp_path / "Chat.zip", {"_chat.txt": "x", "IMG-20240115-WA0001.jpg": "y"})

    target = extract_archive(archive)

    assert target == extraction_dir(archive) == tmp_path / "_extracted_Chat"
    assert sorted(p.name for p in target.iterdir()) == ["IMG-20240115-WA0001.jpg", "_chat.txt"]


def test_single_wrapping_folder_is_unwrapped(tmp_path):
    archive = _zip(
        tmp_path / "Chat.zip",
        {"Chat/_chat.txt": "x", "__MACOSX/Chat/._chat.txt": "junk"},
    )

    target = extract_archive(archive)

    assert target.name == "Chat"
    assert (target / "_chat.txt").read_text() == "x"


def test_stale_extraction_is_replaced(tmp_path):
    archive = _zip(tmp_path / "Chat.zip", {"_chat.txt": "new"})
    stale = extraction_dir(archive)
    stale.mkdir()
    (stale / "old.txt").write_text("old")

    target = extract_archive(archive)

    assert not (target / "old.txt").exists()


def test_corrupt_archive(tmp_path):
    archive = tmp_path / "Chat.zip"
    archive.write_bytes(b"this is not a zip")

    with pytest.raises(ArchiveError):
        extract_archive(archive)
    assert not extraction_dir(archive).exists()


def test_archive_errors_are_input_errors(tmp_path):
    with pytest.raises(InputError):
        extract_archive(tmp_path / "missing.zip")
    with pytest.raises(ArchiveError):
        extract_archive(_zip(tmp_path / "Chat.tar", {"a": "b"}))


def test_blocked_extraction_dir_is_archive_error(tmp_path):
    archive = _zip(tmp_path / "Chat.zip", {"_chat.txt": "x"})
    # A plain file sits where the scratch directory should go
    extraction_dir(archive).write_text("not a directory")

    with pytest.raises(ArchiveError, match="extraction directory"):
        extract_archive(archive)


def test_read_only_location_is_archive_error(tmp_path, monkeypatch):
    archive = _zip(tmp_path / "Chat.zip", {"_chat.txt": "x"})

    def mkdir(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "mkdir", mkdir)

    with pytest.raises(ArchiveError, match="Permission denied"):
        extract_archive(archive)


def test_context_manager_cleans_up_on_error(tmp_path):
    archive = _zip(tmp_path / "Chat.zip", {"_chat.txt": "x"})

    with pytest.raises(RuntimeError):
        with extracted_archive(archive) as target:
            assert target.exists()
            raise RuntimeError("interrupted")

    assert not extraction_dir(archive).exists()
    cleanup_extracted(archive)
