"""Tests for the tgbackup command line."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tgbackup.cli import app
from tgbackup.core.models import BackupKind
from tgbackup.core.progress import BackupResult
from tgbackup.core.session import SessionStore

runner = CliRunner()


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv("BOT_TOKEN", raising=False)
    monkeypatch.delenv("CHANNEL_ID", raising=False)
    path = tmp_path / "tgbackup.yaml"
    path.write_text(
        "bot_token: '123:abc'\n"
        "channel_id: '-100123'\n"
        f"state_dir: '{tmp_path / 'state'}'\n"
    )
    return path


def test_missing_config_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.delenv("BOT_TOKEN", raising=False)
    monkeypatch.delenv("CHANNEL_ID", raising=False)

    result = runner.invoke(app, ["sessions", "--config", str(tmp_path / "none.yaml")])

    assert result.exit_code == 1


def test_sessions_lists_interrupted_runs(config, tmp_path):
    store = SessionStore(tmp_path / "state" / "sessions")
    session = store.create(
        BackupKind.FOLDER,
        bot_token="123:abc",
        channel_id="-100123",
        source_path="/data/photos",
        total_units=5,
    )
    store.mark_completed(session.id, "a.jpg")

    result = runner.invoke(app, ["sessions", "-c", str(config)])

    assert result.exit_code == 0
    assert session.id in result.output
    assert "1/5" in result.output
    assert "/data/photos" in result.output


def test_sessions_empty(config):
    result = runner.invoke(app, ["sessions", "-c", str(config)])
    assert result.exit_code == 0
    assert "No interrupted runs" in result.output


def test_file_command_runs_backup(config, tmp_path):
    doc = tmp_path / "report.pdf"
    doc.write_bytes(b"pdf")
    finished = BackupResult(success=True, uploaded=1, failed=0, skipped=0, total=1, elapsed_seconds=0.5)

    with patch("tgbackup.cli.run_backup", return_value=finished) as run:
        result = runner.invoke(app, ["file", str(doc), "-c", str(config), "--yes"])

    assert result.exit_code == 0, result.output
    prepared = run.call_args.args[0]
    assert prepared.kind is BackupKind.FILE
    assert "Backup complete" in result.output


def test_declined_confirmation_uploads_nothing(config, tmp_path):
    doc = tmp_path / "report.pdf"
    doc.write_bytes(b"pdf")

    with patch("tgbackup.cli.run_backup") as run:
        result = runner.invoke(app, ["file", str(doc), "-c", str(config)], input="n\n")

    assert result.exit_code == 0
    run.assert_not_called()


def test_bad_source_is_reported(config, tmp_path):
    result = runner.invoke(app, ["folder", str(tmp_path / "missing"), "-c", str(config), "--fresh"])
    assert result.exit_code == 1


def test_unreadable_folder_is_reported(config, tmp_path, monkeypatch):
    root = tmp_path / "photos"
    root.mkdir()
    (root / "a.jpg").write_bytes(b"jpg")

    def iterdir(self):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "iterdir", iterdir)

    result = runner.invoke(app, ["folder", str(root), "-c", str(config), "--fresh"])

    assert result.exit_code == 1
    assert "Permission denied" in result.output


def test_resume_with_nothing_left_closes_session(config, tmp_path):
    root = tmp_path / "photos"
    (root / "2023").mkdir(parents=True)
    (root / "2023" / "a.jpg").write_bytes(b"jpg")
    store = SessionStore(tmp_path / "state" / "sessions")
    session = store.create(
        BackupKind.FOLDER,
        bot_token="123:abc",
        channel_id="-100123",
        source_path=str(root.resolve()),
        total_units=1,
    )
    store.mark_completed(session.id, "2023/a.jpg")

    result = runner.invoke(app, ["folder", str(root), "-c", str(config), "--resume"])

    assert result.exit_code == 0, result.output
    assert "Everything was already uploaded" in result.output
    assert store.find_incomplete() == []
