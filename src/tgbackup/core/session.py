from __future__ import annotations

import hashlib
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .models import BackupKind, SessionRecord, SessionStatus

logger = logging.getLogger(__name__)


def credentials_fingerprint(bot_token: str) -> str:
    """Stable reference to a bot token that does not reveal the token."""
    return hashlib.sha256(bot_token.encode("utf-8")).hexdigest()[:16]


class SessionStore:
    """Filesystem-backed backup sessions, one JSON record per run.

    Layout:
      <sessions_dir>/<session_id>.json

    Every mutation rewrites the full record before returning, so a unit marked
    completed is durable before the next unit is attempted. Read and write
    failures never propagate: an unreadable record is treated as absent and an
    unwritable one leaves the run without resume support.
    """

    def __init__(self, sessions_dir: Path):
        self.sessions_dir = Path(sessions_dir)

    def _path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def _write(self, record: SessionRecord) -> bool:
        path = self._path(record.id)
        tmp = path.with_name(path.name + ".tmp")
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(record.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp, path)
            return True
        except OSError as e:
            logger.warning(
                "Failed to persist session record",
                extra={"session_id": record.id, "error": str(e)},
            )
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            return False

    def _read(self, path: Path) -> Optional[SessionRecord]:
        try:
            return SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.debug("Ignoring unreadable session record %s: %s", path, e)
            return None

    def create(
        self,
        kind: BackupKind,
        *,
        bot_token: str,
        channel_id: str,
        source_path: str,
        total_units: int,
    ) -> SessionRecord:
        record = SessionRecord(
            id=str(uuid.uuid4()),
            kind=kind,
            credentials_ref=credentials_fingerprint(bot_token),
            channel_id=channel_id,
            source_path=source_path,
            started_at=datetime.now(),
            total_units=total_units,
        )
        self._write(record)
        logger.info(
            "Created backup session",
            extra={"session_id": record.id, "kind": kind.value, "total_units": total_units},
        )
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        path = self._path(session_id)
        if not path.exists():
            return None
        record = self._read(path)
        if record is not None and record.id != session_id:
            return None
        return record

    def mark_completed(self, session_id: str, identity: str) -> bool:
        """Append a delivered unit identity to the session and persist it."""
        record = self.get(session_id)
        if record is None or record.is_terminal:
            return False
        record.completed_units.append(identity)
        return self._write(record)

    def _finish(self, session_id: str, status: SessionStatus) -> bool:
        record = self.get(session_id)
        if record is None or record.is_terminal:
            return False
        record.status = status
        ok = self._write(record)
        if ok:
            logger.info(
                "Backup session finished",
                extra={"session_id": session_id, "status": status.value},
            )
        return ok

    def complete(self, session_id: str) -> bool:
        return self._finish(session_id, SessionStatus.COMPLETED)

    def fail(self, session_id: str) -> bool:
        return self._finish(session_id, SessionStatus.FAILED)

    def find_incomplete(self, kind: Optional[BackupKind] = None) -> List[SessionRecord]:
        """In-progress sessions, most recently started first."""
        out: List[SessionRecord] = []
        if not self.sessions_dir.exists():
            return out
        try:
            paths = sorted(self.sessions_dir.glob("*.json"))
        except OSError:
            return out
        for path in paths:
            record = self._read(path)
            if record is None or record.status is not SessionStatus.IN_PROGRESS:
                continue
            if kind is not None and record.kind is not kind:
                continue
            out.append(record)
        out.sort(key=lambda r: r.started_at, reverse=True)
        return out

    def delete(self, session_id: str) -> None:
        try:
            self._path(session_id).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to delete session %s: %s", session_id, e)
