from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

SESSION_RECORD_VERSION = 1


class BackupKind(str, Enum):
    CHAT = "chat"
    FOLDER = "folder"
    FILE = "file"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionRecord(BaseModel):
    """Durable record of one backup run, used to resume after an interruption."""

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = SESSION_RECORD_VERSION
    id: str
    kind: BackupKind
    credentials_ref: str
    channel_id: str
    source_path: str
    started_at: datetime
    total_units: int = Field(ge=0)
    completed_units: List[str] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return self.status is not SessionStatus.IN_PROGRESS

    def resume_set(self) -> set[str]:
        return set(self.completed_units)
