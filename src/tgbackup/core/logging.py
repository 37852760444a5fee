"""
Logging infrastructure for tgbackup.

Process-wide logging goes through the stdlib ``logging`` module. Each backup
run additionally gets an audit trail of JSON lines, one per event, so that a
run can be inspected after the fact:

    <log_dir>/tgbackup-runs/<run_id>/events_YYYY-MM-DD.jsonl
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging for CLI use."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)


class RunLogger:
    """Append-only event log for one backup run."""

    def __init__(self, base_log_dir: Path, run_id: str):
        self.run_id = run_id
        self.run_dir = Path(base_log_dir) / "tgbackup-runs" / run_id
        self._lock = asyncio.Lock()

    def _events_file(self, now: datetime) -> Path:
        return self.run_dir / f"events_{now:%Y-%m-%d}.jsonl"

    async def log_event(
        self,
        event_type: str,
        details: Optional[Dict[str, Any]] = None,
        level: str = "INFO",
    ) -> None:
        """
        Record one run event.

        Args:
            event_type: e.g. "run_started", "unit_uploaded", "run_finished"
            details: JSON-serializable payload
            level: INFO, WARNING or ERROR

        Write failures are reported through ``logging`` and never raised.
        """
        now = datetime.now()
        line = json.dumps(
            {
                "timestamp": now.isoformat(),
                "run_id": self.run_id,
                "level": level,
                "event_type": event_type,
                "details": details or {},
            },
            ensure_ascii=False,
            default=str,
        )
        try:
            self.run_dir.mkdir(parents=True, exist_ok=True)
            async with self._lock:
                async with aiofiles.open(self._events_file(now), "a", encoding="utf-8") as f:
                    await f.write(line + "\n")
        except OSError as e:
            logger.error("Failed to write run log for %s: %s", self.run_id, e)

    async def log_outcome(self, outcome: str, label: str, detail: Optional[str] = None) -> None:
        """Record the outcome of one unit ("uploaded", "skipped" or "failed")."""
        level = {"failed": "ERROR", "skipped": "WARNING"}.get(outcome, "INFO")
        await self.log_event(f"unit_{outcome}", {"label": label, "detail": detail}, level=level)
