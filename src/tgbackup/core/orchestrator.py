"""Sequential execution of an upload plan."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .client import TransportClient
from .files import format_file_size
from .logging import RunLogger
from .models import SessionRecord
from .plan import ChannelText, MediaFile, SyntheticDocument, UploadPlan, UploadUnit
from .progress import ProgressTracker
from .session import SessionStore
from .transport import DeliveryResult

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    # (anchor label, message id) of delivered anchored headers, in plan order
    anchors: List[Tuple[str, int]] = field(default_factory=list)
    header_failures: int = 0


async def _send(client: TransportClient, unit: UploadUnit) -> DeliveryResult:
    if isinstance(unit, ChannelText):
        return await client.send_text(unit.text, unit.parse_mode, label=unit.anchor or "header")
    if isinstance(unit, MediaFile):
        return await client.send_file(unit.path, unit.caption)
    if isinstance(unit, SyntheticDocument):
        return await client.send_document_bytes(unit.data, unit.filename, unit.caption)
    raise TypeError(f"Unknown upload unit: {unit!r}")


async def execute_plan(
    plan: UploadPlan,
    client: TransportClient,
    progress: ProgressTracker,
    *,
    session_store: Optional[SessionStore] = None,
    session: Optional[SessionRecord] = None,
    run_logger: Optional[RunLogger] = None,
) -> RunReport:
    """Send every unit in order, one at a time.

    A delivered unit is recorded in the session before the next unit starts.
    A unit that fails after its retries is counted and the run moves on.
    Exceptions other than transport failures propagate to the caller.
    """
    report = RunReport()

    for unit in plan.units:
        if isinstance(unit, ChannelText):
            client.observer.on_section(unit.text)
            result = await _send(client, unit)
            if result.success:
                if unit.anchor is not None and result.message_id is not None:
                    report.anchors.append((unit.anchor, result.message_id))
            else:
                report.header_failures += 1
                logger.warning("Header not delivered", extra=result.to_dict())
            continue

        result = await _send(client, unit)
        identity = unit.identity

        if result.success:
            if session_store is not None and session is not None:
                session_store.mark_completed(session.id, identity)
            detail = format_file_size(unit.size_bytes) if isinstance(unit, MediaFile) else None
            progress.record_success(identity, detail)
            outcome, info = "uploaded", detail
        elif result.skipped:
            progress.record_skip(identity, result.error)
            outcome, info = "skipped", result.error
        else:
            progress.record_failure(identity, result.error)
            outcome, info = "failed", result.error

        if run_logger is not None:
            await run_logger.log_outcome(outcome, identity, info)

    return report
