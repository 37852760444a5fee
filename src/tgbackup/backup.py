"""Backup runs: turn a source path into an upload plan and drive it to the channel.

Preparation (parsing, grouping, planning) is separate from the run so that a
caller can show the plan and ask for confirmation before anything is sent.
"""

from __future__ import annotations

import html
import logging
import uuid
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Dict, Iterator, Optional

from .adapters.telegram.api import TelegramBotApi
from .core.archive import extracted_archive
from .core.client import TransportClient
from .core.config import Settings
from .core.exceptions import InputError
from .core.files import build_folder_tree
from .core.logging import RunLogger
from .core.models import BackupKind, SessionRecord
from .core.orchestrator import RunReport, execute_plan
from .core.plan import UploadPlan, build_chat_plan, build_file_plan, build_folder_plan
from .core.progress import BackupResult, ProgressTracker
from .core.session import SessionStore
from .core.transport import BackupObserver, ChannelTransport
from .whatsapp.media import attach_media, find_chat_file, group_media_by_date
from .whatsapp.parser import group_messages_by_month, read_chat_lines, tokenize

logger = logging.getLogger(__name__)


@dataclass
class PreparedBackup:
    """A planned backup waiting to be confirmed and run."""

    kind: BackupKind
    source_path: Path
    plan: UploadPlan
    details: Dict[str, str] = field(default_factory=dict)


def _check_exists(source: Path) -> Path:
    source = Path(source).expanduser()
    if not source.exists():
        raise InputError(f"Path not found: {source}")
    return source


def prepare_chat_backup(chat_dir: Path, source_path: Path, resume: Optional[AbstractSet[str]] = None) -> PreparedBackup:
    """Plan a chat backup from an extracted export directory (or a bare chat .txt)."""
    chat_dir = Path(chat_dir)
    if chat_dir.is_file():
        chat_file: Optional[Path] = chat_dir
        media_dir = chat_dir.parent
    else:
        chat_file = find_chat_file(chat_dir)
        media_dir = chat_dir
    if chat_file is None:
        raise InputError("No chat file found. Expected _chat.txt or a single .txt file.")

    lines = read_chat_lines(chat_file)
    messages = tokenize(lines)
    if not messages:
        raise InputError(f"No messages found in {chat_file.name}")

    months = group_messages_by_month(messages)
    media = attach_media(months, group_media_by_date(media_dir))
    plan = build_chat_plan(months, chat_file.read_bytes(), resume)

    day_count = sum(len(m.days) for m in months)
    details = {
        "Chat": Path(source_path).stem,
        "Messages": f"{len(messages)} across {day_count} days",
        "Media": f"{plan.media_count} of {len(media)}",
        "Months": str(len(months)),
    }
    if plan.resumed:
        details["Already uploaded"] = str(plan.resumed)
    return PreparedBackup(BackupKind.CHAT, Path(source_path), plan, details)


def prepare_folder_backup(folder: Path, resume: Optional[AbstractSet[str]] = None) -> PreparedBackup:
    folder = _check_exists(folder)
    if not folder.is_dir():
        raise InputError(f"Not a folder: {folder}")
    tree = build_folder_tree(folder)
    if not tree:
        raise InputError("No files found in the specified folder.")

    plan = build_folder_plan(folder, resume, tree=tree)
    if plan.total == 0 and not plan.resumed:
        raise InputError("No files to upload.")

    details = {
        "Folder": folder.name,
        "Sections": str(len(tree)),
        "Files": str(plan.total),
    }
    if plan.resumed:
        details["Already uploaded"] = str(plan.resumed)
    return PreparedBackup(BackupKind.FOLDER, folder, plan, details)


def prepare_file_backup(path: Path) -> PreparedBackup:
    path = _check_exists(path)
    if not path.is_file():
        raise InputError(f"Not a file: {path}")
    plan = build_file_plan(path)
    return PreparedBackup(BackupKind.FILE, path, plan, {"File": path.name})


def open_chat_source(stack: ExitStack, source: Path) -> Path:
    """Resolve a chat source to a directory or .txt, extracting archives into ``stack``."""
    source = _check_exists(source)
    if source.is_dir() or source.suffix.lower() == ".txt":
        return source
    if source.suffix.lower() == ".zip":
        return stack.enter_context(extracted_archive(source))
    raise InputError(f"Unsupported chat source (expected .zip, .txt or a folder): {source.name}")


def _folder_index(client: TransportClient, report: RunReport) -> Optional[str]:
    if len(report.anchors) <= 1:
        return None
    lines = [
        f'• <a href="{client.message_link(message_id)}">{html.escape(label, quote=False)}</a>'
        for label, message_id in report.anchors
    ]
    return "📋 <b>Index</b>\n\n" + "\n".join(lines)


async def run_backup(
    prepared: PreparedBackup,
    settings: Settings,
    *,
    observer: Optional[BackupObserver] = None,
    session_store: Optional[SessionStore] = None,
    resume_session: Optional[SessionRecord] = None,
    transport: Optional[ChannelTransport] = None,
    client: Optional[TransportClient] = None,
) -> BackupResult:
    """Validate the channel, then execute the plan with session tracking.

    Chat and folder runs record progress in a session (a new one unless
    ``resume_session`` is given). The session is completed when the plan has
    been walked and failed if an exception escapes, which is then re-raised.
    A resumed session with nothing left to send is completed without
    contacting the channel.
    """
    observer = observer or BackupObserver()
    if resume_session is not None and prepared.plan.total == 0:
        store = session_store or SessionStore(settings.sessions_dir)
        store.complete(resume_session.id)
        logger.info("Nothing left to upload, session closed", extra={"session_id": resume_session.id})
        return ProgressTracker(0, observer).result()

    owned_transport: Optional[TelegramBotApi] = None
    if client is None:
        if transport is None:
            owned_transport = TelegramBotApi(
                settings.bot_token,
                settings.channel_id,
                base_url=settings.api_base_url,
                timeout=settings.request_timeout_seconds,
            )
            transport = owned_transport
        client = TransportClient(
            transport,
            min_interval=settings.upload_delay_seconds,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay_seconds,
            observer=observer,
        )

    try:
        status = await client.validate()
        if not status["valid"]:
            raise InputError(f"Cannot reach channel {settings.channel_id}: {status['error']}")

        plan = prepared.plan
        store = session_store
        session: Optional[SessionRecord] = None
        if prepared.kind is not BackupKind.FILE:
            store = store or SessionStore(settings.sessions_dir)
            session = resume_session or store.create(
                prepared.kind,
                bot_token=settings.bot_token,
                channel_id=settings.channel_id,
                source_path=str(Path(prepared.source_path).resolve()),
                total_units=plan.total,
            )

        run_id = session.id if session is not None else uuid.uuid4().hex
        run_logger = RunLogger(settings.log_dir, run_id)
        await run_logger.log_event(
            "run_started",
            {
                "kind": prepared.kind.value,
                "source_path": str(prepared.source_path),
                "units": len(plan.units),
                "resumed": plan.resumed,
                "oversized": [p.name for p, _ in plan.oversized],
            },
        )

        progress = ProgressTracker(plan.total, observer)
        try:
            report = await execute_plan(
                plan,
                client,
                progress,
                session_store=store,
                session=session,
                run_logger=run_logger,
            )
            if prepared.kind is BackupKind.FOLDER:
                index = _folder_index(client, report)
                if index:
                    await client.send_text(index, "HTML", label="index")
        except Exception as e:
            if session is not None and store is not None:
                store.fail(session.id)
            await run_logger.log_event("run_failed", {"error": f"{type(e).__name__}: {e}"}, level="ERROR")
            raise

        if session is not None and store is not None:
            store.complete(session.id)
        result = progress.result()
        await run_logger.log_event("run_finished", result.to_dict())
        logger.info("Backup finished", extra=result.to_dict())
        return result
    finally:
        if owned_transport is not None:
            await owned_transport.aclose()


def iter_resume_candidates(store: SessionStore, kind: BackupKind, source: Path) -> Iterator[SessionRecord]:
    """Incomplete sessions of ``kind`` for the same source, newest first."""
    target = str(Path(source).expanduser().resolve())
    for record in store.find_incomplete(kind):
        if record.source_path == target:
            yield record
