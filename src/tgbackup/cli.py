"""CLI entry point for tgbackup."""

import asyncio
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from .adapters.telegram.api import TelegramBotApi
from .backup import (
    PreparedBackup,
    iter_resume_candidates,
    open_chat_source,
    prepare_chat_backup,
    prepare_file_backup,
    prepare_folder_backup,
    run_backup,
)
from .core.client import TransportClient
from .core.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from .core.exceptions import BackupError
from .core.files import clean_path, format_file_size
from .core.logging import configure_logging
from .core.models import BackupKind, SessionRecord
from .core.progress import BackupResult, ProgressSnapshot
from .core.session import SessionStore
from .core.transport import BackupObserver

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tgbackup",
    help="Back up chat exports, folders and files to a Telegram channel",
    no_args_is_help=True,
)

ConfigOption = Annotated[Path, typer.Option("--config", "-c", help="Path to YAML config file")]
YesOption = Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")]
ResumeOption = Annotated[
    Optional[bool],
    typer.Option("--resume/--fresh", help="Resume the last interrupted run for this source, or start over"),
]
LogLevelOption = Annotated[Optional[str], typer.Option("--log-level", help="Log level (defaults to log_level in the config)")]


class ConsoleObserver(BackupObserver):
    """Prints run events to the terminal."""

    def on_retry(self, label: str, attempt: int, max_attempts: int, wait_seconds: float) -> None:
        typer.secho(f"    ⟳ {label}: retry {attempt}/{max_attempts} in {wait_seconds:g}s...", fg=typer.colors.YELLOW)

    def on_skip(self, label: str, reason: str) -> None:
        typer.secho(f"    ⚠ {label}: {reason}", fg=typer.colors.YELLOW)

    def on_fail(self, label: str, error: str) -> None:
        typer.secho(f"    ✗ {label}: {error}", fg=typer.colors.RED)

    def on_section(self, text: str) -> None:
        typer.secho(f"\n  {text}", fg=typer.colors.CYAN)

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        if snapshot.outcome != "uploaded":
            return
        name = snapshot.label if not snapshot.detail else f"{snapshot.label} ({snapshot.detail})"
        counter = f"[{snapshot.processed}/{snapshot.total}] {snapshot.percent:.1f}% · ETA {snapshot.eta_text}"
        typer.echo(typer.style(f"    ✓ {name}", fg=typer.colors.GREEN) + typer.style(f"  {counter}", dim=True))


def _load(config: Path, log_level: Optional[str]) -> Settings:
    # BOT_TOKEN / CHANNEL_ID may come from a .env in the working directory
    load_dotenv()
    try:
        settings = load_settings(config)
    except BackupError as e:
        typer.secho(f"Error loading configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    configure_logging(log_level or settings.log_level)
    return settings


def _pick_resume(
    store: SessionStore, kind: BackupKind, source: Path, resume: Optional[bool], yes: bool
) -> Optional[SessionRecord]:
    candidates = list(iter_resume_candidates(store, kind, source))
    if not candidates:
        if resume:
            typer.secho("No interrupted run found for this source; starting fresh.", fg=typer.colors.YELLOW)
        return None

    session = candidates[0]
    if resume is None:
        resume = yes or typer.confirm(
            f"Resume run started {session.started_at:%Y-%m-%d %H:%M} "
            f"({len(session.completed_units)} units already uploaded)?",
            default=True,
        )
    if resume:
        typer.echo(f"Resuming: {len(session.completed_units)} units already uploaded")
        return session
    store.delete(session.id)
    return None


def _confirm(prepared: PreparedBackup, settings: Settings, yes: bool) -> bool:
    typer.secho("\n  Backup Summary", bold=True)
    typer.echo(f"  {'Channel:':<18} {settings.channel_id}")
    for key, value in prepared.details.items():
        typer.echo(f"  {key + ':':<18} {value}")

    oversized = prepared.plan.oversized
    if oversized:
        typer.secho(f"\n  ⚠ {len(oversized)} file(s) exceed the 50 MB upload limit and will be skipped:", fg=typer.colors.YELLOW)
        for path, size in oversized:
            typer.secho(f"    - {path.name} ({format_file_size(size)})", dim=True)

    if yes:
        return True
    return typer.confirm(f"\nUpload {prepared.plan.total} items to {settings.channel_id}?", default=True)


def _print_summary(result: BackupResult) -> None:
    color = typer.colors.GREEN if result.success else typer.colors.YELLOW
    typer.secho("\n  ✓ Backup complete" if result.success else "\n  ⚠ Backup finished with failures", fg=color, bold=True)
    typer.echo(
        f"    {result.uploaded} uploaded, {result.failed} failed, {result.skipped} skipped, "
        f"{result.total} total in {result.elapsed_seconds:.0f}s"
    )


def _run(prepared: PreparedBackup, settings: Settings, store: SessionStore, session: Optional[SessionRecord], yes: bool) -> None:
    if session is not None and prepared.plan.total == 0:
        typer.echo("Everything was already uploaded; closing the interrupted run.")
    elif not _confirm(prepared, settings, yes):
        raise typer.Exit(0)
    result = asyncio.run(
        run_backup(
            prepared,
            settings,
            observer=ConsoleObserver(),
            session_store=store,
            resume_session=session,
        )
    )
    _print_summary(result)
    if not result.success:
        raise typer.Exit(2)


def _fail(e: Exception) -> None:
    typer.secho(f"✗ {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


@app.command()
def chat(
    source: Annotated[str, typer.Argument(help="WhatsApp export: .zip, extracted folder or chat .txt")],
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    yes: YesOption = False,
    resume: ResumeOption = None,
    log_level: LogLevelOption = None,
):
    """Back up a WhatsApp chat export, organised by month and day."""
    settings = _load(config, log_level)
    store = SessionStore(settings.sessions_dir)
    path = clean_path(source)
    try:
        session = _pick_resume(store, BackupKind.CHAT, path, resume, yes)
        with ExitStack() as stack:
            chat_dir = open_chat_source(stack, path)
            prepared = prepare_chat_backup(chat_dir, path, session.resume_set() if session else None)
            _run(prepared, settings, store, session, yes)
    except BackupError as e:
        _fail(e)


@app.command()
def folder(
    source: Annotated[str, typer.Argument(help="Folder to upload, subfolders become sections")],
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    yes: YesOption = False,
    resume: ResumeOption = None,
    log_level: LogLevelOption = None,
):
    """Back up every file of a folder tree."""
    settings = _load(config, log_level)
    store = SessionStore(settings.sessions_dir)
    path = clean_path(source)
    try:
        session = _pick_resume(store, BackupKind.FOLDER, path, resume, yes)
        prepared = prepare_folder_backup(path, session.resume_set() if session else None)
        _run(prepared, settings, store, session, yes)
    except BackupError as e:
        _fail(e)


@app.command()
def file(
    source: Annotated[str, typer.Argument(help="File to upload")],
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    yes: YesOption = False,
    log_level: LogLevelOption = None,
):
    """Upload a single file."""
    settings = _load(config, log_level)
    try:
        prepared = prepare_file_backup(clean_path(source))
        _run(prepared, settings, SessionStore(settings.sessions_dir), None, yes)
    except BackupError as e:
        _fail(e)


@app.command()
def sessions(
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    log_level: LogLevelOption = None,
):
    """List interrupted runs that can be resumed."""
    settings = _load(config, log_level)
    records = SessionStore(settings.sessions_dir).find_incomplete()
    if not records:
        typer.echo("No interrupted runs.")
        return
    for r in records:
        typer.echo(
            f"{r.id}  {r.kind.value:<6}  {r.started_at:%Y-%m-%d %H:%M}  "
            f"{len(r.completed_units)}/{r.total_units}  {r.source_path}"
        )


@app.command()
def validate_config(
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    log_level: LogLevelOption = None,
):
    """Validate configuration and check that the bot can reach the channel."""
    settings = _load(config, log_level)

    async def check():
        async with TelegramBotApi(
            settings.bot_token,
            settings.channel_id,
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
        ) as api:
            return await TransportClient(api).validate()

    status = asyncio.run(check())
    if not status["valid"]:
        typer.secho(f"❌ Channel check failed: {status['error']}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.echo("✅ Configuration is valid")
    typer.echo(f"Bot: @{status['bot_username']}")
    typer.echo(f"Channel: {status['chat_title'] or settings.channel_id}")
    typer.echo(f"Sessions directory: {settings.sessions_dir}")
    typer.echo(f"Upload delay: {settings.upload_delay_seconds}s, retries: {settings.retry_attempts}")


if __name__ == "__main__":
    app()
