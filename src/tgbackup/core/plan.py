"""Upload plans: the ordered list of units a backup run sends to the channel."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import AbstractSet, List, Optional, Sequence, Tuple, Union

from .dates import format_date_for_filename, format_day_header, format_month_header
from .exceptions import InputError
from .files import MAX_FILE_SIZE, FolderEntry, build_folder_tree, format_file_size, get_file_size
from ..whatsapp.parser import MonthGroup, daily_chat_text

FULL_CHAT_FILENAME = "Full-Chat.txt"
FULL_CHAT_CAPTION = "📋 Full Chat Backup"


@dataclass(frozen=True)
class ChannelText:
    """A plain message. Headers carry no identity and are always resent."""

    text: str
    parse_mode: Optional[str] = None
    anchor: Optional[str] = None

    @property
    def identity(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class MediaFile:
    """A file on disk. Folder runs key it by its path below the root, chat runs by name."""

    path: Path
    size_bytes: int
    caption: Optional[str] = None
    key: Optional[str] = None

    @property
    def identity(self) -> str:
        return self.key or self.path.name


@dataclass(frozen=True)
class SyntheticDocument:
    data: bytes = field(repr=False)
    filename: str = ""
    caption: Optional[str] = None

    @property
    def identity(self) -> str:
        return self.filename


UploadUnit = Union[ChannelText, MediaFile, SyntheticDocument]


@dataclass
class UploadPlan:
    units: List[UploadUnit] = field(default_factory=list)
    # (path, size); synthetic documents are listed under their filename
    oversized: List[Tuple[Path, int]] = field(default_factory=list)
    resumed: int = 0

    @property
    def resumable_units(self) -> List[UploadUnit]:
        return [u for u in self.units if u.identity is not None]

    @property
    def total(self) -> int:
        """Units counted by progress tracking (headers excluded)."""
        return len(self.resumable_units)

    @property
    def media_count(self) -> int:
        return sum(1 for u in self.units if isinstance(u, MediaFile))

    def add(self, unit: UploadUnit, resume: Optional[AbstractSet[str]]) -> None:
        if resume and unit.identity is not None and unit.identity in resume:
            self.resumed += 1
            return
        self.units.append(unit)


def _split_media(
    paths: Sequence[Union[str, Path]], max_file_size: int, plan: UploadPlan
) -> List[MediaFile]:
    out: List[MediaFile] = []
    for raw in paths:
        p = Path(raw)
        size = get_file_size(p)
        if size > max_file_size:
            plan.oversized.append((p, size))
        else:
            out.append(MediaFile(path=p, size_bytes=size))
    return out


def _add_document(
    plan: UploadPlan, doc: SyntheticDocument, max_file_size: int, resume: Optional[AbstractSet[str]]
) -> None:
    if len(doc.data) > max_file_size:
        plan.oversized.append((Path(doc.filename), len(doc.data)))
        return
    plan.add(doc, resume)


def build_chat_plan(
    months: Sequence[MonthGroup],
    full_chat: bytes,
    resume: Optional[AbstractSet[str]] = None,
    max_file_size: int = MAX_FILE_SIZE,
) -> UploadPlan:
    """Lay out a chat backup: month header, then per day a header, its media and its transcript.

    The complete export text goes last. Oversize media and transcripts are listed in
    ``plan.oversized`` instead of being planned; units already in ``resume``
    are dropped, headers excepted.
    """
    plan = UploadPlan()
    for month in months:
        plan.add(ChannelText(format_month_header(month.year, month.month)), resume)
        for day in month.days:
            plan.add(ChannelText(format_day_header(day.date)), resume)
            for media in _split_media(day.media_files, max_file_size, plan):
                plan.add(media, resume)
            filename = f"Chat-{format_date_for_filename(day.date)}.txt"
            _add_document(
                plan,
                SyntheticDocument(
                    data=daily_chat_text(day.messages).encode("utf-8"),
                    filename=filename,
                    caption=f"📝 {filename}",
                ),
                max_file_size,
                resume,
            )
    _add_document(
        plan,
        SyntheticDocument(data=full_chat, filename=FULL_CHAT_FILENAME, caption=FULL_CHAT_CAPTION),
        max_file_size,
        resume,
    )
    return plan


def build_folder_plan(
    root: Path,
    resume: Optional[AbstractSet[str]] = None,
    max_file_size: int = MAX_FILE_SIZE,
    tree: Optional[List[FolderEntry]] = None,
) -> UploadPlan:
    """Lay out a folder backup: an intro, then one anchored header per section and its files."""
    root = Path(root)
    tree = build_folder_tree(root) if tree is None else tree
    plan = UploadPlan()

    sections: List[Tuple[FolderEntry, List[MediaFile]]] = []
    for entry in tree:
        files = _split_media(entry.files, max_file_size, plan)
        if files:
            sections.append((entry, files))

    file_count = sum(len(files) for _, files in sections)
    plan.units.append(
        ChannelText(f"📁 Folder Backup: {root.name}\n{file_count} files across {len(sections)} sections")
    )
    for entry, files in sections:
        plan.add(ChannelText(f"📂 {entry.relative_path}", anchor=entry.relative_path), resume)
        for media in files:
            key = media.path.relative_to(root).as_posix()
            plan.add(replace(media, key=key), resume)
    return plan


def build_file_plan(path: Path, max_file_size: int = MAX_FILE_SIZE) -> UploadPlan:
    path = Path(path)
    size = get_file_size(path)
    if size > max_file_size:
        raise InputError(
            f"File exceeds {format_file_size(max_file_size)} limit: {path.name} ({format_file_size(size)})"
        )
    return UploadPlan(units=[MediaFile(path=path, size_bytes=size)])
