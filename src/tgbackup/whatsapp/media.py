"""Association of exported WhatsApp media files with chat days."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ..core.dates import date_key
from .parser import MonthGroup

logger = logging.getLogger(__name__)

# IMG-20240115-WA0001.jpg, PTT-20240115-WA0003.opus, ...
MEDIA_PATTERN = re.compile(r"^(IMG|VID|PTT|AUD|DOC|PHOTO)-(\d{8})-WA\d+", re.IGNORECASE)

CHAT_FILE_NAMES = ("_chat.txt", "chat.txt")


def group_media_by_date(directory: Path) -> Dict[str, List[str]]:
    """Map day keys ("YYYY-MM-DD") to the media files dated that day.

    Only the top level of ``directory`` is scanned. Names that do not follow
    the export convention, or carry an impossible date, are ignored. An
    unreadable or missing directory gives an empty mapping.
    """
    media: Dict[str, List[str]] = {}
    try:
        entries = list(Path(directory).iterdir())
    except OSError as e:
        logger.debug("Cannot scan %s for media: %s", directory, e)
        return media

    for entry in entries:
        m = MEDIA_PATTERN.match(entry.name)
        if not m or not entry.is_file():
            continue
        stamp = m.group(2)
        try:
            day = date(int(stamp[:4]), int(stamp[4:6]), int(stamp[6:8]))
        except ValueError:
            continue
        media.setdefault(date_key(day), []).append(str(entry))

    for files in media.values():
        files.sort(key=lambda p: Path(p).name)
    return media


def attach_media(months: Sequence[MonthGroup], media_by_date: Mapping[str, List[str]]) -> List[str]:
    """Populate every day's media list once; returns all attached paths in plan order."""
    attached: List[str] = []
    for month in months:
        for day in month.days:
            day.attach_media(media_by_date.get(day.key, []))
            attached.extend(day.media_files)
    return attached


def find_chat_file(directory: Path) -> Optional[Path]:
    """Locate the chat transcript inside an extracted export."""
    try:
        files = sorted((p for p in Path(directory).iterdir() if p.is_file()), key=lambda p: p.name)
    except OSError:
        return None

    for p in files:
        lower = p.name.lower()
        if lower in CHAT_FILE_NAMES or lower.startswith("whatsapp chat"):
            return p

    txt_files = [p for p in files if p.suffix.lower() == ".txt"]
    if len(txt_files) == 1:
        return txt_files[0]
    return None
