"""Parsing of WhatsApp text exports into dated messages and month/day groups.

Export lines look like any of:

    1/15/2024, 10:30 AM - Alice: Hello
    15.01.24, 22:04 - Bob: Hi
    [15/01/2024, 14:30:00] Alice: First message

The day/month order is not stated anywhere in the file, so it is inferred once
from every message line before any message is dated.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.dates import date_key

logger = logging.getLogger(__name__)

MESSAGE_PATTERN = re.compile(
    r"^\[?(\d{1,4}[/.-]\d{1,2}[/.-]\d{1,4}),?\s+"
    r"(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s*([AaPp][Mm]))?"
    r"\]?\s*[-–]?\s*(.+)"
)
SENDER_PATTERN = re.compile(r"^([^:]+?):\s*(.*)", re.DOTALL)
_DATE_SPLIT = re.compile(r"[/.-]")
# iOS exports prefix some lines with a left-to-right mark
_LEADING_MARKS = "\u200e\u200f\ufeff"


class DateFormat(str, Enum):
    YMD = "YMD"
    DMY = "DMY"
    MDY = "MDY"


@dataclass(frozen=True)
class Message:
    timestamp: datetime
    sender: str
    body: str
    raw_text: str


@dataclass
class DayGroup:
    date: date
    messages: List[Message] = field(default_factory=list)
    media_files: List[str] = field(default_factory=list)
    _media_attached: bool = field(default=False, repr=False, compare=False)

    @property
    def key(self) -> str:
        return date_key(self.date)

    def attach_media(self, paths: Iterable[str]) -> None:
        if self._media_attached:
            raise ValueError(f"Media already attached for {self.key}")
        self.media_files = list(paths)
        self._media_attached = True


@dataclass
class MonthGroup:
    year: int
    month: int
    days: List[DayGroup] = field(default_factory=list)


def _match(line: str) -> Optional[re.Match]:
    return MESSAGE_PATTERN.match(line.lstrip(_LEADING_MARKS))


def _date_parts(token: str) -> Optional[Tuple[int, int, int]]:
    parts = _DATE_SPLIT.split(token)
    if len(parts) != 3:
        return None
    a, b, c = (int(p) for p in parts)
    return a, b, c


def infer_date_format(lines: Iterable[str]) -> DateFormat:
    """Classify the date field order used by an export.

    A leading component above 31 can only be a year. Otherwise the largest
    values seen in the first two positions decide which one holds the day;
    when both exceed 12 day-first wins, and with no evidence month-first is
    assumed.
    """
    max_first = 0
    max_second = 0
    for line in lines:
        m = _match(line)
        if not m:
            continue
        parts = _date_parts(m.group(1))
        if parts is None:
            continue
        a, b, _ = parts
        if a > 31:
            return DateFormat.YMD
        max_first = max(max_first, a)
        max_second = max(max_second, b)

    if max_first > 12 and max_second <= 12:
        return DateFormat.DMY
    if max_second > 12 and max_first <= 12:
        return DateFormat.MDY
    if max_first > 12 and max_second > 12:
        return DateFormat.DMY
    return DateFormat.MDY


def parse_date(token: str, fmt: DateFormat) -> Optional[date]:
    """Parse a date token in the given field order; None if it is not a real date."""
    parts = _date_parts(token)
    if parts is None:
        return None
    a, b, c = parts
    if fmt is DateFormat.YMD:
        year, month, day = a, b, c
    elif fmt is DateFormat.DMY:
        day, month, year = a, b, c
    else:
        month, day, year = a, b, c
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_timestamp(m: re.Match, fmt: DateFormat) -> Optional[datetime]:
    d = parse_date(m.group(1), fmt)
    if d is None:
        return None
    hour, minute = int(m.group(2)), int(m.group(3))
    second = int(m.group(4)) if m.group(4) else 0
    meridiem = (m.group(5) or "").lower()
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem == "pm" else 0)
    try:
        return datetime(d.year, d.month, d.day, hour, minute, second)
    except ValueError:
        return None


def tokenize(lines: Sequence[str], date_format: Optional[DateFormat] = None) -> List[Message]:
    """Split export lines into messages, folding continuation lines into the open one.

    Every line from the first dated message onward ends up in some message's
    ``raw_text``. Lines before it belong to no message and are dropped.
    """
    fmt = date_format or infer_date_format(lines)
    messages: List[Message] = []

    # Open message: (timestamp, sender, body lines, raw lines)
    current: Optional[Tuple[datetime, str, List[str], List[str]]] = None
    orphans = 0

    def close() -> None:
        if current is not None:
            ts, sender, body, raw = current
            messages.append(
                Message(timestamp=ts, sender=sender, body="\n".join(body), raw_text="\n".join(raw))
            )

    for line in lines:
        m = _match(line)
        ts = _parse_timestamp(m, fmt) if m else None
        if ts is None:
            if current is None:
                orphans += 1
            else:
                current[2].append(line)
                current[3].append(line)
            continue

        close()
        rest = m.group(6)
        sender_match = SENDER_PATTERN.match(rest)
        if sender_match:
            current = (ts, sender_match.group(1).strip(), [sender_match.group(2).strip()], [line])
        else:
            current = (ts, "", [rest.strip()], [line])

    close()
    if orphans:
        logger.debug("Dropped %d line(s) preceding the first message", orphans)
    return messages


def read_chat_lines(path: Path) -> List[str]:
    # utf-8-sig drops the BOM some exporters write
    return Path(path).read_text(encoding="utf-8-sig", errors="replace").splitlines()


def parse_chat_file(path: Path, date_format: Optional[DateFormat] = None) -> List[Message]:
    return tokenize(read_chat_lines(path), date_format)


def group_messages_by_month(messages: Iterable[Message]) -> List[MonthGroup]:
    """Bucket messages by calendar month and day, both ascending.

    Messages keep their input order within a day.
    """
    buckets: Dict[Tuple[int, int], Dict[date, List[Message]]] = {}
    for msg in messages:
        ts = msg.timestamp
        buckets.setdefault((ts.year, ts.month), {}).setdefault(ts.date(), []).append(msg)

    months: List[MonthGroup] = []
    for (year, month) in sorted(buckets):
        days = buckets[(year, month)]
        months.append(
            MonthGroup(
                year=year,
                month=month,
                days=[DayGroup(date=d, messages=days[d]) for d in sorted(days)],
            )
        )
    return months


def daily_chat_text(messages: Iterable[Message]) -> str:
    """Reassemble the export text of a set of messages."""
    return "\n".join(m.raw_text for m in messages)
