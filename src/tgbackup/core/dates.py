"""Header text and date keys used to lay out a chat backup in the channel."""

from __future__ import annotations

from datetime import date

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

HEADER_RULE = "━━━━━━━━━━━━━━"


def ordinal_suffix(day: int) -> str:
    if 11 <= day <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def month_name(month: int) -> str:
    """Full English name for a 1-based month number."""
    return MONTH_NAMES[month - 1]


def format_month_header(year: int, month: int) -> str:
    return f"{HEADER_RULE}\n📅 {month_name(month).upper()} {year}\n{HEADER_RULE}"


def format_day_header(d: date) -> str:
    # e.g. "🗓️ Monday, 15th January 2024"
    return (
        f"🗓️ {DAY_NAMES[d.weekday()]}, {d.day}{ordinal_suffix(d.day)} "
        f"{month_name(d.month)} {d.year}"
    )


def format_date_for_filename(d: date) -> str:
    return f"{d.day:02d}-{d.month:02d}-{d.year}"


def date_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}-{d.day:02d}"
