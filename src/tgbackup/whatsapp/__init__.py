"""WhatsApp chat export parsing and media matching."""

from .media import attach_media, find_chat_file, group_media_by_date
from .parser import (
    DateFormat,
    DayGroup,
    Message,
    MonthGroup,
    group_messages_by_month,
    parse_chat_file,
    tokenize,
)

__all__ = [
    "attach_media",
    "find_chat_file",
    "group_media_by_date",
    "DateFormat",
    "DayGroup",
    "Message",
    "MonthGroup",
    "group_messages_by_month",
    "parse_chat_file",
    "tokenize",
]
