"""Tests for WhatsApp export parsing and grouping."""

import random
import sys
from datetime import date, datetime
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tgbackup.whatsapp.parser import (
    DateFormat,
    daily_chat_text,
    group_messages_by_month,
    infer_date_format,
    parse_chat_file,
    parse_date,
    tokenize,
)


US_EXPORT = [
    "1/15/2024, 10:30 AM - Alice: Hello",
    "1/15/2024, 10:31 AM - Bob: Hi",
    "how are you?",
    "1/16/2024, 9:02 PM - Alice: Fine",
    "2/1/2024, 12:05 AM - Bob: <Media omitted>",
]


def test_infer_day_first():
    lines = ["3/4/2024, 10:00 - A: x", "25/4/2024, 10:00 - A: y"]
    assert infer_date_format(lines) is DateFormat.DMY


def test_infer_month_first():
    lines = ["3/4/2024, 10:00 - A: x", "4/25/2024, 10:00 - A: y"]
    assert infer_date_format(lines) is DateFormat.MDY


def test_infer_year_first_wins_over_everything():
    lines = ["25/4/2024, 10:00 - A: x", "2024-04-25, 10:00 - A: y"]
    assert infer_date_format(lines) is DateFormat.YMD


def test_infer_ambiguous_defaults_to_month_first():
    assert infer_date_format(["3/4/2024, 10:00 - A: x"]) is DateFormat.MDY
    assert infer_date_format(["not a message"]) is DateFormat.MDY
    assert infer_date_format([]) is DateFormat.MDY


def test_infer_both_positions_over_twelve_is_day_first():
    lines = ["13/4/2024, 10:00 - A: x", "4/25/2024, 10:00 - A: y"]
    assert infer_date_format(lines) is DateFormat.DMY


def test_inference_ignores_line_order():
    lines = [
        "3/4/2024, 10:00 - A: x",
        "body line 13/99",
        "20/4/2024, 10:00 - A: y",
        "5/6/2024, 10:00 - A: z",
    ]
    expected = infer_date_format(lines)
    for seed in range(5):
        shuffled = lines[:]
        random.Random(seed).shuffle(shuffled)
        assert infer_date_format(shuffled) is expected


def test_parse_date_two_digit_year_and_invalid_dates():
    assert parse_date("15.01.24", DateFormat.DMY) == date(2024, 1, 15)
    assert parse_date("2/30/2024", DateFormat.MDY) is None
    assert parse_date("2024-13-01", DateFormat.YMD) is None


def test_two_messages_one_day():
    messages = tokenize([
        "1/15/2024, 10:30 AM - Alice: Hello",
        "1/15/2024, 10:31 AM - Bob: Hi",
    ])
    assert len(messages) == 2
    assert messages[0].sender == "Alice"
    assert messages[0].body == "Hello"
    assert messages[1].timestamp == datetime(2024, 1, 15, 10, 31)

    months = group_messages_by_month(messages)
    assert len(months) == 1
    assert (months[0].year, months[0].month) == (2024, 1)
    assert len(months[0].days) == 1
    assert len(months[0].days[0].messages) == 2


def test_continuation_lines_join_the_open_message():
    messages = tokenize(US_EXPORT)
    bob = messages[1]
    assert bob.body == "Hi\nhow are you?"
    assert bob.raw_text == "1/15/2024, 10:31 AM - Bob: Hi\nhow are you?"


def test_twelve_hour_clock():
    messages = tokenize(US_EXPORT)
    assert messages[2].timestamp == datetime(2024, 1, 16, 21, 2)
    assert messages[3].timestamp == datetime(2024, 2, 1, 0, 5)


def test_bracket_format_with_seconds():
    messages = tokenize([
        "[15/01/2024, 14:30:00] Alice: First message",
        "[15/01/2024, 14:31:05] Bob: Second",
    ])
    assert [m.sender for m in messages] == ["Alice", "Bob"]
    assert messages[1].timestamp == datetime(2024, 1, 15, 14, 31, 5)


def test_leading_direction_mark_is_ignored():
    messages = tokenize(["\u200e[15/01/2024, 14:30:00] Alice: \u200eimage omitted"])
    assert len(messages) == 1
    assert messages[0].sender == "Alice"


def test_system_message_has_empty_sender():
    messages = tokenize(["1/15/2024, 10:30 AM - Messages are end-to-end encrypted."])
    assert messages[0].sender == ""
    assert messages[0].body == "Messages are end-to-end encrypted."


def test_impossible_date_is_continuation():
    messages = tokenize([
        "1/15/2024, 10:30 AM - Alice: Hello",
        "2/30/2024, 10:31 AM - Bob: not a date",
    ])
    assert len(messages) == 1
    assert messages[0].body.endswith("2/30/2024, 10:31 AM - Bob: not a date")


def test_lines_before_first_message_are_dropped():
    messages = tokenize(["stray header", "1/15/2024, 10:30 AM - Alice: Hello"])
    assert len(messages) == 1
    assert messages[0].raw_text == "1/15/2024, 10:30 AM - Alice: Hello"


def test_only_leading_lines_are_dropped():
    lines = ["stray header", "", *US_EXPORT]
    messages = tokenize(lines)
    assert "\n".join(m.raw_text for m in messages) == "\n".join(lines[2:])


def test_no_line_is_lost():
    """Every line from the first message onward survives in raw_text.

    Lines ahead of the first message are the one exception, see
    test_lines_before_first_message_are_dropped.
    """
    messages = tokenize(US_EXPORT)
    assert "\n".join(m.raw_text for m in messages) == "\n".join(US_EXPORT)


def test_daily_text_reparses_to_same_messages():
    fmt = infer_date_format(US_EXPORT)
    for month in group_messages_by_month(tokenize(US_EXPORT, fmt)):
        for day in month.days:
            text = daily_chat_text(day.messages)
            assert tokenize(text.splitlines(), fmt) == day.messages


def test_grouping_sorts_shuffled_input():
    messages = tokenize(US_EXPORT)
    shuffled = messages[:]
    random.Random(7).shuffle(shuffled)

    months = group_messages_by_month(shuffled)
    assert [(m.year, m.month) for m in months] == [(2024, 1), (2024, 2)]
    days = [d.date for d in months[0].days]
    assert days == sorted(days)
    assert days == [date(2024, 1, 15), date(2024, 1, 16)]


def test_grouping_keeps_input_order_within_a_day():
    messages = tokenize([
        "1/15/2024, 10:31 AM - Bob: second",
        "1/15/2024, 10:30 AM - Alice: first",
    ])
    day = group_messages_by_month(messages)[0].days[0]
    assert [m.sender for m in day.messages] == ["Bob", "Alice"]


def test_parse_chat_file_strips_bom(tmp_path):
    chat = tmp_path / "_chat.txt"
    chat.write_text("\ufeff15/01/2024, 22:04 - Bob: Hi\n", encoding="utf-8")
    messages = parse_chat_file(chat)
    assert len(messages) == 1
    assert messages[0].timestamp == datetime(2024, 1, 15, 22, 4)
