"""Tests for progress tracking and the date header helpers."""

import sys
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tgbackup.core.dates import (
    format_date_for_filename,
    format_day_header,
    format_month_header,
    ordinal_suffix,
)
from tgbackup.core.progress import ProgressTracker, format_eta


def test_eta_undefined_until_first_completion():
    now = [0.0]
    observer = MagicMock()
    tracker = ProgressTracker(4, observer, clock=lambda: now[0])

    assert tracker.eta_seconds() is None
    assert tracker.snapshot().eta_text == "calculating"

    now[0] = 10.0
    tracker.record_failure("a.jpg", "timeout")
    assert tracker.eta_seconds() is None

    tracker.record_success("b.jpg", "1.0 KB")
    # 10s for one completed unit, two units left
    assert tracker.eta_seconds() == 20.0
    assert tracker.remaining == 2

    snapshot = observer.on_progress.call_args.args[0]
    assert snapshot.outcome == "uploaded"
    assert snapshot.label == "b.jpg"
    assert snapshot.processed == 2
    assert snapshot.percent == 50.0


def test_result_counts():
    tracker = ProgressTracker(3)
    tracker.record_success("a")
    tracker.record_skip("b", "too big")
    result = tracker.result()
    assert result.success
    assert (result.uploaded, result.failed, result.skipped, result.total) == (1, 0, 1, 3)

    tracker.record_failure("c")
    assert not tracker.result().success
    assert tracker.result().to_dict()["failed"] == 1


def test_empty_plan_is_complete():
    tracker = ProgressTracker(0)
    assert tracker.snapshot().percent == 100.0


def test_format_eta():
    assert format_eta(None) == "calculating"
    assert format_eta(42) == "42s"
    assert format_eta(90) == "1m 30s"
    assert format_eta(3720) == "1h 2m"


def test_ordinal_suffix():
    suffixes = {1: "st", 2: "nd", 3: "rd", 4: "th", 11: "th", 12: "th", 13: "th", 21: "st", 22: "nd", 31: "st"}
    for day, suffix in suffixes.items():
        assert ordinal_suffix(day) == suffix


def test_headers_and_filenames():
    d = date(2024, 1, 15)
    assert format_day_header(d) == "🗓️ Monday, 15th January 2024"
    assert "📅 JANUARY 2024" in format_month_header(2024, 1)
    assert "DECEMBER 2023" in format_month_header(2023, 12)
    assert format_date_for_filename(d) == "15-01-2024"
