from dataclasses import replace

from helpers import NOW, ago, container, leaf
from time_tracker_plus.formatting import (
    create_csv,
    create_markdown_table,
    create_table,
    format_duration,
    parse_target_time,
    progress,
    progress_text,
)
from time_tracker_plus.model import Tracker
from time_tracker_plus.settings import DEFAULT_SETTINGS
from time_tracker_plus.timestamps import format_timestamp

SECOND = 1000
HOUR = 3600 * SECOND
DAY = 24 * HOUR


def test_parse_target_time():
    assert parse_target_time("1h30m") == 5400000
    assert parse_target_time("2d5h") == (2 * 24 + 5) * HOUR
    assert parse_target_time("1y1M") == (365 + 30) * DAY
    assert parse_target_time("45s") == 45 * SECOND
    assert parse_target_time("1y2M3d4h5m6s") == (365 + 60 + 3) * DAY + 4 * HOUR + 5 * 60 * SECOND + 6 * SECOND


def test_unreadable_target_time_is_zero():
    for value in (None, "", "soon", "h2", "m30h1"):
        assert parse_target_time(value) == 0


def test_format_duration_default():
    assert format_duration(0) == "0s"
    assert format_duration(5400000) == "1h 30m 0s"
    assert format_duration(DAY + HOUR + 61 * SECOND) == "1d 1h 1m 1s"


def test_format_duration_coarse_rolls_days_into_hours():
    settings = replace(DEFAULT_SETTINGS, fine_grained_durations=False)
    assert format_duration(DAY + HOUR + 61 * SECOND, settings) == "25h 1m 1s"


def test_format_duration_months_and_years():
    assert format_duration(31 * DAY) == "1M 0s"
    assert format_duration(400 * DAY) == "1y 1M 4d 0s"


def test_format_duration_timestamp_style():
    stamp = replace(DEFAULT_SETTINGS, timestamp_durations=True)
    assert format_duration(3723 * SECOND, stamp) == "01:02:03"
    assert format_duration(DAY + HOUR + 61 * SECOND, stamp) == "1.01:01:01"

    coarse = replace(stamp, fine_grained_durations=False)
    assert format_duration(DAY + HOUR + 61 * SECOND, coarse) == "25:01:01"


def test_progress_bands():
    def at(minutes):
        tracker = Tracker(entries=[leaf("a", ago(minutes=minutes), ago(minutes=0))], target_time="1h40m")
        return progress(tracker, NOW)

    assert at(50).color == "green"
    assert at(70).color == "yellow"
    assert at(85).color == "orange"
    assert at(100).color == "red"
    assert at(150).display_percentage == 100.0
    assert at(50).percentage == 50.0


def test_progress_disabled_without_target():
    assert progress(Tracker(entries=[leaf("a", ago(hours=1))]), NOW) is None
    assert progress(Tracker(target_time="later"), NOW) is None


def test_progress_text():
    tracker = Tracker(entries=[leaf("a", ago(minutes=30))], target_time="1h")
    prog = progress(tracker, NOW)
    assert prog.running
    assert progress_text(tracker, prog) == "30m 0s / 1h (50.0%) ● RUNNING"


def test_table_rows_indent_children_and_blank_running_duration():
    tracker = Tracker(entries=[
        container("Work", leaf("Part 1", ago(hours=2), ago(hours=1)), leaf("Part 2", ago(minutes=30))),
    ])
    rows = create_table(tracker, now=NOW)
    fmt = DEFAULT_SETTINGS.timestamp_format

    assert rows[0] == [" Work", "", "", "1h 30m 0s"]
    assert rows[1] == ["- Part 1", format_timestamp(ago(hours=2), fmt), format_timestamp(ago(hours=1), fmt), "1h 0s"]
    assert rows[2] == ["- Part 2", format_timestamp(ago(minutes=30), fmt), "", ""]


def test_table_honours_reverse_order():
    tracker = Tracker(entries=[leaf("first", ago(hours=2), ago(hours=1)), leaf("second", ago(hours=1), ago(minutes=1))])
    rows = create_table(tracker, replace(DEFAULT_SETTINGS, reverse_segment_order=True), now=NOW)
    assert [r[0] for r in rows] == [" second", " first"]


def test_csv_uses_configured_delimiter():
    tracker = Tracker(entries=[leaf("a; b", ago(hours=2), ago(hours=1))])
    text = create_csv(tracker, replace(DEFAULT_SETTINGS, csv_delimiter=";"), now=NOW)
    lines = text.splitlines()

    assert lines[0] == "Segment;Start time;End time;Duration"
    assert lines[1].startswith('" a; b";')
    assert lines[1].endswith(";1h 0s")


def test_markdown_table_has_separator_and_total():
    tracker = Tracker(entries=[leaf("a", ago(hours=2), ago(hours=1)), leaf("b", ago(minutes=30), ago(minutes=0))])
    lines = create_markdown_table(tracker, now=NOW).splitlines()

    assert lines[0].startswith("| Segment")
    assert set(lines[1].replace("|", "").replace(" ", "")) == {"-"}
    assert lines[-1].startswith("| **Total**")
    assert lines[-1].rstrip(" |").endswith("**1h 30m 0s**")
    assert len({len(line) for line in lines}) == 1
