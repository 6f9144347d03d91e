import time
from datetime import datetime, timedelta, timezone

import pytest

from time_tracker_plus.timestamps import (
    format_editable_timestamp,
    from_unix,
    parse_editable_timestamp,
    parse_instant,
    start_of_day,
    to_iso,
)

EDIT_FMT = "%Y-%m-%d %H:%M:%S"


def test_canonical_encoding():
    dt = datetime(2024, 5, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)
    assert to_iso(dt) == "2024-05-01T09:30:15.123Z"
    assert to_iso(dt.astimezone(timezone(timedelta(hours=2)))) == "2024-05-01T09:30:15.123Z"


def test_parse_instant_variants():
    expected = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    assert parse_instant("2024-05-01T09:30:00.000Z") == expected
    assert parse_instant("2024-05-01T11:30:00+02:00") == expected
    assert parse_instant("2024-05-01T09:30:00") == datetime(2024, 5, 1, 9, 30).astimezone()


def test_from_unix():
    assert from_unix(0) == "1970-01-01T00:00:00.000Z"
    assert from_unix(1700000000) == "2023-11-14T22:13:20.000Z"


def test_editable_round_trip():
    produced = to_iso(datetime(2024, 5, 1, 9, 30, 15).astimezone())
    text = format_editable_timestamp(produced, EDIT_FMT)
    assert text == "2024-05-01 09:30:15"
    assert parse_editable_timestamp(text, EDIT_FMT) == produced


def test_start_of_day_is_local_midnight():
    now = datetime(2024, 5, 1, 15, 45).astimezone()
    sod = start_of_day(now)
    assert (sod.hour, sod.minute, sod.second, sod.microsecond) == (0, 0, 0, 0)
    assert sod.date() == now.date()


@pytest.fixture()
def berlin(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_start_of_day_uses_offset_at_midnight(berlin):
    # clocks went forward at 02:00 local on 2024-03-31
    now = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
    assert start_of_day(now).astimezone(timezone.utc) == datetime(2024, 3, 30, 23, 0, tzinfo=timezone.utc)
