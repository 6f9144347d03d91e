"""Shared builders for tracker tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from time_tracker_plus.model import Entry, EntryKind, Tracker
from time_tracker_plus.sections import tracker_block
from time_tracker_plus.timestamps import to_iso

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return to_iso(dt)


def ago(**kwargs) -> str:
    return to_iso(NOW - timedelta(**kwargs))


def leaf(name: str, start: str, end=None) -> Entry:
    return Entry(name=name, start_time=start, end_time=end)


def container(name: str, *children: Entry) -> Entry:
    return Entry(name=name, kind=EntryKind.CONTAINER, sub_entries=list(children))


def running_tracker() -> Tracker:
    return Tracker(entries=[leaf("Work", ago(hours=1))])


def stopped_tracker() -> Tracker:
    return Tracker(entries=[leaf("Done", ago(hours=2), ago(hours=1))])


def document(*trackers: Tracker, before: str = "# Notes\n\n", after: str = "\nTrailing text\n") -> str:
    return before + "\n".join(tracker_block(t) for t in trackers) + after
