from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from .model import Entry, Tracker
from .timestamps import parse_instant, start_of_day, utc_now

_MS = timedelta(milliseconds=1)


def _millis(delta: timedelta) -> int:
    return int(delta / _MS)


def _effective_end(entry: Entry, now: datetime) -> datetime:
    return parse_instant(entry.end_time) if entry.end_time else now


def get_duration(entry: Entry, now: Optional[datetime] = None) -> int:
    """Elapsed milliseconds; a running leaf counts up to ``now``."""
    if entry.is_container:
        return get_total_duration(entry.sub_entries, now)
    if not entry.start_time:
        return 0
    now = now or utc_now()
    return _millis(_effective_end(entry, now) - parse_instant(entry.start_time))


def get_duration_today(entry: Entry, now: Optional[datetime] = None) -> int:
    if entry.is_container:
        return get_total_duration_today(entry.sub_entries, now)
    if not entry.start_time:
        return 0
    now = now or utc_now()
    today = start_of_day(now)
    end = _effective_end(entry, now)
    start = parse_instant(entry.start_time)

    if end < today:
        return 0
    if start < today:
        start = today
    return _millis(end - start)


def get_total_duration(entries: Iterable[Entry], now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    return sum(get_duration(e, now) for e in entries)


def get_total_duration_today(entries: Iterable[Entry], now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    return sum(get_duration_today(e, now) for e in entries)


def get_running_entry(entries: Iterable[Entry]) -> Optional[Entry]:
    # storage order, never display order
    for entry in entries:
        if entry.is_container:
            running = get_running_entry(entry.sub_entries)
            if running:
                return running
        elif not entry.end_time:
            return entry
    return None


def is_running(tracker: Tracker) -> bool:
    return get_running_entry(tracker.entries) is not None


def has_running_entry(scope: Union[Entry, Tracker]) -> bool:
    if isinstance(scope, Tracker):
        return is_running(scope)
    if scope.is_container:
        return get_running_entry(scope.sub_entries) is not None
    return not scope.end_time
