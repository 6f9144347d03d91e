"""Mutators over a tracker's entry tree.

A leaf goes Idle -> Running -> Stopped and never reopens: continuing a
stopped segment appends a new running leaf instead.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence, Union

from .durations import get_running_entry, has_running_entry
from .model import Entry, EntryKind, Tracker
from .timestamps import now_iso, parse_editable_timestamp


def start_new_entry(tracker: Tracker, name: str = "", now: Optional[datetime] = None) -> Entry:
    if not name:
        name = f"Segment {len(tracker.entries) + 1}"
    entry = Entry(name=name, start_time=now_iso(now), end_time=None)
    tracker.entries.append(entry)
    return entry


def start_sub_entry(entry: Entry, name: str = "", now: Optional[datetime] = None) -> Entry:
    if entry.is_leaf:
        entry.split()

    if not name:
        name = f"Part {len(entry.sub_entries) + 1}"
    sub = Entry(name=name, start_time=now_iso(now), end_time=None)
    entry.sub_entries.append(sub)
    return sub


def stop_running(scope: Union[Tracker, Entry, List[Entry]], now: Optional[datetime] = None) -> Optional[Entry]:
    """Close the running leaf inside ``scope``. Returns it, or None."""
    if isinstance(scope, Tracker):
        running = get_running_entry(scope.entries)
    elif isinstance(scope, Entry):
        if scope.is_container:
            running = get_running_entry(scope.sub_entries)
        else:
            running = scope if not scope.end_time else None
    else:
        running = get_running_entry(scope)

    if running is None:
        return None
    running.end_time = now_iso(now)
    return running


def remove_entry(entries: List[Entry], entry_id: str) -> bool:
    """Remove the entry with ``entry_id`` wherever it lives in the tree.

    A container left with a single child adopts that child's times and
    becomes a leaf again. Removing the running leaf is the caller's problem.
    """
    for i, entry in enumerate(entries):
        if entry.id == entry_id:
            del entries[i]
            return True

    for entry in entries:
        if entry.is_container and remove_entry(entry.sub_entries, entry_id):
            if len(entry.sub_entries) == 1:
                entry.flatten()
            return True
    return False


def find_entry(entries: Sequence[Entry], entry_id: str) -> Optional[Entry]:
    for entry in entries:
        if entry.id == entry_id:
            return entry
        found = find_entry(entry.sub_entries, entry_id)
        if found:
            return found
    return None


def entry_path(entries: Sequence[Entry], entry_id: str) -> Optional[str]:
    """Dotted 1-based position of an entry, e.g. ``"2.1"``."""
    for i, entry in enumerate(entries, start=1):
        if entry.id == entry_id:
            return str(i)
        sub = entry_path(entry.sub_entries, entry_id)
        if sub:
            return f"{i}.{sub}"
    return None


def entry_at(entries: Sequence[Entry], path: str) -> Optional[Entry]:
    """Resolve a dotted 1-based position produced by :func:`entry_path`."""
    current: Sequence[Entry] = entries
    found: Optional[Entry] = None
    for part in path.strip().split("."):
        try:
            index = int(part) - 1
        except ValueError:
            return None
        if index < 0 or index >= len(current):
            return None
        found = current[index]
        current = found.sub_entries
    return found


def ordered_entries(entries: List[Entry], reverse: bool = False) -> List[Entry]:
    return entries[::-1] if reverse else entries


def toggle_collapsed(entry: Entry) -> bool:
    entry.collapsed = not entry.collapsed
    return entry.collapsed


def edit_entry(
    entry: Entry,
    name: str,
    start_text: Optional[str],
    end_text: Optional[str],
    editable_format: str,
) -> None:
    """Apply an inline edit. Times are in the editable format. An empty end
    text clears the end time; a leaf cannot lose its start time.

    Timestamps are parsed before anything is assigned, so a bad value leaves
    the entry untouched. A container only takes the new name, and the end
    time of the running leaf is not editable.
    """
    start_time = entry.start_time
    end_time = entry.end_time
    if entry.kind is EntryKind.LEAF:
        if start_text is not None:
            if not start_text.strip():
                raise ValueError(f"entry {entry.name!r} needs a start time")
            start_time = parse_editable_timestamp(start_text, editable_format)
        if end_text is not None and not has_running_entry(entry):
            end_time = parse_editable_timestamp(end_text, editable_format) if end_text.strip() else None

    entry.name = name
    entry.start_time = start_time
    entry.end_time = end_time
