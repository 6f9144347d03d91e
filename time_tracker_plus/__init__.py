"""Time trackers embedded as JSON in fenced blocks of text documents."""
from .codec import TrackerFormatError, dump_tracker, load_tracker, parse_tracker
from .durations import (
    get_duration,
    get_duration_today,
    get_running_entry,
    get_total_duration,
    get_total_duration_today,
    is_running,
)
from .entries import ordered_entries
from .formatting import format_duration
from .model import Entry, EntryKind, Tracker
from .sections import Section, load_all_trackers
from .timestamps import format_timestamp

__version__ = "1.0.0"

__all__ = [
    "Entry",
    "EntryKind",
    "Section",
    "Tracker",
    "TrackerFormatError",
    "dump_tracker",
    "format_duration",
    "format_timestamp",
    "get_duration",
    "get_duration_today",
    "get_running_entry",
    "get_total_duration",
    "get_total_duration_today",
    "is_running",
    "load_all_trackers",
    "load_tracker",
    "ordered_entries",
    "parse_tracker",
]
