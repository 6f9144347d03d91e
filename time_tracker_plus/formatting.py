from __future__ import annotations

import csv
import io
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .durations import get_duration, get_total_duration, is_running
from .entries import ordered_entries
from .model import Entry, Tracker
from .settings import DEFAULT_SETTINGS, Settings
from .timestamps import format_timestamp

TABLE_HEADER = ["Segment", "Start time", "End time", "Duration"]

_TARGET_RE = re.compile(r"(?:(\d+)y)?(?:(\d+)M)?(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?")

_SECOND = 1000
_DAY = 24 * 60 * 60


# ----------------------------
# Durations
# ----------------------------

@dataclass
class DurationParts:
    years: int
    months: int
    days: int
    hours: int
    minutes: int
    seconds: int

    @classmethod
    def from_millis(cls, ms: int) -> DurationParts:
        total_s = ms // _SECOND
        total_m, seconds = divmod(total_s, 60)
        total_h, minutes = divmod(total_m, 60)
        days, hours = divmod(total_h, 24)
        # calendar-naive month length of 146097 / 4800 days
        months = int(days * 4800 / 146097)
        days -= math.ceil(months * 146097 / 4800)
        years, months = divmod(months, 12)
        return cls(years, months, days, hours, minutes, seconds)


def format_duration(total_ms: int, settings: Settings = DEFAULT_SETTINGS) -> str:
    neg = total_ms < 0
    ms = abs(int(total_ms))
    parts = DurationParts.from_millis(ms)
    hours = parts.hours if settings.fine_grained_durations else ms // (3600 * _SECOND)

    ret = "-" if neg else ""
    if settings.timestamp_durations:
        if settings.fine_grained_durations:
            days = ms // (_DAY * _SECOND)
            if days > 0:
                ret += f"{days}."
        ret += f"{hours:02d}:{parts.minutes:02d}:{parts.seconds:02d}"
    else:
        if settings.fine_grained_durations:
            if parts.years > 0:
                ret += f"{parts.years}y "
            if parts.months > 0:
                ret += f"{parts.months}M "
            if parts.days > 0:
                ret += f"{parts.days}d "
        if hours > 0:
            ret += f"{hours}h "
        if parts.minutes > 0:
            ret += f"{parts.minutes}m "
        ret += f"{parts.seconds}s"
    return ret


def parse_target_time(target_time: Optional[str]) -> int:
    """``"1y2M3d4h5m6s"`` (any subset, in that order) to milliseconds; 0 if unreadable."""
    if not target_time:
        return 0
    match = _TARGET_RE.match(target_time)
    if not match:
        return 0
    years, months, days, hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return (
        years * 365 * _DAY
        + months * 30 * _DAY
        + days * _DAY
        + hours * 60 * 60
        + minutes * 60
        + seconds
    ) * _SECOND


# ----------------------------
# Target progress
# ----------------------------

@dataclass
class Progress:
    total: int
    target: int
    percentage: float
    running: bool

    @property
    def display_percentage(self) -> float:
        return min(100.0, self.percentage)

    @property
    def color(self) -> str:
        if self.percentage >= 100:
            return "red"
        if self.percentage >= 85:
            return "orange"
        if self.percentage >= 70:
            return "yellow"
        return "green"


def progress(tracker: Tracker, now: Optional[datetime] = None) -> Optional[Progress]:
    target = parse_target_time(tracker.target_time)
    if target <= 0:
        return None
    total = get_total_duration(tracker.entries, now)
    return Progress(total, target, total * 100 / target, is_running(tracker))


def progress_text(tracker: Tracker, prog: Progress, settings: Settings = DEFAULT_SETTINGS) -> str:
    running = " ● RUNNING" if prog.running else ""
    return f"{format_duration(prog.total, settings)} / {tracker.target_time} ({prog.percentage:.1f}%){running}"


# ----------------------------
# Table export
# ----------------------------

def create_table_section(
    entry: Entry, settings: Settings = DEFAULT_SETTINGS, indent: int = 0, now: Optional[datetime] = None
) -> List[List[str]]:
    prefix = f"{'-' * indent} "
    fmt = settings.timestamp_format
    rows = [[
        f"{prefix}{entry.name}",
        format_timestamp(entry.start_time, fmt) if entry.start_time else "",
        format_timestamp(entry.end_time, fmt) if entry.end_time else "",
        format_duration(get_duration(entry, now), settings) if entry.end_time or entry.is_container else "",
    ]]
    for sub in ordered_entries(entry.sub_entries, settings.reverse_segment_order):
        rows.extend(create_table_section(sub, settings, indent + 1, now))
    return rows


def create_table(tracker: Tracker, settings: Settings = DEFAULT_SETTINGS, now: Optional[datetime] = None) -> List[List[str]]:
    rows: List[List[str]] = []
    for entry in ordered_entries(tracker.entries, settings.reverse_segment_order):
        rows.extend(create_table_section(entry, settings, now=now))
    return rows


def create_csv(tracker: Tracker, settings: Settings = DEFAULT_SETTINGS, now: Optional[datetime] = None) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=settings.csv_delimiter, lineterminator="\n")
    writer.writerow(TABLE_HEADER)
    writer.writerows(create_table(tracker, settings, now))
    return buf.getvalue()


def create_markdown_table(tracker: Tracker, settings: Settings = DEFAULT_SETTINGS, now: Optional[datetime] = None) -> str:
    table = [TABLE_HEADER] + create_table(tracker, settings, now)
    total = format_duration(get_total_duration(tracker.entries, now), settings)
    table.append(["**Total**", "", "", f"**{total}**"])

    # pad columns so the table lines up in monospace
    widths = [max(len(row[i]) for row in table) for i in range(len(TABLE_HEADER))]
    out = []
    for r, row in enumerate(table):
        if r == 1:
            out.append("| " + " | ".join("-" * w for w in widths) + " |")
        out.append("| " + " | ".join(cell.ljust(w) for cell, w in zip(row, widths)) + " |")
    return "\n".join(out) + "\n"
