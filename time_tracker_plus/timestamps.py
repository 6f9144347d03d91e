from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant. Naive values are taken as local time."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def to_iso(dt: datetime) -> str:
    """Canonical encoding: UTC, millisecond precision, trailing Z."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def from_unix(seconds: Union[int, float]) -> str:
    return to_iso(datetime.fromtimestamp(float(seconds), timezone.utc))


def now_iso(now: Optional[datetime] = None) -> str:
    return to_iso(now or utc_now())


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """Midnight of the local calendar day containing ``now``."""
    local = (now or utc_now()).astimezone()
    # rebuilt from the date so the offset is the one in force at midnight
    return datetime.combine(local.date(), time()).astimezone()


def format_timestamp(timestamp: str, fmt: str) -> str:
    return parse_instant(timestamp).astimezone().strftime(fmt)


def format_editable_timestamp(timestamp: str, fmt: str) -> str:
    return format_timestamp(timestamp, fmt)


def parse_editable_timestamp(text: str, fmt: str) -> str:
    """Inverse of :func:`format_editable_timestamp`; raises ValueError."""
    dt = datetime.strptime(text.strip(), fmt)
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return to_iso(dt)
