from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from .model import Entry, EntryKind, Tracker
from .timestamps import from_unix, parse_instant

log = logging.getLogger(__name__)

_NUMERIC = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)\s*$")


class TrackerFormatError(ValueError):
    pass


def _is_unix_timestamp(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and bool(_NUMERIC.match(value))


def update_legacy_info(entries: List[Dict[str, Any]]) -> None:
    """Upgrade a freshly parsed entry list in place.

    Unix-second timestamps become ISO strings and empty ``subEntries`` are
    dropped so the entry reads as a leaf again. Safe to run repeatedly.
    """
    for entry in entries:
        for key in ("startTime", "endTime"):
            value = entry.get(key)
            if value and _is_unix_timestamp(value):
                entry[key] = from_unix(float(value))

        if not entry.get("subEntries"):
            entry.pop("subEntries", None)
        else:
            update_legacy_info(entry["subEntries"])


def _timestamp(raw: Dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if not value:
        return None
    if not isinstance(value, str):
        raise TrackerFormatError(f"{key} must be a string, got {type(value).__name__}")
    try:
        parse_instant(value)
    except (ValueError, OverflowError) as exc:
        raise TrackerFormatError(f"{key} is not an ISO-8601 instant: {value!r}") from exc
    return value


def _entry_from_dict(raw: Dict[str, Any]) -> Entry:
    if not isinstance(raw, dict):
        raise TrackerFormatError(f"entry must be an object, got {type(raw).__name__}")
    subs = raw.get("subEntries")
    if subs is not None and not isinstance(subs, list):
        raise TrackerFormatError("subEntries must be a list")
    children = [_entry_from_dict(s) for s in subs or []]
    return Entry(
        name=str(raw.get("name") or ""),
        start_time=_timestamp(raw, "startTime"),
        end_time=_timestamp(raw, "endTime"),
        kind=EntryKind.CONTAINER if children else EntryKind.LEAF,
        sub_entries=children,
        collapsed=bool(raw.get("collapsed")),
    )


def _entry_to_dict(entry: Entry) -> Dict[str, Any]:
    ret: Dict[str, Any] = {
        "name": entry.name,
        "startTime": entry.start_time,
        "endTime": entry.end_time,
    }
    if entry.is_container:
        ret["subEntries"] = [_entry_to_dict(s) for s in entry.sub_entries]
    if entry.collapsed:
        ret["collapsed"] = True
    return ret


def tracker_from_dict(raw: Any) -> Tracker:
    if not isinstance(raw, dict):
        raise TrackerFormatError(f"tracker must be an object, got {type(raw).__name__}")
    entries = raw.get("entries")
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise TrackerFormatError("entries must be a list")
    try:
        update_legacy_info(entries)
    except (AttributeError, TypeError, OverflowError, OSError, ValueError) as exc:
        raise TrackerFormatError(f"cannot migrate entries: {exc}") from exc
    target = raw.get("targetTime")
    return Tracker(
        entries=[_entry_from_dict(e) for e in entries],
        target_time=str(target) if target else None,
    )


def tracker_to_dict(tracker: Tracker) -> Dict[str, Any]:
    ret: Dict[str, Any] = {"entries": [_entry_to_dict(e) for e in tracker.entries]}
    if tracker.target_time:
        ret["targetTime"] = tracker.target_time
    return ret


def parse_tracker(text: str) -> Tracker:
    """Strict decode; raises TrackerFormatError."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TrackerFormatError(f"invalid tracker JSON: {exc}") from exc
    return tracker_from_dict(raw)


def load_tracker(text: str) -> Tracker:
    """Lenient decode: anything unreadable becomes an empty tracker."""
    if text and text.strip():
        try:
            return parse_tracker(text)
        except TrackerFormatError as exc:
            log.error("Failed to parse tracker from %r: %s", text[:200], exc)
    return Tracker()


def dump_tracker(tracker: Tracker) -> str:
    return json.dumps(tracker_to_dict(tracker), separators=(",", ":"), ensure_ascii=False)
