"""Locating tracker payloads inside documents and splicing them back.

A tracker lives in a fenced block::

    ```time-tracker-plus
    {"entries":[...]}
    ```

A :class:`Section` is the 0-based inclusive line range of the payload
between the fences. It goes stale as soon as anyone else edits the
document, so locate again before writing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .codec import dump_tracker, load_tracker
from .model import Tracker

log = logging.getLogger(__name__)

FENCE_TAG = "time-tracker-plus"
OPEN_FENCE = f"```{FENCE_TAG}"
CLOSE_FENCE = "```"


@dataclass(frozen=True)
class Section:
    line_start: int
    line_end: int


def locate_trackers(text: str) -> List[Tuple[Section, Tracker]]:
    lines = text.split("\n")
    found: List[Tuple[Section, Tracker]] = []
    start: Optional[int] = None
    payload: List[str] = []

    for i, line in enumerate(lines):
        stripped = line.rstrip()
        if stripped == OPEN_FENCE:
            start = i + 1
            payload = []
        elif start is not None:
            if stripped == CLOSE_FENCE:
                found.append((Section(start, i - 1), load_tracker("\n".join(payload))))
                start = None
            else:
                payload.append(line)

    if start is not None:
        log.debug("ignoring unterminated tracker block at line %d", start - 1)
    return found


def load_all_trackers(store, path: str) -> List[Tuple[Section, Tracker]]:
    if not store.exists(path):
        return []
    return locate_trackers(store.read(path))


def splice_section(text: str, section: Section, tracker: Tracker) -> str:
    """Replace the payload lines of ``section`` with a single serialized line.

    Everything before ``line_start`` and after ``line_end`` is kept verbatim.
    """
    lines = text.split("\n")
    head = lines[: section.line_start]
    tail = lines[section.line_end + 1 :]
    return "\n".join(head + [dump_tracker(tracker)] + tail)


def save_tracker(store, path: str, section: Section, tracker: Tracker) -> bool:
    if not store.exists(path):
        log.debug("not saving tracker: %s is not a document", path)
        return False
    content = store.read(path)
    return store.write(path, splice_section(content, section, tracker))


def tracker_block(tracker: Tracker) -> str:
    return f"{OPEN_FENCE}\n{dump_tracker(tracker)}\n{CLOSE_FENCE}\n"


def insert_tracker_block(text: str, tracker: Tracker, line: Optional[int] = None) -> str:
    """Insert a fenced block before ``line`` (0-based), or append it."""
    block = tracker_block(tracker)
    lines = text.split("\n")
    if line is None or (line >= len(lines) - 1 and not lines[-1]):
        if text and not text.endswith("\n"):
            text += "\n"
        return text + block
    line = max(0, min(line, len(lines)))
    before = "\n".join(lines[:line])
    after = "\n".join(lines[line:])
    if line > 0:
        before += "\n"
    return before + block + after
