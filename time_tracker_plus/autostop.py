"""Store-wide sweep that closes running entries.

Works on whole-text matches rather than :mod:`sections` line ranges so that
every block in a document can be checked and rewritten in a single pass.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Tuple

from .codec import TrackerFormatError, dump_tracker, parse_tracker
from .durations import is_running
from .entries import stop_running
from .sections import CLOSE_FENCE, OPEN_FENCE

log = logging.getLogger(__name__)

_OPEN_LINE = re.escape(OPEN_FENCE) + r"[ \t\r]*$"
_CLOSE_LINE = re.escape(CLOSE_FENCE) + r"[ \t\r]*$"

# fence lines are read as sections.locate_trackers reads them; a payload never spans a fence
CODE_BLOCK_RE = re.compile(
    rf"^(?P<open>{_OPEN_LINE}\n)"
    rf"(?P<payload>(?:(?!{_OPEN_LINE})(?!{_CLOSE_LINE})[^\n]*\n)*)"
    rf"(?P<close>{_CLOSE_LINE})",
    re.MULTILINE,
)


def stop_all_runners_in_text(text: str, now: Optional[datetime] = None) -> Tuple[str, bool]:
    """Stop the running entry of every block in ``text``.

    Returns the new text and whether any block changed. Blocks that do not
    decode are left alone.
    """
    modified = False

    def replace(match: re.Match) -> str:
        nonlocal modified
        try:
            tracker = parse_tracker(match.group("payload"))
        except TrackerFormatError as exc:
            log.debug("Skipping invalid tracker block: %s", exc)
            return match.group(0)

        if not is_running(tracker):
            return match.group(0)
        stop_running(tracker, now)
        modified = True
        opening = match.group("open")
        newline = "\r\n" if opening.endswith("\r\n") else "\n"
        return f"{opening}{dump_tracker(tracker)}{newline}{match.group('close')}"

    new_text = CODE_BLOCK_RE.sub(replace, text)
    return new_text, modified


def stop_all_runners_in_file(store, path: str, now: Optional[datetime] = None) -> bool:
    new_content, modified = stop_all_runners_in_text(store.read(path), now)
    if modified:
        modified = store.write(path, new_content)
    return modified


def stop_all_running_timers(store, now: Optional[datetime] = None) -> int:
    """Run the sweep over every document. Returns how many were rewritten."""
    stopped = 0
    for path in store.list_documents():
        try:
            if stop_all_runners_in_file(store, path, now=now):
                log.info("Stopped running timer(s) in %s", path)
                stopped += 1
        except (OSError, UnicodeDecodeError) as exc:
            log.error("Error stopping timers in file %s: %s", path, exc)
    return stopped
