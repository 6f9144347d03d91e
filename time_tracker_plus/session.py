from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from .autostop import stop_all_running_timers
from .durations import has_running_entry, is_running
from .entries import edit_entry, find_entry, remove_entry, start_new_entry, start_sub_entry, stop_running, toggle_collapsed
from .model import Entry, Tracker
from .sections import Section, load_all_trackers, save_tracker
from .settings import DEFAULT_SETTINGS, Settings

log = logging.getLogger(__name__)


class TrackerSession:
    """One tracker block bound to its document for a render/mutate/persist cycle.

    ``index`` is the block's position among the document's tracker blocks and
    is used to locate the payload again right before each write.
    """

    def __init__(
        self,
        store,
        path: str,
        index: int,
        section: Section,
        tracker: Tracker,
        settings: Settings = DEFAULT_SETTINGS,
    ):
        self.store = store
        self.path = path
        self.index = index
        self.section = section
        self.tracker = tracker
        self.settings = settings
        self._unsubscribe = store.on_rename(self._on_rename)

    def __enter__(self) -> TrackerSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_rename(self, old_path: str, new_path: str) -> None:
        if old_path == self.path:
            log.debug("tracker document moved: %s -> %s", old_path, new_path)
            self.path = new_path

    # --- queries ---
    @property
    def running(self) -> bool:
        return is_running(self.tracker)

    def entry(self, entry_id: str) -> Entry:
        found = find_entry(self.tracker.entries, entry_id)
        if found is None:
            raise KeyError(entry_id)
        return found

    # --- persistence ---
    def relocate(self) -> Optional[Section]:
        blocks = load_all_trackers(self.store, self.path)
        if self.index >= len(blocks):
            return None
        self.section = blocks[self.index][0]
        return self.section

    def save(self) -> bool:
        if self.relocate() is None:
            log.warning("tracker block %d is gone from %s, not saving", self.index, self.path)
            return False
        return save_tracker(self.store, self.path, self.section, self.tracker)

    def _stop_all_others(self, now: Optional[datetime]) -> None:
        stop_running(self.tracker, now)
        stopped = stop_all_running_timers(self.store, now)
        if stopped:
            log.info("Stopped running timers in %d file(s) before starting", stopped)

    # --- actions ---
    def start_new(self, name: str = "", now: Optional[datetime] = None) -> Entry:
        self._stop_all_others(now)
        entry = start_new_entry(self.tracker, name, now)
        self.save()
        return entry

    def continue_entry(self, entry_id: str, name: str = "", now: Optional[datetime] = None) -> Entry:
        entry = self.entry(entry_id)
        self._stop_all_others(now)
        sub = start_sub_entry(entry, name, now)
        self.save()
        return sub

    def stop(self, entry_id: Optional[str] = None, now: Optional[datetime] = None) -> Optional[Entry]:
        scope = self.entry(entry_id) if entry_id else self.tracker
        stopped = stop_running(scope, now)
        if stopped:
            self.save()
        return stopped

    def remove(self, entry_id: str) -> bool:
        entry = self.entry(entry_id)
        if has_running_entry(entry):
            raise ValueError(f"cannot remove running entry {entry.name!r}; stop it first")
        removed = remove_entry(self.tracker.entries, entry_id)
        if removed:
            self.save()
        return removed

    def edit(self, entry_id: str, name: str, start_text: Optional[str] = None, end_text: Optional[str] = None) -> Entry:
        entry = self.entry(entry_id)
        edit_entry(entry, name, start_text, end_text, self.settings.editable_timestamp_format)
        self.save()
        return entry

    def toggle_collapsed(self, entry_id: str) -> bool:
        collapsed = toggle_collapsed(self.entry(entry_id))
        self.save()
        return collapsed


def open_sessions(store, path: str, settings: Settings = DEFAULT_SETTINGS) -> List[TrackerSession]:
    return [
        TrackerSession(store, path, i, section, tracker, settings)
        for i, (section, tracker) in enumerate(load_all_trackers(store, path))
    ]
