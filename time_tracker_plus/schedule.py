from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from .autostop import stop_all_running_timers
from .settings import Settings
from .timestamps import utc_now

log = logging.getLogger(__name__)


def parse_auto_stop_times(value: str) -> List[str]:
    if not value or not value.strip():
        return []
    return [t.strip() for t in value.split(";") if t.strip()]


def should_auto_stop_now(auto_stop_times: str, now: Optional[datetime] = None) -> bool:
    times = parse_auto_stop_times(auto_stop_times)
    if not times:
        return False
    current = (now or utc_now()).astimezone().strftime("%H:%M")
    return current in times


class AutoStopClock:
    """Polled every tick; runs the store-wide sweep at the configured times.

    Checks at most once per wall-clock minute, however often it is polled.
    """

    def __init__(self, store, get_settings: Callable[[], Settings]):
        self.store = store
        self.get_settings = get_settings
        self.last_checked_minute: Optional[str] = None

    def poll(self, now: Optional[datetime] = None) -> Optional[int]:
        """Returns the number of documents rewritten, or None if nothing ran."""
        now = (now or utc_now()).astimezone()
        minute = now.strftime("%Y-%m-%d %H:%M")
        if minute == self.last_checked_minute:
            return None
        self.last_checked_minute = minute

        if not should_auto_stop_now(self.get_settings().auto_stop_times, now):
            return None
        stopped = stop_all_running_timers(self.store, now)
        if stopped:
            log.info("Auto-stopped timers in %d file(s) at %s", stopped, now.strftime("%H:%M"))
        return stopped
