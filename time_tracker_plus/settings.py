from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

APP_NAME = "TimeTrackerPlus"
SETTINGS_NAME = "settings.json"


def user_data_dir() -> Path:
    """Return a per‑user data directory suitable for the platform."""
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming"
        return Path(base) / APP_NAME
    else:
        base = os.environ.get("XDG_DATA_HOME") or (Path.home() / ".local" / "share")
        return Path(base) / APP_NAME


@dataclass(frozen=True)
class Settings:
    # strftime patterns
    timestamp_format: str = "%y-%m-%d %H:%M:%S"
    editable_timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    csv_delimiter: str = ","
    fine_grained_durations: bool = True
    timestamp_durations: bool = False
    reverse_segment_order: bool = False
    # "HH:MM;HH:MM", empty disables
    auto_stop_times: str = ""


DEFAULT_SETTINGS = Settings()


def default_settings_path() -> Path:
    return user_data_dir() / SETTINGS_NAME


def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or default_settings_path()
    if not path.exists():
        return DEFAULT_SETTINGS
    try:
        stored = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("Could not read settings from %s, using defaults: %s", path, exc)
        return DEFAULT_SETTINGS
    if not isinstance(stored, dict):
        log.warning("Ignoring settings in %s: not an object", path)
        return DEFAULT_SETTINGS

    known = {f.name for f in fields(Settings)}
    overrides = {}
    for key, value in stored.items():
        if key not in known:
            continue
        default = getattr(DEFAULT_SETTINGS, key)
        if not isinstance(value, type(default)):
            log.warning("Ignoring setting %s=%r: expected %s", key, value, type(default).__name__)
            continue
        # empty formats fall back to the defaults
        if isinstance(value, str) and not value and key != "auto_stop_times":
            continue
        overrides[key] = value
    return replace(DEFAULT_SETTINGS, **overrides)


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    path = path or default_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), indent=2) + "\n", encoding="utf-8")
