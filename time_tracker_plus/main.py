#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Time Tracker Plus
=================

Start/stop time trackers embedded in plain-text (Markdown) documents.

A tracker is a fenced block tagged ``time-tracker-plus`` whose body is one
line of JSON. Any number of trackers may live in any number of documents
under a root folder; at most one entry is running across all of them.

Usage
-----
time-tracker-plus --root ~/notes insert daily.md --target 7h30m
time-tracker-plus --root ~/notes start daily.md --name "Code review"
time-tracker-plus --root ~/notes continue daily.md 1 --name "Follow-up"
time-tracker-plus --root ~/notes show daily.md --format markdown
time-tracker-plus --root ~/notes stop-all
time-tracker-plus --root ~/notes watch        # scheduled auto-stop
time-tracker-plus --root ~/notes gui daily.md

Entries are addressed by dotted 1-based position, e.g. ``2.1`` is the first
part of the second segment.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from .autostop import stop_all_running_timers
from .durations import get_total_duration, get_total_duration_today
from .entries import entry_at
from .formatting import create_csv, create_markdown_table, format_duration, progress, progress_text
from .model import Tracker
from .schedule import AutoStopClock
from .sections import insert_tracker_block
from .session import TrackerSession, open_sessions
from .settings import APP_NAME, Settings, default_settings_path, load_settings
from .store import FolderStore

log = logging.getLogger(__name__)


class UsageError(Exception):
    pass


# ----------------------------
# Helpers
# ----------------------------

def _session(store: FolderStore, path: str, block: int, settings: Settings) -> TrackerSession:
    if not store.exists(path):
        raise UsageError(f"no such document: {path}")
    sessions = open_sessions(store, path, settings)
    if not sessions:
        raise UsageError(f"{path} has no tracker blocks; run 'insert' first")
    if not 1 <= block <= len(sessions):
        raise UsageError(f"{path} has {len(sessions)} tracker block(s), not {block}")
    for other in sessions:
        if other.index != block - 1:
            other.close()
    return sessions[block - 1]


def _entry_id(session: TrackerSession, position: str) -> str:
    entry = entry_at(session.tracker.entries, position)
    if entry is None:
        raise UsageError(f"no entry at position {position}")
    return entry.id


# ----------------------------
# Commands
# ----------------------------

def cmd_insert(store: FolderStore, args, settings: Settings) -> int:
    tracker = Tracker()
    if args.target and args.target.strip():
        tracker.target_time = args.target.strip()
    content = store.read(args.path) if store.exists(args.path) else ""
    line = args.line - 1 if args.line else None
    store.write(args.path, insert_tracker_block(content, tracker, line), create=True)
    print(f"Inserted tracker into {args.path}")
    return 0


def cmd_show(store: FolderStore, args, settings: Settings) -> int:
    if not store.exists(args.path):
        raise UsageError(f"no such document: {args.path}")
    sessions = open_sessions(store, args.path, settings)
    for session in sessions:
        session.close()
        tracker = session.tracker
        if args.format == "csv":
            sys.stdout.write(create_csv(tracker, settings))
            continue
        print(f"Tracker {session.index + 1} (lines {session.section.line_start + 1}-{session.section.line_end + 1})")
        prog = progress(tracker)
        if prog:
            print(f"  Progress: {progress_text(tracker, prog, settings)}")
        print(f"  Total: {format_duration(get_total_duration(tracker.entries), settings)}"
              f"  Today: {format_duration(get_total_duration_today(tracker.entries), settings)}")
        if tracker.entries:
            sys.stdout.write(create_markdown_table(tracker, settings))
        print()
    if not sessions:
        print("No trackers found")
    return 0


def cmd_start(store: FolderStore, args, settings: Settings) -> int:
    with _session(store, args.path, args.block, settings) as session:
        entry = session.start_new(args.name or "")
    print(f"Started {entry.name!r}")
    return 0


def cmd_continue(store: FolderStore, args, settings: Settings) -> int:
    with _session(store, args.path, args.block, settings) as session:
        sub = session.continue_entry(_entry_id(session, args.entry), args.name or "")
    print(f"Started {sub.name!r}")
    return 0


def cmd_stop(store: FolderStore, args, settings: Settings) -> int:
    with _session(store, args.path, args.block, settings) as session:
        entry_id = _entry_id(session, args.entry) if args.entry else None
        stopped = session.stop(entry_id)
    print(f"Stopped {stopped.name!r}" if stopped else "Nothing running")
    return 0


def cmd_remove(store: FolderStore, args, settings: Settings) -> int:
    with _session(store, args.path, args.block, settings) as session:
        try:
            session.remove(_entry_id(session, args.entry))
        except ValueError as exc:
            raise UsageError(str(exc)) from exc
    print(f"Removed entry {args.entry}")
    return 0


def cmd_stop_all(store: FolderStore, args, settings: Settings) -> int:
    stopped = stop_all_running_timers(store)
    if stopped > 0:
        print(f"Stopped running timers in {stopped} file(s)")
    else:
        print("No running timers found")
    return 0


def cmd_watch(store: FolderStore, args, settings: Settings) -> int:
    if not settings.auto_stop_times:
        raise UsageError("auto_stop_times is not configured")
    clock = AutoStopClock(store, lambda: settings)
    log.info("watching %s, auto-stop at %s", store.root, settings.auto_stop_times)
    try:
        while True:
            clock.poll()
            time.sleep(1)
    except KeyboardInterrupt:
        return 0


def cmd_gui(store: FolderStore, args, settings: Settings) -> int:
    # tkinter is only needed here
    from .app import run

    if not store.exists(args.path):
        raise UsageError(f"no such document: {args.path}")
    run(store, args.path, settings)
    return 0


# ----------------------------
# Entry point
# ----------------------------

def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="time-tracker-plus", description=f"{APP_NAME}: trackers embedded in text documents.")
    parser.add_argument("--root", default=".", help="Folder holding the documents (default: current directory).")
    parser.add_argument("--settings", default=None, help=f"Settings JSON (default: {default_settings_path()}).")
    sub = parser.add_subparsers(dest="cmd", required=True)

    insert = sub.add_parser("insert", help="Insert an empty tracker block into a document.")
    insert.add_argument("path")
    insert.add_argument("--target", default=None, help="Target time, e.g. 2h, 1h30m, 2d5h.")
    insert.add_argument("--line", type=int, default=None, help="1-based line to insert before (default: append).")
    insert.set_defaults(func=cmd_insert)

    show = sub.add_parser("show", help="Print the trackers of a document.")
    show.add_argument("path")
    show.add_argument("--format", choices=("markdown", "csv"), default="markdown")
    show.set_defaults(func=cmd_show)

    for name, func, help_text in (
        ("start", cmd_start, "Stop every running entry, then start a new segment."),
        ("continue", cmd_continue, "Stop every running entry, then add a part to a segment."),
        ("stop", cmd_stop, "Stop the running entry of a tracker."),
        ("remove", cmd_remove, "Remove an entry."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("path")
        if name in ("continue", "remove"):
            p.add_argument("entry", help="Dotted 1-based entry position, e.g. 2.1.")
        elif name == "stop":
            p.add_argument("--entry", default=None, help="Only stop inside this entry.")
        if name in ("start", "continue"):
            p.add_argument("--name", default="", help="Segment name (default: numbered).")
        p.add_argument("--block", type=int, default=1, help="1-based tracker block in the document.")
        p.set_defaults(func=func)

    stop_all = sub.add_parser("stop-all", help="Stop running timers in every document.")
    stop_all.set_defaults(func=cmd_stop_all)

    watch = sub.add_parser("watch", help="Run scheduled auto-stop until interrupted.")
    watch.set_defaults(func=cmd_watch)

    gui = sub.add_parser("gui", help="Open the trackers of a document in a window.")
    gui.add_argument("path")
    gui.set_defaults(func=cmd_gui)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = load_settings(Path(args.settings) if args.settings else None)
    store = FolderStore(Path(args.root).expanduser())
    try:
        return args.func(store, args, settings)
    except UsageError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
