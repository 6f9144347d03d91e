import copy
import json
import logging

import pytest

from helpers import NOW, ago, container, leaf
from time_tracker_plus.codec import TrackerFormatError, dump_tracker, load_tracker, parse_tracker, update_legacy_info
from time_tracker_plus.entries import start_new_entry, start_sub_entry
from time_tracker_plus.model import EntryKind, Tracker


def test_dump_is_compact_and_ordered():
    tracker = Tracker(entries=[leaf("A", "2024-05-01T10:00:00.000Z")], target_time="2h")
    assert dump_tracker(tracker) == (
        '{"entries":[{"name":"A","startTime":"2024-05-01T10:00:00.000Z","endTime":null}],"targetTime":"2h"}'
    )


def test_dump_writes_sub_entries_and_collapsed_only_when_set():
    c = container("c", leaf("a", ago(hours=2), ago(hours=1)), leaf("b", ago(hours=1), ago(minutes=5)))
    c.collapsed = True
    raw = json.loads(dump_tracker(Tracker(entries=[c])))

    entry = raw["entries"][0]
    assert entry["collapsed"] is True
    assert [s["name"] for s in entry["subEntries"]] == ["a", "b"]
    assert "subEntries" not in entry["subEntries"][0]
    assert "collapsed" not in entry["subEntries"][0]
    assert "targetTime" not in raw


def test_dump_keeps_non_ascii():
    assert "Réunion ✓" in dump_tracker(Tracker(entries=[leaf("Réunion ✓", ago(hours=1))]))


def test_round_trip():
    tracker = Tracker(target_time="1h30m")
    start_new_entry(tracker, "Work", NOW)
    start_sub_entry(tracker.entries[0], "", NOW)
    tracker.entries.append(leaf("**bold** [[link]]", ago(hours=3), ago(hours=2)))

    assert parse_tracker(dump_tracker(tracker)) == tracker


def test_legacy_unix_timestamps_are_converted():
    text = json.dumps({"entries": [{"name": "old", "startTime": "1700000000", "endTime": 1700003600}]})
    entry = parse_tracker(text).entries[0]

    assert entry.start_time == "2023-11-14T22:13:20.000Z"
    assert entry.end_time == "2023-11-14T23:13:20.000Z"


def test_empty_sub_entries_become_leaf():
    text = json.dumps({
        "entries": [
            {"name": "a", "startTime": ago(hours=1), "endTime": None, "subEntries": []},
            {"name": "b", "startTime": ago(hours=1), "endTime": ago(minutes=1), "subEntries": None},
        ]
    })
    tracker = parse_tracker(text)
    assert all(e.kind is EntryKind.LEAF for e in tracker.entries)
    assert '"subEntries"' not in dump_tracker(tracker)


def test_legacy_migration_recurses_and_is_idempotent():
    raw = [{
        "name": "c",
        "startTime": None,
        "endTime": None,
        "subEntries": [
            {"name": "a", "startTime": 1700000000, "endTime": "1700000060", "subEntries": []},
            {"name": "b", "startTime": "2024-05-01T10:00:00.000Z", "endTime": None},
        ],
    }]
    once = copy.deepcopy(raw)
    update_legacy_info(once)
    twice = copy.deepcopy(once)
    update_legacy_info(twice)

    assert once == twice
    assert once[0]["subEntries"][0] == {"name": "a", "startTime": "2023-11-14T22:13:20.000Z", "endTime": "2023-11-14T22:14:20.000Z"}


def test_parse_rejects_malformed_payloads():
    for text in ("not json", "[1, 2]", '{"entries": 3}', '{"entries": ["x"]}', '{"entries": [{"name": "a", "subEntries": 1}]}'):
        with pytest.raises(TrackerFormatError):
            parse_tracker(text)


def test_load_degrades_to_empty_tracker(caplog):
    with caplog.at_level(logging.ERROR, logger="time_tracker_plus.codec"):
        tracker = load_tracker('{"entries": [')
    assert tracker == Tracker()
    assert "Failed to parse tracker" in caplog.text

    assert load_tracker("") == Tracker()
    assert load_tracker("   \n") == Tracker()


def test_missing_entries_key_is_empty():
    assert parse_tracker('{"targetTime": "2h"}') == Tracker(target_time="2h")


def test_unreadable_timestamps_are_format_errors(caplog):
    for raw in ('"yesterday"', '"2024-13-45T00:00:00Z"', "[1]", "true"):
        text = '{"entries":[{"name":"x","startTime":%s,"endTime":null}]}' % raw
        with pytest.raises(TrackerFormatError):
            parse_tracker(text)

    with caplog.at_level(logging.ERROR, logger="time_tracker_plus.codec"):
        assert load_tracker('{"entries":[{"name":"x","startTime":"2024-05-01T10:00:00.000Z","endTime":"soon"}]}') == Tracker()
    assert "endTime" in caplog.text
