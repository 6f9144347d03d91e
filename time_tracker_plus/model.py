from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import List, Optional


class EntryKind(enum.Enum):
    LEAF = "leaf"
    CONTAINER = "container"


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Entry:
    """A named timed segment.

    A leaf owns its own ``start_time``/``end_time``. A container derives its
    duration from ``sub_entries`` and its own times are ignored.
    """

    name: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    kind: EntryKind = EntryKind.LEAF
    sub_entries: List[Entry] = field(default_factory=list)
    collapsed: bool = False
    id: str = field(default_factory=_new_id, compare=False, repr=False)

    @property
    def is_container(self) -> bool:
        return self.kind is EntryKind.CONTAINER

    @property
    def is_leaf(self) -> bool:
        return self.kind is EntryKind.LEAF

    def split(self) -> Entry:
        """Move this leaf's own segment into a first child named "Part 1"."""
        if self.is_container:
            raise ValueError(f"entry {self.name!r} is already a container")
        first = Entry(
            name="Part 1",
            start_time=self.start_time,
            end_time=self.end_time,
            collapsed=self.collapsed,
        )
        self.kind = EntryKind.CONTAINER
        self.sub_entries = [first]
        self.start_time = None
        self.end_time = None
        return first

    def flatten(self) -> None:
        """Replace a single-child container's contents with its only child's."""
        if len(self.sub_entries) != 1:
            raise ValueError(f"cannot flatten {self.name!r} with {len(self.sub_entries)} sub-entries")
        single = self.sub_entries[0]
        self.start_time = single.start_time
        self.end_time = single.end_time
        # a container child hands its parts up instead of being dropped
        self.sub_entries = single.sub_entries
        self.kind = single.kind


@dataclass
class Tracker:
    entries: List[Entry] = field(default_factory=list)
    target_time: Optional[str] = None
