from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Sequence, TypeVar

from hr_requests.core.time import ensure_utc, utcnow


SUBMITTED_ACTION = "request submitted"


@dataclass(frozen=True)
class Attachment:
    file_name: str
    file_path: str
    file_type: str | None = None


@dataclass(frozen=True)
class HistoryEntry:
    action: str
    author: str
    timestamp: datetime


@dataclass(frozen=True)
class CommentEntry:
    author: str
    role: str
    comment: str
    timestamp: datetime


Entry = TypeVar("Entry", HistoryEntry, CommentEntry)


def history_entry(action: str, author: str) -> HistoryEntry:
    """History entry stamped with the server clock."""
    return HistoryEntry(action=action, author=author, timestamp=utcnow())


def comment_entry(author: str, role: str, comment: str) -> CommentEntry:
    """Comment entry stamped with the server clock."""
    return CommentEntry(author=author, role=role, comment=comment, timestamp=utcnow())


def status_changed_action(target: str) -> str:
    return f"status changed to {target}"


def append(entries: Sequence[Entry], entry: Entry) -> tuple[Entry, ...]:
    """
    Return a new sequence with `entry` at the end.

    Existing entries are kept as-is and in order. If the wall clock moved
    backwards since the previous entry, the new entry takes the previous
    timestamp so the sequence stays ordered.
    """
    existing = tuple(entries)
    if existing:
        previous = ensure_utc(existing[-1].timestamp)
        if ensure_utc(entry.timestamp) < previous:
            entry = replace(entry, timestamp=previous)
    return existing + (entry,)
