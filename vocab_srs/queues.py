"""Partition a deck's words into study queues.

Queues are recomputed from scratch on every call; nothing is cached, so a
rating that moves a word between queues is visible on the next read.

``new``, ``learning`` and ``mastered`` split the deck into disjoint buckets.
``due`` is orthogonal and overlaps any of them. ``all`` is the deck as-is.
"""
import datetime
from typing import Dict, Iterable, List, Optional

from .cards import QueueEntry, ReviewState, as_utc, utcnow

MASTERED_INTERVAL = 21

QUEUE_NAMES = ("due", "new", "learning", "mastered", "all")


def is_due(state: ReviewState, now: datetime.datetime) -> bool:
    return as_utc(state.next_review_at) <= now


def is_new(state: ReviewState) -> bool:
    return state.repetitions == 0 and state.interval == 0


def is_learning(state: ReviewState) -> bool:
    # No repetitions > 0 check: a lapsed word (repetitions reset to 0,
    # interval 1) is still learning, so new/learning/mastered stay a partition.
    return 0 < state.interval < MASTERED_INTERVAL


def is_mastered(state: ReviewState) -> bool:
    return state.interval >= MASTERED_INTERVAL


def _matches(name: str, state: ReviewState, now: datetime.datetime) -> bool:
    if name == "due":
        return is_due(state, now)
    if name == "new":
        return is_new(state)
    if name == "learning":
        return is_learning(state)
    if name == "mastered":
        return is_mastered(state)
    return True


def build_queue(
    entries: Iterable[QueueEntry],
    name: str,
    now: Optional[datetime.datetime] = None,
) -> List[QueueEntry]:
    """Entries belonging to queue ``name``, in deck order."""
    if name not in QUEUE_NAMES:
        raise ValueError(f"Unknown queue {name!r}; expected one of {', '.join(QUEUE_NAMES)}")
    now = as_utc(now) if now is not None else utcnow()
    return [entry for entry in entries if _matches(name, entry.state, now)]


def classify(
    entries: Iterable[QueueEntry],
    now: Optional[datetime.datetime] = None,
) -> Dict[str, List[QueueEntry]]:
    now = as_utc(now) if now is not None else utcnow()
    entries = list(entries)
    return {name: build_queue(entries, name, now) for name in QUEUE_NAMES}


def queue_stats(
    entries: Iterable[QueueEntry],
    now: Optional[datetime.datetime] = None,
) -> Dict[str, int]:
    """Counts per queue: ``{total, due, new, learning, mastered}``."""
    queues = classify(entries, now)
    return {
        "total": len(queues["all"]),
        "due": len(queues["due"]),
        "new": len(queues["new"]),
        "learning": len(queues["learning"]),
        "mastered": len(queues["mastered"]),
    }
