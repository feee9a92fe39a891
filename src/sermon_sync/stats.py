# src/sermon_sync/stats.py
"""
"Wrapped" listening statistics.

Computed from the full history on every call, never cached. Rankings count
occurrences (one per report), not seconds. Ties go to whichever item was
seen first in history order.
"""

import math
from typing import Iterable

from .models import ListeningEvent, ListeningStats, RankedItem, WrappedStats


def round_hours(total_seconds: int) -> float:
    """Seconds -> hours, rounded half-up to one decimal."""
    return math.floor(total_seconds / 3600 * 10 + 0.5) / 10


def rank_top(pairs: Iterable[tuple[object, str | None]]) -> RankedItem | None:
    """
    Most frequent key from (key, title) pairs, in one linear scan.

    The title shown is the last one reported for that key. Falsy keys are
    ignored.
    """
    counts: dict[object, RankedItem] = {}
    for key, title in pairs:
        if not key:
            continue
        item = counts.get(key)
        if item is None:
            counts[key] = RankedItem(title=title, count=1)
        else:
            item.title = title
            item.count += 1

    if not counts:
        return None
    # max() keeps the first of equal counts, i.e. first encountered
    return max(counts.values(), key=lambda item: item.count)


def top_sermon(history: list[ListeningEvent]) -> RankedItem | None:
    return rank_top((event.sermon_id, event.sermon_title) for event in history)


def top_album(history: list[ListeningEvent]) -> RankedItem | None:
    return rank_top((event.album_title, event.album_title) for event in history)


def compute_wrapped(stats: ListeningStats | None) -> WrappedStats:
    if stats is None:
        return WrappedStats()
    return WrappedStats(
        total_hours=round_hours(stats.total_seconds),
        top_sermon=top_sermon(stats.history),
        top_album=top_album(stats.history),
    )
