"""Interval arithmetic over instants."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from task_intelligence.timeutil import minutes_between


@dataclass(frozen=True)
class Interval:
    """Half-open time interval [start, end)."""

    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        return max(0.0, minutes_between(self.start, self.end))


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Sort by start and coalesce overlapping or touching intervals."""

    ordered = sorted((i for i in intervals if i.end > i.start), key=lambda i: (i.start, i.end))
    merged: list[Interval] = []
    for current in ordered:
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def clamp(interval: Interval, window: Interval) -> Optional[Interval]:
    start = max(interval.start, window.start)
    end = min(interval.end, window.end)
    if start >= end:
        return None
    return Interval(start, end)


def overlap_minutes(a: Interval, b: Interval) -> float:
    inter = clamp(a, b)
    return inter.minutes if inter else 0.0


def free_minutes(window: Interval, busy: Iterable[Interval]) -> float:
    """Minutes of ``window`` not covered by any busy interval, never negative."""

    free = window.minutes
    for block in merge_intervals(busy):
        free -= overlap_minutes(block, window)
    return max(0.0, round(free, 2))


def free_gaps(window: Interval, busy: Iterable[Interval]) -> list[Interval]:
    """Free sub-intervals of ``window`` in chronological order."""

    clamped = [c for c in (clamp(b, window) for b in busy) if c is not None]
    gaps: list[Interval] = []
    cursor = window.start
    for block in merge_intervals(clamped):
        if block.start > cursor:
            gaps.append(Interval(cursor, block.start))
        cursor = max(cursor, block.end)
    if cursor < window.end:
        gaps.append(Interval(cursor, window.end))
    return gaps
