"""Per-assignee agenda checks for one day: double bookings and idle gaps."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable, Optional

from task_intelligence.intervals import Interval, clamp, free_gaps, overlap_minutes
from task_intelligence.opportunity import WORK_END_HOUR, WORK_START_HOUR, work_window
from task_intelligence.schema import Task, TaskStatus
from task_intelligence.timeutil import end_of_day, ensure_aware, start_of_day

MIN_GAP_MINUTES = 30


@dataclass
class ScheduleCollision:
    assignee: str
    task_a: Task
    task_b: Task
    overlap_minutes: float
    severity: str


@dataclass
class IdleGap:
    assignee: str
    start: datetime
    end: datetime
    free_minutes: float


def collision_severity(minutes: float) -> str:
    if minutes > 30:
        return "HIGH"
    if minutes >= 5:
        return "MEDIUM"
    return "LOW"


def _scheduled_by_assignee(tasks: Iterable[Task], day: date, tz: Optional[tzinfo]) -> dict[str, list[tuple[Task, Interval]]]:
    day_span = Interval(start_of_day(day, tz), end_of_day(day, tz))
    grouped: dict[str, list[tuple[Task, Interval]]] = {}
    for task in tasks:
        if task.status in (TaskStatus.DONE, TaskStatus.CANCELLED):
            continue
        if not task.assigned_to or task.start_at is None or task.end_at is None:
            continue
        block = Interval(ensure_aware(task.start_at, tz), ensure_aware(task.end_at, tz))
        if clamp(block, day_span) is None:
            continue
        grouped.setdefault(task.assigned_to, []).append((task, block))
    return grouped


def detect_schedule_collisions(tasks: Iterable[Task], day: date, tz: Optional[tzinfo] = None) -> list[ScheduleCollision]:
    """Overlapping active tasks of the same assignee on ``day``, largest overlap first."""

    collisions: list[ScheduleCollision] = []
    for assignee, blocks in _scheduled_by_assignee(tasks, day, tz).items():
        for i, (task_a, block_a) in enumerate(blocks):
            for task_b, block_b in blocks[i + 1:]:
                minutes = overlap_minutes(block_a, block_b)
                if minutes <= 0:
                    continue
                collisions.append(
                    ScheduleCollision(assignee, task_a, task_b, round(minutes, 2), collision_severity(minutes))
                )
    return sorted(collisions, key=lambda c: -c.overlap_minutes)


def detect_idle_gaps(
    tasks: Iterable[Task],
    day: date,
    tz: Optional[tzinfo] = None,
    min_gap_minutes: float = MIN_GAP_MINUTES,
    work_start_hour: int = WORK_START_HOUR,
    work_end_hour: int = WORK_END_HOUR,
) -> list[IdleGap]:
    """Free stretches longer than ``min_gap_minutes`` inside each assignee's working window."""

    window = work_window(day, tz, work_start_hour, work_end_hour)
    gaps: list[IdleGap] = []
    for assignee, blocks in _scheduled_by_assignee(tasks, day, tz).items():
        for gap in free_gaps(window, [block for _, block in blocks]):
            if gap.minutes > min_gap_minutes:
                gaps.append(IdleGap(assignee, gap.start, gap.end, round(gap.minutes, 2)))
    return sorted(gaps, key=lambda g: -g.free_minutes)
