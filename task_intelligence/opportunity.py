"""Free-time detection translated into jobs and revenue that would still fit."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Iterable, Optional

from task_intelligence.intervals import Interval, clamp, free_minutes
from task_intelligence.schema import Reminder, ReminderStatus, Task, TaskStatus
from task_intelligence.timeutil import at_hour, ensure_aware, iter_days

WORK_START_HOUR = 9
WORK_END_HOUR = 18
DEFAULT_REVENUE_PER_JOB = 80.0


@dataclass
class MoneyOpportunity:
    free_minutes: int
    jobs_that_fit: int
    potential_revenue: int
    days_analyzed: int


def busy_intervals(
    tasks: Iterable[Task], reminders: Iterable[Reminder], tz: Optional[tzinfo] = None
) -> list[Interval]:
    """Scheduled task blocks and active reminders as busy intervals."""

    busy: list[Interval] = []
    for task in tasks:
        if task.status == TaskStatus.CANCELLED or task.start_at is None or task.end_at is None:
            continue
        busy.append(Interval(ensure_aware(task.start_at, tz), ensure_aware(task.end_at, tz)))
    for reminder in reminders:
        if reminder.status == ReminderStatus.CANCELLED:
            continue
        busy.append(Interval(ensure_aware(reminder.start, tz), ensure_aware(reminder.end, tz)))
    return busy


def work_window(day: date, tz: Optional[tzinfo] = None, start_hour: int = WORK_START_HOUR, end_hour: int = WORK_END_HOUR) -> Interval:
    return Interval(at_hour(day, start_hour, tz), at_hour(day, end_hour, tz))


def detect_money_opportunity(
    start_day: date,
    end_day: date,
    busy: list[Interval],
    avg_job_minutes: float,
    revenue_per_job: float = DEFAULT_REVENUE_PER_JOB,
    tz: Optional[tzinfo] = None,
    work_start_hour: int = WORK_START_HOUR,
    work_end_hour: int = WORK_END_HOUR,
) -> MoneyOpportunity:
    """Sum free working minutes across [start_day, end_day] and size them in jobs."""

    total_free = 0.0
    days = 0
    for day in iter_days(start_day, end_day):
        window = work_window(day, tz, work_start_hour, work_end_hour)
        day_busy = [c for c in (clamp(block, window) for block in busy) if c is not None]
        total_free += free_minutes(window, day_busy)
        days += 1

    jobs = math.floor(total_free / avg_job_minutes) if avg_job_minutes > 0 else 0
    return MoneyOpportunity(
        free_minutes=int(round(total_free)),
        jobs_that_fit=jobs,
        potential_revenue=int(round(jobs * revenue_per_job)),
        days_analyzed=days,
    )
