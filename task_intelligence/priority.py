"""Additive priority scoring for tasks."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Optional

from task_intelligence.schema import Priority, Task, TaskStatus
from task_intelligence.timeutil import ensure_aware, iso_week_bounds

DUE_24H_POINTS = 200
DUE_48H_POINTS = 120
DUE_THIS_WEEK_POINTS = 60
BLOCKING_POINTS = 180
SLA_POINTS = 120
PENDING_POINTS = 40

_PRIORITY_POINTS = {Priority.HIGH: 150, Priority.MEDIUM: 80, Priority.LOW: 0}


def _due_points(due: Optional[datetime], now: datetime, tz: Optional[tzinfo]) -> int:
    if due is None:
        return 0
    due = ensure_aware(due, tz)
    remaining = due - now
    if remaining <= timedelta(hours=24):
        return DUE_24H_POINTS
    if remaining <= timedelta(hours=48):
        return DUE_48H_POINTS
    week_start, week_end = iso_week_bounds(now, tz)
    if week_start <= due < week_end:
        return DUE_THIS_WEEK_POINTS
    return 0


def score_task(task: Task, now: datetime, tz: Optional[tzinfo] = None, return_components: bool = False):
    """Compute the urgency/risk score of a task at ``now``.

    Each term is independent so the score can be explained term by term;
    missing optional attributes contribute nothing.
    """

    now = ensure_aware(now, tz)
    components = {
        "due": _due_points(task.due_date, now, tz),
        "priority": _PRIORITY_POINTS.get(task.priority, 0),
        "blocking": BLOCKING_POINTS if task.is_blocking else 0,
        "sla": SLA_POINTS if task.sla_minutes is not None and task.sla_minutes > 0 else 0,
        "pending": PENDING_POINTS if task.status == TaskStatus.PENDING else 0,
    }
    score = float(sum(components.values()))

    if return_components:
        return {"score": score, **components}
    return score
