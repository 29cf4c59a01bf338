"""Historical duration features used to estimate pending work."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

import numpy as np

from task_intelligence.schema import Task, TaskStatus
from task_intelligence.timeutil import minutes_between

FALLBACK_ESTIMATE_MINUTES = 30
DEFAULT_JOB_MINUTES = 60


def average_minutes_by_type(tasks: Iterable[Task]) -> dict[str, float]:
    """Mean resolution time (completed_at - created_at) per task type.

    Negative durations come from clock anomalies and are discarded.
    """

    by_type: dict[str, list[float]] = defaultdict(list)
    for task in tasks:
        if task.status != TaskStatus.DONE or task.completed_at is None or task.created_at is None:
            continue
        minutes = minutes_between(task.created_at, task.completed_at)
        if minutes < 0:
            continue
        by_type[task.type].append(minutes)

    return {task_type: float(np.mean(values)) for task_type, values in by_type.items() if values}


def actual_minutes(task: Task) -> Optional[float]:
    """Real duration of a completed task, from its scheduled start when known."""

    if task.completed_at is None:
        return None
    start = task.start_at if task.start_at is not None and task.start_at <= task.completed_at else task.created_at
    if start is None:
        return None
    minutes = minutes_between(start, task.completed_at)
    return minutes if minutes >= 0 else None


def average_actual_minutes_by_type(tasks: Iterable[Task]) -> dict[str, float]:
    """Mean real working time per type, measured from start (or creation) to completion."""

    by_type: dict[str, list[float]] = defaultdict(list)
    for task in tasks:
        if task.status != TaskStatus.DONE:
            continue
        minutes = actual_minutes(task)
        if minutes is not None:
            by_type[task.type].append(minutes)

    return {task_type: float(np.mean(values)) for task_type, values in by_type.items() if values}


def average_estimated_minutes(tasks: Iterable[Task], default: int = DEFAULT_JOB_MINUTES) -> int:
    """Rounded mean of explicit estimates, or ``default`` when none exist."""

    estimates = [task.estimated_minutes for task in tasks if task.estimated_minutes is not None]
    if not estimates:
        return default
    return int(round(float(np.mean(estimates))))


class DurationEstimator:
    """Explicit estimate, else the historical type average, else a fixed fallback."""

    def __init__(self, averages: Optional[dict[str, float]] = None, fallback: float = FALLBACK_ESTIMATE_MINUTES) -> None:
        self.averages = dict(averages or {})
        self.fallback = fallback

    @classmethod
    def from_history(cls, tasks: Iterable[Task], fallback: float = FALLBACK_ESTIMATE_MINUTES) -> "DurationEstimator":
        return cls(average_minutes_by_type(tasks), fallback)

    def __call__(self, task: Task) -> float:
        if task.estimated_minutes is not None:
            return float(task.estimated_minutes)
        return float(self.averages.get(task.type, self.fallback))
