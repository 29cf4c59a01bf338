"""Workload saturation flags per day and per assignee, and day-move suggestions.

Informational only; nothing is blocked when a flag is raised.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from typing import Iterable, Optional

from task_intelligence.schema import Priority, Task
from task_intelligence.timeutil import local_day


@dataclass(frozen=True)
class WorkloadThresholds:
    tasks_per_day_overload: int = 8
    high_priority_per_day_critical: int = 4
    tasks_per_assignee_overload: int = 12


@dataclass
class OverloadedDay:
    day: date
    total: int
    high_priority: int
    is_overloaded: bool
    is_critical: bool
    reason: str


@dataclass
class OverloadedAssignee:
    assignee: str
    total: int
    reason: str


@dataclass
class WorkloadFlags:
    days: list[OverloadedDay] = field(default_factory=list)
    assignees: list[OverloadedAssignee] = field(default_factory=list)


def workload_flags(
    tasks: Iterable[Task], thresholds: WorkloadThresholds = WorkloadThresholds(), tz: Optional[tzinfo] = None
) -> WorkloadFlags:
    """Count pending tasks per due day and per assignee and flag the busy ones."""

    day_total: Counter = Counter()
    day_high: Counter = Counter()
    assignee_total: Counter = Counter()

    for task in tasks:
        if not task.is_pending:
            continue
        if task.due_date is not None:
            day = local_day(task.due_date, tz)
            day_total[day] += 1
            if task.priority == Priority.HIGH:
                day_high[day] += 1
        if task.assigned_to:
            assignee_total[task.assigned_to] += 1

    days: list[OverloadedDay] = []
    for day, total in day_total.items():
        high = day_high[day]
        overloaded = total >= thresholds.tasks_per_day_overload
        critical = high >= thresholds.high_priority_per_day_critical
        if not overloaded and not critical:
            continue
        reasons = []
        if overloaded:
            reasons.append(f"{total} tasks (over limit {thresholds.tasks_per_day_overload})")
        if critical:
            reasons.append(f"{high} high-priority (critical limit {thresholds.high_priority_per_day_critical})")
        days.append(OverloadedDay(day, total, high, overloaded, critical, "; ".join(reasons)))

    assignees = [
        OverloadedAssignee(who, total, f"{total} tasks (over limit {thresholds.tasks_per_assignee_overload})")
        for who, total in assignee_total.items()
        if total >= thresholds.tasks_per_assignee_overload
    ]

    days.sort(key=lambda item: item.day)
    assignees.sort(key=lambda item: -item.total)
    return WorkloadFlags(days=days, assignees=assignees)


@dataclass
class DayMoveSuggestion:
    task_id: str
    task_title: str
    from_day: date
    to_day: date
    reason: str


def _candidate_days(task_days: Iterable[date], overloaded: list[OverloadedDay], window_days: int) -> list[date]:
    known = set(task_days) | {item.day for item in overloaded}
    if not known:
        return []
    first = min(known) - timedelta(days=window_days)
    last = max(known) + timedelta(days=window_days)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def _nearest_lighter_day(
    source: date,
    source_load: int,
    day_loads: Counter,
    overloaded_days: set[date],
    overload_threshold: int,
    candidates: list[date],
) -> Optional[date]:
    best: Optional[tuple[date, int, int]] = None
    for day in candidates:
        if day == source:
            continue
        load = day_loads[day]
        if load >= source_load:
            continue
        distance = abs((day - source).days)
        busy = day in overloaded_days or load >= overload_threshold
        if best is None or distance < best[2] or (distance == best[2] and not busy and load < best[1]):
            best = (day, load, distance)
    return best[0] if best else None


def suggest_day_moves(
    tasks: Iterable[Task],
    overloaded: list[OverloadedDay],
    tz: Optional[tzinfo] = None,
    max_suggestions: int = 5,
    window_days: int = 14,
    overload_threshold: int = WorkloadThresholds.tasks_per_day_overload,
) -> list[DayMoveSuggestion]:
    """Suggest moving low-priority tasks off overloaded days to the nearest lighter day.

    Advisory only: due dates change when a person accepts a suggestion.
    """

    if not overloaded:
        return []

    dated = [task for task in tasks if task.due_date is not None]
    due_days = {task.id: local_day(task.due_date, tz) for task in dated}
    day_loads: Counter = Counter(due_days.values())
    overloaded_days = {item.day for item in overloaded}
    candidates = _candidate_days(due_days.values(), overloaded, window_days)

    suggestions: list[DayMoveSuggestion] = []
    suggested: set[str] = set()
    for item in overloaded:
        day_tasks = sorted((t for t in dated if due_days[t.id] == item.day), key=lambda t: t.priority.rank)
        for task in day_tasks:
            if len(suggestions) >= max_suggestions or task.id in suggested:
                continue
            target = _nearest_lighter_day(item.day, item.total, day_loads, overloaded_days, overload_threshold, candidates)
            if target is None:
                continue
            suggested.add(task.id)
            suggestions.append(
                DayMoveSuggestion(
                    task_id=task.id,
                    task_title=task.title,
                    from_day=item.day,
                    to_day=target,
                    reason=f"Move to {target:%A} to reduce overload on this day.",
                )
            )
    return suggestions
