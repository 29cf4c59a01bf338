"""Workforce redistribution: move low-priority work from overloaded assignees.

The planner is a single greedy pass. It only proposes moves; nothing is
reassigned until a person approves a suggestion.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from task_intelligence.schema import Priority, Task

logger = logging.getLogger(__name__)

Estimate = Callable[[Task], float]


@dataclass
class WorkforceSuggestion:
    task_id: str
    from_assignee: Optional[str]
    to_assignee: Optional[str]
    benefit_minutes: float


def priority_rank(task: Task) -> float:
    """Numeric priority score when present, else the LOW/MEDIUM/HIGH rank."""

    if task.priority_score is not None and math.isfinite(task.priority_score):
        return task.priority_score
    if isinstance(task.priority, Priority):
        return task.priority.rank
    return Priority.MEDIUM.rank


def sort_by_lowest_priority(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=priority_rank)


def load_per_assignee(tasks: list[Task], estimate: Estimate) -> dict[Optional[str], float]:
    load: dict[Optional[str], float] = {}
    for task in tasks:
        load[task.assigned_to] = load.get(task.assigned_to, 0.0) + estimate(task)
    return load


def build_workforce_suggestions(
    tasks: list[Task],
    estimate: Estimate,
    capacity_per_assignee: float,
    max_suggestions: int = 20,
) -> list[WorkforceSuggestion]:
    """Propose moves from over-capacity to under-capacity assignees.

    Both comparisons are strict: an assignee exactly at capacity neither gives
    nor receives work. A task only moves when it fits entirely into the
    receiver's spare capacity; the receiver with the most spare room wins and
    earlier assignees win ties. Unassigned work (``None``) is an ordinary
    bucket that is always present, so it can take tasks even when empty.
    """

    pending = [task for task in tasks if task.is_pending]
    load = load_per_assignee(pending, estimate)

    # The unassigned bucket always exists and can receive work.
    assignees = list(dict.fromkeys([*load, None]))
    overloaded = [who for who in assignees if load.get(who, 0.0) > capacity_per_assignee]
    underloaded = [who for who in assignees if load.get(who, 0.0) < capacity_per_assignee]
    if not overloaded or not underloaded:
        return []

    by_assignee: dict[Optional[str], list[Task]] = {}
    for task in pending:
        by_assignee.setdefault(task.assigned_to, []).append(task)

    suggestions: list[WorkforceSuggestion] = []
    for source in overloaded:
        if len(suggestions) >= max_suggestions:
            break
        overflow = load.get(source, 0.0) - capacity_per_assignee

        for task in sort_by_lowest_priority(by_assignee.get(source, [])):
            if len(suggestions) >= max_suggestions:
                break
            minutes = estimate(task)
            if minutes <= 0:
                continue

            target = None
            best_spare = -1.0
            for candidate in underloaded:
                if candidate == source:
                    continue
                spare = capacity_per_assignee - load.get(candidate, 0.0)
                if spare >= minutes and spare > best_spare:
                    best_spare = spare
                    target = candidate
            if best_spare < 0:
                continue

            suggestions.append(
                WorkforceSuggestion(task_id=task.id, from_assignee=source, to_assignee=target, benefit_minutes=minutes)
            )
            overflow -= minutes
            load[target] = load.get(target, 0.0) + minutes
            if load[target] >= capacity_per_assignee:
                underloaded.remove(target)
            if overflow <= 0:
                break

    logger.debug("workforce plan: overloaded=%d suggestions=%d", len(overloaded), len(suggestions))
    return suggestions
