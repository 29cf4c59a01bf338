"""Per-assignee performance metrics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Iterable, Optional

from task_intelligence.schema import Task, TaskStatus
from task_intelligence.timeutil import ensure_aware, minutes_between


@dataclass
class AssigneePerformance:
    assignee: Optional[str]
    assigned: int
    completed: int
    overdue: int
    within_sla: int
    avg_resolution_minutes: int
    current_load: int

    @property
    def sla_rate(self) -> float:
        return self.within_sla / self.assigned * 100.0 if self.assigned else 100.0


def compute_performance(tasks: Iterable[Task], now: datetime, tz: Optional[tzinfo] = None) -> list[AssigneePerformance]:
    """Compute assigned, completed, overdue, SLA and load counts per assignee."""

    now = ensure_aware(now, tz)
    groups: dict[Optional[str], dict] = {}
    for task in tasks:
        key = task.assigned_to.strip() if task.assigned_to and task.assigned_to.strip() else None
        group = groups.setdefault(
            key, {"assigned": 0, "completed": 0, "overdue": 0, "within_sla": 0, "resolutions": [], "load": 0}
        )
        group["assigned"] += 1

        if task.status == TaskStatus.DONE:
            group["completed"] += 1
            if task.completed_at is not None and task.created_at is not None:
                resolution = minutes_between(task.created_at, task.completed_at)
                group["resolutions"].append(resolution)
                if task.sla_minutes is not None and resolution <= task.sla_minutes:
                    group["within_sla"] += 1
        elif task.status == TaskStatus.PENDING:
            group["load"] += 1
            if task.due_date is not None and ensure_aware(task.due_date, tz) < now:
                group["overdue"] += 1

    rows = []
    for assignee, group in groups.items():
        resolutions = group["resolutions"]
        rows.append(
            AssigneePerformance(
                assignee=assignee,
                assigned=group["assigned"],
                completed=group["completed"],
                overdue=group["overdue"],
                within_sla=group["within_sla"],
                avg_resolution_minutes=round(sum(resolutions) / len(resolutions)) if resolutions else 0,
                current_load=group["load"],
            )
        )

    rows.sort(key=lambda row: (-row.current_load, row.sla_rate))
    return rows
