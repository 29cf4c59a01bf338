"""Core data schema for task snapshots."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from task_intelligence.errors import ValidationError


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class ReminderStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


@dataclass
class Task:
    """Work item record as supplied by the task store."""

    id: str
    user_id: str
    title: str = ""
    type: str = "MANUAL"
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    created_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    estimated_minutes: Optional[int] = None
    completed_at: Optional[datetime] = None
    priority_score: Optional[float] = None
    priority_calculated_at: Optional[datetime] = None
    is_blocking: bool = False
    sla_minutes: Optional[int] = None
    assigned_to: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    route_order: Optional[int] = None
    source_module: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TaskStatus.PENDING

    @property
    def has_location(self) -> bool:
        return _finite(self.latitude) and _finite(self.longitude)


@dataclass
class Reminder:
    """Busy block on the user's calendar."""

    id: str
    user_id: str
    start: datetime
    end: datetime
    status: ReminderStatus = ReminderStatus.ACTIVE


@dataclass
class Client:
    """Client summary used for revenue signals."""

    id: str
    user_id: str
    name: str = ""
    total_spent: float = 0.0
    score: Optional[float] = None


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def validate_task(task: Task) -> Task:
    """Check the completion invariant: completed_at is set iff status is DONE."""

    if (task.status == TaskStatus.DONE) != (task.completed_at is not None):
        raise ValidationError("completed_at", f"task {task.id}: completed_at must be set iff status is DONE")
    if task.estimated_minutes is not None and task.estimated_minutes <= 0:
        raise ValidationError("estimated_minutes", f"task {task.id}: estimated_minutes must be positive")
    if task.sla_minutes is not None and task.sla_minutes < 0:
        raise ValidationError("sla_minutes", f"task {task.id}: sla_minutes must not be negative")
    return task
