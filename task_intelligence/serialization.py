"""JSON-ready payloads for engine results."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any

from task_intelligence.schema import Task
from task_intelligence.timeutil import format_instant

_TASK_FIELDS = (
    "id",
    "title",
    "type",
    "status",
    "priority",
    "due_date",
    "start_at",
    "end_at",
    "estimated_minutes",
    "priority_score",
    "assigned_to",
    "route_order",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def task_summary(task: Task) -> dict:
    return {_camel(name): to_payload(getattr(task, name)) for name in _TASK_FIELDS}


def to_payload(value: Any) -> Any:
    """Convert results into plain JSON types; instants become ISO-8601 UTC strings."""

    if isinstance(value, datetime):
        return format_instant(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Task):
        return task_summary(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {_camel(f.name): to_payload(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(to_payload(k)) if not isinstance(k, str) else k: to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value
