"""Field coercion shared by the snapshot adapters."""

from __future__ import annotations

import re
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Optional, TypeVar

from task_intelligence.schema import Priority, Task, TaskStatus, validate_task
from task_intelligence.timeutil import parse_instant

E = TypeVar("E", bound=Enum)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_TRUE = {"1", "true", "yes", "y", "on"}

REQUIRED_TASK_FIELDS = ("id", "user_id")


def snake_keys(record: dict) -> dict:
    return {_CAMEL_RE.sub("_", str(key)).lower(): value for key, value in record.items()}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def text(value: Any) -> Optional[str]:
    return None if is_blank(value) else str(value).strip()


def instant(value: Any, name: str, where: str, tz: Optional[tzinfo]) -> Optional[datetime]:
    if is_blank(value):
        return None
    try:
        return parse_instant(str(value), tz)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{where}: malformed {name}") from exc


def number(value: Any, name: str, where: str, cast=float):
    if is_blank(value):
        return None
    try:
        return cast(float(value)) if cast is int else cast(value)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{where}: invalid {name}") from exc


def flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return not is_blank(value) and str(value).strip().lower() in _TRUE


def choice(value: Any, enum_cls: type[E], name: str, where: str, default: E) -> E:
    if is_blank(value):
        return default
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError as exc:
        raise ValueError(f"{where}: invalid {name} '{value}'") from exc


def task_from_record(record: dict, where: str, tz: Optional[tzinfo]) -> Task:
    """Build a validated Task from a flat record (snake_case or camelCase keys)."""

    if not isinstance(record, dict):
        raise ValueError(f"{where}: expected an object")
    item = snake_keys(record)
    missing = [name for name in REQUIRED_TASK_FIELDS if is_blank(item.get(name))]
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")

    task = Task(
        id=str(item["id"]).strip(),
        user_id=str(item["user_id"]).strip(),
        title=text(item.get("title")) or "",
        type=text(item.get("type")) or "MANUAL",
        status=choice(item.get("status"), TaskStatus, "status", where, TaskStatus.PENDING),
        priority=choice(item.get("priority"), Priority, "priority", where, Priority.MEDIUM),
        created_at=instant(item.get("created_at"), "created_at", where, tz),
        due_date=instant(item.get("due_date"), "due_date", where, tz),
        start_at=instant(item.get("start_at"), "start_at", where, tz),
        end_at=instant(item.get("end_at"), "end_at", where, tz),
        estimated_minutes=number(item.get("estimated_minutes"), "estimated_minutes", where, int),
        completed_at=instant(item.get("completed_at"), "completed_at", where, tz),
        priority_score=number(item.get("priority_score"), "priority_score", where),
        is_blocking=flag(item.get("is_blocking")),
        sla_minutes=number(item.get("sla_minutes"), "sla_minutes", where, int),
        assigned_to=text(item.get("assigned_to")),
        latitude=number(item.get("latitude"), "latitude", where),
        longitude=number(item.get("longitude"), "longitude", where),
        route_order=number(item.get("route_order"), "route_order", where, int),
        source_module=text(item.get("source_module")),
        client_id=text(item.get("client_id")),
    )
    try:
        return validate_task(task)
    except ValueError as exc:
        raise ValueError(f"{where}: {exc}") from exc
