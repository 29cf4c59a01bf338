"""JSON adapter for task snapshots."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Optional

from task_intelligence.adapters.fields import choice, instant, is_blank, number, snake_keys, task_from_record, text
from task_intelligence.schema import Client, Reminder, ReminderStatus, Task


@dataclass
class Snapshot:
    tasks: list[Task] = field(default_factory=list)
    reminders: list[Reminder] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)


def _parse_reminder(item: dict, index: int, tz: Optional[tzinfo]) -> Reminder:
    where = f"Reminder {index}"
    data = snake_keys(item)
    missing = [name for name in ("id", "user_id", "start", "end") if is_blank(data.get(name))]
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")
    start = instant(data["start"], "start", where, tz)
    end = instant(data["end"], "end", where, tz)
    if end < start:
        raise ValueError(f"{where}: end is before start")
    return Reminder(
        id=str(data["id"]).strip(),
        user_id=str(data["user_id"]).strip(),
        start=start,
        end=end,
        status=choice(data.get("status"), ReminderStatus, "status", where, ReminderStatus.ACTIVE),
    )


def _parse_client(item: dict, index: int) -> Client:
    where = f"Client {index}"
    data = snake_keys(item)
    missing = [name for name in ("id", "user_id") if is_blank(data.get(name))]
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")
    return Client(
        id=str(data["id"]).strip(),
        user_id=str(data["user_id"]).strip(),
        name=text(data.get("name")) or "",
        total_spent=number(data.get("total_spent"), "total_spent", where) or 0.0,
        score=number(data.get("score"), "score", where),
    )


def _items(payload: dict, key: str) -> list:
    items = payload.get(key, [])
    if not isinstance(items, list):
        raise ValueError(f"JSON '{key}' must be a list of objects")
    return items


def load_snapshot(file_path: str, tz: Optional[tzinfo] = None) -> Snapshot:
    """Parse a JSON snapshot: a list of tasks or an object with tasks, reminders and clients."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if isinstance(payload, list):
        payload = {"tasks": payload}
    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be a list of tasks or an object")

    return Snapshot(
        tasks=[task_from_record(item, f"Item {i}", tz) for i, item in enumerate(_items(payload, "tasks"), start=1)],
        reminders=[_parse_reminder(item, i, tz) for i, item in enumerate(_items(payload, "reminders"), start=1)],
        clients=[_parse_client(item, i) for i, item in enumerate(_items(payload, "clients"), start=1)],
    )


def parse(file_path: str, tz: Optional[tzinfo] = None) -> list[Task]:
    """Parse the tasks of a JSON snapshot file."""

    return load_snapshot(file_path, tz).tasks
