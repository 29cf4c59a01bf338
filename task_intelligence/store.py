"""In-memory task store implementing the repository port."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import threading
from datetime import datetime, tzinfo
from typing import Any, Iterable, Iterator, Optional

from task_intelligence.schema import Client, Reminder, Task
from task_intelligence.timeutil import ensure_aware

logger = logging.getLogger(__name__)


class _StagedWrites:
    """Unit of work that records field updates until the store commits them."""

    def __init__(self, known_ids: set[str]) -> None:
        self._known_ids = known_ids
        self.changes: dict[str, dict[str, Any]] = {}

    def _stage(self, task_id: str, **fields: Any) -> None:
        if task_id not in self._known_ids:
            raise KeyError(f"unknown task {task_id}")
        self.changes.setdefault(task_id, {}).update(fields)

    def set_priority_score(self, task_id: str, score: float, calculated_at: datetime) -> None:
        self._stage(task_id, priority_score=float(score), priority_calculated_at=calculated_at)

    def set_route_order(self, task_id: str, route_order: Optional[int]) -> None:
        self._stage(task_id, route_order=route_order)

    def set_assignee(self, task_id: str, assignee: Optional[str]) -> None:
        self._stage(task_id, assigned_to=assignee)


class InMemoryTaskStore:
    """
    Keyed store of tasks, reminders and clients.

    Reads return copies so callers work on snapshots. Writes go through
    ``transaction()`` and become visible only when the block exits cleanly.
    Naive reminder times are read in ``tz`` (UTC when omitted).
    """

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        reminders: Iterable[Reminder] = (),
        clients: Iterable[Client] = (),
        tz: Optional[tzinfo] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._tz = tz
        self._tasks: dict[str, Task] = {task.id: task for task in tasks}
        self._reminders: list[Reminder] = list(reminders)
        self._clients: dict[str, Client] = {client.id: client for client in clients}
        logger.info(
            "InMemoryTaskStore ready tasks=%d reminders=%d clients=%d",
            len(self._tasks),
            len(self._reminders),
            len(self._clients),
        )

    # ---- loading ----

    def add_task(self, task: Task) -> None:
        with self._lock:
            self._tasks[task.id] = task

    def add_reminder(self, reminder: Reminder) -> None:
        with self._lock:
            self._reminders.append(reminder)

    def add_client(self, client: Client) -> None:
        with self._lock:
            self._clients[client.id] = client

    # ---- reads ----

    def list_tasks(self, user_id: str) -> list[Task]:
        with self._lock:
            return [dataclasses.replace(task) for task in self._tasks.values() if task.user_id == user_id]

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            return dataclasses.replace(task) if task is not None else None

    def list_reminders(self, user_id: str, start: datetime, end: datetime) -> list[Reminder]:
        with self._lock:
            return [
                dataclasses.replace(reminder)
                for reminder in self._reminders
                if reminder.user_id == user_id
                and ensure_aware(reminder.start, self._tz) <= end
                and ensure_aware(reminder.end, self._tz) >= start
            ]

    def list_clients(self, user_id: str) -> list[Client]:
        with self._lock:
            return [dataclasses.replace(client) for client in self._clients.values() if client.user_id == user_id]

    # ---- writes ----

    @contextlib.contextmanager
    def transaction(self) -> Iterator[_StagedWrites]:
        with self._lock:
            staged = _StagedWrites(set(self._tasks))
            try:
                yield staged
            except Exception:
                logger.warning("Transaction rolled back; %d staged task update(s) discarded", len(staged.changes))
                raise
            for task_id, fields in staged.changes.items():
                self._tasks[task_id] = dataclasses.replace(self._tasks[task_id], **fields)
            logger.debug("Transaction committed; %d task(s) updated", len(staged.changes))
