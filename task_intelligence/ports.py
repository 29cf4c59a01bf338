"""
Ports (interfaces) the engine depends on.

The service talks to the task store through these Protocols instead of a
shared database handle, so tests can run against in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import ContextManager, Optional, Protocol

from task_intelligence.schema import Client, Reminder, Task


class UnitOfWork(Protocol):
    """Staged writes; published together when the transaction commits."""

    def set_priority_score(self, task_id: str, score: float, calculated_at: datetime) -> None: ...
    def set_route_order(self, task_id: str, route_order: Optional[int]) -> None: ...
    def set_assignee(self, task_id: str, assignee: Optional[str]) -> None: ...


class TaskRepository(Protocol):
    def list_tasks(self, user_id: str) -> list[Task]: ...
    def get_task(self, task_id: str) -> Optional[Task]: ...
    def list_reminders(self, user_id: str, start: datetime, end: datetime) -> list[Reminder]: ...
    def list_clients(self, user_id: str) -> list[Client]: ...

    def transaction(self) -> ContextManager[UnitOfWork]:
        """All-or-nothing write scope: an exception inside discards every staged write."""
        ...
