"""Multi-factor "what to do next" ranking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Optional

from task_intelligence.schema import Client, Task
from task_intelligence.timeutil import ensure_aware, local_day

SALE_SOURCE = "SALE"
SALE_POINTS = 25
VIP_POINTS = 15
DEFAULT_DURATION_MINUTES = 30
ELIGIBLE_WINDOW = timedelta(days=7)


@dataclass
class RankedAction:
    task: Task
    value: float
    urgency_score: int
    revenue_score: int
    duration_minutes: int


def is_vip(client: Optional[Client], spend_threshold: float, score_threshold: float) -> bool:
    if client is None:
        return False
    if client.total_spent is not None and client.total_spent > spend_threshold:
        return True
    return client.score is not None and client.score >= score_threshold


def urgency_score(due: Optional[datetime], now: datetime, tz: Optional[tzinfo] = None) -> int:
    if due is None:
        return 0
    due = ensure_aware(due, tz)
    if local_day(due, tz) <= local_day(now, tz):
        return 50
    remaining = due - now
    if remaining <= timedelta(hours=24):
        return 35
    if remaining <= timedelta(hours=72):
        return 20
    return 10


def revenue_score(task: Task, client: Optional[Client], spend_threshold: float, score_threshold: float) -> int:
    if (task.source_module or "").upper() == SALE_SOURCE:
        return SALE_POINTS
    if is_vip(client, spend_threshold, score_threshold):
        return VIP_POINTS
    return 0


def _eligible(task: Task, now: datetime, tz: Optional[tzinfo]) -> bool:
    if not task.is_pending:
        return False
    if task.due_date is None:
        return True
    return ensure_aware(task.due_date, tz) <= now + ELIGIBLE_WINDOW


def rank_next_actions(
    tasks: Iterable[Task],
    now: datetime,
    clients: Optional[dict[str, Client]] = None,
    limit: int = 5,
    tz: Optional[tzinfo] = None,
    vip_spend_threshold: float = 5000.0,
    vip_score_threshold: float = 80.0,
) -> list[RankedAction]:
    """Top pending tasks by priority score + urgency + revenue; quicker work first on ties."""

    now = ensure_aware(now, tz)
    clients = clients or {}
    ranked: list[RankedAction] = []
    for task in tasks:
        if not _eligible(task, now, tz):
            continue
        client = clients.get(task.client_id) if task.client_id else None
        urgency = urgency_score(task.due_date, now, tz)
        revenue = revenue_score(task, client, vip_spend_threshold, vip_score_threshold)
        ranked.append(
            RankedAction(
                task=task,
                value=float(task.priority_score or 0.0) + urgency + revenue,
                urgency_score=urgency,
                revenue_score=revenue,
                duration_minutes=task.estimated_minutes or DEFAULT_DURATION_MINUTES,
            )
        )

    ranked.sort(key=lambda action: (-action.value, action.duration_minutes))
    return ranked[:limit]
