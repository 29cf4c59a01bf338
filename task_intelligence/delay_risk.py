"""Capacity-overflow delay-risk forecasting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Callable, Iterable, Optional

from task_intelligence.schema import Task
from task_intelligence.timeutil import local_day


@dataclass
class DelayRiskDay:
    day: date
    probability: float
    reason: str
    expected_minutes: float


def expected_load_by_day(
    tasks: Iterable[Task], estimate: Callable[[Task], float], tz: Optional[tzinfo] = None
) -> dict[date, float]:
    """Sum estimated minutes of pending tasks per local due day."""

    totals: dict[date, float] = {}
    for task in tasks:
        if not task.is_pending or task.due_date is None:
            continue
        day = local_day(task.due_date, tz)
        totals[day] = totals.get(day, 0.0) + estimate(task)
    return totals


def breach_probability(expected_minutes: float, capacity_minutes: float) -> float:
    """0.5 just over capacity, rising linearly to 1.0 at twice capacity."""

    if capacity_minutes <= 0:
        return 1.0
    ratio = expected_minutes / capacity_minutes
    return max(0.0, min(1.0, 0.5 + (ratio - 1.0) * 0.5))


def forecast_delay_risk(load_by_day: dict[date, float], capacity_minutes_per_day: float) -> list[DelayRiskDay]:
    """Flag days whose expected load strictly exceeds daily capacity."""

    result: list[DelayRiskDay] = []
    for day, expected in load_by_day.items():
        if expected <= 0:
            continue
        if capacity_minutes_per_day <= 0:
            result.append(
                DelayRiskDay(
                    day=day,
                    probability=1.0,
                    reason=f"Expected {round(expected)} min of work with no available capacity.",
                    expected_minutes=expected,
                )
            )
            continue
        if expected <= capacity_minutes_per_day:
            continue

        ratio = expected / capacity_minutes_per_day
        probability = breach_probability(expected, capacity_minutes_per_day)
        result.append(
            DelayRiskDay(
                day=day,
                probability=round(probability, 2),
                reason=(
                    f"Expected {round(expected)} min of work vs {round(capacity_minutes_per_day)} min capacity "
                    f"({ratio * 100:.0f}% of day)."
                ),
                expected_minutes=expected,
            )
        )

    return sorted(result, key=lambda item: item.day)
