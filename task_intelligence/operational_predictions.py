"""Rule-based operational predictions over pending work.

Every rule compares historical real durations, cancellations and capacity with
what is still pending. Nothing is trained and nothing is written back.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Optional

from task_intelligence.delay_risk import breach_probability, expected_load_by_day
from task_intelligence.durations import FALLBACK_ESTIMATE_MINUTES, DurationEstimator, average_actual_minutes_by_type
from task_intelligence.schema import Task, TaskStatus
from task_intelligence.timeutil import ensure_aware, local_day

RATIO_RISK_THRESHOLD = 1.2
CLIENT_CANCELLATION_RISK_COUNT = 2
CLIENT_RISK_PROBABILITY = 0.6
DEADLINE_WINDOW = timedelta(hours=48)


class PredictionType(str, Enum):
    DELAY_PROBABILITY = "DELAY_PROBABILITY"
    DAY_SATURATION = "DAY_SATURATION"
    CLIENT_RISK = "CLIENT_RISK"
    TYPE_OVERRUN = "TYPE_OVERRUN"
    DEADLINE_BREACH = "DEADLINE_BREACH"


class ImpactLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_IMPACT_ORDER = {ImpactLevel.HIGH: 0, ImpactLevel.MEDIUM: 1, ImpactLevel.LOW: 2}


@dataclass
class AffectedTask:
    id: str
    title: str


@dataclass
class OperationalPrediction:
    type: PredictionType
    title: str
    description: str
    probability: float
    impact_level: ImpactLevel
    affected_tasks: list[AffectedTask] = field(default_factory=list)


def impact_for(probability: float) -> ImpactLevel:
    if probability >= 0.7:
        return ImpactLevel.HIGH
    if probability >= 0.4:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def overrun_ratio_by_type(
    completed: Iterable[Task], averages: dict[str, float], fallback: float = FALLBACK_ESTIMATE_MINUTES
) -> dict[str, float]:
    """Worst ratio of the type's mean real duration to an individual estimate."""

    ratios: dict[str, float] = {}
    for task in completed:
        average = averages.get(task.type)
        if not average:
            continue
        ratio = average / float(task.estimated_minutes or fallback)
        if ratio > ratios.get(task.type, 0.0):
            ratios[task.type] = ratio
    return ratios


def _affected(pending: list[Task], ids: Iterable[str]) -> list[AffectedTask]:
    wanted = set(ids)
    return [AffectedTask(task.id, task.title) for task in pending if task.id in wanted]


def _type_overruns(pending: list[Task], ratios: dict[str, float]) -> list[OperationalPrediction]:
    predictions = []
    for task_type, ratio in ratios.items():
        if ratio < RATIO_RISK_THRESHOLD:
            continue
        ids = [task.id for task in pending if task.type == task_type]
        if not ids:
            continue
        predictions.append(
            OperationalPrediction(
                type=PredictionType.TYPE_OVERRUN,
                title="Task type that usually runs long",
                description=(
                    f'Tasks of type "{task_type}" took {round((ratio - 1) * 100)}% longer than estimated on '
                    f"average. Consider a buffer for the {len(ids)} pending task(s)."
                ),
                probability=round(min(1.0, (ratio - 1) * 0.5 + 0.5), 2),
                impact_level=impact_for(min(1.0, ratio - 0.5)),
                affected_tasks=_affected(pending, ids),
            )
        )
    return predictions


def _day_saturation(
    pending: list[Task], estimate: DurationEstimator, capacity: float, tz: Optional[tzinfo]
) -> list[OperationalPrediction]:
    predictions = []
    for day, total in sorted(expected_load_by_day(pending, estimate, tz).items()):
        if total <= capacity:
            continue
        probability = breach_probability(total, capacity)
        ids = [task.id for task in pending if task.due_date is not None and local_day(task.due_date, tz) == day]
        predictions.append(
            OperationalPrediction(
                type=PredictionType.DAY_SATURATION,
                title="Day at risk of saturation",
                description=(
                    f"{day.isoformat()} has {round(total)} min planned against {round(capacity)} min of capacity. "
                    f"Delay probability: {probability * 100:.0f}%."
                ),
                probability=round(probability, 2),
                impact_level=impact_for(probability),
                affected_tasks=_affected(pending, ids),
            )
        )
    return predictions


def _client_risk(tasks: list[Task], pending: list[Task]) -> list[OperationalPrediction]:
    cancellations = Counter(task.client_id for task in tasks if task.status == TaskStatus.CANCELLED and task.client_id)
    risky = {client for client, count in cancellations.items() if count >= CLIENT_CANCELLATION_RISK_COUNT}
    ids = [task.id for task in pending if task.client_id in risky]
    if not ids:
        return []
    return [
        OperationalPrediction(
            type=PredictionType.CLIENT_RISK,
            title="Clients with a troubled history",
            description=(
                f"{len(risky)} client(s) with {CLIENT_CANCELLATION_RISK_COUNT}+ cancelled tasks. "
                f"{len(ids)} pending task(s) linked to them."
            ),
            probability=CLIENT_RISK_PROBABILITY,
            impact_level=ImpactLevel.MEDIUM,
            affected_tasks=_affected(pending, ids),
        )
    ]


def _deadline_breaches(
    pending: list[Task], averages: dict[str, float], estimate: DurationEstimator, now: datetime, tz: Optional[tzinfo]
) -> list[OperationalPrediction]:
    predictions = []
    for task in pending:
        if task.due_date is None:
            continue
        average = averages.get(task.type)
        ratio = average / estimate(task) if average else 1.0
        probability = min(1.0, 0.4 + (ratio - 1) * 0.5) if ratio >= RATIO_RISK_THRESHOLD else 0.2
        due_in = ensure_aware(task.due_date, tz) - now
        if timedelta(0) < due_in <= DEADLINE_WINDOW and probability >= 0.5:
            predictions.append(
                OperationalPrediction(
                    type=PredictionType.DEADLINE_BREACH,
                    title="Deadline at risk",
                    description=f'"{task.title}" is due soon and this type of task usually overruns its estimate.',
                    probability=round(probability, 2),
                    impact_level=impact_for(probability),
                    affected_tasks=_affected(pending, [task.id]),
                )
            )
    return predictions


def _delay_probability(
    pending: list[Task], averages: dict[str, float], estimate: DurationEstimator
) -> list[OperationalPrediction]:
    risky: list[tuple[str, float]] = []
    for task in pending:
        average = averages.get(task.type)
        minutes = estimate(task)
        if not average or minutes <= 0:
            continue
        ratio = average / minutes
        if ratio < RATIO_RISK_THRESHOLD:
            continue
        probability = min(1.0, 0.3 + (ratio - 1) * 0.4)
        if probability >= 0.5:
            risky.append((task.id, probability))
    if not risky:
        return []
    return [
        OperationalPrediction(
            type=PredictionType.DELAY_PROBABILITY,
            title="Per-task delay probability",
            description=(
                f"{len(risky)} task(s) likely to run late, based on the mean real duration of their type "
                "against the estimate."
            ),
            probability=round(sum(p for _, p in risky) / len(risky), 2),
            impact_level=ImpactLevel.HIGH,
            affected_tasks=_affected(pending, [task_id for task_id, _ in risky]),
        )
    ]


def predict_operational_risks(
    tasks: list[Task],
    now: datetime,
    start_day: date,
    end_day: date,
    tz: Optional[tzinfo] = None,
    capacity_minutes_per_day: float = 480,
    fallback_minutes: float = FALLBACK_ESTIMATE_MINUTES,
) -> list[OperationalPrediction]:
    """Predictions for pending tasks due in [start_day, end_day], most severe first.

    History (completed and cancelled tasks) is read from the whole ``tasks``
    list, not just the range.
    """

    now = ensure_aware(now, tz)
    completed = [task for task in tasks if task.status == TaskStatus.DONE and task.completed_at is not None]
    pending = [
        task
        for task in tasks
        if task.is_pending and task.due_date is not None and start_day <= local_day(task.due_date, tz) <= end_day
    ]

    averages = average_actual_minutes_by_type(completed)
    estimate = DurationEstimator(averages, fallback_minutes)

    predictions = _type_overruns(pending, overrun_ratio_by_type(completed, averages, fallback_minutes))
    predictions += _day_saturation(pending, estimate, capacity_minutes_per_day, tz)
    predictions += _client_risk(tasks, pending)
    predictions += _deadline_breaches(pending, averages, estimate, now, tz)
    predictions += _delay_probability(pending, averages, estimate)

    predictions.sort(key=lambda p: (_IMPACT_ORDER[p.impact_level], -p.probability))
    return predictions
