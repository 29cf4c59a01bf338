"""User-scoped entry points of the task intelligence engine.

Each public method receives an already-authenticated user id, filters every
read by that owner, validates its parameters, and then delegates to a pure
engine function. Only the priority recompute, the route apply and the
reassignment apply write anything, and they always write through a
repository transaction.
"""

from __future__ import annotations

import contextlib
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

from task_intelligence import (
    agenda,
    delay_risk,
    explain,
    metrics,
    next_actions,
    operational_predictions,
    opportunity,
    overrun_model,
    workload,
)
from task_intelligence.config import Settings, get_settings
from task_intelligence.durations import DurationEstimator, average_estimated_minutes
from task_intelligence.errors import AuthorizationError, ComputationError, EngineError, ValidationError
from task_intelligence.ports import TaskRepository
from task_intelligence.priority import score_task
from task_intelligence.routing import Coordinate, RoutePlan, optimize_route
from task_intelligence.schema import Task
from task_intelligence.timeutil import end_of_day, ensure_aware, local_day, start_of_day
from task_intelligence.workforce import WorkforceSuggestion, build_workforce_suggestions

logger = logging.getLogger(__name__)

DayLike = Union[date, datetime]


class TaskIntelligenceService:
    def __init__(
        self,
        repo: TaskRepository,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repo = repo
        self.settings = settings or get_settings()
        self.tz = self.settings.tz
        self._clock = clock or (lambda: datetime.now(self.tz))

    # ---- helpers ----

    def now(self) -> datetime:
        return ensure_aware(self._clock(), self.tz)

    def _today(self) -> date:
        return local_day(self.now(), self.tz)

    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        if not user_id or not str(user_id).strip():
            logger.warning("Rejected call without an authenticated user")
            raise AuthorizationError("an authenticated user id is required")
        return str(user_id)

    def _call_store(self, what: str, fn: Callable, *args):
        try:
            return fn(*args)
        except EngineError:
            raise
        except Exception as exc:
            logger.exception("Task store failure during %s", what)
            raise ComputationError(f"failed to {what}") from exc

    @contextlib.contextmanager
    def _writes(self, what: str):
        """Repository transaction whose store failures surface as ComputationError."""
        try:
            with self.repo.transaction() as uow:
                yield uow
        except EngineError:
            raise
        except Exception as exc:
            logger.exception("Task store write failed during %s", what)
            raise ComputationError(f"failed to {what}") from exc

    def _tasks(self, user_id: str) -> list[Task]:
        return [task for task in self._call_store("load tasks", self.repo.list_tasks, user_id) if task.user_id == user_id]

    def _owned_task(self, user_id: str, task_id: str) -> Task:
        task = self._call_store("load task", self.repo.get_task, task_id)
        if task is None or task.user_id != user_id:
            logger.warning("User %s denied access to task %s", user_id, task_id)
            raise AuthorizationError(f"task {task_id} not found for this user")
        return task

    def _to_day(self, field: str, value: DayLike) -> date:
        if isinstance(value, datetime):
            return local_day(value, self.tz)
        if isinstance(value, date):
            return value
        raise ValidationError(field, f"expected a date or datetime, got {type(value).__name__}")

    def _date_range(self, start: Optional[DayLike], end: Optional[DayLike]) -> tuple[date, date]:
        today = self._today()
        start_day = self._to_day("from", start) if start is not None else today
        end_day = self._to_day("to", end) if end is not None else today + timedelta(days=self.settings.lookahead_days)
        if start_day > end_day:
            raise ValidationError("to", f"range end {end_day} is before its start {start_day}")
        if (end_day - start_day).days + 1 > self.settings.max_range_days:
            raise ValidationError("to", f"range longer than {self.settings.max_range_days} days")
        return start_day, end_day

    @staticmethod
    def _positive(field: str, value: Optional[float]) -> None:
        if value is not None and not value > 0:
            raise ValidationError(field, f"must be positive, got {value}")

    def _due_in_range(self, tasks: list[Task], start_day: date, end_day: date) -> list[Task]:
        return [
            task
            for task in tasks
            if task.is_pending and task.due_date is not None and start_day <= local_day(task.due_date, self.tz) <= end_day
        ]

    def _estimator(self, tasks: list[Task]) -> DurationEstimator:
        return DurationEstimator.from_history(tasks, fallback=self.settings.fallback_estimate_minutes)

    def _on_day(self, task: Task, day: date) -> bool:
        anchors = (task.due_date, task.start_at)
        return any(value is not None and local_day(value, self.tz) == day for value in anchors)

    # ---- priority ----

    def recalculate_priority(self, user_id: str, task_id: str) -> float:
        user_id = self._require_user(user_id)
        task = self._owned_task(user_id, task_id)
        now = self.now()
        score = score_task(task, now, self.tz)
        with self._writes("store the priority score") as uow:
            uow.set_priority_score(task.id, score, now)
        logger.info("Priority recalculated user=%s task=%s score=%.0f", user_id, task.id, score)
        return score

    def recalculate_all_priorities(self, user_id: str) -> dict[str, float]:
        """Rescore every task of the user in one all-or-nothing transaction."""

        user_id = self._require_user(user_id)
        tasks = self._tasks(user_id)
        now = self.now()
        scores = {task.id: score_task(task, now, self.tz) for task in tasks}
        with self._writes("store priority scores") as uow:
            for task_id, score in scores.items():
                uow.set_priority_score(task_id, score, now)
        logger.info("Priorities recalculated user=%s tasks=%d", user_id, len(scores))
        return scores

    def explain_priority(self, user_id: str, task_id: str) -> dict:
        user_id = self._require_user(user_id)
        return explain.explain_priority(self._owned_task(user_id, task_id), self.now(), self.tz)

    # ---- routing ----

    def _route_candidates(self, user_id: str, day: date) -> list[Task]:
        tasks = [task for task in self._tasks(user_id) if task.is_pending and self._on_day(task, day)]
        far_future = start_of_day(day + timedelta(days=1), self.tz)

        def visit_key(task: Task):
            anchor = task.start_at or task.due_date
            return (
                task.route_order if task.route_order is not None else float("inf"),
                ensure_aware(anchor, self.tz) if anchor else far_future,
                task.id,
            )

        return sorted(tasks, key=visit_key)

    def optimize_route(
        self,
        user_id: str,
        day: DayLike,
        base: Optional[Coordinate] = None,
        speed_kmh: Optional[float] = None,
    ) -> RoutePlan:
        user_id = self._require_user(user_id)
        target = self._to_day("day", day)
        self._positive("speed_kmh", speed_kmh)
        if base is not None:
            lat, lon = base
            if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
                raise ValidationError("base", f"coordinate out of range: {base}")
        speed = speed_kmh if speed_kmh is not None else self.settings.route_speed_kmh

        plan = optimize_route(self._route_candidates(user_id, target), base, speed)
        logger.info(
            "Route optimized user=%s day=%s stops=%d minutes=%.2f", user_id, target, len(plan.task_ids), plan.travel_minutes
        )
        return plan

    def apply_route_order(self, user_id: str, day: DayLike, task_ids: list[str]) -> int:
        """Persist an approved visit order as 0..k-1.

        Ids that no longer match the day are skipped, and day tasks left out of
        the order lose their previous position.
        """

        user_id = self._require_user(user_id)
        target = self._to_day("day", day)
        day_tasks = [task for task in self._tasks(user_id) if self._on_day(task, target)]
        eligible = {task.id for task in day_tasks}

        accepted: list[str] = []
        for task_id in task_ids:
            if task_id in eligible and task_id not in accepted:
                accepted.append(task_id)

        with self._writes("store the route order") as uow:
            for index, task_id in enumerate(accepted):
                uow.set_route_order(task_id, index)
            for task in day_tasks:
                if task.id not in accepted and task.route_order is not None:
                    uow.set_route_order(task.id, None)
        logger.info("Route applied user=%s day=%s accepted=%d ignored=%d", user_id, target, len(accepted), len(task_ids) - len(accepted))
        return len(accepted)

    # ---- workforce ----

    def redistribution_suggestions(
        self,
        user_id: str,
        start: Optional[DayLike] = None,
        end: Optional[DayLike] = None,
        capacity_minutes_per_day: Optional[float] = None,
    ) -> list[WorkforceSuggestion]:
        user_id = self._require_user(user_id)
        start_day, end_day = self._date_range(start, end)
        self._positive("capacity_minutes_per_day", capacity_minutes_per_day)
        daily = capacity_minutes_per_day if capacity_minutes_per_day is not None else self.settings.capacity_minutes_per_day
        capacity = daily * ((end_day - start_day).days + 1)

        tasks = self._tasks(user_id)
        suggestions = build_workforce_suggestions(
            self._due_in_range(tasks, start_day, end_day),
            self._estimator(tasks),
            capacity,
            self.settings.max_workforce_suggestions,
        )
        logger.info("Redistribution user=%s range=%s..%s suggestions=%d", user_id, start_day, end_day, len(suggestions))
        return suggestions

    def apply_reassignment(self, user_id: str, task_id: str, assignee: Optional[str]) -> Task:
        user_id = self._require_user(user_id)
        task = self._owned_task(user_id, task_id)
        with self._writes("store the assignee") as uow:
            uow.set_assignee(task.id, assignee)
        logger.info("Task reassigned user=%s task=%s from=%s to=%s", user_id, task.id, task.assigned_to, assignee)
        task.assigned_to = assignee
        return task

    # ---- forecasting ----

    def delay_risk(
        self,
        user_id: str,
        start: Optional[DayLike] = None,
        end: Optional[DayLike] = None,
        capacity_minutes_per_day: Optional[float] = None,
    ) -> list[delay_risk.DelayRiskDay]:
        user_id = self._require_user(user_id)
        start_day, end_day = self._date_range(start, end)
        self._positive("capacity_minutes_per_day", capacity_minutes_per_day)
        capacity = capacity_minutes_per_day if capacity_minutes_per_day is not None else self.settings.capacity_minutes_per_day

        tasks = self._tasks(user_id)
        loads = delay_risk.expected_load_by_day(self._due_in_range(tasks, start_day, end_day), self._estimator(tasks), self.tz)
        days = delay_risk.forecast_delay_risk(loads, capacity)
        logger.info("Delay risk user=%s range=%s..%s at_risk=%d", user_id, start_day, end_day, len(days))
        return days

    def overrun_predictions(self, user_id: str) -> list[overrun_model.OverrunPrediction]:
        """Learned overrun probabilities for pending tasks; empty without enough history."""

        user_id = self._require_user(user_id)
        tasks = self._tasks(user_id)
        X, y, feature_names = overrun_model.build_training_table(tasks)
        try:
            model, report = overrun_model.train_best_model(X, y)
        except ValueError as exc:
            logger.info("Overrun model skipped user=%s: %s", user_id, exc)
            return []
        predictions = overrun_model.predict_overruns(model, tasks, feature_names)
        logger.info("Overrun predictions user=%s model=%s tasks=%d", user_id, report["best_model"], len(predictions))
        return predictions

    def explain_overrun_model(self, user_id: str, top: int = 10) -> dict:
        """Most influential features of the user's overrun model."""

        user_id = self._require_user(user_id)
        X, y, feature_names = overrun_model.build_training_table(self._tasks(user_id))
        try:
            model, report = overrun_model.train_best_model(X, y)
        except ValueError as exc:
            logger.info("Overrun model explanation skipped user=%s: %s", user_id, exc)
            return {"type": "unavailable", "top_features": []}
        return {"model": report["best_model"], **explain.explain_model(model, feature_names, top)}

    def operational_predictions(
        self,
        user_id: str,
        start: Optional[DayLike] = None,
        end: Optional[DayLike] = None,
        capacity_minutes_per_day: Optional[float] = None,
    ) -> list[operational_predictions.OperationalPrediction]:
        """Rule-based risks (type overrun, saturation, client, deadline, delay) for the range."""

        user_id = self._require_user(user_id)
        start_day, end_day = self._date_range(start, end)
        self._positive("capacity_minutes_per_day", capacity_minutes_per_day)
        capacity = capacity_minutes_per_day if capacity_minutes_per_day is not None else self.settings.capacity_minutes_per_day

        predictions = operational_predictions.predict_operational_risks(
            self._tasks(user_id),
            self.now(),
            start_day,
            end_day,
            self.tz,
            capacity,
            self.settings.fallback_estimate_minutes,
        )
        logger.info("Operational predictions user=%s range=%s..%s count=%d", user_id, start_day, end_day, len(predictions))
        return predictions

    # ---- ranking ----

    def next_actions(self, user_id: str) -> list[next_actions.RankedAction]:
        user_id = self._require_user(user_id)
        clients = {client.id: client for client in self._call_store("load clients", self.repo.list_clients, user_id)}
        ranked = next_actions.rank_next_actions(
            self._tasks(user_id),
            self.now(),
            clients,
            limit=self.settings.next_action_limit,
            tz=self.tz,
            vip_spend_threshold=self.settings.vip_spend_threshold,
            vip_score_threshold=self.settings.vip_score_threshold,
        )
        logger.info("Next actions user=%s returned=%d", user_id, len(ranked))
        return ranked

    # ---- free time ----

    def money_opportunity(
        self,
        user_id: str,
        start: Optional[DayLike] = None,
        end: Optional[DayLike] = None,
        avg_job_minutes: Optional[float] = None,
        revenue_per_job: Optional[float] = None,
    ) -> opportunity.MoneyOpportunity:
        user_id = self._require_user(user_id)
        start_day, end_day = self._date_range(start, end)
        self._positive("avg_job_minutes", avg_job_minutes)
        if revenue_per_job is not None and revenue_per_job < 0:
            raise ValidationError("revenue_per_job", f"must not be negative, got {revenue_per_job}")

        tasks = self._tasks(user_id)
        reminders = self._call_store(
            "load reminders",
            self.repo.list_reminders,
            user_id,
            start_of_day(start_day, self.tz),
            end_of_day(end_day, self.tz),
        )
        job_minutes = avg_job_minutes or average_estimated_minutes(tasks, self.settings.default_job_minutes)
        result = opportunity.detect_money_opportunity(
            start_day,
            end_day,
            opportunity.busy_intervals(tasks, [r for r in reminders if r.user_id == user_id], self.tz),
            job_minutes,
            revenue_per_job if revenue_per_job is not None else self.settings.revenue_per_job,
            self.tz,
            self.settings.work_start_hour,
            self.settings.work_end_hour,
        )
        logger.info(
            "Money opportunity user=%s days=%d free=%d jobs=%d",
            user_id,
            result.days_analyzed,
            result.free_minutes,
            result.jobs_that_fit,
        )
        return result

    # ---- agenda checks ----

    def workload_flags(self, user_id: str, start: Optional[DayLike] = None, end: Optional[DayLike] = None) -> workload.WorkloadFlags:
        user_id = self._require_user(user_id)
        start_day, end_day = self._date_range(start, end)
        return workload.workload_flags(self._due_in_range(self._tasks(user_id), start_day, end_day), tz=self.tz)

    def day_move_suggestions(
        self, user_id: str, start: Optional[DayLike] = None, end: Optional[DayLike] = None
    ) -> list[workload.DayMoveSuggestion]:
        user_id = self._require_user(user_id)
        start_day, end_day = self._date_range(start, end)
        tasks = self._due_in_range(self._tasks(user_id), start_day, end_day)
        flags = workload.workload_flags(tasks, tz=self.tz)
        overloaded = [day for day in flags.days if day.is_overloaded]
        suggestions = workload.suggest_day_moves(tasks, overloaded, self.tz)
        logger.info("Day moves user=%s overloaded_days=%d suggestions=%d", user_id, len(overloaded), len(suggestions))
        return suggestions

    def schedule_collisions(self, user_id: str, day: Optional[DayLike] = None) -> list[agenda.ScheduleCollision]:
        user_id = self._require_user(user_id)
        target = self._to_day("day", day) if day is not None else self._today()
        return agenda.detect_schedule_collisions(self._tasks(user_id), target, self.tz)

    def idle_gaps(
        self, user_id: str, day: Optional[DayLike] = None, min_gap_minutes: float = agenda.MIN_GAP_MINUTES
    ) -> list[agenda.IdleGap]:
        user_id = self._require_user(user_id)
        target = self._to_day("day", day) if day is not None else self._today()
        if min_gap_minutes < 0:
            raise ValidationError("min_gap_minutes", f"must not be negative, got {min_gap_minutes}")
        return agenda.detect_idle_gaps(
            self._tasks(user_id),
            target,
            self.tz,
            min_gap_minutes,
            self.settings.work_start_hour,
            self.settings.work_end_hour,
        )

    def performance(self, user_id: str, day: Optional[DayLike] = None) -> list[metrics.AssigneePerformance]:
        user_id = self._require_user(user_id)
        target = self._to_day("day", day) if day is not None else self._today()
        tasks = [task for task in self._tasks(user_id) if task.due_date is not None and local_day(task.due_date, self.tz) == target]
        return metrics.compute_performance(tasks, self.now(), self.tz)
