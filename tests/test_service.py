import contextlib
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from task_intelligence.config import Settings
from task_intelligence.errors import AuthorizationError, ComputationError, ValidationError
from task_intelligence.schema import Client, Priority, Reminder, Task, TaskStatus
from task_intelligence.service import TaskIntelligenceService
from task_intelligence.store import InMemoryTaskStore

NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)
DAY = date(2025, 1, 9)


def _t(hour, minute=0, day=9):
    return datetime(2025, 1, day, hour, minute, tzinfo=timezone.utc)


def _service(store):
    return TaskIntelligenceService(store, Settings(), clock=lambda: NOW)


class _FailingUnit:
    def __init__(self, inner, fail_on):
        self._inner = inner
        self._fail_on = fail_on

    def set_priority_score(self, task_id, score, calculated_at):
        if task_id == self._fail_on:
            raise RuntimeError("disk full")
        self._inner.set_priority_score(task_id, score, calculated_at)


class FlakyStore(InMemoryTaskStore):
    def __init__(self, tasks, fail_on):
        super().__init__(tasks)
        self.fail_on = fail_on

    @contextlib.contextmanager
    def transaction(self):
        with super().transaction() as uow:
            yield _FailingUnit(uow, self.fail_on)


class BrokenStore(InMemoryTaskStore):
    def list_tasks(self, user_id):
        raise RuntimeError("connection reset")


def _priority_tasks():
    return [
        Task(
            id="p1",
            user_id="u1",
            due_date=NOW + timedelta(hours=12),
            priority=Priority.HIGH,
            is_blocking=True,
            sla_minutes=60,
        ),
        Task(id="p2", user_id="u1", due_date=_t(9, day=20), priority=Priority.LOW),
        Task(id="o1", user_id="u2", priority=Priority.HIGH),
    ]


def test_recalculate_all_priorities_persists_scores():
    store = InMemoryTaskStore(_priority_tasks())
    scores = _service(store).recalculate_all_priorities("u1")

    assert scores == {"p1": 690.0, "p2": 40.0}
    assert store.get_task("p1").priority_score == 690.0
    assert store.get_task("p1").priority_calculated_at == NOW
    assert store.get_task("o1").priority_score is None


def test_batch_recompute_is_all_or_nothing():
    store = FlakyStore(_priority_tasks(), fail_on="p2")
    with pytest.raises(ComputationError):
        _service(store).recalculate_all_priorities("u1")
    assert store.get_task("p1").priority_score is None
    assert store.get_task("p2").priority_score is None


def test_single_recompute_and_ownership():
    store = InMemoryTaskStore(_priority_tasks())
    service = _service(store)
    assert service.recalculate_priority("u1", "p1") == 690.0

    with pytest.raises(AuthorizationError):
        service.recalculate_priority("u1", "o1")
    with pytest.raises(AuthorizationError):
        service.recalculate_priority("u1", "missing")
    with pytest.raises(AuthorizationError):
        service.next_actions("")


def test_store_failure_becomes_computation_error():
    with pytest.raises(ComputationError):
        _service(BrokenStore()).delay_risk("u1")


def test_parameter_validation():
    service = _service(InMemoryTaskStore())
    with pytest.raises(ValidationError) as excinfo:
        service.redistribution_suggestions("u1", date(2025, 1, 10), date(2025, 1, 9))
    assert excinfo.value.field == "to"

    with pytest.raises(ValidationError):
        service.redistribution_suggestions("u1", DAY, DAY, capacity_minutes_per_day=0)
    with pytest.raises(ValidationError):
        service.delay_risk("u1", date(2025, 1, 1), date(2026, 6, 1))
    with pytest.raises(ValidationError):
        service.optimize_route("u1", DAY, speed_kmh=0)
    with pytest.raises(ValidationError):
        service.optimize_route("u1", DAY, base=(100.0, 0.0))
    with pytest.raises(ValidationError):
        service.money_opportunity("u1", DAY, DAY, avg_job_minutes=-5)


def _route_store():
    return InMemoryTaskStore(
        [
            Task(id="r1", user_id="u1", due_date=_t(9), latitude=0.0, longitude=0.0),
            Task(id="r2", user_id="u1", due_date=_t(10), latitude=0.0, longitude=3.0),
            Task(id="r3", user_id="u1", due_date=_t(11), latitude=0.0, longitude=1.0),
            Task(id="next_day", user_id="u1", due_date=_t(9, day=10), latitude=0.0, longitude=0.5),
            Task(
                id="done",
                user_id="u1",
                due_date=_t(12),
                status=TaskStatus.DONE,
                completed_at=_t(12),
                latitude=0.0,
                longitude=0.2,
            ),
            Task(id="o1", user_id="u2", due_date=_t(9), latitude=0.0, longitude=0.1),
        ]
    )


def test_route_for_one_day_and_apply():
    store = _route_store()
    service = _service(store)

    plan = service.optimize_route("u1", DAY)
    assert plan.task_ids == ["r1", "r3", "r2"]
    assert store.get_task("r1").route_order is None

    applied = service.apply_route_order("u1", DAY, ["r1", "r3", "o1", "unknown", "next_day", "r2", "r1"])
    assert applied == 3
    assert [store.get_task(i).route_order for i in ("r1", "r3", "r2")] == [0, 1, 2]
    assert store.get_task("o1").route_order is None
    assert store.get_task("next_day").route_order is None


def test_redistribution_over_range_and_reassignment():
    store = InMemoryTaskStore(
        [
            Task(id="a_low", user_id="u1", due_date=_t(10), assigned_to="ana", priority=Priority.LOW, estimated_minutes=300),
            Task(id="a_high", user_id="u1", due_date=_t(11), assigned_to="ana", priority=Priority.HIGH, estimated_minutes=300),
            Task(id="b1", user_id="u1", due_date=_t(12), assigned_to="bob", estimated_minutes=100),
            Task(id="later", user_id="u1", due_date=_t(9, day=12), assigned_to="bob", estimated_minutes=400),
        ]
    )
    service = _service(store)

    suggestions = service.redistribution_suggestions("u1", DAY, DAY)
    assert [(s.task_id, s.from_assignee, s.to_assignee) for s in suggestions] == [("a_low", "ana", None)]
    assert store.get_task("a_low").assigned_to == "ana"

    assert service.redistribution_suggestions("u1", DAY, date(2025, 1, 10)) == []

    updated = service.apply_reassignment("u1", "a_low", "bob")
    assert updated.assigned_to == "bob"
    assert store.get_task("a_low").assigned_to == "bob"


def test_delay_risk_uses_default_horizon():
    store = InMemoryTaskStore(
        [
            Task(id="d1", user_id="u1", due_date=_t(10), estimated_minutes=400),
            Task(id="d2", user_id="u1", due_date=_t(15), estimated_minutes=320),
            Task(id="far", user_id="u1", due_date=_t(10, day=30), estimated_minutes=900),
        ]
    )
    risks = _service(store).delay_risk("u1")
    assert [(r.day, r.probability) for r in risks] == [(DAY, 0.75)]


def test_money_opportunity_with_reminders():
    store = InMemoryTaskStore(
        tasks=[Task(id="m1", user_id="u1", start_at=_t(13), end_at=_t(14), estimated_minutes=60)],
        reminders=[
            Reminder(id="r1", user_id="u1", start=_t(10), end=_t(12)),
            Reminder(id="r2", user_id="u2", start=_t(14), end=_t(18)),
        ],
    )
    result = _service(store).money_opportunity("u1", DAY, DAY)
    assert (result.free_minutes, result.jobs_that_fit, result.potential_revenue, result.days_analyzed) == (360, 6, 480, 1)


def test_next_actions_reads_clients():
    store = InMemoryTaskStore(
        tasks=[
            Task(id="vip", user_id="u1", client_id="c1"),
            Task(id="plain", user_id="u1", estimated_minutes=10),
        ],
        clients=[Client(id="c1", user_id="u1", total_spent=9000)],
    )
    ranked = _service(store).next_actions("u1")
    assert [a.task.id for a in ranked] == ["vip", "plain"]


def test_agenda_checks_through_service():
    store = InMemoryTaskStore(
        [
            Task(id="a", user_id="u1", assigned_to="ana", start_at=_t(9), end_at=_t(11), due_date=_t(11)),
            Task(id="b", user_id="u1", assigned_to="ana", start_at=_t(10), end_at=_t(12), due_date=_t(12)),
        ]
    )
    service = _service(store)
    assert [c.severity for c in service.schedule_collisions("u1", DAY)] == ["HIGH"]
    assert [g.free_minutes for g in service.idle_gaps("u1", DAY)] == [360.0]
    assert service.performance("u1", DAY)[0].current_load == 2
    assert service.workload_flags("u1", DAY, DAY).days == []
    with pytest.raises(ValidationError):
        service.idle_gaps("u1", DAY, min_gap_minutes=-1)


def test_overrun_predictions_empty_without_history():
    store = InMemoryTaskStore([Task(id="x", user_id="u1")])
    assert _service(store).overrun_predictions("u1") == []


def test_reapplying_a_shorter_route_clears_dropped_tasks():
    store = _route_store()
    service = _service(store)

    service.apply_route_order("u1", DAY, ["r1", "r3", "r2"])
    assert service.apply_route_order("u1", DAY, ["r2"]) == 1

    orders = {task_id: store.get_task(task_id).route_order for task_id in ("r1", "r2", "r3")}
    assert orders == {"r1": None, "r2": 0, "r3": None}


def test_single_recompute_store_failure_is_wrapped():
    store = FlakyStore(_priority_tasks(), fail_on="p1")
    with pytest.raises(ComputationError):
        _service(store).recalculate_priority("u1", "p1")
    assert store.get_task("p1").priority_score is None


def test_naive_reminders_are_read_in_the_configured_zone():
    madrid = ZoneInfo("Europe/Madrid")
    late_evening = Reminder(id="r1", user_id="u1", start=datetime(2025, 1, 8, 23, 0), end=datetime(2025, 1, 8, 23, 45))
    store = InMemoryTaskStore(reminders=[late_evening], tz=madrid)

    day_start = datetime(2025, 1, 9, tzinfo=madrid)
    assert store.list_reminders("u1", day_start, day_start + timedelta(days=1)) == []
    assert len(store.list_reminders("u1", day_start - timedelta(hours=2), day_start)) == 1


def test_priority_explanation_through_service():
    service = _service(InMemoryTaskStore(_priority_tasks()))
    explanation = service.explain_priority("u1", "p1")
    assert explanation["score"] == 690.0
    assert explanation["terms"][0]["term"] == "due"
    with pytest.raises(AuthorizationError):
        service.explain_priority("u1", "o1")


def test_overrun_explanation_unavailable_without_history():
    service = _service(InMemoryTaskStore([Task(id="x", user_id="u1")]))
    assert service.explain_overrun_model("u1") == {"type": "unavailable", "top_features": []}


def test_operational_predictions_through_service():
    store = InMemoryTaskStore(
        [
            Task(id="d1", user_id="u1", due_date=_t(10), estimated_minutes=400),
            Task(id="d2", user_id="u1", due_date=_t(15), estimated_minutes=320),
            Task(id="o1", user_id="u2", due_date=_t(15), estimated_minutes=900),
        ]
    )
    service = _service(store)
    predictions = service.operational_predictions("u1", DAY, DAY)
    assert [(p.type.value, p.probability) for p in predictions] == [("DAY_SATURATION", 0.75)]
    assert service.operational_predictions("u1", DAY, DAY, capacity_minutes_per_day=800) == []
    with pytest.raises(ValidationError):
        service.operational_predictions("u1", DAY, DAY, capacity_minutes_per_day=0)


def test_day_moves_through_service():
    tasks = [Task(id=f"b{i}", user_id="u1", due_date=_t(9 + i % 3)) for i in range(8)]
    tasks.append(Task(id="lo", user_id="u1", due_date=_t(8), priority=Priority.LOW))
    moves = _service(InMemoryTaskStore(tasks)).day_move_suggestions("u1", DAY, date(2025, 1, 12))
    assert moves[0].task_id == "lo"
    assert moves[0].to_day == date(2025, 1, 8)
    assert len(moves) == 5
