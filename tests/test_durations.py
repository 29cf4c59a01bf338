from datetime import datetime, timedelta, timezone

from task_intelligence.durations import DurationEstimator, average_estimated_minutes, average_minutes_by_type
from task_intelligence.schema import TaskStatus

T0 = datetime(2025, 1, 2, 9, tzinfo=timezone.utc)


def _done(make_task, task_type, minutes):
    return make_task(type=task_type, status=TaskStatus.DONE, created_at=T0, completed_at=T0 + timedelta(minutes=minutes))


def test_average_by_type_discards_negative_durations(make_task):
    tasks = [
        _done(make_task, "VISIT", 40),
        _done(make_task, "VISIT", 80),
        _done(make_task, "VISIT", -15),
        _done(make_task, "CALL", 10),
        make_task(type="CALL", created_at=T0),
    ]
    assert average_minutes_by_type(tasks) == {"VISIT": 60.0, "CALL": 10.0}


def test_estimator_precedence(make_task):
    estimator = DurationEstimator.from_history([_done(make_task, "VISIT", 90)])
    assert estimator(make_task(type="VISIT", estimated_minutes=20)) == 20.0
    assert estimator(make_task(type="VISIT")) == 90.0
    assert estimator(make_task(type="OTHER")) == 30.0


def test_average_estimated_minutes(make_task):
    assert average_estimated_minutes([]) == 60
    assert average_estimated_minutes([make_task(estimated_minutes=30), make_task(estimated_minutes=45), make_task()]) == 38
