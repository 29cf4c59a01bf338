from task_intelligence.schema import Priority, TaskStatus
from task_intelligence.workforce import build_workforce_suggestions, load_per_assignee, sort_by_lowest_priority

CAPACITY = 480


def _estimate(minutes):
    return lambda task: minutes[task.id]


def _moves(suggestions):
    return [(s.task_id, s.from_assignee, s.to_assignee) for s in suggestions]


def test_task_larger_than_spare_capacity_is_not_moved(make_task):
    tasks = [
        make_task(id="big", assigned_to="A", priority=Priority.LOW),
        make_task(id="idle", assigned_to="B"),
    ]
    suggestions = build_workforce_suggestions(tasks, _estimate({"big": 600, "idle": 0}), CAPACITY)
    assert suggestions == []


def test_empty_unassigned_bucket_receives_work(make_task):
    tasks = [
        make_task(id="a_low", assigned_to="A", priority=Priority.LOW),
        make_task(id="a_high", assigned_to="A", priority=Priority.HIGH),
    ]
    suggestions = build_workforce_suggestions(tasks, _estimate({"a_low": 200, "a_high": 300}), CAPACITY)
    assert _moves(suggestions) == [("a_low", "A", None)]
    assert suggestions[0].benefit_minutes == 200


def test_unassigned_bucket_wins_on_spare_room(make_task):
    tasks = [
        make_task(id="a_low", assigned_to="A", priority=Priority.LOW),
        make_task(id="a_high", assigned_to="A", priority=Priority.HIGH),
        make_task(id="b1", assigned_to="B"),
    ]
    suggestions = build_workforce_suggestions(tasks, _estimate({"a_low": 300, "a_high": 300, "b1": 100}), CAPACITY)
    assert _moves(suggestions) == [("a_low", "A", None)]


def test_lowest_priority_task_moves_first(make_task):
    tasks = [
        make_task(id="a_high", assigned_to="A", priority=Priority.HIGH),
        make_task(id="a_low", assigned_to="A", priority=Priority.LOW),
        make_task(id="b1", assigned_to="B"),
        make_task(id="queued", assigned_to=None),
    ]
    minutes = {"a_low": 300, "a_high": 300, "b1": 100, "queued": 470}
    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)

    assert len(suggestions) == 1
    move = suggestions[0]
    assert (move.task_id, move.from_assignee, move.to_assignee, move.benefit_minutes) == ("a_low", "A", "B", 300)


def test_receiver_with_most_spare_room_wins(make_task):
    tasks = [
        make_task(id="a1", assigned_to="A", priority=Priority.LOW),
        make_task(id="a2", assigned_to="A", priority=Priority.HIGH),
        make_task(id="b1", assigned_to="B"),
        make_task(id="c1", assigned_to="C"),
        make_task(id="queued", assigned_to=None),
    ]
    minutes = {"a1": 200, "a2": 400, "b1": 300, "c1": 100, "queued": 460}
    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)
    assert [(s.task_id, s.to_assignee) for s in suggestions] == [("a1", "C")]


def test_receivers_never_exceed_capacity(make_task):
    tasks = [make_task(id=f"a{i}", assigned_to="A", priority=Priority.LOW) for i in range(6)]
    tasks.append(make_task(id="a_big", assigned_to="A", priority=Priority.HIGH))
    tasks.append(make_task(id="b1", assigned_to="B"))
    tasks.append(make_task(id="c1", assigned_to="C"))
    tasks.append(make_task(id="queued", assigned_to=None))
    minutes = {f"a{i}": 50 for i in range(6)}
    minutes.update({"a_big": 300, "b1": 400, "c1": 350, "queued": 470})

    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)
    assert [s.to_assignee for s in suggestions] == ["C", "B", "C"]

    load = load_per_assignee(tasks, _estimate(minutes))
    for move in suggestions:
        load[move.from_assignee] -= move.benefit_minutes
        load[move.to_assignee] += move.benefit_minutes
    assert load["B"] <= CAPACITY
    assert load["C"] <= CAPACITY
    assert load[None] <= CAPACITY


def test_balanced_or_exactly_full_produces_nothing(make_task):
    tasks = [make_task(id="a1", assigned_to="A"), make_task(id="b1", assigned_to="B")]
    assert build_workforce_suggestions(tasks, _estimate({"a1": 480, "b1": 100}), CAPACITY) == []
    assert build_workforce_suggestions(tasks, _estimate({"a1": 300, "b1": 100}), CAPACITY) == []


def test_receiver_can_be_filled_to_exact_capacity(make_task):
    tasks = [
        make_task(id="a1", assigned_to="A", priority=Priority.LOW),
        make_task(id="a2", assigned_to="A", priority=Priority.HIGH),
        make_task(id="b1", assigned_to="B"),
        make_task(id="queued", assigned_to=None),
    ]
    minutes = {"a1": 120, "a2": 480, "b1": 360, "queued": 470}
    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)
    assert [(s.task_id, s.to_assignee) for s in suggestions] == [("a1", "B")]


def test_max_suggestions_caps_output(make_task):
    tasks = [make_task(id=f"a{i}", assigned_to="A", priority=Priority.LOW) for i in range(10)]
    tasks.append(make_task(id="b1", assigned_to="B"))
    minutes = {f"a{i}": 60 for i in range(10)}
    minutes["b1"] = 10

    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)
    assert [s.to_assignee for s in suggestions] == [None, "B"]
    assert len(build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY, max_suggestions=1)) == 1


def test_priority_score_outranks_declared_priority(make_task):
    declared_high = make_task(id="h", priority=Priority.HIGH, priority_score=10.0)
    declared_low = make_task(id="l", priority=Priority.LOW, priority_score=500.0)
    assert [t.id for t in sort_by_lowest_priority([declared_low, declared_high])] == ["h", "l"]


def test_unassigned_bucket_and_completed_work(make_task):
    tasks = [
        make_task(id="u1", assigned_to=None, priority=Priority.LOW),
        make_task(id="u2", assigned_to=None, priority=Priority.HIGH),
        make_task(id="done", assigned_to="B", status=TaskStatus.DONE),
        make_task(id="b1", assigned_to="B"),
    ]
    minutes = {"u1": 300, "u2": 300, "done": 900, "b1": 100}
    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)
    assert _moves(suggestions) == [("u1", None, "B")]


def test_zero_minute_tasks_are_skipped(make_task):
    tasks = [
        make_task(id="zero", assigned_to="A", priority=Priority.LOW),
        make_task(id="a1", assigned_to="A", priority=Priority.MEDIUM),
        make_task(id="a2", assigned_to="A", priority=Priority.HIGH),
        make_task(id="b1", assigned_to="B"),
    ]
    minutes = {"zero": 0, "a1": 100, "a2": 400, "b1": 50}
    suggestions = build_workforce_suggestions(tasks, _estimate(minutes), CAPACITY)
    assert [s.task_id for s in suggestions] == ["a1"]
