from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from task_intelligence.explain import explain_model
from task_intelligence.overrun_model import benchmark_models, build_training_table, predict_overruns, train_best_model
from task_intelligence.schema import Task, TaskStatus


def sample_history():
    base = datetime(2025, 1, 6, 8, tzinfo=timezone.utc)
    tasks = []
    for i in range(12):
        start = base + timedelta(days=i % 5, hours=i % 3)
        tasks.append(
            Task(
                id=f"visit{i}",
                user_id="u1",
                type="VISIT",
                status=TaskStatus.DONE,
                created_at=start - timedelta(hours=2),
                start_at=start,
                completed_at=start + timedelta(minutes=90),
                estimated_minutes=45,
            )
        )
        tasks.append(
            Task(
                id=f"call{i}",
                user_id="u1",
                type="CALL",
                status=TaskStatus.DONE,
                created_at=start - timedelta(hours=1),
                start_at=start,
                completed_at=start + timedelta(minutes=10),
                estimated_minutes=20,
            )
        )
    return tasks


def test_training_table_labels_overruns():
    X, y, names = build_training_table(sample_history())
    assert X.shape == (24, len(names))
    assert int(y.sum()) == 12
    assert "type=VISIT" in names
    assert "type=CALL" in names


def test_benchmark_models_smoke():
    X, y, _ = build_training_table(sample_history())
    report = benchmark_models(X, y, seed=7)
    assert "models" in report
    assert report["best_model"] in {"LogisticRegression", "RandomForest", "GradientBoosting"}
    assert len(report["ranking"]) == 3


def test_single_class_cannot_train():
    history = [t for t in sample_history() if t.type == "CALL"]
    X, y, _ = build_training_table(history)
    assert benchmark_models(X, y)["best_model"] is None
    with pytest.raises(ValueError):
        train_best_model(X, y)


def test_predictions_rank_pending_tasks():
    X, y, names = build_training_table(sample_history())
    model, _ = train_best_model(X, y)
    pending = [
        Task(id="new_visit", user_id="u1", type="VISIT", estimated_minutes=45, start_at=datetime(2025, 1, 13, 9, tzinfo=timezone.utc)),
        Task(id="new_call", user_id="u1", type="CALL", estimated_minutes=20, start_at=datetime(2025, 1, 13, 9, tzinfo=timezone.utc)),
    ]
    predictions = predict_overruns(model, pending, names)
    assert [p.task_id for p in predictions] == ["new_visit", "new_call"]
    assert all(0.0 <= p.probability <= 1.0 for p in predictions)

    explanation = explain_model(model, names, top=3)
    assert explanation["type"] in {"coefficients", "feature_importances"}
    assert len(explanation["top_features"]) == 3
    assert np.isfinite([f["weight"] for f in explanation["top_features"]]).all()
