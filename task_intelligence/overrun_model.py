"""Learned prediction of tasks overrunning their time estimate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

import numpy as np
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, f1_score, roc_auc_score
from sklearn.model_selection import StratifiedKFold, cross_validate, train_test_split
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from task_intelligence.durations import FALLBACK_ESTIMATE_MINUTES, actual_minutes
from task_intelligence.schema import Priority, Task, TaskStatus

_PRIORITIES = tuple(p.value for p in Priority)


@dataclass
class OverrunPrediction:
    task_id: str
    probability: float


def _normalize_type(task_type: Optional[str]) -> str:
    if task_type is None:
        return "unknown"
    normalized = str(task_type).strip()
    return normalized or "unknown"


def _anchor(task: Task) -> Optional[datetime]:
    return task.start_at or task.due_date or task.created_at


def _estimate(task: Task) -> float:
    return float(task.estimated_minutes or FALLBACK_ESTIMATE_MINUTES)


def feature_names_for(types: Iterable[str]) -> list[str]:
    names = ["hour_of_day", "weekday", "estimate_minutes", "is_blocking", "has_sla"]
    names += [f"priority={priority}" for priority in _PRIORITIES]
    names += [f"type={task_type}" for task_type in sorted(set(types))]
    return names


def _row(task: Task, types: list[str]) -> list[float]:
    anchor = _anchor(task)
    priority = task.priority.value if isinstance(task.priority, Priority) else str(task.priority)
    task_type = _normalize_type(task.type)
    row = [
        float(anchor.hour) if anchor else 0.0,
        float(anchor.weekday()) if anchor else 0.0,
        _estimate(task),
        1.0 if task.is_blocking else 0.0,
        1.0 if task.sla_minutes else 0.0,
    ]
    row.extend(1.0 if priority == value else 0.0 for value in _PRIORITIES)
    row.extend(1.0 if task_type == known else 0.0 for known in types)
    return row


def build_training_table(tasks: list[Task]) -> tuple[np.ndarray, np.ndarray, list[str]]:
    """Build (X, y, feature_names) from completed tasks; y = 1 when the task overran."""

    completed = [task for task in tasks if task.status == TaskStatus.DONE and task.completed_at is not None]
    samples = []
    for task in sorted(completed, key=lambda t: (t.completed_at, t.id)):
        real = actual_minutes(task)
        if real is None:
            continue
        samples.append((task, 1 if real > _estimate(task) else 0))

    if not samples:
        return np.empty((0, 0)), np.array([], dtype=int), []

    types = sorted({_normalize_type(task.type) for task, _ in samples})
    feature_names = feature_names_for(types)
    rows = [_row(task, types) for task, _ in samples]
    labels = [label for _, label in samples]
    return np.asarray(rows, dtype=float), np.asarray(labels, dtype=int), feature_names


def _make_models(seed: int) -> dict[str, Any]:
    return {
        "LogisticRegression": Pipeline(
            [
                ("scaler", StandardScaler()),
                ("clf", LogisticRegression(max_iter=1000, random_state=seed)),
            ]
        ),
        "RandomForest": RandomForestClassifier(n_estimators=200, random_state=seed),
        "GradientBoosting": GradientBoostingClassifier(random_state=seed),
    }


def _safe_roc_auc(y_true: np.ndarray, scores: np.ndarray) -> float:
    if len(np.unique(y_true)) < 2:
        return 0.5
    return float(roc_auc_score(y_true, scores))


def benchmark_models(X: np.ndarray, y: np.ndarray, seed: int = 42) -> dict:
    """Benchmark candidate classifiers with a stratified split + CV."""

    if len(X) == 0 or len(y) == 0 or len(np.unique(y)) < 2:
        return {"models": {}, "ranking": [], "best_model": None}

    class_counts = np.bincount(y)
    can_stratify = int(class_counts.min()) >= 2 and len(y) >= 4
    X_train, X_test, y_train, y_test = train_test_split(
        X,
        y,
        test_size=0.25,
        random_state=seed,
        stratify=y if can_stratify else None,
    )
    if len(np.unique(y_train)) < 2:
        return {"models": {}, "ranking": [], "best_model": None}

    min_class_count = int(np.bincount(y_train).min())
    cv_folds = max(2, min(5, min_class_count))
    cv = StratifiedKFold(n_splits=cv_folds, shuffle=True, random_state=seed)
    scoring = {"roc_auc": "roc_auc", "f1": "f1", "accuracy": "accuracy"}

    report: dict[str, Any] = {"models": {}}
    for name, model in _make_models(seed).items():
        metrics: dict[str, Any] = {}
        if min_class_count >= 2:
            cv_scores = cross_validate(model, X_train, y_train, cv=cv, scoring=scoring)
            metrics["cv"] = {
                metric: {
                    "mean": float(np.mean(cv_scores[f"test_{metric}"])),
                    "std": float(np.std(cv_scores[f"test_{metric}"])),
                }
                for metric in ("roc_auc", "f1", "accuracy")
            }
        else:
            metrics["cv"] = {
                "roc_auc": {"mean": 0.5, "std": 0.0},
                "f1": {"mean": 0.0, "std": 0.0},
                "accuracy": {"mean": float(np.mean(y_train == y_train[0])), "std": 0.0},
            }

        fitted = model.fit(X_train, y_train)
        y_pred = fitted.predict(X_test)
        y_score = fitted.predict_proba(X_test)[:, 1]
        metrics["test"] = {
            "roc_auc": _safe_roc_auc(y_test, y_score),
            "f1": float(f1_score(y_test, y_pred, zero_division=0)),
            "accuracy": float(accuracy_score(y_test, y_pred)),
        }
        report["models"][name] = metrics

    ranked = sorted(report["models"].items(), key=lambda item: item[1]["cv"]["roc_auc"]["mean"], reverse=True)
    report["ranking"] = [{"model": name, "cv_roc_auc_mean": m["cv"]["roc_auc"]["mean"]} for name, m in ranked]
    report["best_model"] = ranked[0][0] if ranked else None
    return report


def train_best_model(X: np.ndarray, y: np.ndarray, seed: int = 42) -> tuple[Any, dict]:
    """Fit the best model (by CV ROC-AUC) on all rows."""

    report = benchmark_models(X, y, seed=seed)
    best_name = report.get("best_model")
    if best_name is None:
        raise ValueError("Cannot train an overrun model without both overrun and on-time history")

    model = _make_models(seed)[best_name]
    model.fit(X, y)
    return model, report


def predict_overruns(model: Any, tasks: Iterable[Task], feature_names: list[str]) -> list[OverrunPrediction]:
    """Overrun probability for each pending task, highest first."""

    types = [name.split("=", 1)[1] for name in feature_names if name.startswith("type=")]
    pending = [task for task in tasks if task.is_pending]
    if not pending:
        return []

    X = np.asarray([_row(task, types) for task in pending], dtype=float)
    probabilities = model.predict_proba(X)[:, 1]
    predictions = [
        OverrunPrediction(task_id=task.id, probability=round(float(p), 4)) for task, p in zip(pending, probabilities)
    ]
    return sorted(predictions, key=lambda item: (-item.probability, item.task_id))
