"""Explainability helpers for scores and learned models."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Optional

import numpy as np
from sklearn.pipeline import Pipeline

from task_intelligence.priority import score_task
from task_intelligence.schema import Task

_TERM_LABELS = {
    "due": "Due-date urgency",
    "priority": "Declared priority",
    "blocking": "Blocks other work",
    "sla": "SLA obligation",
    "pending": "Still pending",
}


def explain_priority(task: Task, now: datetime, tz: Optional[tzinfo] = None) -> dict:
    """Break a priority score into its non-zero terms, largest first."""

    components = score_task(task, now, tz, return_components=True)
    terms = [
        {"term": name, "label": _TERM_LABELS[name], "points": points}
        for name, points in components.items()
        if name != "score" and points
    ]
    terms.sort(key=lambda item: -item["points"])
    return {"task_id": task.id, "score": components["score"], "terms": terms}


def _extract_estimator(model: Any) -> Any:
    if isinstance(model, Pipeline):
        return model.steps[-1][1]
    return model


def explain_model(model: Any, feature_names: list[str], top: int = 10) -> dict:
    """Return the most influential features of a linear or tree overrun model."""

    estimator = _extract_estimator(model)

    if hasattr(estimator, "coef_"):
        values = np.asarray(estimator.coef_).ravel()
        kind = "coefficients"
    elif hasattr(estimator, "feature_importances_"):
        values = np.asarray(estimator.feature_importances_).ravel()
        kind = "feature_importances"
    else:
        return {"type": "unsupported", "top_features": []}

    pairs = sorted(zip(feature_names, values), key=lambda item: abs(item[1]), reverse=True)[:top]
    return {
        "type": kind,
        "top_features": [{"feature": feature, "weight": float(weight)} for feature, weight in pairs],
    }
