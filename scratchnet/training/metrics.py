"""Evaluation metrics computed by running the network over packed examples."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.network import Network
from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["cost", "mae", "rmse"]
    if task_type == "multiclass":
        return ["cost", "accuracy"]
    raise ValueError(f"Unknown task type: {task_type}")


def predict_all(net: Network, rows: Array) -> Array:
    """Forward every row's input part and stack the outputs."""

    rows = np.asarray(rows)
    return np.stack([net.predict(row[: net.input_size]) for row in rows])


def accuracy(net: Network, rows: Array) -> float:
    """Fraction of rows whose argmax output matches the argmax expected output."""

    rows = np.asarray(rows)
    predictions = predict_all(net, rows)
    targets = rows[:, net.input_size :]
    return float(np.mean(predictions.argmax(axis=1) == targets.argmax(axis=1)))


def compute_metric(name: str, predictions: Array, targets: Array) -> MetricResult:
    key = name.lower()
    diff = predictions - targets
    if key == "cost":
        value = float(np.mean(np.sum(diff**2, axis=1)))
    elif key == "mae":
        value = float(np.mean(np.abs(diff)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean(diff**2)))
    elif key == "accuracy":
        value = float(np.mean(predictions.argmax(axis=1) == targets.argmax(axis=1)))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def evaluate(
    net: Network,
    rows: Array,
    *,
    task_type: str = "regression",
    names: Iterable[str] | None = None,
) -> Mapping[str, float]:
    """Run ``net`` over ``rows`` and return the requested metrics."""

    rows = np.asarray(rows)
    predictions = predict_all(net, rows)
    targets = rows[:, net.input_size :]
    results: Dict[str, float] = {}
    for name in names or default_metrics(task_type):
        metric = compute_metric(name, predictions, targets)
        results[metric.name] = metric.value
    return results


__all__ = ["MetricResult", "accuracy", "compute_metric", "default_metrics", "evaluate", "predict_all"]
