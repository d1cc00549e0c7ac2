"""Pure in-memory synthetic datasets."""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

from ..core.types import DTYPE, Array
from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import deterministic_split, gaussian_distribution, pack_examples


def step_target(x: Array, period: float = 1.0, threshold: float = 0.5) -> Array:
    """``1`` where ``fmod(x, period) > threshold`` else ``0``.

    ``fmod`` keeps the sign of ``x``, so every negative input maps to ``0``
    unless ``threshold`` is negative.
    """

    return (np.fmod(x, period) > threshold).astype(DTYPE)


def gaussian_bump_target(x: Array, mean: float = 0.5, std: float = 0.1, scale: float = 0.2) -> Array:
    return gaussian_distribution(x, mean, std) * scale


def _split(
    name: str,
    rows: Array,
    data_spec: DataSpec,
    provenance: Dict[str, Any],
    *,
    seed: int,
    val_split: float,
    test_split: float,
) -> DatasetSpec:
    splits = deterministic_split(rows.shape[0], val_split=val_split, test_split=test_split, seed=seed)
    provenance = dict(provenance, seed=seed, val_split=val_split, test_split=test_split)
    return DatasetSpec(
        name=name,
        data_spec=data_spec,
        splits={
            "train": rows[splits.train],
            "val": rows[splits.val],
            "test": rows[splits.test],
        },
        provenance=provenance,
    )


@register_dataset("step")
def make_step(
    n_points: int = 2000,
    low: float = -6.0,
    high: float = 6.0,
    period: float = 1.0,
    threshold: float = 0.5,
    seed: int = 0,
    val_split: float = 0.0,
    test_split: float = 0.2,
) -> DatasetSpec:
    rng = np.random.default_rng(seed)
    x = rng.uniform(low, high, size=n_points)
    rows = pack_examples(x, step_target(x, period, threshold))
    provenance = {
        "type": "step",
        "n_points": n_points,
        "low": low,
        "high": high,
        "period": period,
        "threshold": threshold,
    }
    return _split(
        "step",
        rows,
        DataSpec(d_in=1, d_out=1, task_type="regression"),
        provenance,
        seed=seed,
        val_split=val_split,
        test_split=test_split,
    )


@register_dataset("gaussian_bump")
def make_gaussian_bump(
    n_points: int = 2000,
    seed: int = 0,
    val_split: float = 0.0,
    test_split: float = 0.2,
) -> DatasetSpec:
    rng = np.random.default_rng(seed)
    x = rng.uniform(0.0, 1.0, size=n_points)
    rows = pack_examples(x, gaussian_bump_target(x))
    return _split(
        "gaussian_bump",
        rows,
        DataSpec(d_in=1, d_out=1, task_type="regression"),
        {"type": "gaussian_bump", "n_points": n_points},
        seed=seed,
        val_split=val_split,
        test_split=test_split,
    )


@register_dataset("constant")
def make_constant(
    n_points: int = 256,
    d_in: int = 1,
    value: float = 0.5,
    seed: int = 0,
    val_split: float = 0.0,
    test_split: float = 0.2,
) -> DatasetSpec:
    rng = np.random.default_rng(seed)
    x = rng.uniform(-1.0, 1.0, size=(n_points, d_in))
    rows = pack_examples(x, np.full(n_points, value, dtype=DTYPE))
    return _split(
        "constant",
        rows,
        DataSpec(d_in=d_in, d_out=1, task_type="regression"),
        {"type": "constant", "n_points": n_points, "d_in": d_in, "value": value},
        seed=seed,
        val_split=val_split,
        test_split=test_split,
    )


@register_dataset("blobs")
def make_blobs(
    n_points: int = 600,
    num_classes: int = 3,
    d_in: int = 2,
    spread: float = 0.4,
    radius: float = 2.0,
    seed: int = 0,
    val_split: float = 0.0,
    test_split: float = 0.2,
) -> DatasetSpec:
    """Gaussian clusters with one-hot targets, one cluster per class.

    Centers sit evenly spaced on a circle of ``radius`` in the first two input
    dimensions; any further dimensions get random offsets in ``[-radius, radius]``.
    """

    if num_classes < 2:
        raise ValueError("blobs needs at least 2 classes")
    if d_in < 2:
        raise ValueError("blobs needs at least 2 input dimensions")
    rng = np.random.default_rng(seed)
    angles = 2.0 * np.pi * np.arange(num_classes) / num_classes
    centers = rng.uniform(-radius, radius, size=(num_classes, d_in))
    centers[:, 0] = radius * np.cos(angles)
    centers[:, 1] = radius * np.sin(angles)
    labels = rng.integers(0, num_classes, size=n_points)
    x = centers[labels] + spread * rng.standard_normal((n_points, d_in))
    targets = np.eye(num_classes, dtype=DTYPE)[labels]
    provenance = {
        "type": "blobs",
        "n_points": n_points,
        "num_classes": num_classes,
        "d_in": d_in,
        "spread": spread,
        "radius": radius,
    }
    return _split(
        "blobs",
        pack_examples(x, targets),
        DataSpec(d_in=d_in, d_out=num_classes, task_type="multiclass", num_classes=num_classes),
        provenance,
        seed=seed,
        val_split=val_split,
        test_split=test_split,
    )


__all__ = [
    "gaussian_bump_target",
    "make_blobs",
    "make_constant",
    "make_gaussian_bump",
    "make_step",
    "step_target",
]
