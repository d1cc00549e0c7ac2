"""Helpers for packing, splitting and sampling training examples."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from ..core.types import DTYPE, Array

_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


def gaussian_distribution(x: Array, mean: float, std: float) -> Array:
    """Normal probability density of ``x``."""

    a = (np.asarray(x, dtype=DTYPE) - mean) / std
    return np.exp(-0.5 * a * a) * _INV_SQRT_2PI / std


def pack_examples(inputs: Array, targets: Array) -> Array:
    """Concatenate inputs and targets into ``input ++ expected`` rows."""

    inputs = np.asarray(inputs, dtype=DTYPE)
    targets = np.asarray(targets, dtype=DTYPE)
    if inputs.ndim == 1:
        inputs = inputs.reshape(-1, 1)
    if targets.ndim == 1:
        targets = targets.reshape(-1, 1)
    if inputs.shape[0] != targets.shape[0]:
        raise ValueError(
            f"inputs and targets disagree on example count: {inputs.shape[0]} != {targets.shape[0]}"
        )
    return np.hstack([inputs, targets])


def split_examples(rows: Array, d_in: int) -> tuple[Array, Array]:
    """Inverse of :func:`pack_examples`."""

    rows = np.asarray(rows)
    return rows[:, :d_in], rows[:, d_in:]


def sample_batch(rows: Array, batch_size: int, rng: np.random.Generator) -> Array:
    """Draw ``batch_size`` rows with replacement."""

    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    idx = rng.integers(0, rows.shape[0], size=batch_size)
    return rows[idx]


@dataclass(frozen=True)
class SplitIndices:
    """Indices for train/validation/test partitions."""

    train: np.ndarray
    val: np.ndarray
    test: np.ndarray

    @property
    def sizes(self) -> Mapping[str, int]:
        return {
            "train": int(self.train.size),
            "val": int(self.val.size),
            "test": int(self.test.size),
        }


def deterministic_split(
    n_samples: int,
    *,
    val_split: float = 0.1,
    test_split: float = 0.2,
    seed: int = 0,
) -> SplitIndices:
    """Return deterministic indices for the requested split ratios."""

    if not 0 <= val_split < 1:
        raise ValueError("val_split must be in [0, 1)")
    if not 0 <= test_split < 1:
        raise ValueError("test_split must be in [0, 1)")
    if val_split + test_split >= 1:
        raise ValueError("val_split + test_split must be < 1")

    rng = np.random.default_rng(seed)
    indices = np.arange(n_samples)
    rng.shuffle(indices)

    test_size = int(round(n_samples * test_split))
    val_size = int(round(n_samples * val_split))
    # at least one sample per requested split when possible
    test_size = min(max(test_size, 1 if test_split > 0 else 0), n_samples)
    remaining = n_samples - test_size
    val_size = min(max(val_size, 1 if val_split > 0 else 0), remaining)
    train_size = n_samples - val_size - test_size
    if train_size <= 0:
        raise ValueError("Not enough samples for the requested splits")

    test_idx = indices[:test_size]
    val_idx = indices[test_size : test_size + val_size]
    train_idx = indices[test_size + val_size :]

    return SplitIndices(train=train_idx, val=val_idx, test=test_idx)


__all__ = [
    "SplitIndices",
    "deterministic_split",
    "gaussian_distribution",
    "pack_examples",
    "sample_batch",
    "split_examples",
]
