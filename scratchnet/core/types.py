"""Core typing contracts for scratchnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

import numpy as np

Array = np.ndarray

DTYPE = np.float64


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :meth:`scratchnet.training.trainer.Trainer.run`."""

    steps: int
    stopped: bool = False
    final_metrics: Dict[str, float] = field(default_factory=dict)
    metrics_path: str = ""
    manifest_path: str = ""


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of training progress published by a background worker."""

    steps: int
    metrics: Dict[str, float] = field(default_factory=dict)
    running: bool = False
