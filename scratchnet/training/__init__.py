"""Training loop, metrics and pipeline assembly."""

from .pipelines import load_preset, presets, run_pipeline
from .trainer import Trainer, TrainingWorker

__all__ = ["Trainer", "TrainingWorker", "load_preset", "presets", "run_pipeline"]
